"""
Entry point for module execution (``python -m jankyp``).

This module delegates execution to the CLI handler in ``jankyp.cli.__main__``.
"""

import sys
from jankyp.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
