"""
Main Entry Point for the jankyp CLI.

``jankyp <input> <output>`` rewrites one program; ``jankyp --run <input>``
runs one script under the ledger in the embedded engine and prints the
report. Settings not given on the command line come from ``[tool.jankyp]`` in
the nearest ``pyproject.toml``.
"""

import argparse
from pathlib import Path
from typing import List, Optional

from jankyp import __version__
from jankyp.cli.instrument import handle_instrument, handle_list_rules
from jankyp.cli.run import handle_run
from jankyp.config import SOURCE_TYPES


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  parser = argparse.ArgumentParser(description="jankyp: dynamic behavior profiler for JavaScript")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  parser.add_argument("input", type=Path, nargs="?", help="Program to instrument")
  parser.add_argument("output", type=Path, nargs="?", help="Destination of the instrumented program")
  parser.add_argument("--binding", default=None, help="Identifier the program binds the ledger to (default: $jankyp)")
  parser.add_argument("--ledger-module", default=None, help="Module specifier the program requires the ledger from")
  parser.add_argument("--source-type", choices=SOURCE_TYPES, default=None, help="Parse as a script or an ES module")
  parser.add_argument("--rules", nargs="+", default=None, help="Rule modules to apply (default: all)")
  parser.add_argument("--list-rules", action="store_true", help="Show the available rule modules and exit")
  parser.add_argument("--run", action="store_true", help="Run the input script under the ledger and print the report")

  args = parser.parse_args(argv)

  if args.list_rules:
    return handle_list_rules()

  if args.run:
    if args.input is None:
      parser.error("the following arguments are required: input")
    return handle_run(args.input, binding=args.binding, rules=args.rules)

  if args.input is None or args.output is None:
    parser.error("the following arguments are required: input, output")

  return handle_instrument(
    args.input,
    args.output,
    binding=args.binding,
    ledger_module=args.ledger_module,
    source_type=args.source_type,
    rules=args.rules,
  )


if __name__ == "__main__":
  raise SystemExit(main())
