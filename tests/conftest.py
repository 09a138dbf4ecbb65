"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Rule module registry isolation so tests registering custom modules do not leak.
- Engine helpers for asserting on rewritten program text.
"""

import sys
from pathlib import Path
from typing import Callable, List, Optional

import pytest

# Add src to path so we can import 'jankyp' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from jankyp.config import RuntimeConfig
from jankyp.core import hooks
from jankyp.core.engine import InstrumentationEngine
from jankyp.runtime.host import ObjectModelHost
from jankyp.runtime.ledger import Ledger

BINDING_LINE = 'const $jankyp = require("jankyp/ledger");'
INSTALL_LINE = "$jankyp.installPrototypeTracking();"


@pytest.fixture(autouse=True)
def isolate_rule_registry():
  """
  Ensures that modules registered by a test (custom detectors) do not leak
  between tests.
  """
  hooks.load_rule_modules()
  original = dict(hooks._MODULES)
  yield
  hooks._MODULES.clear()
  hooks._MODULES.update(original)


@pytest.fixture
def rewrite() -> Callable[..., str]:
  """
  Returns a helper that instruments code with the given rule modules and
  strips the ledger binding line, leaving the program body.
  """

  def _rewrite(code: str, rules: Optional[List[str]] = None, **settings) -> str:
    config = RuntimeConfig(rules=rules, **settings)
    output = InstrumentationEngine(config).instrument(code)
    lines = output.splitlines()
    if lines and lines[0] == BINDING_LINE:
      lines = lines[1:]
    return "\n".join(lines)

  return _rewrite


@pytest.fixture
def host() -> ObjectModelHost:
  """A fresh reference host."""
  return ObjectModelHost()


@pytest.fixture
def ledger(host: ObjectModelHost) -> Ledger:
  """A ledger over a fresh host that never reports at exit."""
  return Ledger(host)
