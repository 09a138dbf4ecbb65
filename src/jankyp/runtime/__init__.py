"""
Runtime support for instrumented programs.

Exposes the process-wide ledger the rewritten program binds to. Its report
is printed once when the interpreter exits, unless ``report_on_exit`` is
disabled in ``[tool.jankyp]``.

Attributes:
    host (ObjectModelHost): The process-wide reference host.
    ledger (Ledger): The process-wide behavior ledger.
"""

import atexit
from typing import Any, Callable, Dict

from jankyp.config import RuntimeConfig
from jankyp.runtime.host import Host, ObjectModelHost
from jankyp.runtime.ledger import Ledger, PrototypeRegistry
from jankyp.runtime.values import UNDEFINED, JsArray, JsFunction, JsObject, JsTypeError

host = ObjectModelHost()
ledger = Ledger(host, report_on_exit=RuntimeConfig.load().report_on_exit)
atexit.register(ledger.flush)


def capabilities() -> Dict[str, Callable[..., Any]]:
  """Hook table of the process-wide ledger, keyed by hook name."""
  return ledger.capabilities()


__all__ = [
  "Host",
  "ObjectModelHost",
  "Ledger",
  "PrototypeRegistry",
  "UNDEFINED",
  "JsArray",
  "JsFunction",
  "JsObject",
  "JsTypeError",
  "host",
  "ledger",
  "capabilities",
]
