"""
jankyp Package.

A dynamic-behavior profiler for JavaScript programs. Programs are rewritten
so that, while they run, they report behavior that defeats common runtime
optimizations (shape confusion, prototype mutation, arity mismatches,
non-numeric arithmetic operands, caught exceptions) to a behavior ledger,
which prints a categorized report when the process exits.

Usage
-----

Simple String Rewrite
^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import jankyp
    print(jankyp.instrument("function f(a, b) { return a * b; }"))

Advanced Usage (Engine)
^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from jankyp import InstrumentationEngine, RuntimeConfig

    config = RuntimeConfig(binding="__ledger", rules=["arity", "shapes"])
    res = InstrumentationEngine(config).run(code)

    if res.success:
        print(res.code)
    else:
        print(f"Errors: {res.errors}")
"""

from typing import Optional

from jankyp.config import RuntimeConfig
from jankyp.core.engine import InstrumentationEngine, InstrumentationResult
from jankyp.core.errors import InstrumentationError, JankypError, StructuralError, UnsupportedConstruct

__version__ = "0.1.0"


def instrument(code: str, config: Optional[RuntimeConfig] = None) -> str:
  """
  Rewrites a program so it reports its dynamic behavior to the ledger.

  Args:
      code (str): Program text.
      config (RuntimeConfig, optional): Run configuration. Defaults apply if None.

  Returns:
      str: The instrumented program text.

  Raises:
      InstrumentationError: If the program cannot be parsed.
      StructuralError: If a node that needs a source position has none.
  """
  return InstrumentationEngine(config=config).instrument(code)


__all__ = [
  "instrument",
  "InstrumentationEngine",
  "InstrumentationResult",
  "RuntimeConfig",
  "JankypError",
  "InstrumentationError",
  "StructuralError",
  "UnsupportedConstruct",
  "__version__",
]
