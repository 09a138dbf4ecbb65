"""
Instrumentation Engine.

The `InstrumentationEngine` drives one all-or-nothing rewrite of a program:

1.  **Parse**: program text → ESTree with source locations (`esprima`).
2.  **Rewrite**: the selected rule modules are merged into one handler table
    and applied in a single post-order walk. The Program-root rules add the
    preamble: the ledger binding and the prototype-tracking start-up step.
3.  **Emit**: the rewritten tree is printed back to program text.

A parse failure or a node without a source span aborts the run; no partial
output is ever produced.
"""

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from jankyp.config import RuntimeConfig
from jankyp.core.codegen import generate
from jankyp.core.errors import InstrumentationError, JankypError, StructuralError
from jankyp.core.hooks import RuleContext, RuleModule, get_modules, merge_rules
from jankyp.core.syntax import Node, parse
from jankyp.core.traversal import walk

logger = logging.getLogger(__name__)


class InstrumentationResult(BaseModel):
  """
  Structured result of instrumenting one program.
  """

  code: str = Field(default="", description="The rewritten program text.")
  errors: List[str] = Field(default_factory=list, description="Fatal errors that aborted the run.")
  success: bool = Field(default=True, description="True if the program was rewritten.")
  rewrites: Dict[str, int] = Field(
    default_factory=dict,
    description="Number of nodes rewritten, per rule module.",
  )

  @property
  def has_errors(self) -> bool:
    return len(self.errors) > 0


class InstrumentationEngine:
  """
  Rewrites programs so they report their dynamic behavior to the ledger.
  """

  def __init__(self, config: Optional[RuntimeConfig] = None, modules: Optional[List[RuleModule]] = None):
    """
    Args:
        config (RuntimeConfig, optional): Run configuration. Defaults apply if None.
        modules (List[RuleModule], optional): Explicit rule modules, in order.
            Defaults to the registered modules selected by `config.rules`.
    """
    self.config = config or RuntimeConfig()
    self.modules = modules if modules is not None else get_modules(self.config.rules)

  def parse(self, code: str) -> Node:
    """
    Parses program text.

    Raises:
        InstrumentationError: If the text is not a valid program.
    """
    return parse(code, self.config.source_type)

  def rewrite(self, tree: Node) -> RuleContext:
    """
    Applies every selected rule module to `tree` in one walk.

    Returns:
        RuleContext: The context, carrying per-module rewrite counts.

    Raises:
        StructuralError: If a node that must carry a span has none.
    """
    ctx = RuleContext(self.config)
    table = merge_rules(self.modules)
    updated = walk(tree, table, ctx)
    if updated is not tree:
      tree.clear()
      tree.update(updated)
    return ctx

  def instrument(self, code: str) -> str:
    """
    Rewrites `code` and returns the instrumented program text.

    Raises:
        InstrumentationError: On a parse failure.
        StructuralError: On a node without a source span.
    """
    tree = self.parse(code)
    self.rewrite(tree)
    return generate(tree)

  def run(self, code: str) -> InstrumentationResult:
    """
    Rewrites `code`, reporting failures in the result instead of raising.

    Args:
        code (str): Program text.

    Returns:
        InstrumentationResult: Rewritten code, or the errors that aborted the run.
    """
    try:
      tree = self.parse(code)
      ctx = self.rewrite(tree)
      output = generate(tree)
    except InstrumentationError as e:
      location = f" (line {e.line}, column {e.column})" if e.line is not None else ""
      return InstrumentationResult(success=False, errors=[f"{e}{location}"])
    except StructuralError as e:
      return InstrumentationResult(success=False, errors=[f"Structural error: {e}"])
    except JankypError as e:
      return InstrumentationResult(success=False, errors=[str(e)])

    logger.debug("Rewrites per module: %s", ctx.rewrites)
    return InstrumentationResult(code=output, rewrites=ctx.rewrites)
