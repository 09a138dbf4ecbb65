"""
Exception Rule Module.

Records that an exception reached a handler. The guarded block is untouched;
the handler body gets a first statement:

    try { ... } catch (e) { ... }
    ~~> try { ... } catch (e) { $jankyp.recordException("Line 1, Column 0"); ... }
"""

from typing import Optional

from jankyp.core.hooks import RuleContext, RuleModule
from jankyp.core.syntax import Node, expression_statement, literal
from jankyp.enums import LedgerHook

RULES = RuleModule("exceptions", "Exceptions thrown and caught.")


@RULES.rule("TryStatement")
def instrument_handler(node: Node, ctx: RuleContext) -> Optional[Node]:
  handler = node.get("handler")
  if handler is None:
    return None

  record = ctx.call(LedgerHook.RECORD_EXCEPTION, [literal(ctx.position(node))])
  body = dict(handler["body"])
  body["body"] = [expression_statement(record)] + body["body"]
  return {**node, "handler": {**handler, "body": body}}
