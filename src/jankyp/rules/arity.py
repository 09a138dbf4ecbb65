"""
Arity Rule Module.

Every function declaration or expression gets a first statement comparing
its declared parameter count with the number of arguments it was actually
invoked with:

    function f(a, b) { ... }
    ~~> function f(a, b) { $jankyp.recordArity("Line 1, Column 0", 2, arguments.length); ... }

Arrow functions have no `arguments` object and are left alone.
"""

from typing import Optional

from jankyp.core.hooks import RuleContext, RuleModule
from jankyp.core.syntax import Node, expression_statement, identifier, literal, member, prepend_statements
from jankyp.enums import LedgerHook

RULES = RuleModule("arity", "Argument count differs from the declared parameter count.")


@RULES.rule("FunctionDeclaration", "FunctionExpression")
def instrument_function(node: Node, ctx: RuleContext) -> Optional[Node]:
  check = ctx.call(
    LedgerHook.RECORD_ARITY,
    [
      literal(ctx.position(node)),
      literal(len(node["params"])),
      member(identifier("arguments"), "length"),
    ],
  )
  body = dict(node["body"])
  body["body"] = prepend_statements(body["body"], [expression_statement(check)])
  return {**node, "body": body}
