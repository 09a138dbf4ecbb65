"""
Operand Rule Module.

Wraps the operands of binary operators in checks that hand the operand back
unchanged:

- `== != === !==` are assumed safe and left alone.
- Numeric-only operators (`* / - & | << >> >>>`) expect numbers on both
  sides: ``a * b ~~> expectNumber(pos_a, a) * expectNumber(pos_b, b)``.
- Every other binary operator expects primitives (no objects or
  functions): ``a + b ~~> checkOperand(pos_a, a) + checkOperand(pos_b, b)``.

Each operand is tagged with its own position.
"""

from typing import Optional

from jankyp.core.hooks import RuleContext, RuleModule
from jankyp.core.syntax import Node, literal
from jankyp.enums import LedgerHook

RULES = RuleModule("operands", "Operands of an unexpected runtime type.")

EQUALITY_OPERATORS = frozenset({"==", "!=", "===", "!=="})
NUMERIC_OPERATORS = frozenset({"*", "/", "-", "&", "|", "<<", ">>", ">>>"})


@RULES.rule("BinaryExpression")
def instrument_operands(node: Node, ctx: RuleContext) -> Optional[Node]:
  operator = node["operator"]
  if operator in EQUALITY_OPERATORS:
    return None

  hook = LedgerHook.EXPECT_NUMBER if operator in NUMERIC_OPERATORS else LedgerHook.CHECK_OPERAND
  left, right = node["left"], node["right"]
  return {
    **node,
    "left": ctx.call(hook, [literal(ctx.position(left)), left]),
    "right": ctx.call(hook, [literal(ctx.position(right)), right]),
  }
