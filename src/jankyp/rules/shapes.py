"""
Shape Rule Module.

Detects values used both as indexed sequences and as keyed records. Every
member access that is read (not written) is replaced with a ledger call that
classifies the access and returns the value native access would:

    a.foo    ~~> $jankyp.checkShape("Line 1, Column 0", a, "foo", false)
    b[i]     ~~> $jankyp.checkShape("Line 1, Column 0", b, i, false)
    o.f(x)   ~~> $jankyp.checkShape("Line 1, Column 0", o, "f", true)(x)

The last argument is true only for the callee of a call (or the tag of a
tagged template), where the ledger must bind the extracted function to its
receiver.

Accesses used as targets (assignment, update, `delete`, for-in/of heads,
destructuring slots) are left alone, as are `super` accesses.
"""

from typing import Optional

from jankyp.core.hooks import RuleContext, RuleModule
from jankyp.core.syntax import Node, literal, property_key
from jankyp.enums import LedgerHook

RULES = RuleModule("shapes", "Arrays used as records and records used as arrays.")

_PATTERN_PARENTS = frozenset({"ArrayPattern", "RestElement"})


def is_target(ctx: RuleContext) -> bool:
  """True when the member access being handled is written to rather than read."""
  parent = ctx.parent
  if parent is None:
    return False
  kind, slot = parent["type"], ctx.slot

  if kind == "AssignmentExpression" and slot == "left":
    return True
  if kind == "UpdateExpression":
    return True
  if kind == "UnaryExpression" and parent["operator"] == "delete":
    return True
  if kind in ("ForInStatement", "ForOfStatement") and slot == "left":
    return True
  if kind in _PATTERN_PARENTS:
    return True
  if kind == "AssignmentPattern" and slot == "left":
    return True
  if kind == "Property" and slot == "value":
    grandparent = ctx.grandparent
    return grandparent is not None and grandparent["type"] == "ObjectPattern"
  return False


def is_immediately_called(ctx: RuleContext) -> bool:
  """True for the callee of a call or the tag of a tagged template."""
  parent = ctx.parent
  if parent is None:
    return False
  if parent["type"] == "CallExpression":
    return ctx.slot == "callee"
  return parent["type"] == "TaggedTemplateExpression" and ctx.slot == "tag"


@RULES.rule("MemberExpression")
def instrument_access(node: Node, ctx: RuleContext) -> Optional[Node]:
  if node["object"]["type"] == "Super" or is_target(ctx):
    return None

  return ctx.call(
    LedgerHook.CHECK_SHAPE,
    [
      literal(ctx.position(node)),
      node["object"],
      property_key(node),
      literal(is_immediately_called(ctx)),
    ],
  )
