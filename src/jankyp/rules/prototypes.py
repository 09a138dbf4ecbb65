"""
Prototype Rule Module.

The downstream compiler treats prototype objects as immutable lookup tables
cached at optimization time. This module surfaces every pattern that would
invalidate such a cache:

1. Property write ``o.p = v ~~> checkPropWrite(pos, o, "p", v)``
   (compound ``o.p += v ~~> checkPropUpdate(pos, o, "p", (old) => old + v)``)
    1. `p` is "__proto__": `o` changed its prototype.
    2. `o` is already a prototype object: a prototype was modified.
    3. `p` is "__proto__" or "prototype": `o` becomes a prototype object.
2. Property deletion ``delete o.p ~~> checkPropDelete(pos, o, "p")``
    1. `o` is a prototype object: a prototype was modified.
3. Construction ``new F(a) ~~> checkNew(pos, F, [a])``
    1. `F.prototype` is a prototype object.
4. `Object.setPrototypeOf` and `Object.create`, wrapped by the ledger's
   start-up step which this module's Program rule emits.

Logical assignments (``o.p ||= v``), compound assignments whose right side
suspends (`yield`, `await`) and constructions whose callee is not a plain
name or member access are not rewritten.
"""

from typing import Optional

from jankyp.core.errors import UnsupportedConstruct
from jankyp.core.hooks import RuleContext, RuleModule
from jankyp.core.syntax import (
  Node,
  array,
  arrow,
  expression_statement,
  find_node,
  identifier,
  is_ledger_call,
  literal,
  prepend_statements,
  property_key,
)
from jankyp.enums import LedgerHook

RULES = RuleModule("prototypes", "Prototype chain and prototype object mutation.")

_KNOWN_CONSTRUCTOR_KINDS = frozenset({"Identifier", "MemberExpression"})

COMPOUND_OPERATORS = frozenset({"+=", "-=", "*=", "/=", "%=", "**=", "<<=", ">>=", ">>>=", "&=", "|=", "^="})

_FUNCTION_KINDS = ("FunctionExpression", "FunctionDeclaration", "ArrowFunctionExpression")


def _is_plain_member(node: Node) -> bool:
  return node["type"] == "MemberExpression" and node["object"]["type"] != "Super"


@RULES.rule("AssignmentExpression")
def instrument_write(node: Node, ctx: RuleContext) -> Optional[Node]:
  target = node["left"]
  if not _is_plain_member(target):
    return None
  operator = node["operator"]
  position = literal(ctx.position(node))
  if operator == "=":
    return ctx.call(LedgerHook.CHECK_PROP_WRITE, [position, target["object"], property_key(target), node["right"]])
  if operator not in COMPOUND_OPERATORS:
    raise UnsupportedConstruct(f"assignment '{operator}' to a member")

  # The right side moves into an arrow function, which keeps `this` and
  # `arguments` but cannot suspend the enclosing generator or async function.
  right = node["right"]
  if find_node(right, lambda n: n["type"] in ("YieldExpression", "AwaitExpression"), stop=_FUNCTION_KINDS):
    raise UnsupportedConstruct(f"yield or await in '{operator}' to a member")
  name = f"{ctx.binding}_current"
  if find_node(right, lambda n: n["type"] == "Identifier" and n["name"] == name):
    raise UnsupportedConstruct(f"'{operator}' to a member mentions {name}")

  update = arrow(
    [identifier(name)],
    {"type": "BinaryExpression", "operator": operator[:-1], "left": identifier(name), "right": right},
  )
  return ctx.call(LedgerHook.CHECK_PROP_UPDATE, [position, target["object"], property_key(target), update])


@RULES.rule("UnaryExpression")
def instrument_delete(node: Node, ctx: RuleContext) -> Optional[Node]:
  if node["operator"] != "delete" or not _is_plain_member(node["argument"]):
    return None

  target = node["argument"]
  return ctx.call(
    LedgerHook.CHECK_PROP_DELETE,
    [literal(ctx.position(node)), target["object"], property_key(target)],
  )


@RULES.rule("NewExpression")
def instrument_new(node: Node, ctx: RuleContext) -> Optional[Node]:
  callee = node["callee"]
  if callee["type"] not in _KNOWN_CONSTRUCTOR_KINDS and not is_ledger_call(callee, LedgerHook.CHECK_SHAPE.value):
    raise UnsupportedConstruct(f"constructor of kind {callee['type']}")

  return ctx.call(
    LedgerHook.CHECK_NEW,
    [literal(ctx.position(node)), callee, array(list(node["arguments"]))],
  )


@RULES.rule("Program")
def install_tracking(node: Node, ctx: RuleContext) -> Optional[Node]:
  install = expression_statement(ctx.call(LedgerHook.INSTALL_PROTOTYPE_TRACKING, []))
  return {**node, "body": prepend_statements(node["body"], [install])}
