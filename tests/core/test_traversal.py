"""
Tests for the single-walk traversal.
"""

import pytest

from jankyp.config import RuntimeConfig
from jankyp.core.errors import StructuralError, UnsupportedConstruct
from jankyp.core.hooks import RuleContext, RuleModule, merge_rules
from jankyp.core.syntax import call, identifier, parse
from jankyp.core.traversal import walk


def _run(code, *modules):
  tree = parse(code)
  ctx = RuleContext(RuntimeConfig())
  return walk(tree, merge_rules(list(modules)), ctx), ctx


def test_children_are_rewritten_before_parents():
  seen = []
  module = RuleModule("order")

  @module.rule("Identifier", "BinaryExpression", "ExpressionStatement")
  def record(node, ctx):
    seen.append(node["type"])

  _run("a + b;", module)
  assert seen == ["Identifier", "Identifier", "BinaryExpression", "ExpressionStatement"]


def test_replacement_inherits_span_and_is_counted():
  module = RuleModule("rename")

  @module.rule("Identifier")
  def rename(node, ctx):
    if node["name"] == "a":
      return identifier("z")

  tree, ctx = _run("a;", module)
  replaced = tree["body"][0]["expression"]
  assert replaced["name"] == "z"
  assert replaced["loc"]["start"]["column"] == 0
  assert ctx.rewrites == {"rename": 1}


def test_kind_change_continues_with_later_modules():
  """A node replaced by a different kind is seen by later modules' rules for that kind."""
  first, second = RuleModule("first"), RuleModule("second")
  seen = []

  @first.rule("Identifier")
  def to_call(node, ctx):
    return call(identifier("wrap"), [node])

  @first.rule("Identifier")
  def never(node, ctx):
    seen.append("first-identifier")

  @first.rule("CallExpression")
  def same_module(node, ctx):
    seen.append("first-call")

  @second.rule("CallExpression")
  def later_module(node, ctx):
    seen.append("second-call")

  tree, _ = _run("a;", first, second)
  assert tree["body"][0]["expression"]["type"] == "CallExpression"
  assert seen == ["second-call"]


def test_replacement_subtree_is_not_walked_again():
  module = RuleModule("wrap")
  count = []

  @module.rule("Identifier")
  def wrap(node, ctx):
    count.append(node["name"])
    return call(identifier("w"), [node])

  _run("a;", module)
  assert count == ["a"]


def test_unsupported_construct_leaves_node_untouched():
  module = RuleModule("picky")

  @module.rule("Identifier")
  def refuse(node, ctx):
    raise UnsupportedConstruct("not today")

  tree, ctx = _run("a;", module)
  assert tree["body"][0]["expression"]["name"] == "a"
  assert ctx.rewrites == {}


def test_structural_error_propagates():
  module = RuleModule("positions")

  @module.rule("Identifier")
  def position(node, ctx):
    ctx.position(node)

  tree = parse("a;")
  del tree["body"][0]["expression"]["loc"]
  with pytest.raises(StructuralError):
    walk(tree, merge_rules([module]), RuleContext(RuntimeConfig()))


def test_deeply_nested_expression():
  code = " + ".join(["a"] * 2000) + ";"
  module = RuleModule("noop")
  tree, _ = _run(code, module)
  assert tree["body"][0]["expression"]["type"] == "BinaryExpression"
