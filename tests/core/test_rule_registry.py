"""
Tests for the rule module registry and the rule context.
"""

from jankyp.config import RuntimeConfig
from jankyp.core.hooks import (
  RuleContext,
  RuleModule,
  available_modules,
  clear_modules,
  get_modules,
  load_rule_modules,
  merge_rules,
  register_module,
)
from jankyp.core.syntax import is_ledger_call, literal
from jankyp.enums import LedgerHook


def test_builtin_modules_in_canonical_order():
  assert available_modules() == ["arity", "operands", "shapes", "exceptions", "prototypes", "runtime"]


def test_rule_decorator_registers_kinds():
  module = RuleModule("demo")

  @module.rule("Identifier", "Literal")
  def handler(node, ctx):
    return None

  assert module.kinds == ["Identifier", "Literal"]
  assert module.rules["Literal"] == [handler]


def test_selection_keeps_order_and_appends_runtime():
  names = [m.name for m in get_modules(["prototypes", "arity"])]
  assert names == ["arity", "prototypes", "runtime"]


def test_runtime_is_always_selected():
  assert [m.name for m in get_modules([])] == ["runtime"]


def test_custom_module_runs_before_runtime():
  register_module(RuleModule("custom"))
  names = [m.name for m in get_modules()]
  assert names[-2:] == ["custom", "runtime"]


def test_clear_and_reload():
  clear_modules()
  assert load_rule_modules() == 6


def test_merge_orders_by_module_then_declaration():
  first, second = RuleModule("first"), RuleModule("second")
  calls = []

  @second.rule("Literal")
  def late(node, ctx):
    calls.append("late")

  @first.rule("Literal")
  def early_a(node, ctx):
    calls.append("a")

  @first.rule("Literal")
  def early_b(node, ctx):
    calls.append("b")

  table = merge_rules([first, second])
  assert [entry.handler for entry in table["Literal"]] == [early_a, early_b, late]
  assert [entry.module for entry in table["Literal"]] == ["first", "first", "second"]


def test_context_builds_ledger_calls_on_binding():
  ctx = RuleContext(RuntimeConfig(binding="__ledger"))
  node = ctx.call(LedgerHook.RECORD_EXCEPTION, [literal("Line 1, Column 0")])
  assert node["callee"]["object"]["name"] == "__ledger"
  assert node["callee"]["property"]["name"] == "recordException"
  assert is_ledger_call(node, "recordException")


def test_context_tracks_parent_frames():
  ctx = RuleContext(RuntimeConfig())
  outer, inner = {"type": "A"}, {"type": "B"}
  assert ctx.parent is None

  ctx.enter(outer, "body", 0)
  ctx.enter(inner, "callee", None)
  assert ctx.parent is inner
  assert ctx.slot == "callee"
  assert ctx.grandparent is outer

  ctx.leave()
  assert ctx.parent is outer
  assert ctx.grandparent is None


def test_rewrite_counts():
  ctx = RuleContext(RuntimeConfig())
  ctx.count("shapes")
  ctx.count("shapes")
  assert ctx.rewrites == {"shapes": 2}
