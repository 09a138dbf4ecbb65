"""
Tests for the prototype rule module.
"""

import pytest

from jankyp.core.codegen import generate
from jankyp.core.syntax import parse

INSTALL_LINE = "$jankyp.installPrototypeTracking();"


def _body(out: str) -> str:
  lines = out.splitlines()
  assert lines[0] == INSTALL_LINE
  return "\n".join(lines[1:])


def test_program_gets_tracking_start_up(rewrite):
  assert rewrite("x;", rules=["prototypes"]) == INSTALL_LINE + "\nx;"


def test_empty_program(rewrite):
  assert rewrite("", rules=["prototypes"]) == INSTALL_LINE


def test_member_write(rewrite):
  out = _body(rewrite("o.p = v;", rules=["prototypes"]))
  assert out == '$jankyp.checkPropWrite("Line 1, Column 0", o, "p", v);'


def test_computed_proto_write(rewrite):
  out = _body(rewrite('o["__proto__"] = {};', rules=["prototypes"]))
  assert out == '$jankyp.checkPropWrite("Line 1, Column 0", o, "__proto__", {});'


def test_plain_assignment_untouched(rewrite):
  assert _body(rewrite("x = 1;", rules=["prototypes"])) == "x = 1;"


def test_compound_member_assignment(rewrite):
  out = _body(rewrite("Foo.prototype.count += 1;", rules=["prototypes"]))
  assert out == (
    '$jankyp.checkPropUpdate("Line 1, Column 0", Foo.prototype, "count", ($jankyp_current) => $jankyp_current + 1);'
  )


def test_compound_proto_write_keeps_right_side_grouping(rewrite):
  out = _body(rewrite("o[k] *= a + b;", rules=["prototypes"]))
  assert out == '$jankyp.checkPropUpdate("Line 1, Column 0", o, k, ($jankyp_current) => $jankyp_current * (a + b));'


def test_compound_assignment_right_side_is_instrumented(rewrite):
  out = _body(rewrite("o.p -= q.r;", rules=["shapes", "prototypes"]))
  assert out == (
    '$jankyp.checkPropUpdate("Line 1, Column 0", o, "p", '
    '($jankyp_current) => $jankyp_current - $jankyp.checkShape("Line 1, Column 7", q, "r", false));'
  )


@pytest.mark.parametrize(
  "code",
  [
    "function* g() { o.p += yield 1; }",
    "async function f() { o.p += await x; }",
    "o.p += $jankyp_current;",
  ],
)
def test_compound_assignment_that_cannot_move_is_untouched(rewrite, code):
  assert _body(rewrite(code, rules=["prototypes"])) == generate(parse(code)).rstrip("\n")


def test_suspension_inside_nested_function_does_not_block(rewrite):
  out = _body(rewrite("o.p += function* () { yield 1; };", rules=["prototypes"]))
  assert out.startswith('$jankyp.checkPropUpdate("Line 1, Column 0", o, "p", ')


def test_member_delete(rewrite):
  out = _body(rewrite("delete o.p;", rules=["prototypes"]))
  assert out == '$jankyp.checkPropDelete("Line 1, Column 0", o, "p");'


def test_other_unary_untouched(rewrite):
  assert _body(rewrite("delete x; typeof o.p;", rules=["prototypes"])) == "delete x;\ntypeof o.p;"


def test_new_with_identifier(rewrite):
  out = _body(rewrite("new F(1, 2);", rules=["prototypes"]))
  assert out == '$jankyp.checkNew("Line 1, Column 0", F, [1, 2]);'


def test_new_with_member_callee(rewrite):
  out = _body(rewrite("new a.B;", rules=["prototypes"]))
  assert out == '$jankyp.checkNew("Line 1, Column 0", a.B, []);'


def test_new_with_instrumented_member_callee(rewrite):
  out = _body(rewrite("new a.B(x);", rules=["shapes", "prototypes"]))
  assert out == '$jankyp.checkNew("Line 1, Column 0", $jankyp.checkShape("Line 1, Column 4", a, "B", false), [x]);'


def test_new_with_computed_callee_is_skipped(rewrite):
  assert _body(rewrite("new (f())();", rules=["prototypes"])) == "new (f())();"


def test_write_of_instrumented_receiver(rewrite):
  out = _body(rewrite("a.b.c = 1;", rules=["shapes", "prototypes"]))
  assert out == '$jankyp.checkPropWrite("Line 1, Column 0", $jankyp.checkShape("Line 1, Column 0", a, "b", false), "c", 1);'
