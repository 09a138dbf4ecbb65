"""
Tests for the shape rule module.
"""

import pytest


def test_static_read(rewrite):
  assert rewrite("a.foo;", rules=["shapes"]) == '$jankyp.checkShape("Line 1, Column 0", a, "foo", false);'


def test_computed_read_passes_key_expression(rewrite):
  assert rewrite("b[i + 1];", rules=["shapes"]) == '$jankyp.checkShape("Line 1, Column 0", b, i + 1, false);'


def test_method_call_marks_called(rewrite):
  assert rewrite("o.f(x);", rules=["shapes"]) == '$jankyp.checkShape("Line 1, Column 0", o, "f", true)(x);'


def test_argument_access_is_not_called(rewrite):
  out = rewrite("f(o.g);", rules=["shapes"])
  assert out == 'f($jankyp.checkShape("Line 1, Column 2", o, "g", false));'


def test_tagged_template_tag_is_called(rewrite):
  out = rewrite("o.t`x`;", rules=["shapes"])
  assert out == '$jankyp.checkShape("Line 1, Column 0", o, "t", true)`x`;'


def test_chained_reads_nest(rewrite):
  out = rewrite("a.b.c;", rules=["shapes"])
  assert out == '$jankyp.checkShape("Line 1, Column 0", $jankyp.checkShape("Line 1, Column 0", a, "b", false), "c", false);'


@pytest.mark.parametrize(
  "code",
  [
    "o.p = 1;",
    "o.p += 1;",
    "o.p++;",
    "--o[i];",
    "delete o.p;",
    "for (o.p in q) {}",
    "for (o.p of q) {}",
    "[o.p] = q;",
    "[...o.p] = q;",
    "({x: o.p} = q);",
    "[o.p = 1] = q;",
  ],
)
def test_targets_are_not_checked(rewrite, code):
  assert "checkShape" not in rewrite(code, rules=["shapes"])


def test_receiver_of_target_is_still_read(rewrite):
  out = rewrite("a.b.c = 1;", rules=["shapes"])
  assert out == '$jankyp.checkShape("Line 1, Column 0", a, "b", false).c = 1;'


def test_object_literal_value_is_read(rewrite):
  out = rewrite("x = {k: o.p};", rules=["shapes"])
  assert out == 'x = {k: $jankyp.checkShape("Line 1, Column 8", o, "p", false)};'


def test_super_access_untouched(rewrite):
  code = "class A extends B { m() { return super.m(); } }"
  assert "checkShape" not in rewrite(code, rules=["shapes"])


def test_new_callee_is_wrapped_for_construction(rewrite):
  out = rewrite("new a.B();", rules=["shapes"])
  assert out == 'new ($jankyp.checkShape("Line 1, Column 4", a, "B", false))();'
