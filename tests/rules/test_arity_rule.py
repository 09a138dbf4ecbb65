"""
Tests for the arity rule module.
"""


def test_function_declaration_gets_arity_check(rewrite):
  out = rewrite("function f(a, b) { return a; }", rules=["arity"])
  assert out == (
    "function f(a, b) {\n"
    '  $jankyp.recordArity("Line 1, Column 0", 2, arguments.length);\n'
    "  return a;\n"
    "}"
  )


def test_function_expression_uses_its_own_position(rewrite):
  out = rewrite("var g = function () {};", rules=["arity"])
  assert out == 'var g = function() {\n  $jankyp.recordArity("Line 1, Column 8", 0, arguments.length);\n};'


def test_nested_functions_each_checked(rewrite):
  out = rewrite("function f(a) {\n  function g() {}\n}", rules=["arity"])
  assert '$jankyp.recordArity("Line 1, Column 0", 1, arguments.length);' in out
  assert '$jankyp.recordArity("Line 2, Column 2", 0, arguments.length);' in out


def test_arrow_functions_are_skipped(rewrite):
  out = rewrite("var h = (a) => a;", rules=["arity"])
  assert out == "var h = (a) => a;"


def test_check_follows_directive_prologue(rewrite):
  out = rewrite("function f() { 'use strict'; g(); }", rules=["arity"])
  lines = out.splitlines()
  assert lines[1] == "  'use strict';"
  assert lines[2] == '  $jankyp.recordArity("Line 1, Column 0", 0, arguments.length);'
