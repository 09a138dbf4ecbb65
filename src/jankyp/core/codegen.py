"""
Code Generator.

Prints an ESTree dictionary back to program text. Output uses two-space
indentation, one statement per line and explicit semicolons. Sub-expressions
are parenthesized from an operator precedence table, so any tree the
rewriters build (including synthetic nodes without spans) prints to text
that parses back to the same structure.
"""

from typing import Dict, List, Optional

from jankyp.core.errors import JankypError
from jankyp.core.syntax import Node, literal

INDENT = "  "

# Binding power of binary and logical operators.
_BINARY_PRECEDENCE: Dict[str, int] = {
  "||": 3,
  "&&": 4,
  "|": 5,
  "^": 6,
  "&": 7,
  "==": 8,
  "!=": 8,
  "===": 8,
  "!==": 8,
  "<": 9,
  ">": 9,
  "<=": 9,
  ">=": 9,
  "in": 9,
  "instanceof": 9,
  "<<": 10,
  ">>": 10,
  ">>>": 10,
  "+": 11,
  "-": 11,
  "*": 12,
  "/": 12,
  "%": 12,
  "**": 13,
}

PREC_SEQUENCE = 0
PREC_ASSIGNMENT = 1
PREC_CONDITIONAL = 2
PREC_UNARY = 14
PREC_POSTFIX = 15
PREC_LHS = 17
PREC_PRIMARY = 20

_LHS_TYPES = frozenset({"CallExpression", "NewExpression", "MemberExpression", "TaggedTemplateExpression"})

# Statement texts starting with these are reparsed as declarations or blocks.
_AMBIGUOUS_STATEMENT_STARTS = ("{", "function", "class", "let[", "let [", "async function")


def precedence(node: Node) -> int:
  """Returns the binding power of an expression node."""
  kind = node["type"]
  if kind == "SequenceExpression":
    return PREC_SEQUENCE
  if kind in ("AssignmentExpression", "ArrowFunctionExpression", "YieldExpression"):
    return PREC_ASSIGNMENT
  if kind == "ConditionalExpression":
    return PREC_CONDITIONAL
  if kind in ("BinaryExpression", "LogicalExpression"):
    return _BINARY_PRECEDENCE[node["operator"]]
  if kind in ("UnaryExpression", "AwaitExpression"):
    return PREC_UNARY
  if kind == "UpdateExpression":
    return PREC_UNARY if node.get("prefix") else PREC_POSTFIX
  if kind in _LHS_TYPES:
    return PREC_LHS
  return PREC_PRIMARY


def generate(node: Node) -> str:
  """
  Prints a `Program` (or any statement/expression node) as source text.

  Args:
      node: The ESTree node to print.

  Returns:
      str: Program text.
  """
  return CodeGenerator().generate(node)


class CodeGenerator:
  """
  Stateful printer; tracks the indentation level and whether an `in`
  operator must be parenthesized (inside a for-loop init clause).
  """

  def __init__(self) -> None:
    self._level = 0
    self._no_in = False

  def generate(self, node: Node) -> str:
    if node["type"] == "Program":
      return "\n".join(self.statement(s) for s in node["body"]) + "\n"
    if hasattr(self, f"_stmt_{node['type']}"):
      return self.statement(node)
    return self.expression(node)

  # --- Dispatch ---

  def statement(self, node: Node) -> str:
    """Prints a statement, prefixed with the current indentation."""
    handler = getattr(self, f"_stmt_{node['type']}", None)
    if handler is None:
      raise JankypError(f"Cannot generate code for statement {node['type']}")
    return INDENT * self._level + handler(node)

  def expression(self, node: Node, min_prec: int = PREC_SEQUENCE) -> str:
    """Prints an expression, parenthesized when it binds looser than `min_prec`."""
    handler = getattr(self, f"_expr_{node['type']}", None)
    if handler is None:
      raise JankypError(f"Cannot generate code for expression {node['type']}")
    text = handler(node)
    bare_in = self._no_in and node["type"] == "BinaryExpression" and node["operator"] == "in"
    if precedence(node) < min_prec or bare_in:
      return f"({text})"
    return text

  def _body(self, node: Node) -> str:
    """Prints the body of a compound statement, inline for blocks."""
    if node["type"] == "BlockStatement":
      return " " + self._stmt_BlockStatement(node)
    self._level += 1
    text = "\n" + self.statement(node)
    self._level -= 1
    return text

  # --- Statements ---

  def _stmt_BlockStatement(self, node: Node) -> str:
    if not node["body"]:
      return "{}"
    self._level += 1
    lines = [self.statement(s) for s in node["body"]]
    self._level -= 1
    return "{\n" + "\n".join(lines) + "\n" + INDENT * self._level + "}"

  def _stmt_ExpressionStatement(self, node: Node) -> str:
    if node.get("directive") is not None and node["expression"]["type"] == "Literal":
      return self._expr_Literal(node["expression"]) + ";"
    text = self.expression(node["expression"])
    if text.startswith(_AMBIGUOUS_STATEMENT_STARTS):
      text = f"({text})"
    return text + ";"

  def _stmt_EmptyStatement(self, node: Node) -> str:
    return ";"

  def _stmt_DebuggerStatement(self, node: Node) -> str:
    return "debugger;"

  def _stmt_VariableDeclaration(self, node: Node, terminate: bool = True) -> str:
    parts = []
    for decl in node["declarations"]:
      text = self._pattern(decl["id"])
      if decl.get("init") is not None:
        text += " = " + self.expression(decl["init"], PREC_ASSIGNMENT)
      parts.append(text)
    return f"{node['kind']} {', '.join(parts)}" + (";" if terminate else "")

  def _stmt_FunctionDeclaration(self, node: Node) -> str:
    return self._function(node)

  def _stmt_ClassDeclaration(self, node: Node) -> str:
    return self._class(node)

  def _stmt_ReturnStatement(self, node: Node) -> str:
    if node.get("argument") is None:
      return "return;"
    return f"return {self.expression(node['argument'])};"

  def _stmt_ThrowStatement(self, node: Node) -> str:
    return f"throw {self.expression(node['argument'])};"

  def _stmt_BreakStatement(self, node: Node) -> str:
    label = node.get("label")
    return f"break {label['name']};" if label else "break;"

  def _stmt_ContinueStatement(self, node: Node) -> str:
    label = node.get("label")
    return f"continue {label['name']};" if label else "continue;"

  def _stmt_IfStatement(self, node: Node) -> str:
    consequent = node["consequent"]
    alternate = node.get("alternate")
    if alternate is not None and consequent["type"] != "BlockStatement":
      # Keeps a nested else from attaching to the wrong `if`.
      consequent = {"type": "BlockStatement", "body": [consequent]}
    text = f"if ({self.expression(node['test'])})" + self._body(consequent)
    if alternate is None:
      return text
    text += " else"
    if alternate["type"] == "IfStatement":
      return text + " " + self._stmt_IfStatement(alternate)
    return text + self._body(alternate)

  def _for_init(self, node: Optional[Node]) -> str:
    if node is None:
      return ""
    # An `in` operator anywhere in the init clause would be read as for-in.
    outer, self._no_in = self._no_in, True
    try:
      if node["type"] == "VariableDeclaration":
        return self._stmt_VariableDeclaration(node, terminate=False)
      return self.expression(node)
    finally:
      self._no_in = outer

  def _stmt_ForStatement(self, node: Node) -> str:
    test = self.expression(node["test"]) if node.get("test") is not None else ""
    update = self.expression(node["update"]) if node.get("update") is not None else ""
    head = f"for ({self._for_init(node.get('init'))}; {test}; {update})"
    return head + self._body(node["body"])

  def _for_left(self, node: Node) -> str:
    if node["type"] == "VariableDeclaration":
      return self._stmt_VariableDeclaration(node, terminate=False)
    return self._pattern(node)

  def _stmt_ForInStatement(self, node: Node) -> str:
    head = f"for ({self._for_left(node['left'])} in {self.expression(node['right'])})"
    return head + self._body(node["body"])

  def _stmt_ForOfStatement(self, node: Node) -> str:
    right = self.expression(node["right"], PREC_ASSIGNMENT)
    head = f"for ({self._for_left(node['left'])} of {right})"
    return head + self._body(node["body"])

  def _stmt_WhileStatement(self, node: Node) -> str:
    return f"while ({self.expression(node['test'])})" + self._body(node["body"])

  def _stmt_DoWhileStatement(self, node: Node) -> str:
    body = self._body(node["body"])
    if node["body"]["type"] == "BlockStatement":
      return f"do{body} while ({self.expression(node['test'])});"
    return f"do{body}\n{INDENT * self._level}while ({self.expression(node['test'])});"

  def _stmt_LabeledStatement(self, node: Node) -> str:
    return f"{node['label']['name']}:" + self._body(node["body"])

  def _stmt_WithStatement(self, node: Node) -> str:
    return f"with ({self.expression(node['object'])})" + self._body(node["body"])

  def _stmt_SwitchStatement(self, node: Node) -> str:
    lines = [f"switch ({self.expression(node['discriminant'])}) {{"]
    self._level += 1
    for case in node["cases"]:
      if case.get("test") is None:
        lines.append(INDENT * self._level + "default:")
      else:
        lines.append(INDENT * self._level + f"case {self.expression(case['test'])}:")
      self._level += 1
      lines.extend(self.statement(s) for s in case["consequent"])
      self._level -= 1
    self._level -= 1
    lines.append(INDENT * self._level + "}")
    return "\n".join(lines)

  def _stmt_TryStatement(self, node: Node) -> str:
    text = "try " + self._stmt_BlockStatement(node["block"])
    handler = node.get("handler")
    if handler is not None:
      if handler.get("param") is not None:
        text += f" catch ({self._pattern(handler['param'])}) "
      else:
        text += " catch "
      text += self._stmt_BlockStatement(handler["body"])
    if node.get("finalizer") is not None:
      text += " finally " + self._stmt_BlockStatement(node["finalizer"])
    return text

  # Modules

  def _stmt_ImportDeclaration(self, node: Node) -> str:
    source = self._expr_Literal(node["source"])
    specifiers = node.get("specifiers") or []
    if not specifiers:
      return f"import {source};"
    parts = []
    named = []
    for spec in specifiers:
      if spec["type"] == "ImportDefaultSpecifier":
        parts.append(spec["local"]["name"])
      elif spec["type"] == "ImportNamespaceSpecifier":
        parts.append(f"* as {spec['local']['name']}")
      else:
        named.append(self._specifier(spec["imported"], spec["local"]))
    if named:
      parts.append("{" + ", ".join(named) + "}")
    return f"import {', '.join(parts)} from {source};"

  def _specifier(self, outer: Node, inner: Node) -> str:
    if outer["name"] == inner["name"]:
      return outer["name"]
    return f"{outer['name']} as {inner['name']}"

  def _stmt_ExportNamedDeclaration(self, node: Node) -> str:
    if node.get("declaration") is not None:
      return "export " + self._stmt_declaration(node["declaration"])
    named = [self._specifier(spec["local"], spec["exported"]) for spec in node.get("specifiers") or []]
    text = "export {" + ", ".join(named) + "}"
    if node.get("source") is not None:
      text += " from " + self._expr_Literal(node["source"])
    return text + ";"

  def _stmt_ExportDefaultDeclaration(self, node: Node) -> str:
    decl = node["declaration"]
    if decl["type"] in ("FunctionDeclaration", "ClassDeclaration"):
      return "export default " + self._stmt_declaration(decl)
    return f"export default {self.expression(decl, PREC_ASSIGNMENT)};"

  def _stmt_ExportAllDeclaration(self, node: Node) -> str:
    return f"export * from {self._expr_Literal(node['source'])};"

  def _stmt_declaration(self, node: Node) -> str:
    return getattr(self, f"_stmt_{node['type']}")(node)

  # --- Functions and classes ---

  def _params(self, params: List[Node]) -> str:
    return "(" + ", ".join(self._pattern(p) for p in params) + ")"

  def _function(self, node: Node) -> str:
    prefix = "async " if node.get("async") else ""
    star = "*" if node.get("generator") else ""
    name = f" {node['id']['name']}" if node.get("id") else ""
    return f"{prefix}function{star}{name}{self._params(node['params'])} " + self._stmt_BlockStatement(node["body"])

  def _class(self, node: Node) -> str:
    text = "class"
    if node.get("id"):
      text += f" {node['id']['name']}"
    if node.get("superClass") is not None:
      text += " extends " + self.expression(node["superClass"], PREC_LHS)
    body = node["body"]["body"]
    if not body:
      return text + " {}"
    self._level += 1
    methods = [INDENT * self._level + self._method(m) for m in body]
    self._level -= 1
    return text + " {\n" + "\n".join(methods) + "\n" + INDENT * self._level + "}"

  def _key(self, node: Node) -> str:
    if node.get("computed"):
      return f"[{self.expression(node['key'], PREC_ASSIGNMENT)}]"
    return self.expression(node["key"])

  def _method(self, node: Node) -> str:
    """Prints a class MethodDefinition or an object method Property."""
    value = node["value"]
    prefix = "static " if node.get("static") else ""
    kind = node.get("kind")
    if kind in ("get", "set"):
      prefix += f"{kind} "
    if value.get("async"):
      prefix += "async "
    if value.get("generator"):
      prefix += "*"
    return prefix + self._key(node) + self._params(value["params"]) + " " + self._stmt_BlockStatement(value["body"])

  # --- Expressions ---

  def _expr_Identifier(self, node: Node) -> str:
    return node["name"]

  def _expr_Literal(self, node: Node) -> str:
    raw = node.get("raw")
    if raw is None:
      raw = literal(node["value"])["raw"]
    return raw

  def _expr_ThisExpression(self, node: Node) -> str:
    return "this"

  def _expr_Super(self, node: Node) -> str:
    return "super"

  def _expr_MetaProperty(self, node: Node) -> str:
    return f"{node['meta']['name']}.{node['property']['name']}"

  def _expr_ArrayExpression(self, node: Node) -> str:
    elements = node["elements"]
    items = ["" if e is None else self.expression(e, PREC_ASSIGNMENT) for e in elements]
    text = ", ".join(items)
    if elements and elements[-1] is None:
      text += ","
    return f"[{text}]"

  def _expr_ObjectExpression(self, node: Node) -> str:
    if not node["properties"]:
      return "{}"
    return "{" + ", ".join(self._property(p) for p in node["properties"]) + "}"

  def _property(self, node: Node) -> str:
    if node["type"] in ("SpreadElement", "RestElement"):
      return "..." + self.expression(node["argument"], PREC_ASSIGNMENT)
    value = node["value"]
    if node.get("kind") in ("get", "set") or node.get("method"):
      return self._method(node)
    if node.get("shorthand") and not node.get("computed"):
      if value["type"] == "Identifier":
        return value["name"]
      if value["type"] == "AssignmentPattern":
        return self._pattern(value)
    return f"{self._key(node)}: {self._pattern(value)}"

  def _expr_FunctionExpression(self, node: Node) -> str:
    return self._function(node)

  def _expr_ClassExpression(self, node: Node) -> str:
    return self._class(node)

  def _expr_ArrowFunctionExpression(self, node: Node) -> str:
    prefix = "async " if node.get("async") else ""
    head = prefix + self._params(node["params"]) + " => "
    body = node["body"]
    if body["type"] == "BlockStatement":
      return head + self._stmt_BlockStatement(body)
    text = self.expression(body, PREC_ASSIGNMENT)
    if text.startswith("{"):
      text = f"({text})"
    return head + text

  def _expr_TemplateLiteral(self, node: Node) -> str:
    parts = []
    expressions = node["expressions"]
    for index, quasi in enumerate(node["quasis"]):
      parts.append(quasi["value"]["raw"])
      if index < len(expressions):
        parts.append("${" + self.expression(expressions[index]) + "}")
    return "`" + "".join(parts) + "`"

  def _expr_TaggedTemplateExpression(self, node: Node) -> str:
    return self.expression(node["tag"], PREC_LHS) + self._expr_TemplateLiteral(node["quasi"])

  def _arguments(self, args: List[Node]) -> str:
    return "(" + ", ".join(self.expression(a, PREC_ASSIGNMENT) for a in args) + ")"

  def _expr_SpreadElement(self, node: Node) -> str:
    return "..." + self.expression(node["argument"], PREC_ASSIGNMENT)

  def _expr_CallExpression(self, node: Node) -> str:
    return self.expression(node["callee"], PREC_LHS) + self._arguments(node["arguments"])

  def _expr_NewExpression(self, node: Node) -> str:
    callee = node["callee"]
    text = self.expression(callee, PREC_LHS)
    if _contains_call(callee) and not text.startswith("("):
      text = f"({text})"
    return f"new {text}" + self._arguments(node["arguments"])

  def _expr_MemberExpression(self, node: Node) -> str:
    obj = node["object"]
    text = self.expression(obj, PREC_LHS)
    if obj["type"] == "Literal" and isinstance(obj.get("value"), (int, float)) and not isinstance(obj["value"], bool):
      text = f"({text})"
    if node.get("computed"):
      return f"{text}[{self.expression(node['property'])}]"
    return f"{text}.{node['property']['name']}"

  def _expr_UnaryExpression(self, node: Node) -> str:
    operator = node["operator"]
    argument = self.expression(node["argument"], PREC_UNARY)
    if operator.isalpha():
      return f"{operator} {argument}"
    if argument.startswith(("+", "-")) and operator in ("+", "-"):
      return f"{operator} {argument}"
    return operator + argument

  def _expr_UpdateExpression(self, node: Node) -> str:
    argument = self.expression(node["argument"], PREC_LHS)
    if node.get("prefix"):
      return node["operator"] + argument
    return argument + node["operator"]

  def _expr_AwaitExpression(self, node: Node) -> str:
    return "await " + self.expression(node["argument"], PREC_UNARY)

  def _expr_YieldExpression(self, node: Node) -> str:
    keyword = "yield*" if node.get("delegate") else "yield"
    if node.get("argument") is None:
      return keyword
    return f"{keyword} {self.expression(node['argument'], PREC_ASSIGNMENT)}"

  def _expr_BinaryExpression(self, node: Node) -> str:
    operator = node["operator"]
    prec = _BINARY_PRECEDENCE[operator]
    if operator == "**":
      left = self.expression(node["left"], PREC_POSTFIX)
      right = self.expression(node["right"], prec)
    else:
      left = self.expression(node["left"], prec)
      right = self.expression(node["right"], prec + 1)
    return f"{left} {operator} {right}"

  _expr_LogicalExpression = _expr_BinaryExpression

  def _expr_ConditionalExpression(self, node: Node) -> str:
    test = self.expression(node["test"], PREC_CONDITIONAL + 1)
    consequent = self.expression(node["consequent"], PREC_ASSIGNMENT)
    alternate = self.expression(node["alternate"], PREC_ASSIGNMENT)
    return f"{test} ? {consequent} : {alternate}"

  def _expr_AssignmentExpression(self, node: Node) -> str:
    left = self._pattern(node["left"])
    return f"{left} {node['operator']} {self.expression(node['right'], PREC_ASSIGNMENT)}"

  def _expr_SequenceExpression(self, node: Node) -> str:
    return ", ".join(self.expression(e, PREC_ASSIGNMENT) for e in node["expressions"])

  # --- Patterns ---

  def _pattern(self, node: Node) -> str:
    kind = node["type"]
    if kind == "ArrayPattern":
      elements = node["elements"]
      text = ", ".join("" if e is None else self._pattern(e) for e in elements)
      if elements and elements[-1] is None:
        text += ","
      return f"[{text}]"
    if kind == "ObjectPattern":
      return "{" + ", ".join(self._property(p) for p in node["properties"]) + "}"
    if kind == "AssignmentPattern":
      return f"{self._pattern(node['left'])} = {self.expression(node['right'], PREC_ASSIGNMENT)}"
    if kind == "RestElement":
      return "..." + self._pattern(node["argument"])
    return self.expression(node, PREC_ASSIGNMENT)


def _contains_call(node: Node) -> bool:
  """True if a `new` callee chain holds a call, which must be parenthesized."""
  while node["type"] in ("MemberExpression", "TaggedTemplateExpression"):
    node = node["object"] if node["type"] == "MemberExpression" else node["tag"]
  return node["type"] == "CallExpression"
