"""
Syntax Layer.

Parsing is delegated to `esprima` (the Python port of the Esprima ECMAScript
parser). Its node objects are converted once into plain ESTree dictionaries
so that rules can rewrite them freely and synthetic nodes are just dicts.

This module also owns the small set of node builders the rule modules use to
assemble ledger calls.
"""

import json
import sys
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import esprima
from esprima.error_handler import Error as EsprimaError

from jankyp.core.errors import InstrumentationError

Node = Dict[str, Any]

# Keys that never hold child nodes.
_NON_CHILD_KEYS = frozenset({"type", "loc", "range", "regex", "_hook"})

# Attribute renames applied while converting esprima objects.
_RENAMES = {"isAsync": "async"}

# Deeply nested expressions (long `a + b + ...` chains) recurse once per level
# in the conversion, the traversal and the printer.
_MIN_RECURSION_LIMIT = 10000


def ensure_recursion_limit() -> None:
  if sys.getrecursionlimit() < _MIN_RECURSION_LIMIT:
    sys.setrecursionlimit(_MIN_RECURSION_LIMIT)


def parse(code: str, source_type: str = "script") -> Node:
  """
  Parses program text into an ESTree `Program` dictionary with locations.

  Args:
      code (str): Program source text.
      source_type (str): "script" or "module".

  Returns:
      Node: The root `Program` node.

  Raises:
      InstrumentationError: If the text is not a valid program.
  """
  ensure_recursion_limit()
  options = {"loc": True, "range": True}
  try:
    if source_type == "module":
      tree = esprima.parseModule(code, options)
    else:
      tree = esprima.parseScript(code, options)
  except EsprimaError as e:
    message = getattr(e, "description", None) or str(e)
    raise InstrumentationError(
      f"Parse error: {message}",
      line=getattr(e, "lineNumber", None),
      column=getattr(e, "column", None),
    ) from e
  return to_plain(tree)


def to_plain(value: Any) -> Any:
  """
  Recursively converts esprima node objects into dictionaries and lists.

  Values without an attribute dictionary (compiled regexes, primitives) are
  returned unchanged.
  """
  if value is None or isinstance(value, (str, bool, int, float)):
    return value
  if isinstance(value, (list, tuple)):
    return [to_plain(item) for item in value]
  if isinstance(value, dict):
    return {k: to_plain(v) for k, v in value.items()}

  attrs = getattr(value, "__dict__", None)
  if attrs is None:
    return value
  return {_RENAMES.get(k, k): to_plain(v) for k, v in attrs.items()}


def is_node(value: Any) -> bool:
  """True for ESTree node dictionaries."""
  return isinstance(value, dict) and isinstance(value.get("type"), str)


def iter_child_slots(node: Node) -> Iterator[Tuple[str, Optional[int], Node]]:
  """
  Yields every child node together with the slot it occupies.

  Yields:
      Tuple[str, Optional[int], Node]: (key, list index or None, child).
  """
  for key, value in list(node.items()):
    if key in _NON_CHILD_KEYS:
      continue
    if is_node(value):
      yield key, None, value
    elif isinstance(value, list):
      for index, item in enumerate(value):
        if is_node(item):
          yield key, index, item


# --- Builders ---


def identifier(name: str) -> Node:
  return {"type": "Identifier", "name": name}


def literal(value: Union[str, int, float, bool, None]) -> Node:
  """Builds a Literal whose `raw` text is valid source for `value`."""
  if isinstance(value, bool):
    raw = "true" if value else "false"
  elif value is None:
    raw = "null"
  elif isinstance(value, str):
    raw = json.dumps(value)
  else:
    raw = repr(value)
  return {"type": "Literal", "value": value, "raw": raw}


def member(obj: Node, name: str) -> Node:
  """Builds the static member access ``obj.name``."""
  return {"type": "MemberExpression", "computed": False, "object": obj, "property": identifier(name)}


def call(callee: Node, args: List[Node]) -> Node:
  return {"type": "CallExpression", "callee": callee, "arguments": args}


def ledger_call(binding: str, hook: str, args: List[Node]) -> Node:
  """
  Builds ``<binding>.<hook>(args...)``.

  The result is tagged with `_hook` so later rules can recognise calls that
  were injected by the pipeline.
  """
  node = call(member(identifier(binding), hook), args)
  node["_hook"] = hook
  return node


def is_ledger_call(node: Any, hook: Optional[str] = None) -> bool:
  """True if `node` was built by `ledger_call` (optionally for one hook)."""
  if not is_node(node) or "_hook" not in node:
    return False
  return hook is None or node["_hook"] == hook


def expression_statement(expr: Node) -> Node:
  return {"type": "ExpressionStatement", "expression": expr}


def array(elements: List[Optional[Node]]) -> Node:
  return {"type": "ArrayExpression", "elements": elements}


def arrow(params: List[Node], body: Node) -> Node:
  """Builds the concise arrow function ``(params) => body``."""
  return {
    "type": "ArrowFunctionExpression",
    "id": None,
    "params": params,
    "body": body,
    "generator": False,
    "expression": True,
    "async": False,
  }


def const_declaration(name: str, init: Node) -> Node:
  """Builds ``const name = init;``."""
  return {
    "type": "VariableDeclaration",
    "kind": "const",
    "declarations": [{"type": "VariableDeclarator", "id": identifier(name), "init": init}],
  }


def property_key(node: Node) -> Node:
  """
  Returns the key expression of a member access.

  ``o.p`` yields the string literal ``"p"``; ``o[k]`` yields ``k`` itself.
  """
  prop = node["property"]
  if node.get("computed"):
    return prop
  return literal(prop["name"])


def prepend_statements(body: List[Node], statements: List[Node]) -> List[Node]:
  """
  Returns `body` with `statements` inserted after its directive prologue
  (``"use strict";`` and friends), which must stay first to keep its effect.
  """
  split = 0
  while split < len(body) and body[split].get("directive") is not None:
    split += 1
  return body[:split] + statements + body[split:]


def find_node(node: Node, predicate: Callable[[Node], bool], stop: Iterable[str] = ()) -> Optional[Node]:
  """
  Returns the first node under `node` (itself included) matching `predicate`.

  Nodes whose type is in `stop` are tested but their children are not.
  """
  pending = [node]
  while pending:
    current = pending.pop()
    if predicate(current):
      return current
    if current["type"] in stop:
      continue
    pending.extend(child for _, _, child in iter_child_slots(current))
  return None
