"""
Source Position Model.

A SourcePosition is the human readable key every ledger entry is filed
under. It is computed once while rewriting and embedded in the emitted
program as a string literal.
"""

from typing import Any, Dict

from jankyp.core.errors import StructuralError

SourcePosition = str


def format_position(line: int, column: int) -> SourcePosition:
  """
  Renders a line/column pair.

  Args:
      line (int): 1-based line number.
      column (int): 0-based column number.

  Returns:
      SourcePosition: e.g. ``"Line 3, Column 4"``.
  """
  return f"Line {line}, Column {column}"


def source_position(node: Dict[str, Any]) -> SourcePosition:
  """
  Derives the SourcePosition of a syntax node from the start of its span.

  Args:
      node: An ESTree node dictionary produced by `jankyp.core.syntax.parse`.

  Returns:
      SourcePosition: The position string.

  Raises:
      StructuralError: If the node carries no span.
  """
  loc = node.get("loc")
  start = loc.get("start") if loc else None
  if not start or start.get("line") is None or start.get("column") is None:
    raise StructuralError(f"{node.get('type', '<unknown>')} node has no source location")
  return format_position(start["line"], start["column"])
