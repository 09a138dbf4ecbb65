"""
Tests for the Source Position Model.
"""

import pytest

from jankyp.core.errors import StructuralError
from jankyp.core.positions import format_position, source_position
from jankyp.core.syntax import parse


def test_format_position():
  assert format_position(3, 4) == "Line 3, Column 4"


def test_position_from_parsed_node():
  stmt = parse("var x = 1;\n  foo(x);")["body"][1]
  assert source_position(stmt) == "Line 2, Column 2"


def test_program_position_is_first_line():
  assert source_position(parse("a;")) == "Line 1, Column 0"


def test_missing_location_is_structural_error():
  """Synthetic nodes carry no span; asking for their position is fatal."""
  with pytest.raises(StructuralError, match="Identifier node has no source location"):
    source_position({"type": "Identifier", "name": "x"})


def test_incomplete_location_is_structural_error():
  node = {"type": "Literal", "value": 1, "loc": {"start": {"line": 1}}}
  with pytest.raises(StructuralError):
    source_position(node)
