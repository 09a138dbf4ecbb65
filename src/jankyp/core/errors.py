"""
Error types raised by the instrumentation pipeline.

Runtime observations recorded by the ledger are data, not errors; nothing in
this module is ever raised from a ledger hook.
"""

from typing import Optional


class JankypError(Exception):
  """Base class for all pipeline failures."""


class InstrumentationError(JankypError):
  """
  The input program could not be parsed.

  Attributes:
      line (Optional[int]): 1-based line of the parse failure, when known.
      column (Optional[int]): Column of the parse failure, when known.
  """

  def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
    super().__init__(message)
    self.line = line
    self.column = column


class StructuralError(JankypError):
  """
  A node that must carry a source span has none.

  This signals a broken parser/traversal contract and aborts the whole run.
  """


class UnsupportedConstruct(JankypError):
  """
  A rule met a node shape it does not recognize.

  Raised inside rule handlers; the traversal catches it and leaves the node
  untouched.
  """
