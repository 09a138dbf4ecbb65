"""
Enumerations for jankyp.

Shared between the rewrite rules (which emit calls by hook name) and the
behavior ledger (which implements those hooks and files what they observe).
"""

from enum import Enum


class BehaviorCategory(str, Enum):
  """
  Kinds of runtime behavior the ledger records.
  """

  ARITY_MISMATCH = "ArityMismatch"
  BAD_OPERAND = "BadOperand"
  EXPECTED_NUMBER = "ExpectedNumber"
  SHAPE_CONFUSION = "ShapeConfusion"
  EXCEPTION_CAUGHT = "ExceptionCaught"
  PROTOTYPE_MUTATION = "PrototypeMutation"


class LedgerHook(str, Enum):
  """
  Names under which the ledger's hooks are reachable from a rewritten program.
  """

  RECORD_ARITY = "recordArity"
  EXPECT_NUMBER = "expectNumber"
  CHECK_OPERAND = "checkOperand"
  CHECK_SHAPE = "checkShape"
  RECORD_EXCEPTION = "recordException"
  CHECK_PROP_WRITE = "checkPropWrite"
  CHECK_PROP_UPDATE = "checkPropUpdate"
  CHECK_PROP_DELETE = "checkPropDelete"
  CHECK_NEW = "checkNew"
  RECORD_PROTOTYPE_CHANGE = "recordPrototypeChange"
  TRACK_PROTOTYPE = "trackPrototype"
  INSTALL_PROTOTYPE_TRACKING = "installPrototypeTracking"
