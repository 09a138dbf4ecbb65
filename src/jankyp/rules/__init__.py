"""
Rule Modules Package.

Each module is one independent detector contributing rewrite rules keyed by
node kind. `BUILTIN_MODULES` fixes their registration order: at any node,
later modules see the tree as rewritten by earlier ones. `runtime` owns the
ledger binding and must stay last.
"""

from jankyp.rules.arity import RULES as ARITY
from jankyp.rules.operands import RULES as OPERANDS
from jankyp.rules.shapes import RULES as SHAPES
from jankyp.rules.exceptions import RULES as EXCEPTIONS
from jankyp.rules.prototypes import RULES as PROTOTYPES
from jankyp.rules.runtime import RULES as RUNTIME

BUILTIN_MODULES = [ARITY, OPERANDS, SHAPES, EXCEPTIONS, PROTOTYPES, RUNTIME]

__all__ = ["BUILTIN_MODULES"]
