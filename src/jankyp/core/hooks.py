"""
Rule Module Registry and Rule Context.

A rule module is one independent detector. It owns a name and a table of
rewrite rules keyed by ESTree node kind; each rule is a plain function
``(node, ctx) -> Optional[node]`` that returns a replacement node, or `None`
to leave the node as it is.

Modules are registered in a fixed order. The traversal merges every
registered module into one per-kind handler table so the tree is walked
exactly once, and at each node the handlers run in registration order.

Usage:

.. code-block:: python

    from jankyp.core.hooks import RuleModule

    RULES = RuleModule("exceptions")

    @RULES.rule("TryStatement")
    def instrument_handler(node, ctx):
        ...
"""

from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

from jankyp.config import RuntimeConfig
from jankyp.core.positions import SourcePosition, source_position
from jankyp.core.syntax import Node, ledger_call
from jankyp.enums import LedgerHook

RuleHandler = Callable[[Node, "RuleContext"], Optional[Node]]


class RuleModule:
  """
  A named set of rewrite rules indexed by node kind.

  Attributes:
      name (str): Unique module name, used for selection and statistics.
      rules (Dict[str, List[RuleHandler]]): Handlers per node kind, in
          declaration order.
  """

  def __init__(self, name: str, description: str = ""):
    self.name = name
    self.description = description
    self.rules: Dict[str, List[RuleHandler]] = {}

  def rule(self, *kinds: str) -> Callable[[RuleHandler], RuleHandler]:
    """
    Decorator registering a handler for one or more node kinds.

    Args:
        *kinds: ESTree node type names (e.g. "FunctionDeclaration").
    """

    def decorator(func: RuleHandler) -> RuleHandler:
      for kind in kinds:
        self.rules.setdefault(kind, []).append(func)
      return func

    return decorator

  @property
  def kinds(self) -> List[str]:
    return list(self.rules)

  def __repr__(self) -> str:
    return f"RuleModule({self.name!r}, kinds={self.kinds})"


class RuleEntry(NamedTuple):
  """One handler in the merged table, ordered by (module index, handler index)."""

  order: Tuple[int, int]
  module: str
  handler: RuleHandler


class RuleContext:
  """
  Context passed to every rule handler.

  Gives read access to the configuration and the handler's position in the
  tree, and builds calls into the ledger binding.
  """

  def __init__(self, config: RuntimeConfig):
    self.config = config
    self.binding = config.binding
    self.rewrites: Dict[str, int] = {}
    self._frames: List[Tuple[Optional[Node], Optional[str], Optional[int]]] = []

  # --- Tree position (maintained by the traversal) ---

  def enter(self, parent: Optional[Node], key: Optional[str], index: Optional[int]) -> None:
    self._frames.append((parent, key, index))

  def leave(self) -> None:
    self._frames.pop()

  @property
  def parent(self) -> Optional[Node]:
    """The (not yet rewritten) parent of the node being handled."""
    return self._frames[-1][0] if self._frames else None

  @property
  def slot(self) -> Optional[str]:
    """The parent field holding the node being handled (e.g. "callee")."""
    return self._frames[-1][1] if self._frames else None

  @property
  def grandparent(self) -> Optional[Node]:
    return self._frames[-2][0] if len(self._frames) > 1 else None

  # --- Builders ---

  def position(self, node: Node) -> SourcePosition:
    """SourcePosition of `node`; raises StructuralError if it has no span."""
    return source_position(node)

  def call(self, hook: Union[LedgerHook, str], args: List[Node]) -> Node:
    """Builds a call to `hook` on the ledger binding."""
    name = hook.value if isinstance(hook, LedgerHook) else hook
    return ledger_call(self.binding, name, args)

  def count(self, module: str) -> None:
    self.rewrites[module] = self.rewrites.get(module, 0) + 1


# Global Registry
_MODULES: Dict[str, RuleModule] = {}
_MODULES_LOADED = False


def register_module(module: RuleModule) -> RuleModule:
  """
  Appends a rule module to the registry.

  Re-registering a name replaces the module but keeps its original slot in
  the order.
  """
  _MODULES[module.name] = module
  return module


def load_rule_modules() -> int:
  """
  Registers the built-in rule modules in their canonical order.

  Returns:
      int: Number of registered modules.
  """
  global _MODULES_LOADED
  if not _MODULES_LOADED:
    from jankyp.rules import BUILTIN_MODULES

    for module in BUILTIN_MODULES:
      if module.name not in _MODULES:
        register_module(module)
    _MODULES_LOADED = True
  return len(_MODULES)


def get_modules(names: Optional[Iterable[str]] = None) -> List[RuleModule]:
  """
  Returns registered modules in registration order.

  The `runtime` module (ledger binding) is always included and always
  last, so the binding ends up as the first statement of the program.

  Args:
      names: Optional selection. Modules not named are skipped.
  """
  load_rule_modules()
  wanted = None if names is None else set(names)
  selected = [m for m in _MODULES.values() if m.name != "runtime" and (wanted is None or m.name in wanted)]
  if "runtime" in _MODULES:
    selected.append(_MODULES["runtime"])
  return selected


def available_modules() -> List[str]:
  load_rule_modules()
  return list(_MODULES)


def clear_modules() -> None:
  """Resets the registry. Primarily for testing."""
  global _MODULES_LOADED
  _MODULES.clear()
  _MODULES_LOADED = False


def merge_rules(modules: List[RuleModule]) -> Dict[str, List[RuleEntry]]:
  """
  Merges rule modules into one handler table keyed by node kind.

  Returns:
      Dict[str, List[RuleEntry]]: Entries sorted by registration order.
  """
  table: Dict[str, List[RuleEntry]] = {}
  for module_index, module in enumerate(modules):
    for kind, handlers in module.rules.items():
      for handler_index, handler in enumerate(handlers):
        table.setdefault(kind, []).append(RuleEntry((module_index, handler_index), module.name, handler))
  for entries in table.values():
    entries.sort(key=lambda entry: entry.order)
  return table


__all__ = [
  "RuleModule",
  "RuleContext",
  "RuleEntry",
  "register_module",
  "load_rule_modules",
  "get_modules",
  "available_modules",
  "clear_modules",
  "merge_rules",
]
