"""
Behavior Ledger.

The runtime half of jankyp. A rewritten program calls the ledger's hooks
(through the binding the `runtime` rule module adds) at every instrumented
construct. Each hook inspects the values it receives, files what it observes
under a `BehaviorCategory`, and hands back the value the original expression
would have produced, so substituting a hook call never changes what the
program computes.

Observations are deduplicated per (category, position, message) and are
only ever added. The collected entries are printed once at process exit.

Prototype tracking:
    Objects that serve as prototypes are remembered in a `PrototypeRegistry`
    that holds weak references only. Writes and deletions on a registered
    object, and swaps of prototype links, are recorded as PrototypeMutation.
"""

import functools
import logging
import weakref
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from jankyp.enums import BehaviorCategory, LedgerHook
from jankyp.runtime.host import Host, ObjectModelHost, property_name
from jankyp.runtime.values import UNDEFINED
from jankyp.utils.console import report_console

logger = logging.getLogger(__name__)

# Members of Array.prototype and String.prototype. Named accesses to these on
# an array are ordinary array use.
ARRAY_MEMBER_WHITELIST = frozenset(
  [
    # Array.prototype (plus the special `length`)
    "length",
    "concat",
    "copyWithin",
    "entries",
    "every",
    "fill",
    "filter",
    "find",
    "findIndex",
    "flat",
    "flatMap",
    "forEach",
    "includes",
    "indexOf",
    "join",
    "keys",
    "lastIndexOf",
    "map",
    "pop",
    "push",
    "reduce",
    "reduceRight",
    "reverse",
    "shift",
    "slice",
    "some",
    "sort",
    "splice",
    "toLocaleString",
    "toSource",
    "toString",
    "unshift",
    "values",
    # String.prototype
    "anchor",
    "big",
    "blink",
    "bold",
    "charAt",
    "charCodeAt",
    "codePointAt",
    "endsWith",
    "fixed",
    "fontcolor",
    "fontsize",
    "italics",
    "link",
    "localeCompare",
    "match",
    "matchAll",
    "normalize",
    "padEnd",
    "padStart",
    "repeat",
    "replace",
    "replaceAll",
    "search",
    "small",
    "split",
    "startsWith",
    "strike",
    "sub",
    "substr",
    "substring",
    "sup",
    "toLocaleLowerCase",
    "toLocaleUpperCase",
    "toLowerCase",
    "toUpperCase",
    "trim",
    "trimEnd",
    "trimStart",
    "valueOf",
  ]
)

SHAPE_KEY_LIMIT = 50


class PrototypeRegistry:
  """
  Identity-keyed, non-owning map from prototype objects to the position
  where each was first classified as a prototype.

  Keys and lifetime observation come from the host (`Host.identity`,
  `Host.watch`); by default they are `id()` and a `weakref.ref`. An entry is
  dropped when its object is reclaimed, so a key reused by a later object
  never inherits membership.
  """

  def __init__(self, host: Optional[Host] = None) -> None:
    self._identity: Callable[[Any], Hashable] = host.identity if host is not None else id
    self._watch: Callable[[Any, Callable[[Any], None]], Any] = host.watch if host is not None else weakref.ref
    self._entries: Dict[Hashable, Tuple[Any, str]] = {}

  def register(self, obj: Any, position: str) -> bool:
    """
    Registers `obj` at `position`. Re-registration keeps the first position.

    Returns:
        bool: True if the object was newly registered.
    """
    key = self._identity(obj)
    if key in self._entries:
      return False

    def _forget(token: Any, key: Hashable = key) -> None:
      entry = self._entries.get(key)
      if entry is not None and entry[0] is token:
        del self._entries[key]

    try:
      token = self._watch(obj, _forget)
    except TypeError:
      logger.debug("Cannot track %r as a prototype: lifetime not observable", type(obj).__name__)
      return False
    self._entries[key] = (token, position)
    return True

  def position_of(self, obj: Any) -> Optional[str]:
    entry = self._entries.get(self._identity(obj))
    return entry[1] if entry is not None else None

  def __contains__(self, obj: Any) -> bool:
    return self.position_of(obj) is not None

  def __len__(self) -> int:
    return len(self._entries)


class Ledger:
  """
  Collects categorized behavior observations from an instrumented program.

  Attributes:
      host (Host): Access to the program's runtime values.
      prototypes (PrototypeRegistry): Objects known to serve as prototypes.
  """

  def __init__(self, host: Optional[Host] = None, report_on_exit: bool = False):
    """
    Args:
        host (Host, optional): Runtime host. Defaults to a fresh `ObjectModelHost`.
        report_on_exit (bool): If True, `flush` prints the report. The
            process-wide ledger registers `flush` with `atexit`.
    """
    self.host = host or ObjectModelHost()
    self.report_on_exit = report_on_exit
    self.prototypes = PrototypeRegistry(self.host)
    self._entries: Dict[BehaviorCategory, Dict[str, Dict[str, None]]] = {category: {} for category in BehaviorCategory}
    self._installed: Dict[str, Callable[..., Any]] = {}
    self._flushed = False

  # --- Recording ---

  def record(self, category: BehaviorCategory, position: str, message: str) -> None:
    """Files `message` under `category` at `position`; repeats are ignored."""
    messages = self._entries[category].setdefault(position, {})
    if message not in messages:
      logger.debug("%s at %s: %s", category.value, position, message)
      messages[message] = None

  def entries(self, category: BehaviorCategory) -> Dict[str, List[str]]:
    """Positions and their distinct messages for one category, in insertion order."""
    return {position: list(messages) for position, messages in self._entries[category].items()}

  def snapshot(self) -> Dict[str, Dict[str, List[str]]]:
    """
    Returns every recorded observation as plain data.

    Returns:
        Dict[str, Dict[str, List[str]]]: category name → position → messages.
    """
    return {category.value: self.entries(category) for category in BehaviorCategory}

  def __len__(self) -> int:
    return sum(len(messages) for positions in self._entries.values() for messages in positions.values())

  def is_prototype(self, obj: Any) -> bool:
    return obj in self.prototypes

  # --- Hooks ---

  def record_arity(self, position: str, formals: int, actuals: int) -> None:
    if formals != actuals:
      self.record(
        BehaviorCategory.ARITY_MISMATCH,
        position,
        f"received {actuals} actual arguments ({formals} formal arguments)",
      )

  def expect_number(self, position: str, value: Any) -> Any:
    if not self.host.is_number(value):
      self.record(BehaviorCategory.EXPECTED_NUMBER, position, self.host.type_of(value))
    return value

  def check_operand(self, position: str, value: Any) -> Any:
    # typeof null is "object", so null counts too.
    if self.host.type_of(value) in ("object", "function"):
      self.record(BehaviorCategory.BAD_OPERAND, position, "received an object or function")
    return value

  def check_shape(self, position: str, receiver: Any, key: Any, is_called: bool) -> Any:
    """
    Checks a property read for array/object confusion, then performs it.

    A non-numeric key on an array that is not an array or string member is
    object use of an array; a numeric key on anything else is array use of
    an object.

    Args:
        position (str): Position of the member access.
        receiver (Any): The object being read.
        key (Any): The property key.
        is_called (bool): True if the result is immediately called. A
            function result is then bound to `receiver` so the call keeps
            its `this`.

    Returns:
        Any: The property value.
    """
    is_array = self.host.is_array(receiver)
    if not self.host.is_number(key):
      if is_array and not (isinstance(key, str) and key in ARRAY_MEMBER_WHITELIST):
        name = property_name(key)[:SHAPE_KEY_LIMIT]
        self.record(BehaviorCategory.SHAPE_CONFUSION, position, f"was array, accessed property: {name}")
    elif not is_array:
      self.record(BehaviorCategory.SHAPE_CONFUSION, position, "was object, but used as array")

    value = self.host.get(receiver, key)
    if is_called and self.host.type_of(value) == "function":
      value = self.host.bind(value, receiver)
    return value

  def record_exception(self, position: str) -> None:
    self.record(BehaviorCategory.EXCEPTION_CAUGHT, position, "exception")

  def check_prop_write(self, position: str, receiver: Any, key: Any, value: Any) -> Any:
    """
    Checks a property write for prototype mutation, then performs it.

    Writing `__proto__` swaps a prototype link. Writing `__proto__` or
    `prototype` marks both the receiver and the assigned object as
    prototypes. Any write to an object that was already a prototype before
    this write is a mutation of that prototype.

    Returns:
        Any: The assigned value.
    """
    name = key if isinstance(key, str) else None
    was_prototype = self.is_prototype(receiver)

    if name == "__proto__":
      self.record(BehaviorCategory.PROTOTYPE_MUTATION, position, "prototype of object changed via property write")
    if name in ("__proto__", "prototype"):
      self.track_prototype(position, receiver)
      self.track_prototype(position, value)
    if was_prototype:
      self.record(BehaviorCategory.PROTOTYPE_MUTATION, position, "property modified on prototype object")

    self.host.put(receiver, key, value)
    return value

  def check_prop_update(self, position: str, receiver: Any, key: Any, update: Any) -> Any:
    """
    Compound property write ``receiver[key] op= v``.

    Reads the current value, computes the new one with `update` (a function
    of the current value that evaluates `v`), then checks and performs the
    write like `check_prop_write`.

    Returns:
        Any: The assigned value.
    """
    current = self.host.get(receiver, key)
    value = self.host.call(update, UNDEFINED, [current])
    return self.check_prop_write(position, receiver, key, value)

  def check_prop_delete(self, position: str, receiver: Any, key: Any) -> bool:
    if self.is_prototype(receiver):
      self.record(BehaviorCategory.PROTOTYPE_MUTATION, position, "prototype of object changed via property deletion")
    return self.host.delete(receiver, key)

  def check_new(self, position: str, constructor: Any, args: Any) -> Any:
    """Registers the constructor's `prototype` object, then constructs."""
    self.track_prototype(position, self.host.get(constructor, "prototype"))
    if self.host.is_array(args):
      args = self.host.elements(args)
    return self.host.construct(constructor, list(args))

  def record_prototype_change(self, location: Optional[str] = None) -> None:
    self.record(
      BehaviorCategory.PROTOTYPE_MUTATION,
      location or self.host.caller_location(),
      "prototype of object changed via Object.setPrototypeOf",
    )

  def track_prototype(self, position: str, obj: Any) -> Any:
    """Registers `obj` as a prototype object; non-objects are ignored."""
    if self.host.is_object(obj):
      self.prototypes.register(obj, position)
    return obj

  # --- Prototype-chain tracking start-up ---

  def install_prototype_tracking(self, host: Optional[Host] = None) -> None:
    """
    Wraps the host's global prototype primitives and registers the built-in
    prototypes.

    `setPrototypeOf` records a PrototypeMutation and registers the new
    prototype before delegating;
    `create` registers the supplied prototype before delegating. Installing
    twice on the same host is a no-op.

    Args:
        host (Host, optional): Host whose primitives are wrapped. Defaults to
            the ledger's own host.
    """
    host = host or self.host
    primitives = host.primitives

    for name, obj in host.builtin_prototypes().items():
      self.track_prototype(f"<builtin {name}>", obj)

    set_prototype_of = primitives["setPrototypeOf"]
    if self._installed.get("setPrototypeOf") is not set_prototype_of:

      @functools.wraps(set_prototype_of)
      def tracked_set_prototype_of(obj: Any, proto: Any, *args: Any, **kwargs: Any) -> Any:
        location = host.caller_location()
        self.record_prototype_change(location)
        self.track_prototype(location, proto)
        return set_prototype_of(obj, proto, *args, **kwargs)

      primitives["setPrototypeOf"] = tracked_set_prototype_of
      self._installed["setPrototypeOf"] = tracked_set_prototype_of

    create = primitives["create"]
    if self._installed.get("create") is not create:

      @functools.wraps(create)
      def tracked_create(proto: Any, *args: Any, **kwargs: Any) -> Any:
        self.track_prototype(host.caller_location(), proto)
        return create(proto, *args, **kwargs)

      primitives["create"] = tracked_create
      self._installed["create"] = tracked_create

  # --- Binding surface ---

  def capabilities(self) -> Dict[str, Callable[..., Any]]:
    """
    The hook table a rewritten program binds to, keyed by hook name.
    """
    return {
      LedgerHook.RECORD_ARITY.value: self.record_arity,
      LedgerHook.EXPECT_NUMBER.value: self.expect_number,
      LedgerHook.CHECK_OPERAND.value: self.check_operand,
      LedgerHook.CHECK_SHAPE.value: self.check_shape,
      LedgerHook.RECORD_EXCEPTION.value: self.record_exception,
      LedgerHook.CHECK_PROP_WRITE.value: self.check_prop_write,
      LedgerHook.CHECK_PROP_UPDATE.value: self.check_prop_update,
      LedgerHook.CHECK_PROP_DELETE.value: self.check_prop_delete,
      LedgerHook.CHECK_NEW.value: self.check_new,
      LedgerHook.RECORD_PROTOTYPE_CHANGE.value: self.record_prototype_change,
      LedgerHook.TRACK_PROTOTYPE.value: self.track_prototype,
      LedgerHook.INSTALL_PROTOTYPE_TRACKING.value: self.install_prototype_tracking,
    }

  # --- Reporting ---

  def report(self, console: Optional[Console] = None) -> None:
    """
    Prints one table per category listing each position and its messages.

    Args:
        console (Console, optional): Destination. Defaults to the report
            console (stderr).
    """
    out = console or report_console
    for category in BehaviorCategory:
      positions = self._entries[category]
      table = Table(title=category.value, title_style="bold yellow")
      table.add_column("Position", style="bold magenta", no_wrap=True)
      table.add_column("Behavior")
      for position, messages in positions.items():
        table.add_row(position, "\n".join(messages))
      if not positions:
        table.add_row("-", "[dim]none observed[/dim]")
      out.print(table)

  def flush(self) -> None:
    """
    Prints the report once, if reporting on exit is enabled and the ledger
    was used (tracking installed or something recorded).
    """
    if self._flushed:
      return
    self._flushed = True
    if self.report_on_exit and (self._installed or len(self) > 0):
      self.report()
