"""
Runtime Value Model.

Python representations of the scripting language's values, used by the
reference host (`jankyp.runtime.host.ObjectModelHost`):

=============  =====================================
Language       Python
=============  =====================================
undefined      `UNDEFINED`
null           `None`
boolean        `bool`
number         `int` / `float`
string         `str`
object         `JsObject`
array          `JsArray`
function       `JsFunction`
=============  =====================================

Objects carry their prototype link in `proto` (`None` for a null link) and
their own properties in insertion order.
"""

from typing import Any, Callable, Dict, List, Optional


class _Undefined:
  """The single `undefined` value."""

  _instance: Optional["_Undefined"] = None

  def __new__(cls) -> "_Undefined":
    if cls._instance is None:
      cls._instance = super().__new__(cls)
    return cls._instance

  def __bool__(self) -> bool:
    return False

  def __repr__(self) -> str:
    return "undefined"


UNDEFINED = _Undefined()


class JsTypeError(Exception):
  """A TypeError thrown by the language's own semantics (e.g. reading a property of null)."""


class JsObject:
  """
  An ordinary object.

  Attributes:
      proto (Optional[JsObject]): The prototype link.
      properties (Dict[str, Any]): Own properties, keyed by property name.
  """

  def __init__(self, proto: Optional["JsObject"] = None, properties: Optional[Dict[str, Any]] = None):
    self.proto = proto
    self.properties: Dict[str, Any] = dict(properties or {})

  def lookup(self, key: str) -> Any:
    """Finds `key` on this object or along its prototype chain."""
    obj: Optional[JsObject] = self
    while obj is not None:
      if key in obj.properties:
        return obj.properties[key]
      obj = obj.proto
    return UNDEFINED

  def __repr__(self) -> str:
    return f"{type(self).__name__}({list(self.properties)})"


class JsArray(JsObject):
  """
  An array: dense `items` plus ordinary named properties.
  """

  def __init__(self, items: Optional[List[Any]] = None, proto: Optional[JsObject] = None):
    super().__init__(proto)
    self.items: List[Any] = list(items or [])

  def __repr__(self) -> str:
    return f"JsArray({self.items!r})"


class JsFunction(JsObject):
  """
  A callable object.

  Attributes:
      fn (Callable[..., Any]): Implementation, called as ``fn(this, *args)``.
      name (str): Function name.
      bound_this (Any): Receiver fixed by `bind`, or `UNDEFINED` when unbound.
  """

  def __init__(
    self,
    fn: Callable[..., Any],
    name: str = "",
    proto: Optional[JsObject] = None,
    bound_this: Any = UNDEFINED,
  ):
    super().__init__(proto)
    self.fn = fn
    self.name = name
    self.bound_this = bound_this

  @property
  def is_bound(self) -> bool:
    return self.bound_this is not UNDEFINED

  def call(self, this: Any, args: List[Any]) -> Any:
    receiver = self.bound_this if self.is_bound else this
    return self.fn(receiver, *args)

  def __repr__(self) -> str:
    return f"JsFunction({self.name or '<anonymous>'})"
