"""
Host Protocol.

The ledger never touches runtime values directly. Everything that depends on
the language's semantics (type classification, property access, construction,
binding) goes through a `Host`, so the same ledger serves any embedding that
can expose the language's values to Python.

`ObjectModelHost` is the reference host over `jankyp.runtime.values`;
`jankyp.runtime.quickjs_host.QuickJSHost` runs real programs in an embedded
engine.

Every host also owns the process-wide capability table `primitives`: the
global operations that establish prototype links outside property syntax
(``setPrototypeOf`` and ``create``). The language-level `Object.setPrototypeOf`
and `Object.create` look their implementation up in this table on every call,
which is what lets the ledger's start-up step wrap them without touching the
`Object` global itself.
"""

import math
import os
import traceback
import weakref
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Hashable, List, Optional

from jankyp.runtime.values import UNDEFINED, JsArray, JsFunction, JsObject, JsTypeError

PrimitiveTable = Dict[str, Callable[..., Any]]

_RUNTIME_DIR = os.path.dirname(os.path.abspath(__file__))


def caller_location() -> str:
  """
  Describes the innermost Python stack frame outside the runtime package.

  Used where the program supplies no position, e.g. for prototype swaps
  through the wrapped `setPrototypeOf` primitive.
  """
  for frame in reversed(traceback.extract_stack()):
    if os.path.dirname(os.path.abspath(frame.filename)) != _RUNTIME_DIR:
      return f"File {frame.filename}, line {frame.lineno}"
  return "<unknown>"


class Host(ABC):
  """
  Abstract access to the runtime values of the instrumented program.

  Attributes:
      primitives (PrimitiveTable): Capability table holding the global
          prototype-linking operations, keyed "setPrototypeOf" and "create".
  """

  primitives: PrimitiveTable

  @abstractmethod
  def type_of(self, value: Any) -> str:
    """The language's `typeof` of `value`."""

  @abstractmethod
  def is_array(self, value: Any) -> bool:
    """True if `value` is an array instance."""

  def is_object(self, value: Any) -> bool:
    """True for objects and functions (`null` excluded)."""
    return value is not None and self.type_of(value) in ("object", "function")

  def is_number(self, value: Any) -> bool:
    return self.type_of(value) == "number"

  @abstractmethod
  def get(self, receiver: Any, key: Any) -> Any:
    """Native property read ``receiver[key]``."""

  @abstractmethod
  def put(self, receiver: Any, key: Any, value: Any) -> Any:
    """Native property write ``receiver[key] = value``; returns `value`."""

  @abstractmethod
  def delete(self, receiver: Any, key: Any) -> bool:
    """Native ``delete receiver[key]``."""

  @abstractmethod
  def construct(self, constructor: Any, args: List[Any]) -> Any:
    """Native ``new constructor(...args)``."""

  @abstractmethod
  def call(self, function: Any, this: Any, args: List[Any]) -> Any:
    """Native ``function.call(this, ...args)``."""

  @abstractmethod
  def bind(self, function: Any, receiver: Any) -> Any:
    """Native ``function.bind(receiver)``."""

  @abstractmethod
  def elements(self, array: Any) -> List[Any]:
    """The elements of an array value, as a Python list."""

  @abstractmethod
  def builtin_prototypes(self) -> Dict[str, Any]:
    """Prototype objects of the foundational built-in types, by name."""

  def identity(self, value: Any) -> Hashable:
    """Key identifying the object `value` while it is alive."""
    return id(value)

  def watch(self, value: Any, on_release: Callable[[Any], None]) -> Any:
    """
    Arranges for `on_release(token)` to run once `value` is reclaimed.

    Returns:
        Any: The token, to be held by the caller.

    Raises:
        TypeError: If the lifetime of `value` cannot be observed.
    """
    return weakref.ref(value, on_release)

  def caller_location(self) -> str:
    """Where the program currently calling into the runtime is."""
    return caller_location()


def property_name(key: Any) -> str:
  """Converts a property key to the string the language would use."""
  if isinstance(key, str):
    return key
  if isinstance(key, bool):
    return "true" if key else "false"
  if key is None:
    return "null"
  if key is UNDEFINED:
    return "undefined"
  if isinstance(key, int):
    return str(key)
  if isinstance(key, float):
    if math.isnan(key):
      return "NaN"
    if math.isinf(key):
      return "Infinity" if key > 0 else "-Infinity"
    if key.is_integer():
      return str(int(key))
    return repr(key)
  return str(key)


def array_index(key: Any) -> Optional[int]:
  """Returns the array index `key` denotes, or None if it is a named property."""
  if isinstance(key, bool):
    return None
  if isinstance(key, int):
    return key if key >= 0 else None
  if isinstance(key, float):
    return int(key) if key.is_integer() and key >= 0 else None
  if isinstance(key, str) and key.isdigit() and (key == "0" or not key.startswith("0")):
    return int(key)
  return None


class ObjectModelHost(Host):
  """
  Reference host: a realm of `JsObject` values with the built-in prototypes.

  Attributes:
      object_prototype, function_prototype, array_prototype,
      boolean_prototype, symbol_prototype, string_prototype,
      number_prototype (JsObject): The realm's built-in prototypes.
      globals (Dict[str, Any]): Global bindings (currently `Object`).
  """

  def __init__(self) -> None:
    self.object_prototype = JsObject(None)
    self.function_prototype = JsObject(self.object_prototype)
    self.array_prototype = JsObject(self.object_prototype)
    self.boolean_prototype = JsObject(self.object_prototype)
    self.symbol_prototype = JsObject(self.object_prototype)
    self.string_prototype = JsObject(self.object_prototype)
    self.number_prototype = JsObject(self.object_prototype)

    self.primitives: PrimitiveTable = {
      "setPrototypeOf": self._set_prototype_of,
      "create": self._create,
    }

    object_constructor = self.new_function(lambda this, value=UNDEFINED: self._to_object(value), "Object")
    object_constructor.properties["prototype"] = self.object_prototype
    self.object_prototype.properties["constructor"] = object_constructor
    object_constructor.properties["setPrototypeOf"] = self.new_function(
      lambda this, obj=UNDEFINED, proto=UNDEFINED: self.primitives["setPrototypeOf"](obj, proto),
      "setPrototypeOf",
      constructable=False,
    )
    object_constructor.properties["create"] = self.new_function(
      lambda this, proto=UNDEFINED, props=UNDEFINED: self.primitives["create"](proto, props),
      "create",
      constructable=False,
    )
    self.globals: Dict[str, Any] = {"Object": object_constructor}

  # --- Value factories ---

  def new_object(self, properties: Optional[Dict[str, Any]] = None, proto: Any = UNDEFINED) -> JsObject:
    """Creates an object; the prototype defaults to `Object.prototype`."""
    return JsObject(self.object_prototype if proto is UNDEFINED else proto, properties)

  def new_array(self, items: Optional[List[Any]] = None) -> JsArray:
    return JsArray(items, self.array_prototype)

  def new_function(self, fn: Callable[..., Any], name: str = "", constructable: bool = True) -> JsFunction:
    """
    Wraps ``fn(this, *args)`` as a function object.

    Constructable functions get a fresh `prototype` object whose
    `constructor` points back at the function.
    """
    function = JsFunction(fn, name, self.function_prototype)
    if constructable:
      function.properties["prototype"] = self.new_object({"constructor": function})
    return function

  def call(self, function: Any, this: Any, args: List[Any]) -> Any:
    if not isinstance(function, JsFunction):
      raise JsTypeError(f"{self._describe(function)} is not a function")
    return function.call(this, args)

  # --- Host protocol ---

  def type_of(self, value: Any) -> str:
    if value is UNDEFINED:
      return "undefined"
    if value is None:
      return "object"
    if isinstance(value, bool):
      return "boolean"
    if isinstance(value, (int, float)):
      return "number"
    if isinstance(value, str):
      return "string"
    if isinstance(value, JsFunction):
      return "function"
    return "object"

  def is_array(self, value: Any) -> bool:
    return isinstance(value, JsArray)

  def get(self, receiver: Any, key: Any) -> Any:
    self._require_object_coercible(receiver, key)
    name = property_name(key)

    if isinstance(receiver, str):
      index = array_index(key)
      if name == "length":
        return len(receiver)
      if index is not None:
        return receiver[index] if index < len(receiver) else UNDEFINED
      return self.string_prototype.lookup(name)
    if isinstance(receiver, bool):
      return self.boolean_prototype.lookup(name)
    if isinstance(receiver, (int, float)):
      return self.number_prototype.lookup(name)

    if name == "__proto__":
      return receiver.proto
    if isinstance(receiver, JsArray):
      index = array_index(key)
      if name == "length":
        return len(receiver.items)
      if index is not None:
        return receiver.items[index] if index < len(receiver.items) else UNDEFINED
    return receiver.lookup(name)

  def put(self, receiver: Any, key: Any, value: Any) -> Any:
    self._require_object_coercible(receiver, key)
    if not isinstance(receiver, JsObject):
      # Writes to primitives are dropped.
      return value

    name = property_name(key)
    if name == "__proto__":
      if value is None or isinstance(value, JsObject):
        receiver.proto = value
      return value

    if isinstance(receiver, JsArray):
      index = array_index(key)
      if index is not None:
        if index >= len(receiver.items):
          receiver.items.extend([UNDEFINED] * (index + 1 - len(receiver.items)))
        receiver.items[index] = value
        return value
      if name == "length":
        new_length = int(value)
        del receiver.items[new_length:]
        receiver.items.extend([UNDEFINED] * (new_length - len(receiver.items)))
        return value

    receiver.properties[name] = value
    return value

  def delete(self, receiver: Any, key: Any) -> bool:
    self._require_object_coercible(receiver, key)
    if not isinstance(receiver, JsObject):
      return True

    name = property_name(key)
    if isinstance(receiver, JsArray):
      index = array_index(key)
      if index is not None:
        if index < len(receiver.items):
          receiver.items[index] = UNDEFINED
        return True
      if name == "length":
        return False
    receiver.properties.pop(name, None)
    return True

  def construct(self, constructor: Any, args: List[Any]) -> Any:
    if not isinstance(constructor, JsFunction) or "prototype" not in constructor.properties:
      raise JsTypeError(f"{self._describe(constructor)} is not a constructor")
    proto = self.get(constructor, "prototype")
    instance = self.new_object(proto=proto if isinstance(proto, JsObject) else self.object_prototype)
    result = constructor.call(instance, list(args))
    return result if self.is_object(result) else instance

  def bind(self, function: Any, receiver: Any) -> Any:
    if not isinstance(function, JsFunction):
      raise JsTypeError(f"{self._describe(function)} is not a function")
    if function.is_bound:
      return function
    bound = JsFunction(function.fn, f"bound {function.name}", function.proto, bound_this=receiver)
    return bound

  def elements(self, array: Any) -> List[Any]:
    if isinstance(array, JsArray):
      return list(array.items)
    return list(array)

  def builtin_prototypes(self) -> Dict[str, Any]:
    return {
      "Object.prototype": self.object_prototype,
      "Function.prototype": self.function_prototype,
      "Boolean.prototype": self.boolean_prototype,
      "Symbol.prototype": self.symbol_prototype,
      "String.prototype": self.string_prototype,
    }

  # --- Primitive implementations (reached through `primitives`) ---

  def _set_prototype_of(self, obj: Any, proto: Any) -> Any:
    if proto is not None and not isinstance(proto, JsObject):
      raise JsTypeError(f"Object prototype may only be an Object or null: {self._describe(proto)}")
    self._require_object_coercible(obj, "__proto__")
    if isinstance(obj, JsObject):
      obj.proto = proto
    return obj

  def _create(self, proto: Any, properties: Any = UNDEFINED) -> JsObject:
    if proto is not None and not isinstance(proto, JsObject):
      raise JsTypeError(f"Object prototype may only be an Object or null: {self._describe(proto)}")
    obj = JsObject(proto)
    if isinstance(properties, JsObject):
      for name, descriptor in properties.properties.items():
        if isinstance(descriptor, JsObject):
          obj.properties[name] = descriptor.lookup("value")
    return obj

  # --- Helpers ---

  def _to_object(self, value: Any) -> JsObject:
    if isinstance(value, JsObject):
      return value
    return self.new_object()

  def _require_object_coercible(self, receiver: Any, key: Any) -> None:
    if receiver is None or receiver is UNDEFINED:
      raise JsTypeError(f"Cannot access property '{property_name(key)}' of {self._describe(receiver)}")

  def _describe(self, value: Any) -> str:
    if value is None:
      return "null"
    if value is UNDEFINED:
      return "undefined"
    if isinstance(value, JsFunction):
      return f"function {value.name}"
    return repr(value)


