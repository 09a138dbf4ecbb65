"""
Embedded Engine Host.

Runs instrumented programs inside a QuickJS context (the `quickjs` package)
with their ledger binding connected to a Python `Ledger`. The program's
``require("<ledger module>")`` returns an object whose methods forward to
`Ledger.capabilities()`, and the context's real `Object.setPrototypeOf` and
`Object.create` are routed through the host's `primitives` table, so the
ledger's start-up step wraps the functions the program actually calls.

Values cross the boundary as follows:

===================  ==============================================
Script value         Python
===================  ==============================================
undefined            `UNDEFINED`
null                 `None`
boolean              `bool`
number               `int` / `float`
string               `str`
object, function,    `EngineValue`: the engine handle, its `typeof`
symbol, bigint       tag and, for objects, a stable identity
===================  ==============================================

QuickJS itself hands only null, booleans, numbers, strings and objects to
Python. The bridge script boxes everything else before it crosses, and turns
exceptions thrown by native operations into records that Python re-raises as
`EngineError` and hands back unchanged, so the program sees the original
exception.
"""

import logging
import re
import sys
from typing import Any, Callable, Dict, Hashable, List, Optional

import quickjs
from pydantic import BaseModel, ConfigDict, Field

from jankyp.config import DEFAULT_LEDGER_MODULE, RuntimeConfig
from jankyp.core.engine import InstrumentationEngine
from jankyp.core.errors import JankypError
from jankyp.enums import LedgerHook
from jankyp.runtime.host import Host, PrimitiveTable
from jankyp.runtime.ledger import Ledger
from jankyp.runtime.values import UNDEFINED

logger = logging.getLogger(__name__)

BUILTIN_TYPES = ("Object", "Function", "Boolean", "Symbol", "String")

# Evaluates to a function that installs the bridge and returns the native
# operation dispatcher used by `QuickJSHost`.
_BRIDGE = r"""
(function (callHook, callPrimitive, write, hookNames, ledgerModule) {
  var apply = Reflect.apply;
  var construct = Reflect.construct;
  var bind = Function.prototype.bind;
  var slice = Array.prototype.slice;
  var globalEval = eval;
  var toText = String;
  var isArray = Array.isArray;
  var setPrototypeOf = Object.setPrototypeOf;
  var create = Object.create;
  var ids = new WeakMap();
  var nextId = 1;

  function Box(value) { this.value = value; }
  function Thrown(error) { this.error = error; }
  var UNDEFINED = new Box(undefined);

  function box(value) {
    var type = typeof value;
    if (type === "undefined") return UNDEFINED;
    return type === "symbol" || type === "bigint" ? new Box(value) : value;
  }
  function unbox(value) {
    if (value instanceof Thrown) throw value.error;
    return value instanceof Box ? value.value : value;
  }
  function boxed(args, from, head) {
    var out = head === undefined ? [] : [head];
    for (var i = from; i < args.length; i++) out.push(box(args[i]));
    return out;
  }
  function describe(value) {
    if (value instanceof Thrown) return "thrown";
    if (value instanceof Box) return typeof value.value;
    var id = ids.get(value);
    if (id === undefined) {
      id = nextId++;
      ids.set(value, id);
    }
    return typeof value + " " + id + " " + (isArray(value) ? "array" : "plain");
  }

  var ops = {
    evaluate: function (source) { return globalEval(source); },
    show: function (value) { return toText(value); },
    get: function (object, key) { return object[key]; },
    put: function (object, key, value) { object[key] = value; return value; },
    del: function (object, key) { return delete object[key]; },
    call: function (fn, self) { return apply(fn, self, apply(slice, arguments, [2])); },
    construct: function (fn) { return construct(fn, apply(slice, arguments, [1])); },
    bind: function (fn, self) { return apply(bind, fn, [self]); },
    builtinPrototype: function (name) { return globalThis[name].prototype; },
    setPrototypeOf: function (object, proto) { return apply(setPrototypeOf, Object, [object, proto]); },
    create: function (proto, properties) { return apply(create, Object, [proto, properties]); }
  };

  var ledger = {};
  hookNames.split(",").forEach(function (name) {
    ledger[name] = function () {
      return unbox(apply(callHook, undefined, boxed(arguments, 0, name)));
    };
  });
  globalThis.require = function (specifier) {
    if (specifier === ledgerModule) return ledger;
    throw new Error("Cannot find module '" + specifier + "'");
  };

  Object.setPrototypeOf = function setPrototypeOf(object, proto) {
    return unbox(callPrimitive("setPrototypeOf", new Error().stack, box(object), box(proto)));
  };
  Object.create = function create(proto, properties) {
    return unbox(callPrimitive("create", new Error().stack, box(proto), box(properties)));
  };

  function printer(stream) {
    return function () {
      var parts = [];
      for (var i = 0; i < arguments.length; i++) parts.push(toText(arguments[i]));
      write(stream, parts.join(" "));
    };
  }
  globalThis.console = {
    log: printer("stdout"),
    info: printer("stdout"),
    debug: printer("stdout"),
    warn: printer("stderr"),
    error: printer("stderr")
  };

  function explain(thrown) {
    var error = thrown.error;
    try {
      var text = toText(error);
      return error instanceof Error && error.stack ? text + "\n" + error.stack : text;
    } catch (e) {
      return "<unprintable exception>";
    }
  }

  return function (name) {
    if (name === "describe") return describe(arguments[1]);
    if (name === "explain") return explain(arguments[1]);
    if (name === "undefined") return UNDEFINED;
    try {
      var args = [];
      for (var i = 1; i < arguments.length; i++) args.push(unbox(arguments[i]));
      return box(apply(ops[name], undefined, args));
    } catch (error) {
      return new Thrown(error);
    }
  };
})
"""

_FRAME = re.compile(r"\((?P<file>[^()]*?):(?P<line>\d+)(?::\d+)?\)\s*$")


class EngineError(JankypError):
  """
  An exception thrown inside the engine by a native operation.

  Attributes:
      thrown: Engine handle of the thrown record; returning it to the bridge
          rethrows the original exception in the program.
  """

  def __init__(self, message: str, thrown: Any):
    super().__init__(message)
    self.thrown = thrown


class EngineValue:
  """
  A script object, function, symbol or bigint seen from Python.

  Attributes:
      handle (quickjs.Object): The engine's handle to the value.
      tag (str): The value's `typeof`.
      identity (Optional[int]): Stable id of an object or function, assigned
          by the bridge. Ids are never reused within a context.
      is_array (bool): True for array instances.
      text (Optional[str]): ``String(value)`` for symbols and bigints.
  """

  __slots__ = ("handle", "tag", "identity", "is_array", "text")

  def __init__(
    self,
    handle: Any,
    tag: str,
    identity: Optional[int] = None,
    is_array: bool = False,
    text: Optional[str] = None,
  ):
    self.handle = handle
    self.tag = tag
    self.identity = identity
    self.is_array = is_array
    self.text = text

  def __eq__(self, other: Any) -> bool:
    if not isinstance(other, EngineValue) or self.identity is None:
      return NotImplemented
    return self.identity == other.identity

  def __hash__(self) -> int:
    return hash((self.tag, self.identity if self.identity is not None else id(self)))

  def __str__(self) -> str:
    if self.text is not None:
      return self.text
    return f"[{self.tag} #{self.identity}]"

  def __repr__(self) -> str:
    return f"EngineValue({self})"


class QuickJSHost(Host):
  """
  Host over a live QuickJS context.

  Attributes:
      context (quickjs.Context): The engine context programs run in.
      filename (str): Name of the running program, used in derived locations.
      ledger_module (str): Specifier whose `require` yields the ledger.
  """

  def __init__(self, ledger_module: str = DEFAULT_LEDGER_MODULE, filename: str = "<program>"):
    self.context = quickjs.Context()
    self.filename = filename
    self.ledger_module = ledger_module
    self._capabilities: Dict[str, Callable[..., Any]] = {}
    self._stack = ""

    self.primitives: PrimitiveTable = {
      "setPrototypeOf": lambda obj, proto: self._op("setPrototypeOf", obj, proto),
      "create": lambda proto, properties=UNDEFINED: self._op("create", proto, properties),
    }

    self.context.add_callable("__jankyp_hook", self._call_hook)
    self.context.add_callable("__jankyp_primitive", self._call_primitive)
    self.context.add_callable("__jankyp_write", self._write)
    install = self.context.eval(_BRIDGE)
    self._dispatch = install(
      self.context.get("__jankyp_hook"),
      self.context.get("__jankyp_primitive"),
      self.context.get("__jankyp_write"),
      ",".join(hook.value for hook in LedgerHook),
      ledger_module,
    )
    self._undefined = self._dispatch("undefined")

  # --- Program surface ---

  def connect(self, ledger: Ledger) -> None:
    """Routes the program's ledger binding to `ledger`'s hooks."""
    self._capabilities = ledger.capabilities()

  def evaluate(self, code: str) -> Any:
    """
    Evaluates program text as a global script and runs pending jobs.

    Returns:
        Any: The script's completion value.

    Raises:
        EngineError: If the program throws.
    """
    value = self._op("evaluate", code)
    try:
      while self.context.execute_pending_job():
        pass
    except quickjs.JSException as e:
      raise EngineError(str(e), None) from e
    return value

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
    if isinstance(value, EngineValue):
      return value.tag
    raise TypeError(f"Not a script value: {value!r}")

  def is_array(self, value: Any) -> bool:
    return isinstance(value, EngineValue) and value.is_array

  def get(self, receiver: Any, key: Any) -> Any:
    return self._op("get", receiver, key)

  def put(self, receiver: Any, key: Any, value: Any) -> Any:
    return self._op("put", receiver, key, value)

  def delete(self, receiver: Any, key: Any) -> bool:
    return self._op("del", receiver, key)

  def construct(self, constructor: Any, args: List[Any]) -> Any:
    return self._op("construct", constructor, *args)

  def call(self, function: Any, this: Any, args: List[Any]) -> Any:
    return self._op("call", function, this, *args)

  def bind(self, function: Any, receiver: Any) -> Any:
    return self._op("bind", function, receiver)

  def elements(self, array: Any) -> List[Any]:
    length = self.get(array, "length")
    return [self.get(array, index) for index in range(int(length))]

  def builtin_prototypes(self) -> Dict[str, Any]:
    return {f"{name}.prototype": self._op("builtinPrototype", name) for name in BUILTIN_TYPES}

  def identity(self, value: Any) -> Hashable:
    # Primitives all map to None, which is never registered.
    return value.identity if isinstance(value, EngineValue) else None

  def watch(self, value: Any, on_release: Callable[[Any], None]) -> Any:
    # Collection inside the engine is not observable; ids are never reused.
    return None

  def caller_location(self) -> str:
    """The program frame that called the most recent wrapped primitive."""
    frames = [line.strip() for line in self._stack.splitlines() if line.strip().startswith("at ")]
    # frames[0] is the wrapper the bridge installed on `Object`; native
    # frames carry no line.
    for frame in frames[1:]:
      match = _FRAME.search(frame)
      if match is not None:
        return f"File {self.filename}, line {match.group('line')}"
    return "<unknown>"

  # --- Boundary ---

  def _op(self, name: str, *args: Any) -> Any:
    return self._decode(self._dispatch(name, *[self._encode(arg) for arg in args]))

  def _encode(self, value: Any) -> Any:
    if value is UNDEFINED:
      return self._undefined
    if isinstance(value, EngineValue):
      return value.handle
    if value is None or isinstance(value, (bool, int, float, str)):
      return value
    raise TypeError(f"Cannot pass {type(value).__name__} into the engine")

  def _decode(self, value: Any) -> Any:
    if not isinstance(value, quickjs.Object):
      return value

    description = self._dispatch("describe", value)
    if description == "thrown":
      raise EngineError(self._dispatch("explain", value), value)
    if description == "undefined":
      return UNDEFINED
    if description in ("symbol", "bigint"):
      return EngineValue(value, description, text=self._dispatch("show", value))
    tag, identity, kind = description.split(" ")
    return EngineValue(value, tag, int(identity), kind == "array")

  # --- Callables reachable from the bridge ---

  def _call_hook(self, name: str, *args: Any) -> Any:
    try:
      hook = self._capabilities[name]
    except KeyError:
      raise JankypError(f"No ledger connected for hook '{name}'") from None
    try:
      return self._encode(hook(*[self._decode(arg) for arg in args]))
    except EngineError as e:
      return e.thrown

  def _call_primitive(self, name: str, stack: str, *args: Any) -> Any:
    self._stack = stack
    try:
      return self._encode(self.primitives[name](*[self._decode(arg) for arg in args]))
    except EngineError as e:
      return e.thrown

  def _write(self, stream: str, text: str) -> None:
    out = sys.stderr if stream == "stderr" else sys.stdout
    out.write(text + "\n")


class ProgramRun(BaseModel):
  """
  Structured result of running one program under the ledger.
  """

  model_config = ConfigDict(arbitrary_types_allowed=True)

  code: str = Field(description="The instrumented program text that was run.")
  ledger: Ledger = Field(description="The ledger the program reported to.")
  value: Any = Field(default=None, description="Completion value of the program.")
  error: Optional[str] = Field(default=None, description="Uncaught exception, if the program threw.")

  @property
  def success(self) -> bool:
    return self.error is None


def run_program(
  code: str,
  config: Optional[RuntimeConfig] = None,
  filename: str = "<program>",
) -> ProgramRun:
  """
  Instruments `code` and runs it in a fresh QuickJS context.

  Args:
      code (str): Program text (a script).
      config (RuntimeConfig, optional): Rewrite settings. Defaults apply if None.
      filename (str): Name of the program, used in derived locations.

  Returns:
      ProgramRun: The instrumented code, the ledger and the outcome.

  Raises:
      InstrumentationError: If the program cannot be parsed.
      JankypError: If the program is an ES module.
  """
  config = config or RuntimeConfig()
  if config.source_type != "script":
    raise JankypError("Only scripts can run in the embedded engine")

  instrumented = InstrumentationEngine(config).instrument(code)
  host = QuickJSHost(ledger_module=config.ledger_module, filename=filename)
  ledger = Ledger(host, report_on_exit=config.report_on_exit)
  host.connect(ledger)
  ledger.install_prototype_tracking()

  try:
    value = host.evaluate(instrumented)
  except EngineError as e:
    logger.debug("Program %s threw: %s", filename, e)
    return ProgramRun(code=instrumented, ledger=ledger, error=str(e))
  return ProgramRun(code=instrumented, ledger=ledger, value=value)
