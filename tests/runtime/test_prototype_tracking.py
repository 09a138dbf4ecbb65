"""
Tests for prototype tracking: the weak registry, the prototype hooks and
the start-up step that wraps the host's prototype primitives.
"""

import gc
import weakref

from jankyp.enums import BehaviorCategory
from jankyp.runtime.host import ObjectModelHost
from jankyp.runtime.ledger import PrototypeRegistry
from jankyp.runtime.values import UNDEFINED

P1 = "Line 1, Column 0"
P2 = "Line 2, Column 0"
P3 = "Line 3, Column 0"

WRITE = "prototype of object changed via property write"
MODIFIED = "property modified on prototype object"
DELETED = "prototype of object changed via property deletion"
SWAPPED = "prototype of object changed via Object.setPrototypeOf"


def _mutations(ledger):
  return ledger.entries(BehaviorCategory.PROTOTYPE_MUTATION)


# --- Registry ---


def test_registry_keeps_first_position(host):
  registry = PrototypeRegistry()
  obj = host.new_object()
  assert registry.register(obj, P1)
  assert not registry.register(obj, P2)
  assert registry.position_of(obj) == P1
  assert obj in registry
  assert len(registry) == 1


def test_registry_is_identity_keyed(host):
  registry = PrototypeRegistry()
  registry.register(host.new_object({"a": 1}), P1)
  assert host.new_object({"a": 1}) not in registry


def test_registry_does_not_keep_objects_alive(host):
  registry = PrototypeRegistry()
  obj = host.new_object()
  ref = weakref.ref(obj)
  registry.register(obj, P1)

  del obj
  gc.collect()

  assert ref() is None
  assert len(registry) == 0
  assert registry._entries == {}


class _CountingHost(ObjectModelHost):
  """Keys objects by a label property and never reports their release."""

  def identity(self, value):
    return value.properties["label"]

  def watch(self, value, on_release):
    return None


def test_registry_uses_host_identity():
  host = _CountingHost()
  registry = PrototypeRegistry(host)
  assert registry.register(host.new_object({"label": "a"}), P1)
  assert host.new_object({"label": "a"}) in registry
  assert not registry.register(host.new_object({"label": "a"}), P2)
  assert len(registry) == 1


def test_registry_ignores_values_without_weak_references():
  registry = PrototypeRegistry()
  assert not registry.register([1, 2], P1)
  assert len(registry) == 0


# --- Hooks ---


def test_proto_write_records_one_mutation(ledger, host):
  obj = host.new_object()
  new_proto = host.new_object()
  assert ledger.check_prop_write(P1, obj, "__proto__", new_proto) is new_proto
  assert obj.proto is new_proto
  assert _mutations(ledger) == {P1: [WRITE]}


def test_later_write_to_registered_prototype_records_second_mutation(ledger, host):
  obj = host.new_object()
  ledger.check_prop_write(P1, obj, "__proto__", host.new_object())
  ledger.check_prop_write(P2, obj, "x", 1)
  assert _mutations(ledger) == {P1: [WRITE], P2: [MODIFIED]}


def test_assigned_prototype_is_registered(ledger, host):
  obj, new_proto = host.new_object(), host.new_object()
  ledger.check_prop_write(P1, obj, "__proto__", new_proto)
  assert ledger.is_prototype(obj)
  assert ledger.is_prototype(new_proto)

  ledger.check_prop_write(P2, new_proto, "shared", 1)
  assert _mutations(ledger)[P2] == [MODIFIED]


def test_prototype_property_write_registers_without_mutation(ledger, host):
  ctor = host.new_function(lambda this: None)
  proto = host.new_object()
  ledger.check_prop_write(P1, ctor, "prototype", proto)
  assert ledger.is_prototype(ctor)
  assert ledger.is_prototype(proto)
  assert _mutations(ledger) == {}


def test_ordinary_writes_are_not_mutations(ledger, host):
  obj = host.new_object()
  ledger.check_prop_write(P1, obj, "x", 1)
  assert host.get(obj, "x") == 1
  assert _mutations(ledger) == {}


def test_compound_write_reads_updates_and_writes(ledger, host):
  obj = host.new_object({"count": 2})
  seen = []

  def add_three(this, current):
    seen.append(current)
    return current + 3

  assert ledger.check_prop_update(P1, obj, "count", host.new_function(add_three)) == 5
  assert seen == [2]
  assert host.get(obj, "count") == 5
  assert _mutations(ledger) == {}


def test_compound_write_on_prototype_records_mutation(ledger, host):
  ctor = host.new_function(lambda this: None, "Foo")
  proto = host.get(ctor, "prototype")
  host.put(proto, "count", 0)
  ledger.track_prototype(P1, proto)

  ledger.check_prop_update(P2, proto, "count", host.new_function(lambda this, current: current + 1))

  assert host.get(proto, "count") == 1
  assert _mutations(ledger) == {P2: [MODIFIED]}


def test_compound_proto_write_records_swap(ledger, host):
  obj = host.new_object()
  replacement = host.new_object()
  ledger.check_prop_update(P1, obj, "__proto__", host.new_function(lambda this, current: replacement))
  assert obj.proto is replacement
  assert _mutations(ledger) == {P1: [WRITE]}


def test_delete_on_prototype(ledger, host):
  proto = host.new_object({"m": 1})
  ledger.track_prototype(P1, proto)
  assert ledger.check_prop_delete(P2, proto, "m") is True
  assert host.get(proto, "m") is UNDEFINED
  assert _mutations(ledger) == {P2: [DELETED]}


def test_delete_on_ordinary_object(ledger, host):
  obj = host.new_object({"m": 1})
  ledger.check_prop_delete(P1, obj, "m")
  assert _mutations(ledger) == {}


def test_check_new_registers_constructor_prototype(ledger, host):
  def init(this, x):
    host.put(this, "x", x)

  ctor = host.new_function(init, "Point")
  instance = ledger.check_new(P1, ctor, host.new_array([3]))
  proto = host.get(ctor, "prototype")

  assert host.get(instance, "x") == 3
  assert instance.proto is proto
  assert ledger.prototypes.position_of(proto) == P1

  ledger.check_new(P2, ctor, host.new_array([4]))
  assert ledger.prototypes.position_of(proto) == P1

  ledger.check_prop_write(P3, proto, "norm", 0)
  assert _mutations(ledger) == {P3: [MODIFIED]}


def test_track_prototype_ignores_primitives(ledger):
  assert ledger.track_prototype(P1, 5) == 5
  assert ledger.track_prototype(P1, None) is None
  assert len(ledger.prototypes) == 0


def test_record_prototype_change_with_explicit_location(ledger):
  ledger.record_prototype_change("somewhere")
  assert _mutations(ledger) == {"somewhere": [SWAPPED]}


def test_record_prototype_change_derives_caller_location(ledger):
  ledger.record_prototype_change()
  (location,) = _mutations(ledger)
  assert location.startswith("File ")
  assert "test_prototype_tracking.py" in location


# --- Start-up step ---


def test_install_registers_builtin_prototypes(ledger, host):
  ledger.install_prototype_tracking()
  for proto in host.builtin_prototypes().values():
    assert ledger.is_prototype(proto)

  ledger.check_prop_write(P1, host.string_prototype, "shout", 1)
  assert _mutations(ledger) == {P1: [MODIFIED]}


def test_wrapped_set_prototype_of_records_and_delegates(ledger, host):
  ledger.install_prototype_tracking()
  Object = host.globals["Object"]
  obj, proto = host.new_object(), host.new_object()

  host.call(host.get(Object, "setPrototypeOf"), Object, [obj, proto])

  assert obj.proto is proto
  assert ledger.is_prototype(proto)
  (location,) = _mutations(ledger)
  assert "test_prototype_tracking.py" in location
  assert _mutations(ledger)[location] == [SWAPPED]


def test_wrapped_create_registers_prototype(ledger, host):
  ledger.install_prototype_tracking()
  Object = host.globals["Object"]
  proto = host.new_object()

  created = host.call(host.get(Object, "create"), Object, [proto])

  assert created.proto is proto
  assert ledger.is_prototype(proto)
  assert _mutations(ledger) == {}


def test_wrappers_keep_metadata(ledger, host):
  original = host.primitives["setPrototypeOf"]
  ledger.install_prototype_tracking()
  wrapped = host.primitives["setPrototypeOf"]
  assert wrapped is not original
  assert wrapped.__wrapped__ == original
  assert wrapped.__name__ == original.__name__


def test_install_is_idempotent(ledger, host):
  ledger.install_prototype_tracking()
  first = dict(host.primitives)
  ledger.install_prototype_tracking()
  assert host.primitives == first

  Object = host.globals["Object"]
  host.call(host.get(Object, "setPrototypeOf"), Object, [host.new_object(), None])
  assert len(ledger) == 1
