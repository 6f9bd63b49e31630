from blemgr.bt_ref.constants import ADAPTER_INTERFACE, DEVICE_INTERFACE, GATT_CHARACTERISTIC_INTERFACE
from blemgr.dbuslayer.adapter import Adapter
from blemgr.dbuslayer.naming import BLUEZ_NAMING
from blemgr.dbuslayer.tree import decode_managed_objects

from conftest import ADAPTER, CHAR_BATTERY, DEV_HRM, DEV_OTHER_ADAPTER, SERVICE


def test_device_requires_adapter_prefix_segment_and_interface():
    ifaces = {DEVICE_INTERFACE: {}}
    assert BLUEZ_NAMING.is_device(DEV_HRM, ifaces, ADAPTER)
    assert not BLUEZ_NAMING.is_device(DEV_OTHER_ADAPTER, ifaces, ADAPTER)
    assert not BLUEZ_NAMING.is_device(DEV_HRM, {}, ADAPTER)
    assert not BLUEZ_NAMING.is_device(ADAPTER + "/node0", ifaces, ADAPTER)


def test_gatt_children_are_not_devices():
    ifaces = {GATT_CHARACTERISTIC_INTERFACE: {}}
    assert not BLUEZ_NAMING.is_device(CHAR_BATTERY, ifaces, ADAPTER)
    assert not BLUEZ_NAMING.is_device(SERVICE, {}, ADAPTER)


def test_characteristic_classification():
    ifaces = {GATT_CHARACTERISTIC_INTERFACE: {}}
    assert BLUEZ_NAMING.is_characteristic(CHAR_BATTERY, ifaces, DEV_HRM)
    assert not BLUEZ_NAMING.is_characteristic(SERVICE, ifaces, DEV_HRM)
    assert not BLUEZ_NAMING.is_characteristic(CHAR_BATTERY, {}, DEV_HRM)
    assert not BLUEZ_NAMING.is_characteristic(CHAR_BATTERY, ifaces, ADAPTER + "/dev_11_22_33_44_55_66")


def test_adapter_find_first(objects):
    assert Adapter.find(decode_managed_objects(objects)) == ADAPTER


def test_adapter_find_preferred(objects):
    objects["/org/bluez/hci1"] = {ADAPTER_INTERFACE: {}}
    tree = decode_managed_objects(objects)
    assert Adapter.find(tree, preferred="hci1") == "/org/bluez/hci1"
    assert Adapter.find(tree, preferred="hci7") is None


def test_adapter_find_none_without_adapter():
    assert Adapter.find(decode_managed_objects({DEV_HRM: {DEVICE_INTERFACE: {}}})) is None


def test_adapter_discovery_calls(bus):
    adapter = Adapter(bus, ADAPTER)
    assert adapter.start_discovery() is True
    assert adapter.stop_discovery() is True
    assert [c[2] for c in bus.calls] == ["StartDiscovery", "StopDiscovery"]
    assert all(c[0] == ADAPTER and c[1] == ADAPTER_INTERFACE for c in bus.calls)


def test_adapter_discovery_rejected(bus):
    bus.reject.add("StartDiscovery")
    assert Adapter(bus, ADAPTER).start_discovery() is False


def test_adapter_is_powered(bus):
    adapter = Adapter(bus, ADAPTER)
    assert adapter.is_powered() is False
    bus.props[(ADAPTER, ADAPTER_INTERFACE, "Powered")] = True
    assert adapter.is_powered() is True
