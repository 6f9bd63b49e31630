"""
pytest configuration for blemgr tests.

Provides an in-memory stand-in for the system bus so the discovery, connection
and GATT layers run without dbus-python or a BlueZ daemon, plus a clock that
advances only when slept on.
"""

import os
import sys

# Allow running the suite from a checkout without installing the package
tests_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(tests_dir)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest

from blemgr.bt_ref.constants import (
    ADAPTER_INTERFACE,
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
    GATT_SERVICE_INTERFACE,
)
from blemgr.core.config import Settings
from blemgr.dbuslayer.base import Reply


# ============================================================================
# Sample BlueZ object tree
# ============================================================================

ADAPTER = "/org/bluez/hci0"
DEV_HRM = ADAPTER + "/dev_AA_BB_CC_DD_EE_FF"
DEV_ANON = ADAPTER + "/dev_11_22_33_44_55_66"
DEV_OTHER_ADAPTER = "/org/bluez/hci1/dev_99_88_77_66_55_44"
SERVICE = DEV_HRM + "/service000a"
CHAR_BATTERY = SERVICE + "/char000b"
CHAR_CONTROL = SERVICE + "/char000d"

HEART_RATE_UUID = "0000180d-0000-1000-8000-00805f9b34fb"
BATTERY_UUID = "0000180f-0000-1000-8000-00805f9b34fb"
XIAOMI_UUID = "0000fe95-0000-1000-8000-00805f9b34fb"


def make_objects():
    """Fresh GetManagedObjects payload as the bus client would hand it over."""
    return {
        "/org/bluez": {"org.bluez.AgentManager1": {}},
        ADAPTER: {
            ADAPTER_INTERFACE: {"Address": "00:1A:7D:DA:71:13", "Powered": True},
        },
        DEV_HRM: {
            DEVICE_INTERFACE: {
                "Address": "AA:BB:CC:DD:EE:FF",
                "Name": "HeartSensor",
                "Connected": False,
                "UUIDs": [HEART_RATE_UUID, BATTERY_UUID],
            },
        },
        DEV_ANON: {
            DEVICE_INTERFACE: {
                "Address": "11:22:33:44:55:66",
                "Connected": False,
                "UUIDs": [XIAOMI_UUID],
            },
        },
        DEV_OTHER_ADAPTER: {
            DEVICE_INTERFACE: {"Address": "99:88:77:66:55:44", "Name": "Elsewhere"},
        },
        SERVICE: {
            GATT_SERVICE_INTERFACE: {"UUID": BATTERY_UUID, "Device": DEV_HRM, "Primary": True},
        },
        CHAR_BATTERY: {
            GATT_CHARACTERISTIC_INTERFACE: {
                "UUID": "00002a19-0000-1000-8000-00805f9b34fb",
                "Service": SERVICE,
                "Flags": ["read", "notify"],
            },
        },
        CHAR_CONTROL: {
            GATT_CHARACTERISTIC_INTERFACE: {
                "UUID": "00002a39-0000-1000-8000-00805f9b34fb",
                "Service": SERVICE,
                "Flags": ["write"],
            },
        },
    }


# ============================================================================
# Fakes
# ============================================================================


class FakeMatch:
    def __init__(self, bus, entry):
        self._bus = bus
        self._entry = entry

    def remove(self):
        if self._entry in self._bus.receivers:
            self._bus.receivers.remove(self._entry)


class FakeBus:
    """In-memory implementation of the ``BusClient`` protocol.

    * ``objects`` is returned by ``GetManagedObjects``.
    * ``props`` maps ``(path, interface, name)`` to a live property value; a
      callable value is invoked on every read.
    * ``reject`` holds method names or ``(path, method)`` pairs that fail.
    * ``values`` stores characteristic bytes for ReadValue / WriteValue.
    * Signals queued with :meth:`emit` are delivered by :meth:`pump_once`.
    """

    def __init__(self, objects=None):
        self.objects = make_objects() if objects is None else objects
        self.props = {}
        self.reject = set()
        self.values = {}
        self.calls = []
        self.matches = []
        self.receivers = []
        self.pending = []
        self.pumped = []
        self.connect_ok = True
        self.match_ok = True
        self.connected = False

    # -- connection ------------------------------------------------------
    def connect(self):
        self.connected = self.connect_ok
        return self.connect_ok

    # -- method calls ----------------------------------------------------
    def call(self, service, path, interface, method, signature=None, args=()):
        self.calls.append((path, interface, method, signature, tuple(args)))
        if method in self.reject or (path, method) in self.reject:
            return None
        if method == "GetManagedObjects":
            return Reply((self.objects,))
        if method == "ReadValue":
            return Reply((self.values.get(path, b""),))
        if method == "WriteValue":
            self.values[path] = bytes(args[0])
        return Reply()

    def methods(self, name):
        return [c for c in self.calls if c[2] == name]

    # -- properties ------------------------------------------------------
    def get_property(self, service, path, interface, prop):
        value = self.props.get((path, interface, prop))
        return value() if callable(value) else value

    def get_string_property(self, service, path, interface, prop):
        value = self.get_property(service, path, interface, prop)
        return value if isinstance(value, str) else ""

    def get_bool_property(self, service, path, interface, prop):
        value = self.get_property(service, path, interface, prop)
        return value if isinstance(value, bool) else False

    # -- signals ---------------------------------------------------------
    def add_signal_match(self, rule):
        self.matches.append(rule)
        return self.match_ok

    def add_signal_receiver(self, handler, *, signal_name, interface, sender=None):
        entry = {"handler": handler, "signal_name": signal_name, "interface": interface, "sender": sender}
        self.receivers.append(entry)
        return FakeMatch(self, entry)

    def emit(self, interface, changed, path, invalidated=()):
        self.pending.append((interface, changed, invalidated, path))

    def pump_once(self, timeout_ms):
        self.pumped.append(timeout_ms)
        pending, self.pending = self.pending, []
        for interface, changed, invalidated, path in pending:
            for entry in list(self.receivers):
                entry["handler"](interface, changed, invalidated, path=path)


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def monotonic(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def objects():
    return make_objects()


@pytest.fixture
def bus(objects):
    return FakeBus(objects)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def service(bus, clock, settings):
    from blemgr.core.device_management import DeviceManagementService

    svc = DeviceManagementService(bus=bus, settings=settings, clock=clock)
    svc.initialize()
    return svc
