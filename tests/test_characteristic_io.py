import pytest

from blemgr.bt_ref.constants import GATT_CHARACTERISTIC_INTERFACE
from blemgr.dbuslayer.characteristic import CharacteristicIO

from conftest import CHAR_BATTERY, CHAR_CONTROL


@pytest.fixture
def io(bus):
    return CharacteristicIO(bus)


def test_read_sends_empty_options(bus, io):
    bus.values[CHAR_BATTERY] = b"\x5a"
    assert io.read(CHAR_BATTERY) == b"\x5a"
    path, iface, method, signature, args = bus.methods("ReadValue")[0]
    assert (path, iface, signature, args) == (CHAR_BATTERY, GATT_CHARACTERISTIC_INTERFACE, "a{sv}", ({},))


def test_read_failure_is_empty(bus, io):
    bus.reject.add("ReadValue")
    assert io.read(CHAR_BATTERY) == b""


def test_write_sends_bytes_and_options(bus, io):
    assert io.write(CHAR_CONTROL, bytearray(b"\x01\x02")) is True
    _, _, _, signature, args = bus.methods("WriteValue")[0]
    assert signature == "aya{sv}"
    assert args == (b"\x01\x02", {})


def test_write_failure(bus, io):
    bus.reject.add("WriteValue")
    assert io.write(CHAR_CONTROL, b"\x01") is False


@pytest.mark.parametrize("payload", [b"", bytes(range(1, 256))])
def test_written_bytes_read_back_unchanged(io, payload):
    assert io.write(CHAR_CONTROL, payload)
    assert io.read(CHAR_CONTROL) == payload


def test_subscriptions_follow_accepted_requests(bus, io):
    assert io.start_notify(CHAR_BATTERY) is True
    assert io.is_subscribed(CHAR_BATTERY)
    assert io.stop_notify(CHAR_BATTERY) is True
    assert not io.is_subscribed(CHAR_BATTERY)


def test_stop_notify_on_unsubscribed_path_is_harmless(io):
    assert io.stop_notify(CHAR_CONTROL) in (True, False)
    assert io.subscriptions == set()


def test_rejected_notify_leaves_subscriptions(bus, io):
    bus.reject.add("StartNotify")
    assert io.start_notify(CHAR_BATTERY) is False
    assert io.subscriptions == set()

    bus.reject.clear()
    io.start_notify(CHAR_BATTERY)
    bus.reject.add("StopNotify")
    assert io.stop_notify(CHAR_BATTERY) is False
    assert io.subscriptions == {CHAR_BATTERY}


def test_pump_forwards_budget(bus, io):
    io.pump(250)
    assert bus.pumped == [250]
