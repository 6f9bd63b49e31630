import pytest

from blemgr.bt_ref.constants import DEVICE_INTERFACE
from blemgr.dbuslayer.connection import ConnectionState, ConnectionStateMachine, RetryPolicy
from blemgr.dbuslayer.device import DeviceRegistry
from blemgr.dbuslayer.tree import decode_managed_objects

from conftest import ADAPTER, DEV_HRM

CONNECTED_KEY = (DEV_HRM, DEVICE_INTERFACE, "Connected")


@pytest.fixture
def registry(bus, objects):
    reg = DeviceRegistry(bus)
    reg.discover(decode_managed_objects(objects), ADAPTER)
    return reg


def _machine(bus, registry, clock, **policy):
    return ConnectionStateMachine(bus, registry, policy=RetryPolicy(**policy), clock=clock)


def test_connect_confirmed_on_first_poll(bus, registry, clock):
    bus.props[CONNECTED_KEY] = True
    machine = _machine(bus, registry, clock)
    assert machine.connect(DEV_HRM) is True
    assert registry.get(DEV_HRM).connected is True
    assert machine.state(DEV_HRM) is ConnectionState.CONNECTED
    assert machine.attempts(DEV_HRM) == 1
    assert bus.methods("Connect")[0][:3] == (DEV_HRM, DEVICE_INTERFACE, "Connect")


def test_connect_confirmed_after_several_polls(bus, registry, clock):
    reads = iter([False, False, True])
    bus.props[CONNECTED_KEY] = lambda: next(reads)
    machine = _machine(bus, registry, clock)
    assert machine.connect(DEV_HRM) is True
    assert machine.attempts(DEV_HRM) == 3
    assert clock.sleeps == [0.5, 0.5, 0.5]


def test_connect_times_out_after_policy_budget(bus, registry, clock):
    machine = _machine(bus, registry, clock, max_attempts=4, interval_s=0.25)
    assert machine.connect(DEV_HRM) is False
    assert machine.attempts(DEV_HRM) == 4
    assert clock.sleeps == [0.25] * 4
    assert machine.state(DEV_HRM) is ConnectionState.FAILED
    assert registry.get(DEV_HRM).connected is False


def test_failed_connect_keeps_previous_connected_flag(bus, registry, clock):
    registry.mark_connected(DEV_HRM, True)
    machine = _machine(bus, registry, clock, max_attempts=2, interval_s=0.1)
    assert machine.connect(DEV_HRM) is False
    assert machine.state(DEV_HRM) is ConnectionState.FAILED
    assert registry.get(DEV_HRM).connected is True


def test_connect_default_budget_is_six_polls(bus, registry, clock):
    machine = ConnectionStateMachine(bus, registry, clock=clock)
    assert machine.connect(DEV_HRM) is False
    assert len(clock.sleeps) == 6
    assert clock.now == pytest.approx(3.0)


def test_connect_rejected_skips_polling(bus, registry, clock):
    bus.reject.add("Connect")
    bus.props[CONNECTED_KEY] = True
    machine = _machine(bus, registry, clock)
    assert machine.connect(DEV_HRM) is False
    assert clock.sleeps == []
    assert machine.state(DEV_HRM) is ConnectionState.FAILED
    assert registry.get(DEV_HRM).connected is False


def test_disconnect_marks_registry(bus, registry, clock):
    registry.mark_connected(DEV_HRM, True)
    machine = _machine(bus, registry, clock)
    assert machine.disconnect(DEV_HRM) is True
    assert registry.get(DEV_HRM).connected is False
    assert machine.state(DEV_HRM) is ConnectionState.IDLE


def test_disconnect_rejected_keeps_state(bus, registry, clock):
    registry.mark_connected(DEV_HRM, True)
    bus.reject.add((DEV_HRM, "Disconnect"))
    machine = _machine(bus, registry, clock)
    assert machine.disconnect(DEV_HRM) is False
    assert registry.get(DEV_HRM).connected is True


def test_unknown_device_state_is_idle(bus, registry, clock):
    machine = _machine(bus, registry, clock)
    assert machine.state("/nowhere") is ConnectionState.IDLE
    assert machine.attempts("/nowhere") == 0


@pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"interval_s": -1}])
def test_retry_policy_validation(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
