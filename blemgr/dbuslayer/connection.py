"""Connect / disconnect state machine for LE devices.

``Connect()`` returning does not mean BlueZ has finished establishing the
link, so a connect is only reported as successful once the device's live
``Connected`` property reads True, polled under a bounded retry policy.
Disconnect is fire-and-forget: an accepted ``Disconnect()`` immediately
marks the device as not connected.

Time is taken from an injected :class:`Clock` so tests can poll without
actually sleeping.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from blemgr.bt_ref.constants import BLUEZ_SERVICE_NAME, DEVICE_INTERFACE
from blemgr.core.config import CONNECT_INTERVAL_S, CONNECT_MAX_ATTEMPTS
from blemgr.core.log import get_logger, print_and_log, LOG__DEBUG, LOG__GENERAL
from blemgr.dbuslayer.base import BusClient
from blemgr.dbuslayer.device import DeviceRegistry

__all__ = [
    "Clock",
    "SystemClock",
    "RetryPolicy",
    "ConnectionState",
    "ConnectionStateMachine",
]

logger = get_logger(__name__)


class Clock(Protocol):
    def monotonic(self) -> float: ...

    def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall clock backed by :mod:`time`."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = CONNECT_MAX_ATTEMPTS
    interval_s: float = CONNECT_INTERVAL_S

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval_s < 0:
            raise ValueError("interval_s must be >= 0")


class ConnectionState(enum.Enum):
    IDLE = "idle"
    CONNECT_REQUESTED = "connect_requested"
    POLLING = "polling"
    CONNECTED = "connected"
    FAILED = "failed"


class ConnectionStateMachine:
    """Drives ``Device1.Connect`` / ``Device1.Disconnect`` and tracks per-device state."""

    def __init__(
        self,
        bus: BusClient,
        registry: DeviceRegistry,
        *,
        policy: Optional[RetryPolicy] = None,
        clock: Optional[Clock] = None,
        service: str = BLUEZ_SERVICE_NAME,
        device_interface: str = DEVICE_INTERFACE,
    ):
        self._bus = bus
        self._registry = registry
        self.policy = policy or RetryPolicy()
        self._clock = clock or SystemClock()
        self._service = service
        self._iface = device_interface
        self._states: Dict[str, ConnectionState] = {}
        self._attempts: Dict[str, int] = {}

    def state(self, path: str) -> ConnectionState:
        return self._states.get(path, ConnectionState.IDLE)

    def attempts(self, path: str) -> int:
        """Polling attempts used by the last connect of *path*."""
        return self._attempts.get(path, 0)

    def connect(self, path: str) -> bool:
        print_and_log(f"[*] Connecting to device: {path}", LOG__GENERAL)
        self._states[path] = ConnectionState.CONNECT_REQUESTED
        self._attempts[path] = 0

        if self._bus.call(self._service, path, self._iface, "Connect") is None:
            self._states[path] = ConnectionState.FAILED
            print_and_log(f"[-] Connect request rejected for {path}", LOG__GENERAL)
            return False

        self._states[path] = ConnectionState.POLLING
        for attempt in range(1, self.policy.max_attempts + 1):
            self._attempts[path] = attempt
            self._clock.sleep(self.policy.interval_s)
            if self._bus.get_bool_property(self._service, path, self._iface, "Connected"):
                self._registry.mark_connected(path, True)
                self._states[path] = ConnectionState.CONNECTED
                print_and_log(f"[+] Connected to {path}", LOG__GENERAL)
                return True
            print_and_log(
                f"[*] Connect poll {attempt}/{self.policy.max_attempts}: not connected yet",
                LOG__DEBUG,
            )

        self._states[path] = ConnectionState.FAILED
        print_and_log(
            f"[-] Failed to connect to {path}: not confirmed after "
            f"{self.policy.max_attempts} polls",
            LOG__GENERAL,
        )
        return False

    def disconnect(self, path: str) -> bool:
        print_and_log(f"[*] Disconnecting from device: {path}", LOG__GENERAL)
        if self._bus.call(self._service, path, self._iface, "Disconnect") is None:
            print_and_log(f"[-] Disconnect failed for {path}", LOG__GENERAL)
            return False
        self._registry.mark_connected(path, False)
        self._states[path] = ConnectionState.IDLE
        print_and_log(f"[+] Disconnected from {path}", LOG__GENERAL)
        return True
