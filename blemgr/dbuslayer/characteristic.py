"""GATT characteristic discovery and value I/O against BlueZ.

:class:`CharacteristicCatalog` lists the characteristics below one device
from a decoded attribute tree.  Nothing is cached: every call walks the tree
it is given, so callers that need a stable list keep their own copy.

:class:`CharacteristicIO` reads, writes and (un)subscribes characteristics by
object path.  Failed actions come back as ``False`` or ``b""``; the set of
subscribed paths only changes when BlueZ accepted the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Set, Tuple

from blemgr.bt_ref.constants import (
    BLUEZ_SERVICE_NAME,
    GATT__FLAG__INDICATE,
    GATT__FLAG__NOTIFY,
    GATT__FLAG__READ,
    GATT__FLAG__WRITE,
    GATT__FLAG__WRITE_WITHOUT_RESPONSE,
    GATT_CHARACTERISTIC_INTERFACE,
    SIGNATURE_OPTIONS,
    SIGNATURE_WRITE_VALUE,
)
from blemgr.core.log import get_logger, print_and_log, LOG__DEBUG, LOG__GENERAL
from blemgr.dbuslayer.base import BusClient
from blemgr.dbuslayer.naming import BLUEZ_NAMING, ObjectNaming
from blemgr.dbuslayer.tree import AttributeTree, PropertyValue

__all__ = ["Characteristic", "CharacteristicCatalog", "CharacteristicIO"]

logger = get_logger(__name__)


@dataclass(frozen=True)
class Characteristic:
    path: str
    uuid: str = ""
    service_path: str = ""
    flags: Tuple[str, ...] = ()

    @property
    def can_read(self) -> bool:
        return GATT__FLAG__READ in self.flags

    @property
    def can_write(self) -> bool:
        return GATT__FLAG__WRITE in self.flags or GATT__FLAG__WRITE_WITHOUT_RESPONSE in self.flags

    @property
    def can_notify(self) -> bool:
        return GATT__FLAG__NOTIFY in self.flags or GATT__FLAG__INDICATE in self.flags


class CharacteristicCatalog:
    """Lists ``GattCharacteristic1`` objects below a device path."""

    def __init__(
        self,
        bus: BusClient,
        *,
        naming: ObjectNaming = BLUEZ_NAMING,
        service: str = BLUEZ_SERVICE_NAME,
    ):
        self._bus = bus
        self._naming = naming
        self._service = service

    def discover(self, tree: AttributeTree, device_path: str) -> List[Characteristic]:
        iface = self._naming.characteristic_interface
        found: List[Characteristic] = []
        for path, interfaces in tree.items():
            if not self._naming.is_characteristic(path, interfaces, device_path):
                continue
            bag = interfaces[iface]
            live_flags = self._bus.get_property(self._service, path, iface, "Flags")
            if live_flags is None:
                flags = bag.strings("Flags")
            else:
                flags = PropertyValue(live_flags).as_string_list()
            found.append(
                Characteristic(
                    path=path,
                    uuid=bag.string("UUID"),
                    service_path=bag.string("Service"),
                    flags=tuple(flags),
                )
            )
        logger.debug(f"{len(found)} characteristics under {device_path}")
        return found


class CharacteristicIO:
    """ReadValue / WriteValue / StartNotify / StopNotify by characteristic path."""

    def __init__(
        self,
        bus: BusClient,
        *,
        service: str = BLUEZ_SERVICE_NAME,
        interface: str = GATT_CHARACTERISTIC_INTERFACE,
    ):
        self._bus = bus
        self._service = service
        self._iface = interface
        self.subscriptions: Set[str] = set()

    # ------------------------------------------------------------------
    # Read / Write helpers
    # ------------------------------------------------------------------
    def read(self, path: str) -> bytes:
        reply = self._bus.call(
            self._service, path, self._iface, "ReadValue", SIGNATURE_OPTIONS, ({},)
        )
        if reply is None:
            print_and_log(f"[-] Read failed for {path}", LOG__DEBUG)
            return b""
        value = PropertyValue(reply.first).as_bytes()
        print_and_log(f"[DEBUG] Read {len(value)} bytes from characteristic {path}", LOG__DEBUG)
        return value

    def write(self, path: str, data: bytes) -> bool:
        data = bytes(data)
        reply = self._bus.call(
            self._service, path, self._iface, "WriteValue", SIGNATURE_WRITE_VALUE, (data, {})
        )
        if reply is None:
            print_and_log(f"[-] Write failed for {path}", LOG__GENERAL)
            return False
        print_and_log(f"[DEBUG] Wrote {len(data)} bytes to characteristic {path}", LOG__DEBUG)
        return True

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def start_notify(self, path: str) -> bool:
        if self._bus.call(self._service, path, self._iface, "StartNotify") is None:
            print_and_log(f"[-] Failed to enable notifications for {path}", LOG__GENERAL)
            return False
        self.subscriptions.add(path)
        print_and_log(f"[+] Notifications enabled for {path}", LOG__GENERAL)
        return True

    def stop_notify(self, path: str) -> bool:
        if self._bus.call(self._service, path, self._iface, "StopNotify") is None:
            print_and_log(f"[-] Failed to disable notifications for {path}", LOG__GENERAL)
            return False
        self.subscriptions.discard(path)
        print_and_log(f"[+] Notifications disabled for {path}", LOG__GENERAL)
        return True

    def is_subscribed(self, path: str) -> bool:
        return path in self.subscriptions

    def pump(self, budget_ms: int) -> None:
        """Let the bus deliver pending signals for up to *budget_ms*."""
        self._bus.pump_once(budget_ms)
