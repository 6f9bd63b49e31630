"""Device records, the per-run device registry and service filtering.

The registry is monotonic: BlueZ answers discovery queries with whatever it
currently knows, in no particular order, so a device is added the first time
it is seen under the adapter and then only ever refreshed, never removed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from blemgr.bt_ref.constants import BLUEZ_SERVICE_NAME
from blemgr.core.log import get_logger, print_and_log, LOG__DEBUG
from blemgr.dbuslayer.base import BusClient
from blemgr.dbuslayer.naming import BLUEZ_NAMING, ObjectNaming
from blemgr.dbuslayer.tree import AttributeTree, PropertyBag, PropertyValue

__all__ = ["Device", "ServiceFilter", "DeviceRegistry"]

logger = get_logger(__name__)


@dataclass
class Device:
    path: str
    address: str = ""
    name: str = ""
    connected: bool = False
    services: List[str] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or "Unknown Device"

    def __str__(self) -> str:
        state = " [CONNECTED]" if self.connected else ""
        return f"{self.display_name} ({self.address}){state}"


class ServiceFilter:
    """Substring match of desired services against advertised UUIDs.

    UUIDs are hex, so ``"180F"`` and ``"180f"`` select the same devices.  An
    empty filter matches every device.
    """

    def __init__(self, desired: Iterable[str] = ()):
        self.desired = tuple(desired)
        self._needles = tuple(s.lower() for s in self.desired)

    @property
    def is_universal(self) -> bool:
        return not self.desired

    def matches(self, device: Device) -> bool:
        if not self.desired:
            return True
        advertised = [uuid.lower() for uuid in device.services]
        return any(want in uuid for want in self._needles for uuid in advertised)

    def __call__(self, device: Device) -> bool:
        return self.matches(device)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ServiceFilter):
            return self.desired == other.desired
        return NotImplemented

    def __repr__(self) -> str:
        return f"ServiceFilter({list(self.desired)!r})"


class DeviceRegistry:
    """Devices discovered under one adapter during this process run, keyed by object path."""

    def __init__(
        self,
        bus: Optional[BusClient] = None,
        *,
        naming: ObjectNaming = BLUEZ_NAMING,
        service: str = BLUEZ_SERVICE_NAME,
    ):
        self._bus = bus
        self._naming = naming
        self._service = service
        self._devices: Dict[str, Device] = {}

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def discover(self, tree: AttributeTree, adapter_path: str) -> Set[str]:
        """Register device objects found under *adapter_path*; return the new paths."""
        added: Set[str] = set()
        for path, interfaces in tree.items():
            if path in self._devices:
                continue
            if not self._naming.is_device(path, interfaces, adapter_path):
                continue
            device = Device(path=path)
            self._apply_bag(device, interfaces[self._naming.device_interface])
            self._devices[path] = device
            added.add(path)
            print_and_log(
                f"[+] Found device: {device.name}, {device.address}, {device.path}",
                LOG__DEBUG,
            )
        return added

    @staticmethod
    def _apply_bag(device: Device, bag: PropertyBag) -> None:
        device.address = bag.string("Address")
        device.name = bag.string("Name")
        device.connected = bag.boolean("Connected")
        device.services = bag.strings("UUIDs")

    def refresh_all(self) -> None:
        """Re-read Address, Name, Connected and UUIDs of every registered device from the bus."""
        if self._bus is None:
            logger.debug("refresh_all() without a bus client; nothing to do")
            return
        iface = self._naming.device_interface
        for path, device in self._devices.items():
            device.address = self._bus.get_string_property(self._service, path, iface, "Address")
            device.name = self._bus.get_string_property(self._service, path, iface, "Name")
            device.connected = self._bus.get_bool_property(self._service, path, iface, "Connected")
            device.services = PropertyValue(
                self._bus.get_property(self._service, path, iface, "UUIDs")
            ).as_string_list()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, path: str) -> Optional[Device]:
        return self._devices.get(path)

    def paths(self) -> List[str]:
        return list(self._devices)

    def list_all(self) -> List[Device]:
        return list(self._devices.values())

    def list_matching(self, service_filter: ServiceFilter | Sequence[str]) -> List[Device]:
        if not isinstance(service_filter, ServiceFilter):
            service_filter = ServiceFilter(service_filter)
        return [d for d in self._devices.values() if service_filter.matches(d)]

    def connected_devices(self) -> List[Device]:
        return [d for d in self._devices.values() if d.connected]

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, path: object) -> bool:
        return path in self._devices

    # ------------------------------------------------------------------
    # Mutation hooks
    # ------------------------------------------------------------------
    def mark_connected(self, path: str, value: bool) -> None:
        """Set the connection flag of a known device; unknown paths are ignored."""
        device = self._devices.get(path)
        if device is None:
            return
        device.connected = bool(value)
