"""Device management service: the engine the CLI and menu drive.

One instance owns one bus session plus the registry, catalog, connection
state machine, characteristic I/O and signal router built on it.  Nothing is
shared between instances and nothing survives the process.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from blemgr.bt_ref.constants import (
    BLUEZ_SERVICE_NAME,
    BLUEZ_SIGNAL_MATCH_RULE,
    DBUS_OM_IFACE,
    DBUS_ROOT_PATH,
)
from blemgr.bt_ref.utils import device_address_to_path, looks_like_address
from blemgr.core.config import Settings
from blemgr.core.errors import AdapterNotFoundError, BusUnavailableError, InvalidArgumentError
from blemgr.core.log import get_logger, print_and_log, LOG__DEBUG, LOG__GENERAL
from blemgr.dbuslayer.adapter import Adapter
from blemgr.dbuslayer.base import BusClient
from blemgr.dbuslayer.characteristic import Characteristic, CharacteristicCatalog, CharacteristicIO
from blemgr.dbuslayer.connection import Clock, ConnectionStateMachine, RetryPolicy, SystemClock
from blemgr.dbuslayer.device import Device, DeviceRegistry, ServiceFilter
from blemgr.dbuslayer.naming import BLUEZ_NAMING, ObjectNaming
from blemgr.dbuslayer.signals import NotificationCallback, NotificationRouter
from blemgr.dbuslayer.tree import AttributeTree, decode_managed_objects

logger = get_logger(__name__)


class DeviceManagementService:
    """Discovery, filtering, connection and GATT I/O over one BlueZ bus session."""

    def __init__(
        self,
        bus: Optional[BusClient] = None,
        settings: Optional[Settings] = None,
        *,
        clock: Optional[Clock] = None,
        naming: ObjectNaming = BLUEZ_NAMING,
        service: str = BLUEZ_SERVICE_NAME,
    ):
        self.settings = settings or Settings()
        if bus is None:
            from blemgr.dbuslayer.bus import SystemBusClient

            bus = SystemBusClient(timeout_s=self.settings.call_timeout_s)
        self.bus = bus
        self.clock = clock or SystemClock()
        self.naming = naming
        self.service = service

        self.adapter: Optional[Adapter] = None
        self.service_filter = ServiceFilter(self.settings.desired_services)
        self.registry = DeviceRegistry(bus, naming=naming, service=service)
        self.catalog = CharacteristicCatalog(bus, naming=naming, service=service)
        self.io = CharacteristicIO(bus, service=service, interface=naming.characteristic_interface)
        self.connections = ConnectionStateMachine(
            bus,
            self.registry,
            policy=RetryPolicy(
                max_attempts=self.settings.connect_max_attempts,
                interval_s=self.settings.connect_interval_s,
            ),
            clock=self.clock,
            service=service,
            device_interface=naming.device_interface,
        )
        self.router = NotificationRouter(bus, self.io.subscriptions, self.registry, service=service)

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------
    def initialize(self) -> Adapter:
        """Connect the bus, locate the adapter and start listening for BlueZ signals.

        Raises
        ------
        BusUnavailableError
            The system bus cannot be reached.
        AdapterNotFoundError
            No (or not the configured) adapter object exists.
        """
        if not self.bus.connect():
            raise BusUnavailableError()

        path = Adapter.find(self.fetch_tree(), self.naming, self.settings.adapter)
        if path is None:
            raise AdapterNotFoundError(self.settings.adapter)
        self.adapter = Adapter(self.bus, path, self.service)

        if not self.bus.add_signal_match(BLUEZ_SIGNAL_MATCH_RULE):
            logger.warning("Could not install BlueZ signal match rule")
        self.router.attach()
        print_and_log(f"[*] Bluetooth manager initialized with adapter: {path}", LOG__DEBUG)
        return self.adapter

    def _require_adapter(self) -> Adapter:
        if self.adapter is None:
            raise AdapterNotFoundError(self.settings.adapter)
        return self.adapter

    @property
    def adapter_path(self) -> str:
        return self._require_adapter().path

    def close(self) -> None:
        """Stop discovery and detach signal listeners."""
        if self.adapter is not None:
            self.adapter.stop_discovery()
        self.router.detach()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def fetch_tree(self) -> AttributeTree:
        reply = self.bus.call(self.service, DBUS_ROOT_PATH, DBUS_OM_IFACE, "GetManagedObjects")
        return decode_managed_objects(reply)

    def start_discovery(self) -> bool:
        return self._require_adapter().start_discovery()

    def stop_discovery(self) -> bool:
        return self._require_adapter().stop_discovery()

    def discover_devices(self) -> Set[str]:
        return self.registry.discover(self.fetch_tree(), self.adapter_path)

    def scan_for_devices(self, duration_s: Optional[float] = None) -> List[Device]:
        """Alternate bus pumping and discovery until *duration_s* has elapsed."""
        adapter_path = self.adapter_path
        duration_s = self.settings.scan_duration_s if duration_s is None else duration_s
        print_and_log(f"[*] Scanning for devices for {duration_s:g} seconds...", LOG__GENERAL)

        deadline = self.clock.monotonic() + duration_s
        while self.clock.monotonic() < deadline:
            self.io.pump(self.settings.scan_pump_ms)
            self.registry.discover(self.fetch_tree(), adapter_path)
            self.clock.sleep(self.settings.scan_sleep_ms / 1000.0)

        print_and_log(f"[*] Scan complete. Found {len(self.registry)} devices.", LOG__GENERAL)
        return self.registry.list_all()

    # ------------------------------------------------------------------
    # Registry & filtering
    # ------------------------------------------------------------------
    def set_desired_services(self, services: Iterable[str]) -> None:
        self.service_filter = ServiceFilter(s for s in services if s)
        shown = " ".join(self.service_filter.desired) or "(none)"
        print_and_log(f"[*] Set desired services: {shown}", LOG__GENERAL)

    def devices_with_desired_services(self) -> List[Device]:
        return self.registry.list_matching(self.service_filter)

    def all_devices(self) -> List[Device]:
        return self.registry.list_all()

    def update_device_info(self) -> None:
        self.registry.refresh_all()

    def resolve_device(self, selector: str) -> str:
        """Map a MAC address or object path to a registered device path."""
        if selector in self.registry:
            return selector
        if looks_like_address(selector):
            path = device_address_to_path(selector, self.adapter_path)
            if path in self.registry:
                return path
        for device in self.registry.list_all():
            if device.address.lower() == selector.lower():
                return device.path
        raise InvalidArgumentError(selector, "unknown device")

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------
    def connect_device(self, device_path: str) -> bool:
        return self.connections.connect(device_path)

    def disconnect_device(self, device_path: str) -> bool:
        return self.connections.disconnect(device_path)

    # ------------------------------------------------------------------
    # GATT
    # ------------------------------------------------------------------
    def get_characteristics(self, device_path: str) -> List[Characteristic]:
        return self.catalog.discover(self.fetch_tree(), device_path)

    def enable_notifications(self, char_path: str) -> bool:
        return self.io.start_notify(char_path)

    def disable_notifications(self, char_path: str) -> bool:
        return self.io.stop_notify(char_path)

    def read_characteristic(self, char_path: str) -> bytes:
        return self.io.read(char_path)

    def write_characteristic(self, char_path: str, data: bytes) -> bool:
        return self.io.write(char_path, data)

    @property
    def subscriptions(self) -> Set[str]:
        return set(self.io.subscriptions)

    def set_notification_callback(self, callback: Optional[NotificationCallback]) -> None:
        self.router.set_callback(callback)

    def process_notifications(self, budget_ms: Optional[int] = None) -> None:
        self.io.pump(self.settings.notify_pump_ms if budget_ms is None else budget_ms)


__all__ = ["DeviceManagementService"]
