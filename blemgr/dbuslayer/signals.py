"""BlueZ signal routing.

BlueZ reports characteristic notifications and device state changes as
``org.freedesktop.DBus.Properties.PropertiesChanged`` signals.  The router
listens for them while the bus is pumped and

* hands ``Value`` changes of subscribed ``GattCharacteristic1`` objects to the
  registered notification callback as ``(path, bytes)``;
* folds ``Connected`` changes of ``Device1`` objects back into the registry.
"""

from __future__ import annotations

from typing import Any, Callable, Container, Mapping, Optional

from blemgr.bt_ref.constants import (
    BLUEZ_SERVICE_NAME,
    DBUS_PROPERTIES,
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
)
from blemgr.core.log import get_logger, print_and_log, LOG__DEBUG
from blemgr.dbuslayer.base import BusClient
from blemgr.dbuslayer.device import DeviceRegistry
from blemgr.dbuslayer.tree import PropertyValue

__all__ = ["NotificationCallback", "NotificationRouter"]

logger = get_logger(__name__)

NotificationCallback = Callable[[str, bytes], None]


class NotificationRouter:
    """Dispatches ``PropertiesChanged`` signals to the notification callback and registry."""

    def __init__(
        self,
        bus: BusClient,
        subscriptions: Container[str],
        registry: Optional[DeviceRegistry] = None,
        *,
        service: str = BLUEZ_SERVICE_NAME,
    ):
        self._bus = bus
        self._subscriptions = subscriptions
        self._registry = registry
        self._service = service
        self._callback: Optional[NotificationCallback] = None
        self._match: Any = None

    @property
    def attached(self) -> bool:
        return self._match is not None

    def set_callback(self, callback: Optional[NotificationCallback]) -> None:
        self._callback = callback

    def attach(self) -> bool:
        """Register the signal receiver if it is not already active."""
        if self._match is not None:
            return True
        print_and_log("[DEBUG] Notification router attaching bus listener", LOG__DEBUG)
        self._match = self._bus.add_signal_receiver(
            self.properties_changed,
            signal_name="PropertiesChanged",
            interface=DBUS_PROPERTIES,
            sender=self._service,
        )
        return self._match is not None

    def detach(self) -> None:
        if self._match is None:
            return
        remove = getattr(self._match, "remove", None)
        if remove is not None:
            remove()
        self._match = None

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------
    def properties_changed(
        self,
        interface: str,
        changed: Mapping,
        invalidated: Any = None,
        path: Optional[str] = None,
    ) -> None:
        if path is None or not isinstance(changed, Mapping):
            return

        if interface == GATT_CHARACTERISTIC_INTERFACE and "Value" in changed:
            self._deliver(path, PropertyValue(changed["Value"]).as_bytes())
        elif interface == DEVICE_INTERFACE and "Connected" in changed:
            if self._registry is not None:
                connected = PropertyValue(changed["Connected"]).as_bool()
                self._registry.mark_connected(path, connected)
                print_and_log(
                    f"[*] Device {path} {'connected' if connected else 'disconnected'}",
                    LOG__DEBUG,
                )

    def _deliver(self, path: str, value: bytes) -> None:
        if path not in self._subscriptions:
            return
        if self._callback is None:
            logger.debug(f"Notification from {path} dropped: no callback registered")
            return
        try:
            self._callback(path, value)
        except Exception as e:
            # never let a user callback unwind the GLib main loop
            logger.exception(f"Notification callback failed for {path}: {e}")
