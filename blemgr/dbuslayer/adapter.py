"""
Adapter D-Bus Interface

Locates the local controller object in a decoded attribute tree and drives
discovery on it.
"""

from __future__ import annotations

from typing import Optional

from blemgr.bt_ref.constants import ADAPTER_INTERFACE, BLUEZ_SERVICE_NAME
from blemgr.core.log import get_logger, print_and_log, LOG__DEBUG
from blemgr.dbuslayer.base import BusClient
from blemgr.dbuslayer.naming import BLUEZ_NAMING, ObjectNaming
from blemgr.dbuslayer.tree import AttributeTree

logger = get_logger(__name__)


class Adapter:
    """Core adapter class for discovery operations."""

    def __init__(self, bus: BusClient, path: str, service: str = BLUEZ_SERVICE_NAME):
        self._bus = bus
        self.path = path
        self.service = service

    @staticmethod
    def find(
        tree: AttributeTree,
        naming: ObjectNaming = BLUEZ_NAMING,
        preferred: Optional[str] = None,
    ) -> Optional[str]:
        """Return the path of the first adapter object, or of *preferred* (e.g. ``hci1``)."""
        for path, interfaces in tree.items():
            if not naming.is_adapter(path, interfaces):
                continue
            if preferred and path.rstrip("/").rsplit("/", 1)[-1] != preferred:
                continue
            return path
        return None

    def start_discovery(self) -> bool:
        if self._bus.call(self.service, self.path, ADAPTER_INTERFACE, "StartDiscovery") is None:
            logger.warning(f"StartDiscovery failed on {self.path}")
            return False
        print_and_log("[*] Started Bluetooth discovery", LOG__DEBUG)
        return True

    def stop_discovery(self) -> bool:
        if self._bus.call(self.service, self.path, ADAPTER_INTERFACE, "StopDiscovery") is None:
            # not fatal if discovery already stopped
            logger.debug(f"StopDiscovery failed on {self.path}")
            return False
        print_and_log("[*] Stopped Bluetooth discovery", LOG__DEBUG)
        return True

    def is_powered(self) -> bool:
        """Return True when the adapter's *Powered* property is True."""
        return self._bus.get_bool_property(self.service, self.path, ADAPTER_INTERFACE, "Powered")

    def __repr__(self) -> str:
        return f"<Adapter {self.path}>"


__all__ = ["Adapter"]
