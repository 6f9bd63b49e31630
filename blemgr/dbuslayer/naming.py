"""Object classification by BlueZ's object-path naming scheme.

BlueZ names device objects ``<adapter>/dev_XX_XX_XX_XX_XX_XX`` and GATT
characteristics ``<device>/serviceNNNN/charNNNN``.  That is a naming habit of
the daemon, not a structural guarantee, so the rules live in one replaceable
object instead of being spread through the registry and catalog code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from blemgr.bt_ref.constants import (
    ADAPTER_INTERFACE,
    CHARACTERISTIC_PATH_SEGMENT,
    DEVICE_INTERFACE,
    DEVICE_PATH_SEGMENT,
    GATT_CHARACTERISTIC_INTERFACE,
)

__all__ = ["ObjectNaming", "BLUEZ_NAMING"]


@dataclass(frozen=True)
class ObjectNaming:
    adapter_interface: str = ADAPTER_INTERFACE
    device_interface: str = DEVICE_INTERFACE
    characteristic_interface: str = GATT_CHARACTERISTIC_INTERFACE
    device_segment: str = DEVICE_PATH_SEGMENT
    characteristic_segment: str = CHARACTERISTIC_PATH_SEGMENT

    def is_adapter(self, path: str, interfaces: Mapping) -> bool:
        return self.adapter_interface in interfaces

    def is_device(self, path: str, interfaces: Mapping, adapter_path: str) -> bool:
        """Device objects are adapter children named with the device segment."""
        prefix = adapter_path.rstrip("/") + "/"
        return (
            path.startswith(prefix)
            and self.device_segment in path
            and self.device_interface in interfaces
        )

    def is_characteristic(self, path: str, interfaces: Mapping, device_path: str) -> bool:
        """Characteristics are lexical descendants of the device path."""
        return (
            path.startswith(device_path)
            and self.characteristic_segment in path
            and self.characteristic_interface in interfaces
        )


BLUEZ_NAMING = ObjectNaming()
