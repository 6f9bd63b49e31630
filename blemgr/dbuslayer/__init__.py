"""
D-Bus Layer for blemgr.
Provides the BlueZ object-model decoding, device registry and GATT operations.
"""

from .base import BusClient, Reply
from .tree import AttributeTree, PropertyBag, PropertyValue, decode_managed_objects
from .naming import BLUEZ_NAMING, ObjectNaming
from .adapter import Adapter
from .device import Device, DeviceRegistry, ServiceFilter
from .characteristic import Characteristic, CharacteristicCatalog, CharacteristicIO
from .connection import ConnectionState, ConnectionStateMachine, RetryPolicy, SystemClock
from .signals import NotificationRouter

__all__ = [
    "BusClient",
    "Reply",
    "AttributeTree",
    "PropertyBag",
    "PropertyValue",
    "decode_managed_objects",
    "BLUEZ_NAMING",
    "ObjectNaming",
    "Adapter",
    "Device",
    "DeviceRegistry",
    "ServiceFilter",
    "Characteristic",
    "CharacteristicCatalog",
    "CharacteristicIO",
    "ConnectionState",
    "ConnectionStateMachine",
    "RetryPolicy",
    "SystemClock",
    "NotificationRouter",
    "SystemBusClient",
]


# Lazy-load the dbus-python client so the pure layers import without dbus installed
def __getattr__(name):
    if name == "SystemBusClient":
        from .bus import SystemBusClient
        return SystemBusClient
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
