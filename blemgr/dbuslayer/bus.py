"""System bus client built on dbus-python and the GLib main loop.

This is the only module that touches ``dbus`` directly.  Replies are handed
to the rest of blemgr as native Python values (byte arrays become ``bytes``)
and every ``DBusException`` is logged and turned into ``None``.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import dbus
import dbus.mainloop.glib
from gi.repository import GLib

from blemgr.bt_ref.constants import DBUS_PROPERTIES
from blemgr.core.config import BUS_CALL_TIMEOUT_S
from blemgr.core.log import get_logger
from blemgr.dbuslayer.base import Reply, SignalHandler

__all__ = ["SystemBusClient", "dbus_to_python"]

logger = get_logger(__name__)

_INTEGER_TYPES = (
    dbus.Byte,
    dbus.Int16,
    dbus.UInt16,
    dbus.Int32,
    dbus.UInt32,
    dbus.Int64,
    dbus.UInt64,
)


def dbus_to_python(data: Any) -> Any:
    """Recursively unwrap dbus-python typed values into plain Python values."""
    # Boolean subclasses int; test it first
    if isinstance(data, dbus.Boolean):
        return bool(data)
    if isinstance(data, (dbus.String, dbus.ObjectPath, dbus.Signature)):
        return str(data)
    if isinstance(data, dbus.ByteArray):
        return bytes(data)
    if isinstance(data, _INTEGER_TYPES):
        return int(data)
    if isinstance(data, dbus.Double):
        return float(data)
    if isinstance(data, dbus.Array):
        if data.signature == "y" or (data and all(isinstance(v, dbus.Byte) for v in data)):
            return bytes(int(v) for v in data)
        return [dbus_to_python(value) for value in data]
    if isinstance(data, dbus.Struct):
        return tuple(dbus_to_python(value) for value in data)
    if isinstance(data, dbus.Dictionary):
        return {dbus_to_python(k): dbus_to_python(v) for k, v in data.items()}
    return data


def _to_reply(result: Any) -> Reply:
    """Wrap a proxy-call return value: ``None`` for no out-args, a plain tuple for several."""
    if result is None:
        return Reply()
    if isinstance(result, tuple) and not isinstance(result, dbus.Struct):
        return Reply(tuple(dbus_to_python(a) for a in result))
    return Reply((dbus_to_python(result),))


def _describe(exc: dbus.exceptions.DBusException) -> str:
    return f"{exc.get_dbus_name()}: {exc.get_dbus_message() or ''}".strip()


class SystemBusClient:
    """Blocking BlueZ client over the D-Bus system bus."""

    def __init__(self, timeout_s: float = BUS_CALL_TIMEOUT_S):
        self.timeout_s = timeout_s
        self._bus: Optional[dbus.Bus] = None

    @property
    def connected(self) -> bool:
        return self._bus is not None

    def connect(self) -> bool:
        """Attach the GLib main loop and open the system bus."""
        if self._bus is not None:
            return True
        try:
            dbus.mainloop.glib.DBusGMainLoop(set_as_default=True)
            self._bus = dbus.SystemBus()
        except dbus.exceptions.DBusException as e:
            logger.error(f"Failed to connect to system bus: {_describe(e)}")
            return False
        logger.debug("Connected to system bus")
        return True

    # ------------------------------------------------------------------
    # Method calls
    # ------------------------------------------------------------------
    def call(
        self,
        service: str,
        path: str,
        interface: str,
        method: str,
        signature: Optional[str] = None,
        args: Sequence[Any] = (),
    ) -> Optional[Reply]:
        if self._bus is None:
            logger.debug(f"{interface}.{method} on {path} skipped: bus not connected")
            return None

        try:
            iface = dbus.Interface(self._bus.get_object(service, path, introspect=False), interface)
            result = iface.get_dbus_method(method)(
                *args, signature=signature, timeout=self.timeout_s, byte_arrays=True
            )
        except dbus.exceptions.DBusException as e:
            logger.debug(f"{interface}.{method} on {path} failed: {_describe(e)}")
            return None
        return _to_reply(result)

    # ------------------------------------------------------------------
    # Scoped property access
    # ------------------------------------------------------------------
    def get_property(self, service: str, path: str, interface: str, prop: str) -> Any:
        reply = self.call(service, path, DBUS_PROPERTIES, "Get", "ss", (interface, prop))
        return reply.first if reply is not None else None

    def get_string_property(self, service: str, path: str, interface: str, prop: str) -> str:
        value = self.get_property(service, path, interface, prop)
        return value if isinstance(value, str) else ""

    def get_bool_property(self, service: str, path: str, interface: str, prop: str) -> bool:
        value = self.get_property(service, path, interface, prop)
        return value if isinstance(value, bool) else False

    # ------------------------------------------------------------------
    # Signals & main-loop
    # ------------------------------------------------------------------
    def add_signal_match(self, rule: str) -> bool:
        if self._bus is None:
            return False
        try:
            self._bus.add_match_string(rule)
        except dbus.exceptions.DBusException as e:
            logger.warning(f"Failed to add match rule {rule!r}: {_describe(e)}")
            return False
        return True

    def add_signal_receiver(
        self,
        handler: SignalHandler,
        *,
        signal_name: str,
        interface: str,
        sender: Optional[str] = None,
    ) -> Any:
        if self._bus is None:
            return None

        def _forward(*args, path=None):
            handler(*(dbus_to_python(a) for a in args), path=str(path) if path else None)

        return self._bus.add_signal_receiver(
            _forward,
            signal_name=signal_name,
            dbus_interface=interface,
            bus_name=sender,
            path_keyword="path",
            byte_arrays=True,
        )

    def pump_once(self, timeout_ms: int) -> None:
        """Run the GLib main loop until *timeout_ms* expires."""
        mainloop = GLib.MainLoop()
        GLib.timeout_add(max(int(timeout_ms), 0), self._pump_timeout, mainloop)
        mainloop.run()

    @staticmethod
    def _pump_timeout(mainloop: GLib.MainLoop) -> bool:
        mainloop.quit()
        return False  # cancel further timeouts
