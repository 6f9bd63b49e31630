"""Decoding of ``ObjectManager.GetManagedObjects`` replies.

BlueZ describes everything it knows as one nested container::

    {object_path: {interface_name: {property_name: value}}}

:func:`decode_managed_objects` turns a bus reply into an :class:`AttributeTree`
without ever raising: a reply of the wrong shape simply decodes to an empty
tree, so discovery degrades to "nothing found".  Property bags are kept as
received and only unwrapped when a typed accessor asks for a value; those
accessors return a zero value (``""``, ``False``, ``0``, ``b""``, ``[]``)
instead of failing.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any, Dict, Iterator, List, Optional, Tuple

from blemgr.core.log import get_logger
from blemgr.dbuslayer.base import Reply

__all__ = [
    "ValueKind",
    "PropertyValue",
    "PropertyBag",
    "AttributeTree",
    "decode_managed_objects",
]

logger = get_logger(__name__)


class ValueKind(enum.Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    BYTES = "bytes"
    STRING_LIST = "string_list"
    VARIANT = "variant"


def _is_byte_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(
        isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 255 for v in value
    )


class PropertyValue:
    """Tagged wrapper around one decoded property value."""

    __slots__ = ("raw", "kind")

    def __init__(self, raw: Any = None):
        self.raw = raw
        self.kind = self.classify(raw)

    @staticmethod
    def classify(raw: Any) -> ValueKind:
        if isinstance(raw, bool):
            return ValueKind.BOOLEAN
        if isinstance(raw, str):
            return ValueKind.STRING
        if isinstance(raw, int):
            return ValueKind.INTEGER
        if isinstance(raw, (bytes, bytearray)):
            return ValueKind.BYTES
        if isinstance(raw, (list, tuple)) and raw and all(isinstance(v, str) for v in raw):
            return ValueKind.STRING_LIST
        return ValueKind.VARIANT

    def as_string(self) -> str:
        return self.raw if self.kind is ValueKind.STRING else ""

    def as_bool(self) -> bool:
        return self.raw if self.kind is ValueKind.BOOLEAN else False

    def as_int(self) -> int:
        return self.raw if self.kind is ValueKind.INTEGER else 0

    def as_byte(self) -> int:
        if self.kind is ValueKind.INTEGER and 0 <= self.raw <= 255:
            return self.raw
        return 0

    def as_bytes(self) -> bytes:
        if self.kind is ValueKind.BYTES:
            return bytes(self.raw)
        # Byte arrays that were not unwrapped to ``bytes`` arrive as int lists
        if self.kind is ValueKind.VARIANT and _is_byte_list(self.raw):
            return bytes(self.raw)
        return b""

    def as_string_list(self) -> List[str]:
        return list(self.raw) if self.kind is ValueKind.STRING_LIST else []

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PropertyValue):
            return self.raw == other.raw
        return NotImplemented

    def __repr__(self) -> str:
        return f"PropertyValue({self.kind.value}, {self.raw!r})"


class PropertyBag(Mapping):
    """Read-only property name -> raw value mapping with fail-soft accessors."""

    def __init__(self, properties: Optional[Mapping] = None):
        self._props: Dict[str, Any] = dict(properties or {})

    def __getitem__(self, name: str) -> Any:
        return self._props[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def __len__(self) -> int:
        return len(self._props)

    def value(self, name: str) -> PropertyValue:
        return PropertyValue(self._props.get(name))

    def string(self, name: str) -> str:
        return self.value(name).as_string()

    def boolean(self, name: str) -> bool:
        return self.value(name).as_bool()

    def byte_array(self, name: str) -> bytes:
        return self.value(name).as_bytes()

    def strings(self, name: str) -> List[str]:
        return self.value(name).as_string_list()

    def __repr__(self) -> str:
        return f"PropertyBag({self._props!r})"


_EMPTY_BAG = PropertyBag()


class AttributeTree:
    """Snapshot of every object BlueZ manages: path -> interface -> PropertyBag."""

    def __init__(self, objects: Optional[Dict[str, Dict[str, PropertyBag]]] = None):
        self._objects: Dict[str, Dict[str, PropertyBag]] = objects or {}

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, path: object) -> bool:
        return path in self._objects

    def __iter__(self) -> Iterator[str]:
        return iter(self._objects)

    def __bool__(self) -> bool:
        return bool(self._objects)

    def paths(self) -> List[str]:
        return list(self._objects)

    def items(self) -> Iterator[Tuple[str, Dict[str, PropertyBag]]]:
        return iter(self._objects.items())

    def interfaces(self, path: str) -> Dict[str, PropertyBag]:
        return dict(self._objects.get(path, {}))

    def has_interface(self, path: str, interface: str) -> bool:
        return interface in self._objects.get(path, {})

    def bag(self, path: str, interface: str) -> PropertyBag:
        return self._objects.get(path, {}).get(interface, _EMPTY_BAG)

    def __repr__(self) -> str:
        return f"<AttributeTree objects={len(self._objects)}>"


def decode_managed_objects(reply: Optional[Reply]) -> AttributeTree:
    """Build an :class:`AttributeTree` from a ``GetManagedObjects`` reply.

    Never raises.  A missing reply or an outer container that is not a
    mapping gives an empty tree; malformed object or interface entries are
    skipped.
    """
    if reply is None:
        return AttributeTree()
    top = reply.first if isinstance(reply, Reply) else reply
    if not isinstance(top, Mapping):
        logger.debug(f"GetManagedObjects reply has unexpected shape {type(top).__name__}")
        return AttributeTree()

    objects: Dict[str, Dict[str, PropertyBag]] = {}
    skipped = 0
    for path, interface_map in top.items():
        if not isinstance(path, str) or not isinstance(interface_map, Mapping):
            skipped += 1
            continue
        interfaces: Dict[str, PropertyBag] = {}
        for interface, props in interface_map.items():
            if not isinstance(interface, str) or not isinstance(props, Mapping):
                skipped += 1
                continue
            interfaces[interface] = PropertyBag(props)
        objects[path] = interfaces

    if skipped:
        logger.debug(f"Skipped {skipped} malformed entries while decoding managed objects")
    return AttributeTree(objects)
