"""
Bluetooth utility functions.
"""

from __future__ import annotations

import re

from blemgr.bt_ref.constants import DEVICE_PATH_SEGMENT
from blemgr.core.errors import InvalidArgumentError

__all__ = [
    "bytes_to_hex",
    "ascii_preview",
    "parse_hex_string",
    "device_address_to_path",
    "device_path_to_address",
    "looks_like_address",
]

_ADDRESS_RE = re.compile(r"^[0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5}$")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def bytes_to_hex(data: bytes, sep: str = " ") -> str:
    """Render *data* as lower-case hex pairs, e.g. ``"01 02 ff"``."""
    return sep.join(f"{byte:02x}" for byte in data)


def ascii_preview(data: bytes) -> str:
    """Printable ASCII bytes as characters, everything else as ``.``."""
    return "".join(chr(byte) if 32 <= byte <= 126 else "." for byte in data)


def parse_hex_string(text: str) -> bytes:
    """Parse user supplied hex such as ``"01 02 03"``, ``"010203"`` or ``"0x01 0x02"``.

    Whitespace and ``0x`` prefixes are dropped.  A trailing unpaired nibble is
    ignored.

    Raises
    ------
    InvalidArgumentError
        If a non-hex character remains after cleaning.
    """
    cleaned = re.sub(r"\s+", "", text)
    cleaned = re.sub(r"0[xX]", "", cleaned)
    bad = [c for c in cleaned if c not in _HEX_DIGITS]
    if bad:
        raise InvalidArgumentError(text, f"non-hex character {bad[0]!r}")
    if len(cleaned) % 2:
        cleaned = cleaned[:-1]
    return bytes.fromhex(cleaned)


def looks_like_address(value: str) -> bool:
    return bool(_ADDRESS_RE.match(value))


def device_address_to_path(bdaddr: str, adapter_path: str) -> str:
    # e.g. convert 12:34:44:00:66:D5 on adapter hci0 to /org/bluez/hci0/dev_12_34_44_00_66_D5
    return adapter_path.rstrip("/") + DEVICE_PATH_SEGMENT + bdaddr.upper().replace(":", "_")


def device_path_to_address(device_path: str) -> str:
    """Inverse of :func:`device_address_to_path`; ``""`` when the path has no device segment."""
    idx = device_path.find(DEVICE_PATH_SEGMENT)
    if idx < 0:
        return ""
    tail = device_path[idx + len(DEVICE_PATH_SEGMENT):].split("/", 1)[0]
    return tail.replace("_", ":")
