"""Core error classes for blemgr.

Only initialisation and user-input problems raise.  Bus actions that fail are
reported as ``False`` / empty results by the D-Bus layer, never as exceptions.
"""

from __future__ import annotations

from typing import Optional


class BlemgrError(Exception):
    """Base exception for every error raised by blemgr."""


class BusUnavailableError(BlemgrError):
    """Raised when the system bus cannot be reached."""

    def __init__(self, reason: Optional[str] = None):
        msg = "Failed to connect to the D-Bus system bus"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.reason = reason


class AdapterNotFoundError(BlemgrError):
    """Raised when BlueZ exposes no usable adapter object."""

    def __init__(self, adapter_name: Optional[str] = None):
        if adapter_name:
            msg = f"Bluetooth adapter {adapter_name} not found"
        else:
            msg = "No Bluetooth adapter found"
        super().__init__(msg)
        self.adapter_name = adapter_name


class ConfigError(BlemgrError):
    """Raised when the configuration file cannot be read or is ill-typed."""


class InvalidArgumentError(BlemgrError):
    """Raised when invalid arguments are provided."""

    def __init__(self, argument: str, reason: Optional[str] = None):
        message = f"Invalid argument: {argument}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.argument = argument
        self.reason = reason


__all__ = [
    "BlemgrError",
    "BusUnavailableError",
    "AdapterNotFoundError",
    "ConfigError",
    "InvalidArgumentError",
]
