"""
Core package initialisation for blemgr.

Deliberately kept lightweight to avoid circular-import problems.  The engine
(``DeviceManagementService``) is loaded lazily on first attribute access via
__getattr__.
"""

from importlib import import_module as _imp
from types import ModuleType as _ModuleType
from typing import Any as _Any

from blemgr.core.errors import (
    BlemgrError,
    BusUnavailableError,
    AdapterNotFoundError,
)

__all__ = [
    "DeviceManagementService",
    "BlemgrError",
    "BusUnavailableError",
    "AdapterNotFoundError",
]

# Lazy attribute loader -------------------------------------------------------

_lazy_map = {
    "DeviceManagementService": "blemgr.core.device_management",
}


def __getattr__(name: str) -> _Any:  # noqa: D401
    """Load heavy sub-modules on demand to break circular dependencies."""
    if name in _lazy_map:
        module: _ModuleType = _imp(_lazy_map[name])
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(name)
