"""
Core configuration settings for blemgr.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from blemgr.core.errors import ConfigError

# Base paths
DATA_DIR = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local/share")) / "blemgr"
CONFIG_DIR = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config")) / "blemgr"

# Logging configuration
LOG_DIR = DATA_DIR / "logs"

# Log types
LOG__GENERAL = "GENERAL"
LOG__DEBUG = "DEBUG"
LOG__USER = "USERMODE"

# Configuration file
CONFIG_ENV_VAR = "BLEMGR_CONFIG"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "config.yaml"

# Connection polling budget (attempts x interval)
CONNECT_MAX_ATTEMPTS = 6
CONNECT_INTERVAL_S = 0.5

# Scan loop timings
SCAN_DURATION_S = 10.0
SCAN_PUMP_MS = 1000
SCAN_SLEEP_MS = 500

# Notification pump budget per process_notifications() call
NOTIFY_PUMP_MS = 100

# Blocking call timeout handed to dbus-python (BlueZ default is 25 s)
BUS_CALL_TIMEOUT_S = 25.0


@dataclass
class Settings:
    """Runtime settings, defaults overridden by the YAML file and CLI flags."""

    adapter: Optional[str] = None
    desired_services: List[str] = field(default_factory=list)
    connect_max_attempts: int = CONNECT_MAX_ATTEMPTS
    connect_interval_s: float = CONNECT_INTERVAL_S
    scan_duration_s: float = SCAN_DURATION_S
    scan_pump_ms: int = SCAN_PUMP_MS
    scan_sleep_ms: int = SCAN_SLEEP_MS
    notify_pump_ms: int = NOTIFY_PUMP_MS
    call_timeout_s: float = BUS_CALL_TIMEOUT_S
    log_level: str = "INFO"

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


# YAML section -> key -> (Settings attribute, accepted types)
_SCHEMA: Dict[Optional[str], Dict[str, tuple]] = {
    None: {
        "adapter": ("adapter", (str,)),
        "desired_services": ("desired_services", (list,)),
    },
    "connect": {
        "max_attempts": ("connect_max_attempts", (int,)),
        "interval_s": ("connect_interval_s", (int, float)),
    },
    "scan": {
        "duration_s": ("scan_duration_s", (int, float)),
        "pump_ms": ("scan_pump_ms", (int,)),
        "sleep_ms": ("scan_sleep_ms", (int,)),
    },
    "notify": {
        "pump_ms": ("notify_pump_ms", (int,)),
    },
    "bus": {
        "call_timeout_s": ("call_timeout_s", (int, float)),
    },
    "log": {
        "level": ("log_level", (str,)),
    },
}


def config_path() -> Path:
    env = os.getenv(CONFIG_ENV_VAR)
    return Path(env) if env else DEFAULT_CONFIG_FILE


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at root")
    return loaded


def _check_type(value: Any, types: tuple, where: str) -> Any:
    # bool is an int subclass; never accept it for numeric settings
    if isinstance(value, bool) or not isinstance(value, types):
        names = "/".join(t.__name__ for t in types)
        raise ConfigError(f"{where} must be {names}, got {type(value).__name__}")
    return value


def settings_from_mapping(doc: Dict[str, Any], source: str = "<config>") -> Settings:
    values: Dict[str, Any] = {}
    for section, keys in _SCHEMA.items():
        if section is None:
            block = doc
        else:
            block = doc.get(section, {})
            if block is None:
                continue
            if not isinstance(block, dict):
                raise ConfigError(f"{source}: section '{section}' must be a mapping")
        for key, (attr, types) in keys.items():
            if key not in block or block[key] is None:
                continue
            where = f"{source}: {section + '.' if section else ''}{key}"
            values[attr] = _check_type(block[key], types, where)

    services = values.get("desired_services")
    if services is not None:
        if not all(isinstance(s, str) for s in services):
            raise ConfigError(f"{source}: desired_services must be a list of strings")
        values["desired_services"] = list(services)
    if values.get("connect_max_attempts", 1) < 1:
        raise ConfigError(f"{source}: connect.max_attempts must be >= 1")
    return Settings(**values)


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from *path* (or the default location); defaults when absent."""
    path = Path(path) if path else config_path()
    if not path.exists():
        return Settings()
    return settings_from_mapping(_read_yaml(path), source=str(path))
