"""
Core logging functionality for blemgr.

Messages are routed by *log type* (general, debug, user) into child loggers of
the ``blemgr`` logger.  :func:`init_logging` attaches one file handler per log
type under the per-user data directory; importing this module has no
file-system side effects.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

from . import config

# Re-export log type constants for external modules
LOG__GENERAL = config.LOG__GENERAL
LOG__DEBUG = config.LOG__DEBUG
LOG__USER = config.LOG__USER

_LOG_FILES: Dict[str, str] = {
    LOG__GENERAL: "general.log",
    LOG__DEBUG: "debug.log",
    LOG__USER: "usermode.log",
}

# Raw message only, matches what print_and_log() echoes to stdout
_formatter = logging.Formatter("%(asctime)s %(message)s")

# Root logger for blemgr
_logger = logging.getLogger("blemgr")
_logger.addHandler(logging.NullHandler())

_handlers: Dict[str, logging.Handler] = {}


def _type_logger(log_type: str) -> logging.Logger:
    return _logger.getChild(log_type.lower())


def init_logging(level: Union[int, str] = logging.INFO, log_dir: Optional[Path] = None) -> Path:
    """Attach per-type file handlers and set the package log level.

    Safe to call more than once; existing handlers are replaced.  Returns the
    directory the log files live in.
    """
    log_dir = Path(log_dir) if log_dir else config.LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    _logger.setLevel(level)

    for log_type, filename in _LOG_FILES.items():
        target = _type_logger(log_type)
        old = _handlers.pop(log_type, None)
        if old is not None:
            target.removeHandler(old)
            old.close()
        handler = logging.FileHandler(log_dir / filename, mode="a", encoding="utf-8")
        handler.setFormatter(_formatter)
        target.addHandler(handler)
        _handlers[log_type] = handler
    return log_dir


def logging__log_event(log_type: str, string_to_log: str) -> None:
    """Log an event to the specified log type."""
    if log_type not in _LOG_FILES:
        log_type = LOG__GENERAL
    level = logging.DEBUG if log_type == LOG__DEBUG else logging.INFO
    _type_logger(log_type).log(level, string_to_log.rstrip("\n"))


def print_and_log(output_string: str, log_type: str = LOG__GENERAL) -> None:
    """Print to stdout and log to the specified log type."""
    if log_type != LOG__DEBUG:
        print(output_string)
    logging__log_event(log_type, output_string)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger with the specified name.

    This is the preferred way to get a logger in new code.
    """
    if name:
        if name.startswith("blemgr."):
            name = name[len("blemgr."):]
        return _logger.getChild(name)
    return _logger
