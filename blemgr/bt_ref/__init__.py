"""BlueZ reference constants and helper utilities."""

from . import constants, utils  # noqa: F401

__all__ = ["constants", "utils"]
