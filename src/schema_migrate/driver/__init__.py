"""
Storage drivers.

Provides:
- Driver: interface every backend implements
- Registry: drivers looked up by URL scheme or connection handle
- SQLiteDriver: bundled backend for sqlite:// URLs
"""

from .base import Driver
from .registry import (
    get_driver_class,
    new_driver,
    register_driver,
    registered_schemes,
    unregister_driver,
)
from .sqlite_driver import SQLiteDriver

__all__ = [
    "Driver",
    "SQLiteDriver",
    "get_driver_class",
    "new_driver",
    "register_driver",
    "registered_schemes",
    "unregister_driver",
]
