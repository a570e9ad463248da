"""
Driver registry, keyed by URL scheme.

    @register_driver("sqlite")
    class SQLiteDriver(Driver): ...

    driver = new_driver("sqlite:///var/lib/app.db")
"""

import logging
from collections.abc import Callable
from typing import Any, Optional

from ..errors import DriverConnectionError, UnknownDriverError
from .base import Driver

logger = logging.getLogger(__name__)

_drivers: dict[str, type[Driver]] = {}


def register_driver(scheme: str) -> Callable[[type[Driver]], type[Driver]]:
    """Class decorator registering a driver for a URL scheme."""

    def decorator(cls: type[Driver]) -> type[Driver]:
        cls.scheme = scheme
        _drivers[scheme] = cls
        logger.debug(f"Registered driver {cls.__name__} for {scheme}://")
        return cls

    return decorator


def unregister_driver(scheme: str) -> None:
    """Remove the driver for a scheme, if any."""
    _drivers.pop(scheme, None)


def registered_schemes() -> list[str]:
    return sorted(_drivers)


def url_scheme(url: str) -> Optional[str]:
    """Scheme part of a connection URL, None if it has none."""
    scheme, sep, _ = url.partition("://")
    return scheme.lower() if sep and scheme else None


def get_driver_class(url: str = "", instance: Any = None) -> type[Driver]:
    """
    Find the driver for a URL, or for a connection handle when url is empty.

    Raises:
        UnknownDriverError: If no registered driver matches
    """
    scheme = url_scheme(url)
    if scheme is not None:
        try:
            return _drivers[scheme]
        except KeyError:
            raise UnknownDriverError(
                f"Driver '{scheme}' not found (known: {', '.join(registered_schemes())})"
            ) from None

    if instance is not None:
        for cls in _drivers.values():
            if cls.accepts(instance):
                return cls
        raise UnknownDriverError(f"No driver accepts connection {instance!r}")

    raise UnknownDriverError(f"Cannot determine driver from URL '{url}'")


def new_driver(url: str = "", instance: Any = None) -> Driver:
    """
    Create and initialize the driver for a URL or connection handle.

    Raises:
        DriverConnectionError: If no driver matches or initialization fails
    """
    cls = get_driver_class(url, instance)
    driver = cls()
    try:
        driver.initialize(url, instance)
    except DriverConnectionError:
        raise
    except Exception as e:
        raise DriverConnectionError(f"Failed to initialize {cls.scheme} driver: {e}") from e
    return driver
