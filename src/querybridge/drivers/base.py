"""
Base driver interface and the process-wide driver registry.

A driver opens DB-API 2.0 connections for one database engine given an
opaque connection string. Drivers are registered under a provider name; the
registry is read-mostly after startup and every read and write goes through
one lock.

Registration is best-effort: a locator that cannot be resolved (missing
module, missing attribute, factory returning None) is logged and skipped, it
never raises.
"""
import importlib
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from querybridge.exceptions import DriverNotFound, DriverRegistrationError

__all__ = [
    'Driver',
    'DriverLocator',
    'register_driver',
    'resolve_driver',
    'try_get_factory',
    'get_driver',
    'registered_drivers',
]

logger = logging.getLogger(__name__)

# Registry of provider name -> driver instance
# Defined here to avoid circular imports (concrete drivers import from base)
_DRIVER_REGISTRY: dict[str, 'Driver'] = {}
_driver_registry_lock = threading.RLock()


class Driver(ABC):
    """Base class for database drivers.

    DB-API connections open transactions implicitly, so `begin` does nothing
    by default; drivers whose engine needs an explicit statement override it.
    """

    name: str = 'driver'
    paramstyle: str = 'named'

    @abstractmethod
    def connect(self, connection_string: str) -> Any:
        """Open a new DB-API connection.

        Args:
            connection_string: Opaque, driver-specific connection string
        """

    def get_paramstyle(self, connection_string: str) -> str:
        """Return the paramstyle used for connections to `connection_string`."""
        return self.paramstyle

    def begin(self, connection: Any) -> None:
        """Start a native transaction on an open connection."""

    def commit(self, connection: Any) -> None:
        connection.commit()

    def rollback(self, connection: Any) -> None:
        connection.rollback()

    def close(self, connection: Any) -> None:
        connection.close()

    def __repr__(self) -> str:
        return f'{type(self).__name__}(name={self.name!r}, paramstyle={self.paramstyle!r})'


DriverLocator = Driver | type[Driver] | Callable[[], Driver] | str


def _is_dbapi_module(obj: Any) -> bool:
    return hasattr(obj, 'connect') and hasattr(obj, 'paramstyle') and hasattr(obj, 'apilevel')


def _import_locator(locator: str) -> Any:
    """Resolve 'module' or 'module:attribute' to an object."""
    module_name, _, attribute = locator.partition(':')
    module = importlib.import_module(module_name)
    if not attribute:
        return module
    if not hasattr(module, attribute):
        raise DriverRegistrationError(f'{module_name!r} has no attribute {attribute!r}')
    return getattr(module, attribute)


def resolve_driver(locator: DriverLocator) -> Driver:
    """Turn a locator into a driver instance.

    Accepted locators: a Driver instance, a Driver subclass, a zero-argument
    factory returning a Driver, a DB-API module, or an import string
    'module' / 'module:attribute' naming any of these.

    Raises DriverRegistrationError (or the underlying import error) when the
    locator does not produce a driver.
    """
    from querybridge.drivers.dbapi import DbapiDriver

    target = _import_locator(locator) if isinstance(locator, str) else locator

    if target is None:
        raise DriverRegistrationError(f'Locator {locator!r} resolved to None')
    if isinstance(target, Driver):
        return target
    if _is_dbapi_module(target):
        return DbapiDriver(target)
    if callable(target):
        driver = target()
        if driver is None:
            raise DriverRegistrationError(f'Factory {locator!r} returned None')
        if not isinstance(driver, Driver):
            raise DriverRegistrationError(f'Factory {locator!r} returned {type(driver).__name__}, not a Driver')
        return driver
    raise DriverRegistrationError(f'Cannot build a driver from {type(target).__name__}')


def register_driver(name: str, locator: DriverLocator) -> bool:
    """Register a driver under a provider name.

    A later registration under the same name replaces the earlier one.
    Returns False, after logging, when the locator cannot be resolved.
    """
    try:
        driver = resolve_driver(locator)
    except Exception as e:
        logger.warning(f'Failed to register driver {name}: {e}')
        return False

    with _driver_registry_lock:
        if name in _DRIVER_REGISTRY:
            logger.debug(f'Replacing driver registered as {name}')
        _DRIVER_REGISTRY[name] = driver
    logger.debug(f'Registered driver {name}: {driver!r}')
    return True


def try_get_factory(name: str) -> tuple[Driver | None, bool]:
    """Look up a driver by provider name.

    Returns
        (driver, True) when registered, (None, False) otherwise
    """
    with _driver_registry_lock:
        driver = _DRIVER_REGISTRY.get(name)
    return driver, driver is not None


def get_driver(name: str) -> Driver:
    """Look up a driver, raising DriverNotFound when missing."""
    driver, found = try_get_factory(name)
    if not found:
        raise DriverNotFound(f'Failed to load provider {name}')
    return driver


def registered_drivers() -> list[str]:
    """Return list of registered provider names."""
    with _driver_registry_lock:
        return list(_DRIVER_REGISTRY.keys())
