"""
Driver registry and the default drivers registered at startup.
"""
import logging

from querybridge.drivers.base import Driver as Driver
from querybridge.drivers.base import get_driver as get_driver
from querybridge.drivers.base import register_driver as register_driver
from querybridge.drivers.base import registered_drivers as registered_drivers
from querybridge.drivers.base import try_get_factory as try_get_factory
from querybridge.drivers.dbapi import DbapiDriver as DbapiDriver
from querybridge.drivers.dbapi import SqliteDriver as SqliteDriver
from querybridge.drivers.engine import SqlAlchemyDriver as SqlAlchemyDriver
from querybridge.drivers.engine import dispose_all_engines as dispose_all_engines
from querybridge.options import BridgeOptions, get_options

logger = logging.getLogger(__name__)


def _default_locators(options: BridgeOptions) -> dict:
    return {
        'sqlite': lambda: SqliteDriver(detect_types=options.sqlite_detect_types,
                                       check_same_thread=options.sqlite_check_same_thread),
        'postgresql': 'psycopg',
        'sqlserver': 'pyodbc',
        'sqlalchemy': lambda: SqlAlchemyDriver(echo=options.engine_echo),
    }


def register_default_drivers(options: BridgeOptions | None = None) -> list[str]:
    """Register the default drivers named in the options, best-effort.

    Returns the provider names that were registered.
    """
    options = options or get_options()
    if not options.auto_register:
        logger.debug('Default driver registration disabled')
        return []

    locators = _default_locators(options)
    registered = [name for name in options.default_drivers
                  if register_driver(name, locators[name])]
    logger.debug(f'Default drivers registered: {registered}')
    return registered
