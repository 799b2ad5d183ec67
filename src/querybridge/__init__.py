"""
Provider-agnostic database access with handle-addressed transactions.

All operations take a registered provider name and an opaque connection
string, and report failure through sentinel values plus a log line:

- execute(provider, cs, sql, params, tx) - affected rows, -1 on failure
- scalar(provider, cs, sql, params, tx) - first cell as a Value
- query(provider, cs, sql, params, tx) - list of Row
- begin_transaction(provider, cs) - handle, '' on failure
- commit_transaction(handle) / rollback_transaction(handle) - bool

Default drivers (sqlite, postgresql, sqlserver, sqlalchemy) are registered
on import, best-effort; `register_driver` adds more.
"""
__version__ = '0.1.0'

import logging
from typing import Any

from querybridge.drivers import Driver, DbapiDriver, SqlAlchemyDriver
from querybridge.drivers import SqliteDriver, register_default_drivers
from querybridge.drivers import register_driver, registered_drivers
from querybridge.drivers import get_driver, try_get_factory
from querybridge.exceptions import BridgeError, DriverNotFound
from querybridge.exceptions import DriverRegistrationError
from querybridge.exceptions import InvalidTransactionHandle
from querybridge.operations import begin_transaction, commit_transaction
from querybridge.operations import execute, query, rollback_transaction
from querybridge.operations import scalar
from querybridge.options import BridgeOptions, get_options, load_options
from querybridge.options import set_options
from querybridge.row import Row, RowSet
from querybridge.transaction import get_transaction_registry
from querybridge.value import Value, ValueKind, convert

logger = logging.getLogger(__name__)


def configure(options: BridgeOptions | dict[str, Any] | None = None,
              **kw: Any) -> BridgeOptions:
    """Set the active options and re-register the default drivers.

    Args:
        options: BridgeOptions, dict of options, or None for defaults
        **kw: Overrides applied on top of `options`

    Returns
        The active BridgeOptions
    """
    options = load_options(options, **kw)
    set_options(options)
    register_default_drivers(options)
    return options


register_default_drivers()

__all__ = [
    'configure',
    'BridgeOptions',
    'get_options',
    'execute',
    'scalar',
    'query',
    'begin_transaction',
    'commit_transaction',
    'rollback_transaction',
    'register_driver',
    'registered_drivers',
    'try_get_factory',
    'get_driver',
    'get_transaction_registry',
    'Driver',
    'DbapiDriver',
    'SqliteDriver',
    'SqlAlchemyDriver',
    'Value',
    'ValueKind',
    'convert',
    'Row',
    'RowSet',
    'BridgeError',
    'DriverNotFound',
    'DriverRegistrationError',
    'InvalidTransactionHandle',
]
