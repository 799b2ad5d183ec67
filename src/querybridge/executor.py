"""
Command execution inside an ad-hoc connection or an open transaction.

`run_in_context` is the one place where connections, commands and errors
meet. It never raises: every failure is logged and turned into the caller's
error value.

- With a transaction handle the command runs on the transaction's
  connection, which stays open (the transaction registry owns it).
- Without one, a new connection is opened, the command runs, the connection
  is committed and closed. On failure it is rolled back before closing.
"""
import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

from querybridge.binding import bind
from querybridge.command import Command
from querybridge.drivers import try_get_factory
from querybridge.drivers.base import Driver
from querybridge.exceptions import describe_error
from querybridge.transaction import TransactionRegistry, get_transaction_registry

__all__ = ['run_in_context', 'open_connection']

logger = logging.getLogger(__name__)

T = TypeVar('T')


@contextmanager
def open_connection(driver: Driver, connection_string: str) -> Iterator[Any]:
    """Open a connection that is closed on every exit path.

    The connection is rolled back first when the block raises.
    """
    connection = driver.connect(connection_string)
    try:
        yield connection
    except Exception:
        try:
            driver.rollback(connection)
        except Exception as e:
            logger.debug(f'Rollback after failure also failed: {e}')
        raise
    finally:
        try:
            driver.close(connection)
            logger.debug(f'Closed connection {id(connection)}')
        except Exception as e:
            logger.debug(f'Error closing connection {id(connection)}: {e}')


def run_in_context(provider: str, connection_string: str, sql: str,
                   parameters: Mapping[str, Any] | None, tx_handle: str | None,
                   strategy: Callable[[Command], T], on_error: T,
                   registry: TransactionRegistry | None = None) -> T:
    """Build a command, bind parameters, run `strategy` on it.

    Args:
        provider: Registered driver name (ignored when tx_handle is set)
        connection_string: Driver connection string (ignored when tx_handle is set)
        sql: Statement with `:name` placeholders
        parameters: Values keyed by placeholder name
        tx_handle: Open transaction handle; None or '' for an ad-hoc connection
        strategy: Runs the command and produces the result
        on_error: Returned on any failure
        registry: Transaction registry, the process-wide one by default

    Returns
        The strategy's result, or `on_error`
    """
    if registry is None:
        registry = get_transaction_registry()
    try:
        if tx_handle:
            tx = registry.require(tx_handle)
            with Command(tx.connection, sql, tx.paramstyle, transaction=tx.handle) as command:
                bind(command, parameters)
                return strategy(command)

        driver, found = try_get_factory(provider)
        if not found:
            logger.error(f'Failed to load provider {provider}')
            return on_error

        paramstyle = driver.get_paramstyle(connection_string)
        with open_connection(driver, connection_string) as connection:
            with Command(connection, sql, paramstyle) as command:
                bind(command, parameters)
                result = strategy(command)
            driver.commit(connection)
            return result
    except Exception as e:
        logger.error(f'Command execution failed ({describe_error(e)}): {e}')
        return on_error
