"""
Handle-addressed transactions that outlive a single call.

`begin` opens a connection, starts a native transaction on it and files both
under a fresh opaque handle. `commit` and `rollback` are terminal: the entry
is removed and the connection closed whatever the native call does, so a
handle closes at most once.

All registry reads and writes go through one lock; a terminal call removes
the entry under that lock before touching the connection, so two threads
can never both close the same transaction.
"""
import atexit
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Any

from querybridge.drivers import get_driver
from querybridge.drivers.base import Driver
from querybridge.exceptions import InvalidTransactionHandle, describe_error

__all__ = ['OpenTransaction', 'TransactionRegistry', 'get_transaction_registry']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenTransaction:
    """An open transaction and the connection that owns it."""
    handle: str
    provider: str
    driver: Driver
    connection: Any
    paramstyle: str


def _close_quietly(driver: Driver, connection: Any) -> None:
    try:
        driver.close(connection)
    except Exception as e:
        logger.debug(f'Error closing connection {id(connection)}: {e}')


class TransactionRegistry:
    """Thread-safe map of handle -> open transaction.

    Examples
        handle = registry.begin('sqlite', 'app.db')
        ...
        registry.commit(handle)
    """

    def __init__(self) -> None:
        self._transactions: dict[str, OpenTransaction] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._transactions

    def handles(self) -> list[str]:
        with self._lock:
            return list(self._transactions)

    def get(self, handle: str) -> OpenTransaction | None:
        with self._lock:
            return self._transactions.get(handle)

    def require(self, handle: str) -> OpenTransaction:
        """Look up a transaction, raising InvalidTransactionHandle when missing."""
        tx = self.get(handle)
        if tx is None:
            raise InvalidTransactionHandle(f'Invalid transaction handle: {handle}')
        return tx

    def _pop(self, handle: str) -> OpenTransaction | None:
        with self._lock:
            return self._transactions.pop(handle, None)

    def begin(self, provider: str, connection_string: str) -> str:
        """Open a transaction and return its handle, or '' on failure.
        """
        connection = None
        driver = None
        try:
            driver = get_driver(provider)
            paramstyle = driver.get_paramstyle(connection_string)
            connection = driver.connect(connection_string)
            driver.begin(connection)
        except Exception as e:
            logger.error(f'Failed to begin transaction ({describe_error(e)}): {e}')
            if connection is not None:
                _close_quietly(driver, connection)
            return ''

        handle = str(uuid.uuid4())
        with self._lock:
            self._transactions[handle] = OpenTransaction(
                handle=handle,
                provider=provider,
                driver=driver,
                connection=connection,
                paramstyle=paramstyle,
            )
        logger.debug(f'Started transaction {handle} on {provider}')
        return handle

    def _finish(self, handle: str, action: str) -> bool:
        tx = self._pop(handle)
        if tx is None:
            logger.error(f'Invalid transaction handle: {handle}')
            return False
        try:
            if action == 'commit':
                tx.driver.commit(tx.connection)
            else:
                tx.driver.rollback(tx.connection)
            logger.debug(f'Transaction {handle} {action} complete')
            return True
        except Exception as e:
            logger.error(f'Failed to {action} transaction {handle} ({describe_error(e)}): {e}')
            return False
        finally:
            _close_quietly(tx.driver, tx.connection)

    def commit(self, handle: str) -> bool:
        """Commit and close; False for an unknown handle or a failed commit.
        """
        return self._finish(handle, 'commit')

    def rollback(self, handle: str) -> bool:
        """Roll back and close; False for an unknown handle or a failed rollback.
        """
        return self._finish(handle, 'rollback')

    def close_all(self) -> int:
        """Roll back every open transaction. Returns how many were open."""
        handles = self.handles()
        for handle in handles:
            logger.warning(f'Rolling back abandoned transaction {handle}')
            self.rollback(handle)
        return len(handles)


_registry = TransactionRegistry()
atexit.register(_registry.close_all)


def get_transaction_registry() -> TransactionRegistry:
    """Return the process-wide transaction registry."""
    return _registry
