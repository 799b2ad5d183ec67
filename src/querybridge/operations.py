"""
Public operations.

Each operation is a thin instantiation of `run_in_context` with a strategy
and an error value. Callers tell failure from success by the sentinel:

| Operation | Success | Error |
|---|---|---|
| execute | affected rows | -1 |
| scalar | Value | Value.null() |
| query | list[Row] | [] |
| begin_transaction | handle | '' |
| commit_transaction / rollback_transaction | True | False |
"""
import logging
from collections.abc import Mapping
from typing import Any

from querybridge.command import Command
from querybridge.executor import run_in_context
from querybridge.row import RowSet
from querybridge.transaction import get_transaction_registry
from querybridge.value import Value, convert

__all__ = [
    'execute',
    'scalar',
    'query',
    'begin_transaction',
    'commit_transaction',
    'rollback_transaction',
]

logger = logging.getLogger(__name__)


def _non_query(command: Command) -> int:
    # -1 is reserved for failure; drivers report -1 for DDL and SELECT
    return max(command.execute_non_query(), 0)


def _scalar(command: Command) -> Value:
    return convert(command.execute_scalar())


def _rows(command: Command) -> RowSet:
    return list(command.execute_reader())


def execute(provider: str, connection_string: str, sql: str,
            parameters: Mapping[str, Any] | None = None,
            tx_handle: str | None = None) -> int:
    """Execute a statement and return the affected row count, -1 on failure.

    Statements whose count the driver does not know (DDL, SELECT) report 0.
    """
    return run_in_context(provider, connection_string, sql, parameters, tx_handle,
                          _non_query, -1)


def scalar(provider: str, connection_string: str, sql: str,
           parameters: Mapping[str, Any] | None = None,
           tx_handle: str | None = None) -> Value:
    """Execute a query and return its first cell, NIL on failure or no rows.
    """
    return run_in_context(provider, connection_string, sql, parameters, tx_handle,
                          _scalar, Value.null())


def query(provider: str, connection_string: str, sql: str,
          parameters: Mapping[str, Any] | None = None,
          tx_handle: str | None = None) -> RowSet:
    """Execute a query and return every row, [] on failure.
    """
    result = run_in_context(provider, connection_string, sql, parameters, tx_handle,
                            _rows, None)
    if result is None:
        return []
    logger.debug(f'Query returned {len(result)} rows')
    return result


def begin_transaction(provider: str, connection_string: str) -> str:
    """Open a transaction and return its handle, '' on failure.
    """
    return get_transaction_registry().begin(provider, connection_string)


def commit_transaction(tx_handle: str) -> bool:
    """Commit and close a transaction. The handle is spent either way.
    """
    return get_transaction_registry().commit(tx_handle)


def rollback_transaction(tx_handle: str) -> bool:
    """Roll back and close a transaction. The handle is spent either way.
    """
    return get_transaction_registry().rollback(tx_handle)
