"""
Bridge-specific exception classes.

None of these escape a public operation: the executor and the transaction
registry catch them at the boundary, log them and return the operation's
sentinel value.
"""
import sqlite3

import psycopg


class BridgeError(Exception):
    """Base class for all querybridge errors.
    """


class DriverNotFound(BridgeError):
    """No driver is registered under the requested provider name.
    """


class DriverRegistrationError(BridgeError):
    """A driver locator could not be resolved to a usable driver.
    """


class InvalidTransactionHandle(BridgeError):
    """The handle does not reference a live transaction.
    """


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    psycopg.DatabaseError,
    sqlite3.ProgrammingError,
    sqlite3.DatabaseError,
    )


def describe_error(exc: BaseException) -> str:
    """Label an exception with its category for log lines.

    Connection errors are checked first since sqlite3.OperationalError is
    also a sqlite3.DatabaseError.
    """
    if isinstance(exc, BridgeError):
        return 'bridge'
    if isinstance(exc, DbConnectionError):
        return 'connection'
    if isinstance(exc, IntegrityError):
        return 'integrity'
    if isinstance(exc, ProgrammingError):
        return 'programming'
    return 'unexpected'
