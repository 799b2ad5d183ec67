"""
Prepared command over a DB-API 2.0 (PEP-249) connection.

A command carries SQL text with `:name` placeholders and a list of named
parameters. It owns at most one cursor at a time and closes it on `close()`
or when used as a context manager. It never closes or commits the
connection it runs on.
"""
import logging
import time
from collections.abc import Iterator
from functools import wraps
from typing import Any, NamedTuple, Self

from querybridge.row import Row, row_from_cursor
from querybridge.sql import rewrite_placeholders

__all__ = ['Command', 'Parameter', 'iter_chunk']

logger = logging.getLogger(__name__)


class Parameter(NamedTuple):
    name: str
    value: Any


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any):
        start = time.time()
        scope = f'transaction {self.transaction}' if self.transaction else 'ad-hoc'
        logger.debug(f'SQL ({scope}):\n{self.sql}\nparams: {self.parameters}')
        try:
            return func(self, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{self.sql}\nparams: {self.parameters}')
            raise
        finally:
            logger.debug(f'Query time: {time.time() - start:.4f}s')
    return wrapper


def iter_chunk(cursor: Any, size: int = 5000) -> Iterator[tuple]:
    """Iterate through cursor results in chunks."""
    while True:
        chunked = cursor.fetchmany(size)
        if not chunked:
            break
        yield from chunked


class Command:
    """SQL statement bound to a connection and, optionally, a transaction.

    Examples
        with Command(connection, 'select :id', paramstyle='named') as cmd:
            cmd.add_parameter('id', 42)
            cmd.execute_scalar()
    """

    def __init__(self, connection: Any, sql: str = '', paramstyle: str = 'named',
                 transaction: str | None = None) -> None:
        self.connection = connection
        self.sql = sql
        self.paramstyle = paramstyle
        self.transaction = transaction
        self.parameters: list[Parameter] = []
        self._cursor: Any = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def add_parameter(self, name: str, value: Any) -> Parameter:
        """Append a named parameter; duplicates are kept as supplied."""
        param = Parameter(name, value)
        self.parameters.append(param)
        return param

    def close(self) -> None:
        """Close the current cursor, if any."""
        if self._cursor is None:
            return
        cursor, self._cursor = self._cursor, None
        try:
            cursor.close()
        except Exception as e:
            logger.debug(f'Error closing cursor: {e}')

    def _prepare(self) -> tuple[str, Any]:
        """Build driver SQL and arguments from the bound parameters.

        Raises ValueError on a parameter name bound twice.
        """
        if not self.parameters:
            return self.sql, None
        params: dict[str, Any] = {}
        for name, value in self.parameters:
            if name in params:
                raise ValueError(f'Parameter {name!r} bound more than once')
            params[name] = value
        return rewrite_placeholders(self.sql, params, self.paramstyle)

    @dumpsql
    def _execute(self) -> Any:
        self.close()
        sql, args = self._prepare()
        self._cursor = self.connection.cursor()
        if args is None:
            self._cursor.execute(sql)
        else:
            self._cursor.execute(sql, args)
        return self._cursor

    def execute_non_query(self) -> int:
        """Execute and return the driver's affected-row count.
        """
        return self._execute().rowcount

    def execute_scalar(self) -> Any:
        """Execute and return the first cell of the first row, or None.
        """
        cursor = self._execute()
        if cursor.description is None:
            return None
        row = cursor.fetchone()
        if row is None:
            return None
        return row[0]

    def execute_reader(self) -> Iterator[Row]:
        """Execute and return an iterator of converted rows.

        The statement runs immediately; rows are fetched lazily while the
        command is open.
        """
        cursor = self._execute()
        if cursor.description is None:
            return iter(())
        columns = [desc[0] for desc in cursor.description]
        return (row_from_cursor(columns, raw) for raw in iter_chunk(cursor))
