"""
Drivers over DB-API 2.0 (PEP-249) modules.

`DbapiDriver` wraps any module exposing `connect()` and `paramstyle`:
psycopg for PostgreSQL, pyodbc for SQL Server, and so on. The connection
string is passed to `module.connect()` unchanged.

`SqliteDriver` specializes it for the standard library sqlite3 module:
- Connections may be used from any caller thread (transactions outlive calls)
- Declared date/datetime/timestamp columns are converted to Python objects
- Transactions start with an explicit BEGIN so reads inside them are isolated
"""
import datetime
import json
import logging
import sqlite3
from types import ModuleType
from typing import Any

import dateutil.parser

from querybridge.drivers.base import Driver

__all__ = ['DbapiDriver', 'SqliteDriver', 'convert_date', 'convert_datetime']

logger = logging.getLogger(__name__)


class DbapiDriver(Driver):
    """Driver for a DB-API 2.0 module.
    """

    def __init__(self, module: ModuleType, name: str | None = None,
                 paramstyle: str | None = None,
                 connect_kwargs: dict[str, Any] | None = None) -> None:
        self.module = module
        self.name = name or module.__name__
        self.paramstyle = paramstyle or getattr(module, 'paramstyle', 'named')
        self.connect_kwargs = dict(connect_kwargs or {})

    def connect(self, connection_string: str) -> Any:
        connection = self.module.connect(connection_string, **self.connect_kwargs)
        logger.debug(f'Opened {self.name} connection {id(connection)}')
        return connection


def convert_date(val: bytes) -> datetime.date | str:
    """Convert ISO 8601 date to datetime.date, leaving malformed text as-is."""
    text = val.decode()
    try:
        return dateutil.parser.isoparse(text).date()
    except ValueError:
        return text


def convert_datetime(val: bytes) -> datetime.datetime | str:
    """Convert ISO 8601 datetime to datetime.datetime, leaving malformed text as-is."""
    text = val.decode()
    try:
        return dateutil.parser.isoparse(text)
    except ValueError:
        return text


def register_sqlite_types() -> None:
    """Register process-wide sqlite3 adapters and converters.

    Adapters (Python -> SQLite) write temporal values as ISO 8601 text and
    dict/list as JSON; converters (SQLite -> Python) parse declared
    date/datetime/timestamp columns back.
    """
    sqlite3.register_adapter(datetime.date, lambda d: d.isoformat())
    sqlite3.register_adapter(datetime.datetime, lambda d: d.isoformat(' '))
    sqlite3.register_adapter(datetime.time, lambda t: t.isoformat())
    sqlite3.register_adapter(dict, json.dumps)
    sqlite3.register_adapter(list, json.dumps)

    sqlite3.register_converter('date', convert_date)
    sqlite3.register_converter('datetime', convert_datetime)
    sqlite3.register_converter('timestamp', convert_datetime)


class SqliteDriver(DbapiDriver):
    """SQLite driver; the connection string is the database path or URI.

    `file:` connection strings are opened in URI mode.
    """

    def __init__(self, detect_types: bool = True, check_same_thread: bool = False) -> None:
        connect_kwargs: dict[str, Any] = {'check_same_thread': check_same_thread}
        if detect_types:
            connect_kwargs['detect_types'] = sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
        register_sqlite_types()
        super().__init__(sqlite3, name='sqlite', paramstyle='named',
                         connect_kwargs=connect_kwargs)

    def connect(self, connection_string: str) -> sqlite3.Connection:
        uri = connection_string.startswith('file:')
        connection = sqlite3.connect(connection_string, uri=uri, **self.connect_kwargs)
        logger.debug(f'Opened sqlite connection {id(connection)} to {connection_string!r}')
        return connection

    def begin(self, connection: sqlite3.Connection) -> None:
        connection.execute('BEGIN')
