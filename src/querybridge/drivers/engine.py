"""
SQLAlchemy-backed driver.

The connection string is a SQLAlchemy URL (`postgresql+psycopg://...`,
`sqlite:///path.db`, `mssql+pyodbc://...`). One engine is created per URL and
kept in a thread-safe registry; every engine uses `NullPool`, so each
`connect()` opens a brand new DBAPI connection and closing it really closes
it. Engines only cache dialect setup, never connections.
"""
import atexit
import logging
import threading
from collections.abc import Callable
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from querybridge.drivers.base import Driver

__all__ = [
    'SqlAlchemyDriver',
    'get_engine_for_url',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def get_engine_for_url(url: str, echo: bool = False,
                       engine_factory: Callable[..., Engine] = sa.create_engine,
                       **kwargs: Any) -> Engine:
    """Get or create a non-pooling SQLAlchemy engine for the given URL.
    """
    key = f'{url}_{echo}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {sa.make_url(url).drivername}')
            return _engine_registry[key]

        engine_kwargs: dict[str, Any] = {'echo': echo, 'poolclass': NullPool}
        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {engine.dialect.name}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


class SqlAlchemyDriver(Driver):
    """Driver that opens raw DBAPI connections through SQLAlchemy engines.
    """

    name = 'sqlalchemy'

    def __init__(self, echo: bool = False,
                 engine_factory: Callable[..., Engine] = sa.create_engine) -> None:
        self.echo = echo
        self.engine_factory = engine_factory

    def _engine(self, connection_string: str) -> Engine:
        return get_engine_for_url(connection_string, echo=self.echo,
                                  engine_factory=self.engine_factory)

    def get_paramstyle(self, connection_string: str) -> str:
        return self._engine(connection_string).dialect.paramstyle

    def connect(self, connection_string: str) -> Any:
        connection = self._engine(connection_string).raw_connection()
        logger.debug(f'Opened raw connection {id(connection)} through SQLAlchemy')
        return connection
