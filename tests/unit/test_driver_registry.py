"""
Tests for driver registration and lookup.
"""
import logging
import sqlite3

import pytest
from querybridge.drivers import DbapiDriver, SqliteDriver, register_default_drivers
from querybridge.drivers import register_driver, registered_drivers
from querybridge.drivers import try_get_factory
from querybridge.drivers.base import get_driver, resolve_driver
from querybridge.exceptions import DriverNotFound, DriverRegistrationError
from querybridge.options import BridgeOptions
from tests.fixtures.fakes import FakeDriver


class TestRegisterDriver:

    def test_register_instance(self):
        driver = FakeDriver()
        assert register_driver('mine', driver) is True
        assert try_get_factory('mine') == (driver, True)

    def test_register_class(self):
        assert register_driver('mine', FakeDriver)
        driver, found = try_get_factory('mine')
        assert found
        assert isinstance(driver, FakeDriver)

    def test_register_factory(self):
        assert register_driver('mine', lambda: FakeDriver())
        assert isinstance(get_driver('mine'), FakeDriver)

    def test_register_dbapi_module_by_name(self):
        assert register_driver('lite', 'sqlite3')
        driver = get_driver('lite')
        assert isinstance(driver, DbapiDriver)
        assert driver.module is sqlite3
        assert driver.paramstyle == 'qmark'

    def test_register_by_module_attribute(self):
        assert register_driver('lite', 'querybridge.drivers.dbapi:SqliteDriver')
        assert isinstance(get_driver('lite'), SqliteDriver)

    @pytest.mark.parametrize('locator', [
        'no_such_driver_module_xyz',
        'querybridge.drivers.dbapi:NoSuchFactory',
        lambda: None,
        lambda: 'not a driver',
        42,
    ], ids=['missing_module', 'missing_attribute', 'factory_none', 'factory_wrong_type', 'not_callable'])
    def test_failures_are_swallowed_and_logged(self, locator, caplog):
        with caplog.at_level(logging.WARNING, logger='querybridge.drivers.base'):
            assert register_driver('broken', locator) is False
        assert try_get_factory('broken') == (None, False)
        assert 'Failed to register driver broken' in caplog.text

    def test_factory_raising_is_swallowed(self):
        def factory():
            raise RuntimeError('boom')
        assert register_driver('broken', factory) is False

    def test_reregistration_replaces(self):
        first, second = FakeDriver(), FakeDriver()
        register_driver('mine', first)
        register_driver('mine', second)
        assert get_driver('mine') is second
        assert registered_drivers().count('mine') == 1

    def test_failed_reregistration_keeps_previous(self):
        driver = FakeDriver()
        register_driver('mine', driver)
        register_driver('mine', 'no_such_driver_module_xyz')
        assert get_driver('mine') is driver


class TestLookup:

    def test_unknown_provider(self):
        assert try_get_factory('nope') == (None, False)
        with pytest.raises(DriverNotFound):
            get_driver('nope')

    def test_resolve_rejects_none(self):
        with pytest.raises(DriverRegistrationError):
            resolve_driver(None)


class TestDefaultDrivers:

    def test_defaults_registered_at_import(self):
        names = registered_drivers()
        assert 'sqlite' in names
        assert 'postgresql' in names
        assert 'sqlalchemy' in names

    def test_postgres_default_is_psycopg(self):
        import psycopg
        assert get_driver('postgresql').module is psycopg

    def test_disabled_auto_register(self):
        assert register_default_drivers(BridgeOptions(auto_register=False)) == []

    def test_subset_of_defaults(self):
        registered = register_default_drivers(BridgeOptions(default_drivers=('sqlite',)))
        assert registered == ['sqlite']

    def test_sqlite_options_applied(self):
        register_default_drivers(BridgeOptions(default_drivers=('sqlite',),
                                               sqlite_detect_types=False,
                                               sqlite_check_same_thread=True))
        driver = get_driver('sqlite')
        assert 'detect_types' not in driver.connect_kwargs
        assert driver.connect_kwargs['check_same_thread'] is True
