import pathlib
import site

import pytest
from querybridge.drivers import base
from querybridge.options import BridgeOptions, set_options
from querybridge.transaction import get_transaction_registry

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def isolate_registries():
    """Restore drivers, options and open transactions around each test."""
    with base._driver_registry_lock:
        saved = dict(base._DRIVER_REGISTRY)
    yield
    get_transaction_registry().close_all()
    with base._driver_registry_lock:
        base._DRIVER_REGISTRY.clear()
        base._DRIVER_REGISTRY.update(saved)
    set_options(BridgeOptions())


pytest_plugins = [
    'tests.fixtures.fakes',
    'tests.fixtures.sqlite_db',
]
