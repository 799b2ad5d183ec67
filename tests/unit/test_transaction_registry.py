"""
Tests for the handle-addressed transaction registry, using the fake driver.
"""
import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from querybridge.exceptions import InvalidTransactionHandle
from querybridge.transaction import TransactionRegistry


@pytest.fixture
def registry():
    registry = TransactionRegistry()
    yield registry
    registry.close_all()


class TestBegin:

    def test_begin_returns_uuid_handle(self, registry, fake_driver):
        handle = registry.begin('fake', 'cs')
        assert uuid.UUID(handle)
        assert handle in registry
        assert fake_driver.open_connections == 1
        assert fake_driver.begins == 1

    def test_records_connection_and_paramstyle(self, registry, fake_driver):
        handle = registry.begin('fake', 'cs')
        tx = registry.require(handle)
        assert tx.connection is fake_driver.connections[0]
        assert tx.provider == 'fake'
        assert tx.paramstyle == 'named'

    def test_unknown_provider(self, registry, caplog):
        with caplog.at_level(logging.ERROR, logger='querybridge.transaction'):
            assert registry.begin('nope', 'cs') == ''
        assert 'Failed to load provider nope' in caplog.text
        assert len(registry) == 0

    def test_connect_failure(self, registry, fake_driver):
        fake_driver.fail_connect = True
        assert registry.begin('fake', 'cs') == ''
        assert len(registry) == 0
        assert fake_driver.open_connections == 0

    def test_begin_failure_closes_connection(self, registry, fake_driver):
        fake_driver.fail_begin = True
        assert registry.begin('fake', 'cs') == ''
        assert fake_driver.opened == 1
        assert fake_driver.open_connections == 0


class TestFinish:

    @pytest.mark.parametrize('action', ['commit', 'rollback'])
    def test_terminal_and_single_use(self, registry, fake_driver, action):
        handle = registry.begin('fake', 'cs')
        assert getattr(registry, action)(handle) is True
        assert handle not in registry
        assert fake_driver.open_connections == 0
        assert getattr(registry, action)(handle) is False

    def test_commit_then_rollback_is_rejected(self, registry, fake_driver):
        handle = registry.begin('fake', 'cs')
        assert registry.commit(handle)
        assert registry.rollback(handle) is False
        assert fake_driver.rollbacks == 0

    def test_unknown_handle_has_no_side_effects(self, registry, fake_driver, caplog):
        with caplog.at_level(logging.ERROR, logger='querybridge.transaction'):
            assert registry.commit('not-a-handle') is False
        assert 'Invalid transaction handle: not-a-handle' in caplog.text
        assert fake_driver.connect_calls == 0

    def test_failed_commit_still_evicts_and_closes(self, registry, fake_driver):
        handle = registry.begin('fake', 'cs')
        fake_driver.fail_commit = True
        assert registry.commit(handle) is False
        assert handle not in registry
        assert fake_driver.open_connections == 0
        assert registry.commit(handle) is False

    def test_failed_rollback_still_evicts_and_closes(self, registry, fake_driver):
        handle = registry.begin('fake', 'cs')
        fake_driver.fail_rollback = True
        assert registry.rollback(handle) is False
        assert len(registry) == 0
        assert fake_driver.open_connections == 0

    def test_require_unknown(self, registry):
        with pytest.raises(InvalidTransactionHandle):
            registry.require('nope')

    def test_close_all_rolls_back(self, registry, fake_driver):
        for _ in range(3):
            registry.begin('fake', 'cs')
        assert registry.close_all() == 3
        assert len(registry) == 0
        assert fake_driver.rollbacks == 3
        assert fake_driver.open_connections == 0


class TestConcurrency:

    def test_concurrent_begin_distinct_handles(self, registry, fake_driver):
        with ThreadPoolExecutor(max_workers=16) as pool:
            handles = list(pool.map(lambda _: registry.begin('fake', 'cs'), range(200)))
        assert len(set(handles)) == 200
        assert '' not in handles
        assert len(registry) == 200

    def test_concurrent_finish_distinct_handles(self, registry, fake_driver):
        handles = [registry.begin('fake', 'cs') for _ in range(200)]
        commits, rollbacks = handles[::2], handles[1::2]

        with ThreadPoolExecutor(max_workers=16) as pool:
            committed = pool.map(registry.commit, commits)
            rolled_back = pool.map(registry.rollback, rollbacks)
            assert all(committed)
            assert all(rolled_back)

        assert len(registry) == 0
        assert fake_driver.commits == 100
        assert fake_driver.rollbacks == 100
        assert fake_driver.open_connections == 0

    def test_racing_commits_on_same_handle_succeed_once(self, registry, fake_driver):
        handle = registry.begin('fake', 'cs')
        barrier = threading.Barrier(8)

        def commit():
            barrier.wait()
            return registry.commit(handle)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = [f.result() for f in [pool.submit(commit) for _ in range(8)]]

        assert results.count(True) == 1
        assert fake_driver.commits == 1
