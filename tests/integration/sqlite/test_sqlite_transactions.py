"""
Handle-addressed transactions against a file-based SQLite database.
"""
import logging

import querybridge as qb


def count_rows(path):
    return qb.scalar('sqlite', path, 'SELECT count(*) FROM test_table').data


def test_commit_persists(sqlite_path):
    handle = qb.begin_transaction('sqlite', sqlite_path)
    assert handle

    assert qb.execute('sqlite', sqlite_path,
                      'INSERT INTO test_table (name, value) VALUES (:name, :value)',
                      {'name': 'Dan', 'value': 40}, handle) == 1
    assert qb.commit_transaction(handle) is True

    assert count_rows(sqlite_path) == 4


def test_commit_twice_fails(sqlite_path, caplog):
    handle = qb.begin_transaction('sqlite', sqlite_path)
    assert qb.commit_transaction(handle) is True
    with caplog.at_level(logging.ERROR, logger='querybridge.transaction'):
        assert qb.commit_transaction(handle) is False
    assert f'Invalid transaction handle: {handle}' in caplog.text


def test_rollback_discards(sqlite_path):
    handle = qb.begin_transaction('sqlite', sqlite_path)
    assert qb.execute('sqlite', sqlite_path, "DELETE FROM test_table WHERE name = 'Alice'",
                      None, handle) == 1
    assert qb.rollback_transaction(handle) is True

    assert count_rows(sqlite_path) == 3
    assert qb.rollback_transaction(handle) is False


def test_reads_see_own_writes(sqlite_path):
    handle = qb.begin_transaction('sqlite', sqlite_path)
    qb.execute('sqlite', sqlite_path,
               "INSERT INTO test_table (name, value) VALUES ('Eve', 50)", None, handle)

    inside = qb.scalar('sqlite', sqlite_path, 'SELECT count(*) FROM test_table', None, handle)
    rows = qb.query('sqlite', sqlite_path, "SELECT value FROM test_table WHERE name = 'Eve'",
                    None, handle)

    assert inside.data == 4
    assert rows[0]['value'].data == 50
    assert qb.rollback_transaction(handle)


def test_uncommitted_rows_invisible_outside(sqlite_path):
    handle = qb.begin_transaction('sqlite', sqlite_path)
    qb.execute('sqlite', sqlite_path,
               "INSERT INTO test_table (name, value) VALUES ('Eve', 50)", None, handle)

    assert count_rows(sqlite_path) == 3

    assert qb.commit_transaction(handle)
    assert count_rows(sqlite_path) == 4


def test_unknown_handle_returns_sentinel(sqlite_path):
    assert qb.execute('sqlite', sqlite_path, 'DELETE FROM test_table', None, 'bogus') == -1
    assert count_rows(sqlite_path) == 3


def test_failed_statement_keeps_transaction_usable(sqlite_path):
    handle = qb.begin_transaction('sqlite', sqlite_path)
    qb.execute('sqlite', sqlite_path,
               "INSERT INTO test_table (name, value) VALUES ('Eve', 50)", None, handle)

    assert qb.execute('sqlite', sqlite_path, 'INSERT INTO missing VALUES (1)', None, handle) == -1
    assert handle in qb.get_transaction_registry()

    assert qb.commit_transaction(handle)
    assert count_rows(sqlite_path) == 4


def test_begin_failure_returns_empty_handle(tmp_path):
    missing = str(tmp_path / 'no' / 'such' / 'dir' / 'x.db')
    assert qb.begin_transaction('sqlite', missing) == ''
    assert qb.begin_transaction('nope', missing) == ''
    assert len(qb.get_transaction_registry()) == 0
