"""
Fixtures for SQLite-backed tests.
"""
import querybridge as qb
import pytest


@pytest.fixture
def sqlite_path(tmp_path):
    """File-based SQLite database with a populated test table.

    Each call to the bridge opens its own connection, so an in-memory
    database would not survive between calls.
    """
    path = str(tmp_path / 'bridge.db')

    create_table = """
    CREATE TABLE test_table (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        value INTEGER NOT NULL
    )
    """
    assert qb.execute('sqlite', path, create_table) == 0

    insert_data = """
    INSERT INTO test_table (name, value) VALUES
    ('Alice', 10),
    ('Bob', 20),
    ('Charlie', 30)
    """
    assert qb.execute('sqlite', path, insert_data) == 3

    return path
