from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from retryspool.core.storage.backends import build_data_table, create_backend
from retryspool.core.storage.backends.postgres_backend import PostgresDataBackend


@pytest.fixture
def sqlite_dsn(tmp_path):
    """URL of a file-backed SQLite database in a temp directory."""
    return f"sqlite:///{tmp_path / 'spool.db'}"


@pytest.fixture
def backend(sqlite_dsn):
    """Backend on a fresh SQLite database, closed after the test."""
    data_backend = create_backend(sqlite_dsn, table_name="test_data")
    yield data_backend
    data_backend.close()


@pytest.fixture
def mock_pg_connection():
    """Connection mock reporting the PostgreSQL dialect."""
    conn = MagicMock()
    conn.dialect.name = "postgresql"
    return conn


@pytest.fixture
def mock_pg_backend(mock_pg_connection):
    """Backend wired to a mocked PostgreSQL engine.

    The connection mock is reachable as ``backend._test_mock_connection``.
    """
    engine = MagicMock()
    engine.dialect.name = "postgresql"
    engine.begin.return_value.__enter__.return_value = mock_pg_connection

    data_backend = PostgresDataBackend(engine, build_data_table("test_data"))
    data_backend._test_mock_engine = engine
    data_backend._test_mock_connection = mock_pg_connection
    return data_backend
