"""Storage backend implementations."""

from retryspool.core.storage.backends.postgres_backend import PostgresDataBackend
from retryspool.core.storage.backends.postgres_factory import (
    DEFAULT_MAX_IDLE_CONNS,
    DEFAULT_MAX_OPEN_CONNS,
    DEFAULT_TABLE_NAME,
    PostgresDataConfig,
    PostgresDataFactory,
    create_backend,
)
from retryspool.core.storage.backends.postgres_schema import build_data_table, ensure_schema

__all__ = [
    "PostgresDataBackend",
    "PostgresDataConfig",
    "PostgresDataFactory",
    "create_backend",
    "build_data_table",
    "ensure_schema",
    "DEFAULT_TABLE_NAME",
    "DEFAULT_MAX_OPEN_CONNS",
    "DEFAULT_MAX_IDLE_CONNS",
]
