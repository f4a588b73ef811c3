"""Storage abstractions for retry spool message data."""

from retryspool.core.storage.backends import (
    PostgresDataBackend,
    PostgresDataConfig,
    PostgresDataFactory,
    create_backend,
)
from retryspool.core.storage.data import (
    BackendConfigError,
    BackendConstructionError,
    BackendNotFoundError,
    DataNotFoundError,
    DataRecordInfo,
    DataStorageBackend,
    DataStorageCancelledError,
    DataStorageError,
    DataStorageFactory,
    DataStorageIOError,
    SchemaError,
    WriterClosedError,
)
from retryspool.core.storage.registry import (
    DataBackendRegistry,
    get_data_backend,
    get_default_registry,
)
from retryspool.core.storage.streams import BufferedDataReader, BufferedDataWriter

__all__ = [
    # Data storage
    "DataStorageBackend",
    "DataStorageFactory",
    "DataRecordInfo",
    "BufferedDataReader",
    "BufferedDataWriter",
    "DataStorageError",
    "DataNotFoundError",
    "DataStorageIOError",
    "DataStorageCancelledError",
    "WriterClosedError",
    "BackendConstructionError",
    "SchemaError",
    # PostgreSQL backend
    "PostgresDataBackend",
    "PostgresDataConfig",
    "PostgresDataFactory",
    "create_backend",
    # Registry
    "DataBackendRegistry",
    "BackendConfigError",
    "BackendNotFoundError",
    "get_default_registry",
    "get_data_backend",
]
