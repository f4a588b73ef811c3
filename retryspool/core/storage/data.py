"""Data storage contract for message payloads.

Defines the interface a retry spool uses to persist opaque message bodies,
keyed by message ID, independently of where they end up (PostgreSQL, SQLite,
...). Backends store whole values; streaming is provided by the adapters in
``retryspool.core.storage.streams``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from retryspool.core.storage.streams import BufferedDataReader, BufferedDataWriter


@dataclass(frozen=True)
class DataRecordInfo:
    """Size and timestamps of a stored payload."""

    message_id: str
    size: int
    created: datetime
    updated: datetime


class DataStorageBackend(ABC):
    """Abstract base class for message data storage backends.

    A backend maps a caller-assigned message ID to the complete current
    payload for that message. Storing again under the same ID replaces the
    payload; deleting removes it.
    """

    @abstractmethod
    def store_data(
        self, message_id: str, data: bytes | BinaryIO, *, timeout: float | None = None
    ) -> int:
        """Store the payload for a message, replacing any previous one.

        Args:
            message_id: Message identifier
            data: Payload bytes or a readable binary stream
            timeout: Optional deadline in seconds for the database call

        Returns:
            Number of bytes stored
        """
        pass

    @abstractmethod
    def get_data(self, message_id: str, *, timeout: float | None = None) -> bytes:
        """Fetch the full payload for a message.

        Raises:
            DataNotFoundError: If nothing is stored for the message
        """
        pass

    @abstractmethod
    def get_data_reader(
        self, message_id: str, *, timeout: float | None = None
    ) -> BufferedDataReader:
        """Open a read stream over the payload for a message.

        Raises:
            DataNotFoundError: If nothing is stored for the message
        """
        pass

    @abstractmethod
    def get_data_writer(
        self, message_id: str, *, timeout: float | None = None
    ) -> BufferedDataWriter:
        """Open a write stream that stores the payload when closed."""
        pass

    @abstractmethod
    def delete_data(self, message_id: str, *, timeout: float | None = None) -> None:
        """Delete the payload for a message.

        Raises:
            DataNotFoundError: If nothing is stored for the message
        """
        pass

    @abstractmethod
    def exists(self, message_id: str, *, timeout: float | None = None) -> bool:
        """Check whether a payload is stored for a message."""
        pass

    @abstractmethod
    def get_metadata(
        self, message_id: str, *, timeout: float | None = None
    ) -> DataRecordInfo:
        """Get size and timestamps for a payload without fetching it.

        Raises:
            DataNotFoundError: If nothing is stored for the message
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the backend's resources. The backend is unusable afterwards."""
        pass

    def __enter__(self) -> DataStorageBackend:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class DataStorageFactory(ABC):
    """Builds ready-to-use data storage backends."""

    name: str

    @abstractmethod
    def create(self) -> DataStorageBackend:
        """Create a backend.

        Raises:
            BackendConstructionError: If the backend cannot be made usable
        """
        pass


# Custom exceptions


class DataStorageError(Exception):
    """Base exception for data storage errors."""

    pass


class DataNotFoundError(DataStorageError):
    """Raised when no payload is stored for a message ID."""

    def __init__(self, message_id: str):
        super().__init__(f"data for message {message_id} not found")
        self.message_id = message_id


class WriterClosedError(DataStorageError):
    """Raised when writing to a data writer that was already closed."""

    pass


class DataStorageIOError(DataStorageError):
    """Raised when the database or the payload source fails during an operation."""

    pass


class DataStorageCancelledError(DataStorageIOError):
    """Raised when a database call is cancelled by its deadline."""

    pass


class BackendConstructionError(DataStorageError):
    """Raised when a backend cannot be connected or initialized."""

    pass


class SchemaError(BackendConstructionError):
    """Raised when the data table or its indexes cannot be created."""

    pass


class BackendConfigError(DataStorageError):
    """Raised when backend configuration is invalid."""

    pass


class BackendNotFoundError(DataStorageError):
    """Raised when a named backend is not found in configuration."""

    pass
