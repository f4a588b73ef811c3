"""PostgreSQL backend implementation for message data storage."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from functools import partial
from typing import BinaryIO

from sqlalchemy import Table, case, delete, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from retryspool.core.storage.data import (
    BackendConstructionError,
    DataNotFoundError,
    DataRecordInfo,
    DataStorageBackend,
    DataStorageCancelledError,
    DataStorageError,
    DataStorageIOError,
)
from retryspool.core.storage.streams import BufferedDataReader, BufferedDataWriter

logger = logging.getLogger(__name__)

# Dialects with an INSERT ... ON CONFLICT DO UPDATE construct
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# SQLSTATE query_canceled, raised when statement_timeout expires
QUERY_CANCELED = "57014"

READ_CHUNK_SIZE = 8192


class PostgresDataBackend(DataStorageBackend):
    """Relational implementation of message data storage.

    Each message is one row holding the whole payload, its size and its
    created/updated timestamps. Storing is a single upsert; reading and
    writing streams go through in-memory buffers.
    """

    def __init__(self, engine: Engine, table: Table):
        """Initialize the backend.

        Use :class:`PostgresDataFactory` or :func:`create_backend` rather than
        calling this directly; they check connectivity and create the table.

        Args:
            engine: Engine with a configured connection pool
            table: Data table, as returned by ``ensure_schema``
        """
        dialect = engine.dialect.name
        if dialect not in UPSERT_INSERTS:
            raise BackendConstructionError(f"Unsupported database dialect: {dialect}")

        self._engine = engine
        self._table = table
        self._insert = UPSERT_INSERTS[dialect]
        self._closed = False

    @property
    def table_name(self) -> str:
        return self._table.name

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise DataStorageError("backend is closed")

    @contextmanager
    def _transaction(self, timeout: float | None) -> Iterator[Connection]:
        """Open a transaction, applying the statement deadline if given."""
        self._check_open()
        with self._engine.begin() as conn:
            if timeout is not None and conn.dialect.name == "postgresql":
                timeout_ms = max(1, int(timeout * 1000))
                conn.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
            yield conn

    @staticmethod
    def _io_error(action: str, message_id: str, error: Exception) -> DataStorageIOError:
        """Translate a driver error into the matching storage error."""
        orig = getattr(error, "orig", None)
        sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if sqlstate == QUERY_CANCELED:
            return DataStorageCancelledError(
                f"{action} for message {message_id} was cancelled: {error}"
            )
        return DataStorageIOError(f"Failed to {action} for message {message_id}: {error}")

    @staticmethod
    def _read_payload(message_id: str, data: bytes | BinaryIO) -> bytes:
        """Read the whole payload into memory."""
        if isinstance(data, bytes | bytearray | memoryview):
            return bytes(data)

        if not hasattr(data, "read"):
            raise DataStorageError(f"Invalid data type for message {message_id}")

        chunks = []
        try:
            while chunk := data.read(READ_CHUNK_SIZE):
                if not isinstance(chunk, bytes | bytearray | memoryview):
                    raise DataStorageIOError(
                        f"Failed to read data for message {message_id}: "
                        f"stream returned {type(chunk).__name__}, not bytes"
                    )
                chunks.append(chunk)
        except (OSError, ValueError) as e:
            raise DataStorageIOError(f"Failed to read data for message {message_id}: {e}") from e

        return b"".join(chunks)

    def store_data(
        self, message_id: str, data: bytes | BinaryIO, *, timeout: float | None = None
    ) -> int:
        """Store a payload, inserting a row or overwriting data, size and updated."""
        self._check_open()
        payload = self._read_payload(message_id, data)
        size = len(payload)
        now = datetime.now(UTC)

        stmt = self._insert(self._table).values(
            message_id=message_id,
            data=payload,
            size=size,
            created=now,
            updated=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["message_id"],
            set_={
                "data": stmt.excluded["data"],
                "size": stmt.excluded["size"],
                # Never let a lagging client clock move updated before created
                "updated": case(
                    (stmt.excluded["updated"] < self._table.c.created, self._table.c.created),
                    else_=stmt.excluded["updated"],
                ),
            },
        )

        try:
            with self._transaction(timeout) as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            raise self._io_error("store data", message_id, e) from e

        logger.info(f"Stored data for message {message_id} ({size} bytes)")
        return size

    def get_data(self, message_id: str, *, timeout: float | None = None) -> bytes:
        """Fetch the full payload of a message."""
        stmt = select(self._table.c.data).where(self._table.c.message_id == message_id)

        try:
            with self._transaction(timeout) as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            raise self._io_error("get data", message_id, e) from e

        if row is None:
            raise DataNotFoundError(message_id)

        return bytes(row[0])

    def get_data_reader(
        self, message_id: str, *, timeout: float | None = None
    ) -> BufferedDataReader:
        """Fetch a payload and return a reader over it."""
        return BufferedDataReader(self.get_data(message_id, timeout=timeout))

    def get_data_writer(
        self, message_id: str, *, timeout: float | None = None
    ) -> BufferedDataWriter:
        """Return a writer that stores its payload under ``message_id`` on close."""
        self._check_open()
        return BufferedDataWriter(
            partial(self.store_data, message_id, timeout=timeout), message_id=message_id
        )

    def delete_data(self, message_id: str, *, timeout: float | None = None) -> None:
        """Delete the row of a message."""
        stmt = delete(self._table).where(self._table.c.message_id == message_id)

        try:
            with self._transaction(timeout) as conn:
                result = conn.execute(stmt)
        except SQLAlchemyError as e:
            raise self._io_error("delete data", message_id, e) from e

        if result.rowcount == 0:
            raise DataNotFoundError(message_id)

        logger.info(f"Deleted data for message {message_id}")

    def exists(self, message_id: str, *, timeout: float | None = None) -> bool:
        stmt = select(self._table.c.message_id).where(self._table.c.message_id == message_id)

        try:
            with self._transaction(timeout) as conn:
                return conn.execute(stmt).first() is not None
        except SQLAlchemyError as e:
            raise self._io_error("check data", message_id, e) from e

    def get_metadata(
        self, message_id: str, *, timeout: float | None = None
    ) -> DataRecordInfo:
        """Get size and timestamps of a stored payload."""
        t = self._table
        stmt = select(t.c.message_id, t.c.size, t.c.created, t.c.updated).where(
            t.c.message_id == message_id
        )

        try:
            with self._transaction(timeout) as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as e:
            raise self._io_error("get metadata", message_id, e) from e

        if row is None:
            raise DataNotFoundError(message_id)

        return DataRecordInfo(
            message_id=row["message_id"],
            size=row["size"],
            created=row["created"],
            updated=row["updated"],
        )

    def close(self) -> None:
        """Dispose of the connection pool."""
        if self._closed:
            return
        self._closed = True
        self._engine.dispose()
        logger.info(f"Closed data backend for table {self.table_name}")
