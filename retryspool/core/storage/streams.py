"""Stream adapters over whole-value payload storage.

The database only reads and writes complete rows, so both adapters hold the
whole payload in memory: the reader serves an already fetched value in
pieces, the writer collects writes and stores them in one call on close.
Payloads must therefore fit in memory.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

from retryspool.core.storage.data import WriterClosedError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class BufferedDataReader:
    """Forward-only, single-pass reader over a fetched payload.

    Once the end is reached every further read returns ``b""``. The reader
    cannot be rewound; fetch the payload again to read it twice.
    """

    def __init__(self, data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._data = memoryview(data)
        self._offset = 0
        self._chunk_size = chunk_size
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed reader")

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes, or everything left if ``size`` is negative or None."""
        self._check_open()
        remaining = len(self._data) - self._offset
        if remaining <= 0:
            return b""

        if size is None or size < 0 or size > remaining:
            size = remaining

        chunk = self._data[self._offset : self._offset + size].tobytes()
        self._offset += size
        return chunk

    def readinto(self, buffer) -> int:
        """Read into a pre-allocated writable buffer; returns the byte count."""
        self._check_open()
        target = memoryview(buffer).cast("B")
        n = min(len(target), len(self._data) - self._offset)
        if n <= 0:
            return 0

        target[:n] = self._data[self._offset : self._offset + n]
        self._offset += n
        return n

    def __iter__(self) -> Iterator[bytes]:
        while chunk := self.read(self._chunk_size):
            yield chunk

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._data.release()

    def __enter__(self) -> BufferedDataReader:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class BufferedDataWriter:
    """Write stream that stores its collected bytes in one call on close.

    Nothing is stored before :meth:`close`. Closing a writer that never
    received data stores nothing. Not safe for concurrent use.
    """

    def __init__(self, commit: Callable[[bytes], int], message_id: str | None = None):
        """Initialize the writer.

        Args:
            commit: Called once on close with the collected payload
            message_id: Message ID, used for error and log messages only
        """
        self._commit = commit
        self._message_id = message_id
        self._buffer = bytearray()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        """Append bytes to the pending payload.

        Raises:
            WriterClosedError: If the writer was already closed
        """
        if self._closed:
            raise WriterClosedError(f"writer for message {self._message_id} is closed")

        view = memoryview(data)
        self._buffer.extend(view)
        return view.nbytes

    def flush(self) -> None:
        # Data only leaves the buffer on close.
        pass

    def close(self) -> None:
        """Store the collected payload. Further calls do nothing.

        The writer counts as closed even when the store fails; the failure is
        raised to the caller.
        """
        if self._closed:
            return
        self._closed = True

        if not self._buffer:
            logger.debug(f"Closed empty writer for message {self._message_id}")
            return

        payload = bytes(self._buffer)
        self._buffer = bytearray()
        self._commit(payload)

    def abort(self) -> None:
        """Close the writer and discard the collected bytes."""
        self._closed = True
        self._buffer = bytearray()

    def __enter__(self) -> BufferedDataWriter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()
