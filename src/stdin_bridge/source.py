"""Asynchronous access to a blocking binary input stream.

Reads happen on daemon threads, one chunk at a time. A chunk that finished
while nobody was awaiting it stays pending and is handed to the next reader,
so giving up on a wait never drops input.
"""

import asyncio
import concurrent.futures
import logging
import sys
import threading
from typing import BinaryIO

from .exceptions import StdinUnavailableError

logger = logging.getLogger(__name__)


class StdinSource:
    """Chunked async reader over a binary stream (default: process stdin)."""

    DEFAULT_CHUNK_SIZE = 64 * 1024

    def __init__(self, stream: BinaryIO | None = None, chunk_size: int | None = None) -> None:
        """
        Args:
            stream: Binary stream to read; resolved to ``sys.stdin.buffer`` on first use when None
            chunk_size: Maximum bytes per read (default 64 KiB)
        """
        self._stream = stream
        self.chunk_size = chunk_size or self.DEFAULT_CHUNK_SIZE
        self._pending: concurrent.futures.Future[bytes] | None = None
        self._lock = threading.Lock()
        self._eof = False

    @property
    def stream(self) -> BinaryIO:
        if self._stream is None:
            stdin = sys.stdin
            if stdin is None:
                raise StdinUnavailableError("Unable to read stdin without a terminal or console attached.")
            self._stream = stdin.buffer
        return self._stream

    @property
    def at_eof(self) -> bool:
        return self._eof

    def _read_chunk(self) -> bytes:
        stream = self.stream
        read1 = getattr(stream, "read1", None)
        if read1 is not None:
            return read1(self.chunk_size)
        return stream.read(self.chunk_size)

    def _worker(self, future: "concurrent.futures.Future[bytes]") -> None:
        try:
            data = self._read_chunk()
        except Exception as e:
            logger.debug(f"Reading stdin failed: {e}")
            future.set_exception(e)
        else:
            future.set_result(data)

    def _next_chunk(self) -> "concurrent.futures.Future[bytes]":
        with self._lock:
            if self._pending is None:
                future: concurrent.futures.Future[bytes] = concurrent.futures.Future()
                # Running futures cannot be cancelled by an abandoned waiter
                future.set_running_or_notify_cancel()
                self._pending = future
                threading.Thread(target=self._worker, args=(future,), name="stdin-reader", daemon=True).start()
            return self._pending

    def _take(self, future: "concurrent.futures.Future[bytes]") -> None:
        with self._lock:
            if self._pending is future:
                self._pending = None

    async def read(self) -> bytes:
        """Read the next chunk. Returns b"" at end of input.

        Raises:
            OSError: Whatever the underlying stream raised
        """
        if self._eof:
            return b""

        future = self._next_chunk()
        try:
            chunk = await asyncio.wrap_future(future)
        finally:
            if future.done():
                self._take(future)

        if not chunk:
            self._eof = True
        return chunk

    async def wait_for_data(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for a chunk without consuming it.

        Returns:
            True if data is available, False on timeout, end of input or read error
        """
        if self._eof:
            return False

        future = self._next_chunk()
        waiter = asyncio.wrap_future(future)
        done, _ = await asyncio.wait({waiter}, timeout=timeout)
        if not done:
            # Stop listening; the read itself stays pending for the next reader
            waiter.cancel()
            return False
        if waiter.exception() is not None:
            return False
        return bool(waiter.result())
