# infrastructure/transport/stream_connection.py
from __future__ import annotations

import asyncio
import ssl
from abc import abstractmethod
from typing import Optional

from application.ports.transport import Connection
from domain.exceptions import ProtocolError, ShutdownFailed
from infrastructure.transport.rate_limiter import RateLimiter


class StreamConnection(Connection):
    """Shared read/write/rate-limit code over asyncio streams."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self._reader = reader
        self._writer = writer
        self._read_limit: Optional[RateLimiter] = None
        self._write_limit: Optional[RateLimiter] = None
        self._shut_down = False

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def set_read_limit(self, bytes_per_second: int) -> None:
        self._read_limit = RateLimiter(bytes_per_second, name="recv")

    def set_write_limit(self, bytes_per_second: int) -> None:
        self._write_limit = RateLimiter(bytes_per_second, name="send")

    async def write(self, data: bytes) -> int:
        view = memoryview(data)
        try:
            while view:
                n = self._write_limit.max_chunk(len(view)) if self._write_limit else len(view)
                self._writer.write(view[:n])
                await self._writer.drain()
                if self._write_limit:
                    await self._write_limit.pace(n)
                view = view[n:]
        except (ConnectionError, ssl.SSLError) as e:
            raise ProtocolError(f"Send failure: {e}") from e
        return len(data)

    async def read(self, max_bytes: int) -> bytes:
        if self._read_limit:
            max_bytes = self._read_limit.max_chunk(max_bytes)
        try:
            data = await self._reader.read(max_bytes)
        except (ConnectionError, ssl.SSLError) as e:
            raise ProtocolError(f"Recv failure: {e}") from e
        if self._read_limit and data:
            await self._read_limit.pace(len(data))
        return data

    async def shutdown(self) -> None:
        if self._shut_down:
            return
        self._shut_down = True
        await self._close()

    @abstractmethod
    async def _close(self) -> None:
        ...


class PlainConnection(StreamConnection):
    async def _close(self) -> None:
        # closing a TCP socket has nothing to report, always a success
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError:
            pass


def _is_truncation(e: BaseException) -> bool:
    if isinstance(e, (ssl.SSLEOFError, ConnectionResetError, BrokenPipeError)):
        return True
    reason = getattr(e, "reason", None) or str(e)
    return "UNEXPECTED_EOF" in reason or "truncated" in reason.lower()


class TlsConnection(StreamConnection):
    async def _close(self) -> None:
        # close() on an SSL transport sends close_notify first
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ssl.SSLError, OSError) as e:
            if not _is_truncation(e):
                raise ShutdownFailed(f"TLS shutdown failed: {e}") from e
