# application/services/body_source.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple

from domain.message import HttpRequest


class BodySource(ABC):
    """
    Pull-based body producer. Each call fills a prefix of `buf` and
    returns (bytes_written, finished). Errors are raised, not returned.
    """

    @abstractmethod
    def read_into(self, buf: memoryview) -> Tuple[int, bool]:
        ...


class RequestBody(ABC):
    """
    Immutable body content. open() returns a fresh cursor, so the same body
    can be replayed on every redirect hop or retry.
    """

    content_type: str = "application/octet-stream"

    @abstractmethod
    def content_length(self) -> int:
        ...

    @abstractmethod
    def open(self) -> BodySource:
        ...

    def set_headers(self, request: HttpRequest) -> None:
        request.set("Content-Length", str(self.content_length()))
        request.set("Content-Type", self.content_type)


class BufferSource(BodySource):
    def __init__(self, data: bytes):
        self._data = data
        self._offset = 0

    def read_into(self, buf: memoryview) -> Tuple[int, bool]:
        n = min(len(buf), len(self._data) - self._offset)
        buf[:n] = self._data[self._offset:self._offset + n]
        self._offset += n
        return n, self._offset >= len(self._data)


class BufferBody(RequestBody):
    """A body that is one fixed buffer."""

    def __init__(self, data: bytes, content_type: str = "application/octet-stream"):
        self._data = bytes(data)
        self.content_type = content_type

    @property
    def data(self) -> bytes:
        return self._data

    def content_length(self) -> int:
        return len(self._data)

    def open(self) -> BodySource:
        return BufferSource(self._data)
