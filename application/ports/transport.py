# application/ports/transport.py
from __future__ import annotations

from abc import ABC, abstractmethod
from urllib.parse import SplitResult


class Connection(ABC):
    """
    An open bidirectional byte stream, plain or TLS.

    At most one read and one write may be in flight at a time, and
    shutdown() is attempted at most once.
    """

    @abstractmethod
    async def write(self, data: bytes) -> int:
        ...

    @abstractmethod
    async def read(self, max_bytes: int) -> bytes:
        """Return up to max_bytes; b"" means the peer closed the stream."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """
        Close the stream. Raises ShutdownFailed for anything other than a
        truncated close by the peer.
        """
        ...

    @abstractmethod
    def set_read_limit(self, bytes_per_second: int) -> None:
        ...

    @abstractmethod
    def set_write_limit(self, bytes_per_second: int) -> None:
        ...

    @property
    @abstractmethod
    def is_shut_down(self) -> bool:
        ...


class ConnectorPort(ABC):
    @abstractmethod
    async def connect(self, url: SplitResult) -> Connection:
        """
        Open a connection suitable for `url`: TLS with SNI for https,
        plain otherwise. Raises ConnectFailed or ConnectTimeout.
        """
        ...
