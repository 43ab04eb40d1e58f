# application/ports/http_exchange.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional, Protocol, Tuple

from application.ports.transport import Connection
from application.services.body_source import BodySource
from domain.message import HttpRequest


class ResponseHeadPort(Protocol):
    status: int
    reason: str
    http_version: str
    headers: List[Tuple[str, str]]

    def get(self, name: str) -> Optional[str]:
        ...

    def find_all(self, name: str) -> List[str]:
        ...

    @property
    def wants_close(self) -> bool:
        ...

    def raw(self) -> bytes:
        ...


class HttpExchangePort(ABC):
    """One HTTP/1.1 conversation over one Connection."""

    connection: Connection
    # set once a read returned EOF
    peer_closed: bool = False

    @abstractmethod
    async def send(self, request: HttpRequest, body: Optional[BodySource] = None) -> None:
        ...

    @abstractmethod
    async def read_head(self) -> ResponseHeadPort:
        ...

    @abstractmethod
    def iter_body(self) -> AsyncIterator[bytes]:
        ...

    @abstractmethod
    async def discard_body(self) -> None:
        ...

    @abstractmethod
    def start_next_cycle(self) -> None:
        ...


class ExchangeFactoryPort(Protocol):
    def __call__(
        self,
        connection: Connection,
        decode_content: bool = False,
        max_body: Optional[int] = None,
    ) -> HttpExchangePort:
        ...
