# infrastructure/http/h11_exchange.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import AsyncIterator, Deque, List, Optional, Tuple

import h11

from application.ports.http_exchange import HttpExchangePort
from application.ports.transport import Connection
from application.services.body_source import BodySource
from domain.exceptions import FileSizeExceeded, ProtocolError
from domain.message import HttpRequest
from infrastructure.http.content_decoder import ContentDecoder, decoder_for

READ_SIZE = 64 * 1024
SEND_CHUNK = 64 * 1024


@dataclass(frozen=True)
class ResponseHead:
    status: int
    reason: str
    http_version: str
    headers: List[Tuple[str, str]]

    def get(self, name: str) -> Optional[str]:
        name = name.lower()
        for k, v in self.headers:
            if k.lower() == name:
                return v
        return None

    def find_all(self, name: str) -> List[str]:
        name = name.lower()
        return [v for k, v in self.headers if k.lower() == name]

    @property
    def wants_close(self) -> bool:
        for value in self.find_all("Connection"):
            if "close" in (t.strip().lower() for t in value.split(",")):
                return True
        return False

    def raw(self) -> bytes:
        lines = [f"HTTP/{self.http_version} {self.status} {self.reason}".rstrip()]
        lines += [f"{k}: {v}" for k, v in self.headers]
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1", errors="replace")


def _to_head(event: h11.Response) -> ResponseHead:
    return ResponseHead(
        status=event.status_code,
        reason=event.reason.decode("latin-1"),
        http_version=event.http_version.decode("ascii"),
        headers=[
            (k.decode("latin-1"), v.decode("latin-1"))
            for k, v in event.headers.raw_items()
        ],
    )


class H11Exchange(HttpExchangePort):
    """
    HTTP/1.1 request/response exchange over one Connection, backed by h11.

    Strictly half duplex: send() writes the whole request, read_head()
    waits for the status line and headers, then the body is pulled with
    pull_body()/consume()/read_some() (or iter_body()).
    """

    def __init__(
        self,
        connection: Connection,
        decode_content: bool = False,
        max_body: Optional[int] = None,
        read_size: int = READ_SIZE,
        send_chunk: int = SEND_CHUNK,
    ):
        self.connection = connection
        self._h11 = h11.Connection(our_role=h11.CLIENT)
        self._decode_content = decode_content
        self._max_body = max_body
        self._read_size = read_size
        self._send_chunk = send_chunk
        self.peer_closed = False
        self._reset()

    def _reset(self) -> None:
        self._pending: Deque[bytes] = deque()
        self._complete = False
        self._head: Optional[ResponseHead] = None
        self._decoder: Optional[ContentDecoder] = None
        self._received = 0

    async def _send_event(self, event: object) -> None:
        try:
            data = self._h11.send(event)
        except h11.LocalProtocolError as e:
            raise ProtocolError(f"Failed to send request: {e}") from e
        if data:
            await self.connection.write(data)

    async def send(self, request: HttpRequest, body: Optional[BodySource] = None) -> None:
        await self._send_event(
            h11.Request(
                method=request.method,
                target=request.target,
                headers=list(request.header_items()),
            )
        )
        if body is not None:
            buf = bytearray(self._send_chunk)
            view = memoryview(buf)
            finished = False
            while not finished:
                n, finished = body.read_into(view)
                if n:
                    await self._send_event(h11.Data(data=bytes(view[:n])))
        await self._send_event(h11.EndOfMessage())

    async def _next_event(self) -> object:
        while True:
            try:
                event = self._h11.next_event()
            except h11.RemoteProtocolError as e:
                raise ProtocolError(f"Malformed response: {e}") from e

            if event is h11.NEED_DATA:
                data = await self.connection.read(self._read_size)
                if not data:
                    self.peer_closed = True
                self._h11.receive_data(data)
                continue
            if isinstance(event, h11.ConnectionClosed):
                raise ProtocolError("Connection closed prematurely")
            return event

    async def read_head(self) -> ResponseHead:
        while True:
            event = await self._next_event()
            if isinstance(event, h11.InformationalResponse):
                continue
            if isinstance(event, h11.Response):
                break
            raise ProtocolError(f"Unexpected event before response head: {type(event).__name__}")

        self._head = _to_head(event)
        if self._decode_content:
            self._decoder = decoder_for(self._head.get("Content-Encoding"))

        declared = self._head.get("Content-Length")
        if self._max_body is not None and declared and declared.isdigit():
            if int(declared) > self._max_body:
                raise FileSizeExceeded("Maximum file size exceeded")
        return self._head

    def pull_body(self) -> List[bytes]:
        return list(self._pending)

    def consume(self, n: int) -> None:
        while n > 0 and self._pending:
            chunk = self._pending[0]
            if len(chunk) <= n:
                n -= len(chunk)
                self._pending.popleft()
            else:
                self._pending[0] = chunk[n:]
                n = 0

    def is_complete(self) -> bool:
        return self._complete and not self._pending

    async def read_some(self) -> None:
        if self._complete:
            return
        event = await self._next_event()
        if isinstance(event, h11.Data):
            self._push(self._decoder.decode(event.data) if self._decoder else bytes(event.data))
        elif isinstance(event, h11.EndOfMessage):
            if self._decoder:
                self._push(self._decoder.flush())
            self._complete = True

    def _push(self, data: bytes) -> None:
        if not data:
            return
        self._received += len(data)
        if self._max_body is not None and self._received > self._max_body:
            raise FileSizeExceeded("Maximum file size exceeded")
        self._pending.append(data)

    async def iter_body(self) -> AsyncIterator[bytes]:
        while True:
            for chunk in self.pull_body():
                yield chunk
                self.consume(len(chunk))
            if self.is_complete():
                return
            await self.read_some()

    async def discard_body(self) -> None:
        async for _ in self.iter_body():
            pass

    def start_next_cycle(self) -> None:
        """Prepare the same connection for another request/response."""
        try:
            self._h11.start_next_cycle()
        except h11.LocalProtocolError as e:
            raise ProtocolError(f"Connection cannot be reused: {e}") from e
        self._reset()
