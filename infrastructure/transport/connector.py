# infrastructure/transport/connector.py
from __future__ import annotations

import asyncio
import socket
import ssl
from typing import Optional, Tuple
from urllib.parse import SplitResult, unquote

import h11

from application.ports.logger import LoggerPort
from application.ports.transport import Connection, ConnectorPort
from application.services.request_builder import basic_auth
from domain import url as urls
from domain.exceptions import ConnectFailed, ConnectTimeout, ProtocolError
from infrastructure.transport.stream_connection import PlainConnection, TlsConnection

TUNNEL_READ_SIZE = 16 * 1024


def create_ssl_context(insecure: bool = False, cacert: Optional[str] = None) -> ssl.SSLContext:
    ctx = ssl.create_default_context(cafile=cacert)
    if insecure:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _classify(e: BaseException) -> str:
    if isinstance(e, socket.gaierror):
        return "dns"
    if isinstance(e, ConnectionRefusedError):
        return "refused"
    if isinstance(e, ssl.SSLError):
        return "tls"
    return "connect"


class AsyncioConnector(ConnectorPort):
    """
    Opens plain or TLS connections with asyncio streams, optionally through
    an HTTP proxy (absolute-form for http, CONNECT tunnel for https).
    """

    def __init__(
        self,
        logger: LoggerPort,
        ssl_context: Optional[ssl.SSLContext] = None,
        connect_timeout_sec: Optional[float] = None,
        proxy: Optional[str] = None,
    ):
        self._logger = logger
        self._ssl = ssl_context or create_ssl_context()
        self._timeout = connect_timeout_sec
        self._proxy = urls.parse_url(proxy) if proxy else None

    async def connect(self, url: SplitResult) -> Connection:
        try:
            return await asyncio.wait_for(self._connect(url), self._timeout)
        except asyncio.TimeoutError as e:
            raise ConnectTimeout(f"Connection timed out: {urls.host_header(url)}") from e

    async def _connect(self, url: SplitResult) -> Connection:
        host = url.hostname or ""
        port = urls.port_of(url)
        tls = url.scheme == "https"

        if self._proxy is None:
            self._logger.debug("connection.open", host=host, port=port, tls=tls)
            reader, writer = await self._open(host, port, self._ssl if tls else None, host if tls else None)
        else:
            phost = self._proxy.hostname or ""
            pport = urls.port_of(self._proxy)
            self._logger.debug("connection.open", host=host, port=port, tls=tls, proxy=f"{phost}:{pport}")
            reader, writer = await self._open(phost, pport, None, None)
            if tls:
                await self._tunnel(reader, writer, host, port)
                try:
                    await writer.start_tls(self._ssl, server_hostname=host)
                except (ssl.SSLError, OSError) as e:
                    writer.close()
                    raise ConnectFailed(f"TLS handshake failed: {e}", category="tls") from e

        if tls:
            return TlsConnection(reader, writer)
        return PlainConnection(reader, writer)

    async def _open(
        self,
        host: str,
        port: int,
        ctx: Optional[ssl.SSLContext],
        server_hostname: Optional[str],
    ) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        try:
            return await asyncio.open_connection(host, port, ssl=ctx, server_hostname=server_hostname)
        except asyncio.TimeoutError:
            raise
        except (OSError, ssl.SSLError) as e:
            category = _classify(e)
            raise ConnectFailed(f"Failed to connect to {host} port {port}: {e}", category=category) from e

    async def _tunnel(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        host: str,
        port: int,
    ) -> None:
        authority = f"{host}:{port}"
        headers = [("Host", authority)]
        proxy_user = urls.userinfo(self._proxy) if self._proxy else ""
        if proxy_user:
            headers.append(("Proxy-Authorization", basic_auth(unquote(proxy_user))))

        conn = h11.Connection(our_role=h11.CLIENT)
        writer.write(conn.send(h11.Request(method="CONNECT", target=authority, headers=headers)))
        writer.write(conn.send(h11.EndOfMessage()))
        await writer.drain()

        while True:
            try:
                event = conn.next_event()
                if event is h11.NEED_DATA:
                    conn.receive_data(await reader.read(TUNNEL_READ_SIZE))
                    continue
            except h11.RemoteProtocolError as e:
                writer.close()
                raise ProtocolError(f"Bad proxy response: {e}") from e
            if isinstance(event, h11.Response):
                if 200 <= event.status_code < 300:
                    return
                writer.close()
                raise ConnectFailed(f"Proxy CONNECT aborted: {event.status_code}", category="connect")
            if isinstance(event, h11.ConnectionClosed):
                writer.close()
                raise ProtocolError("Proxy closed the connection during CONNECT")
