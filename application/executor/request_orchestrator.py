# application/executor/request_orchestrator.py
from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Optional
from urllib.parse import SplitResult, unquote

from application.ports.http_exchange import HttpExchangePort, ResponseHeadPort
from application.ports.logger import LoggerPort
from application.ports.output import OutputSink
from application.services.execution_deps import OperationDeps
from application.services.redactor import mask_headers
from application.services.redirect_resolver import (
    RedirectContext,
    RedirectResolver,
    can_reuse_connection,
)
from application.services.request_builder import RequestBuilder
from domain import url as urls
from domain.config import OperationConfig, RequestInfo
from domain.cookie_jar import merge_cookie_fields
from domain.exceptions import BinaryOutputError, HttpStatusError, OperationCancelled, ShutdownFailed
from domain.message import HttpRequest

SHUTDOWN_GRACE_SEC = 0.5
DEFAULT_REMOTE_NAME = "webfetch_response"

_DISPOSITION_FILENAME = re.compile(
    r"""filename\*?\s*=\s*(?:[\w-]+'[\w-]*')?(?:"([^"]*)"|([^;\s]+))""",
    re.IGNORECASE,
)


def filename_from_content_disposition(value: str) -> Optional[str]:
    m = _DISPOSITION_FILENAME.search(value)
    if not m:
        return None
    name = unquote(m.group(1) if m.group(1) is not None else m.group(2))
    # never let the server pick a directory
    name = name.replace("\\", "/").rsplit("/", 1)[-1]
    return name or None


class RequestOrchestrator:
    """
    Runs one operation: connect, send, follow redirects (reusing the
    connection when allowed), stream the final body to the output and shut
    the connection down.
    """

    def __init__(self, config: OperationConfig, deps: OperationDeps):
        self._config = config
        self._deps = deps
        self._builder = RequestBuilder(config, deps.default_credentials)
        self._resolver = RedirectResolver(config)
        self._explicit_cookies = config.explicit_cookies()

    async def run(self, info: RequestInfo) -> int:
        """perform() bounded by the overall operation timeout."""
        if self._config.max_time_sec is None:
            return await self.perform(info)
        try:
            return await asyncio.wait_for(self.perform(info), self._config.max_time_sec)
        except asyncio.TimeoutError as e:
            raise OperationCancelled(
                f"Operation timed out after {self._config.max_time_sec:g} seconds"
            ) from e

    async def perform(self, info: RequestInfo) -> int:
        config = self._config
        url = urls.append_query(urls.parse_url(info.url), config.query)
        request = self._builder.build(url)
        log = self._deps.logger.bind(url=urls.to_string(urls.strip_userinfo(url)))
        output = self._deps.outputs.open(self._output_path(info, url), create_dirs=config.create_dirs)

        exchange: Optional[HttpExchangePort] = None
        try:
            exchange = await self._connect(url, log)
            ctx = self._resolver.start(url)

            while True:
                await self._set_cookies(request, ctx)
                log.info(
                    "http.request",
                    method=request.method,
                    target=request.target,
                    headers=mask_headers(request.header_items()),
                )
                await exchange.send(request, request.body.open() if request.body else None)
                head = await exchange.read_head()
                log.info("http.response", status=head.status, version=head.http_version)

                await self._extract_cookies(head, ctx.url, log)
                self._echo_headers(head, output)

                decision = self._resolver.decide(head)
                if not decision.is_redirect:
                    break

                target = self._resolver.next_url(ctx, head)
                reuse = can_reuse_connection(head, ctx.url, target)
                if reuse:
                    await exchange.discard_body()
                    # a close-delimited body leaves nothing to reuse
                    reuse = not exchange.peer_closed
                if reuse:
                    exchange.start_next_cycle()
                    log.debug("connection.reuse", origin=urls.origin(target))
                else:
                    await self._shutdown(exchange, log, surface=False)
                    exchange = await self._connect(target, log)

                log.info(
                    "redirect.follow",
                    status=head.status,
                    location=urls.to_string(urls.strip_userinfo(target)),
                    method_change=decision.change_method,
                )
                self._resolver.apply(ctx, request, target, decision)

            status = head.status
            if config.fail_on_error and status >= 400:
                raise HttpStatusError(status)

            output = self._apply_content_disposition(info, head, output)

            if request.method != "HEAD":
                await self._stream_body(exchange, output)

            await self._shutdown(exchange, log, surface=True)

            if config.fail_with_body and status >= 400:
                raise HttpStatusError(status)
            return status

        except BaseException:
            # covers cancellation too; the shutdown is still attempted
            if exchange is not None:
                await self._shutdown(exchange, log, surface=False)
            if config.remove_on_error:
                output.remove_file()
            raise
        finally:
            output.close()

    def _output_path(self, info: RequestInfo, url: SplitResult) -> Optional[Path]:
        if info.remote_name:
            name = unquote(urls.last_segment(url)) or DEFAULT_REMOTE_NAME
            return self._config.output_dir / name
        if info.output in ("-", "%"):
            return Path(info.output)
        if info.output:
            return self._config.output_dir / info.output
        return None

    async def _connect(self, url: SplitResult, log: LoggerPort) -> HttpExchangePort:
        config = self._config
        connection = await self._deps.connector.connect(url)
        if config.recv_per_second:
            connection.set_read_limit(config.recv_per_second)
        if config.send_per_second:
            connection.set_write_limit(config.send_per_second)
        log.debug("connection.open", origin=urls.origin(url))
        return self._deps.exchange_factory(
            connection,
            decode_content=config.compressed,
            max_body=config.max_filesize,
        )

    async def _shutdown(self, exchange: HttpExchangePort, log: LoggerPort, surface: bool) -> None:
        connection = exchange.connection
        if connection.is_shut_down:
            return
        try:
            await asyncio.wait_for(connection.shutdown(), SHUTDOWN_GRACE_SEC)
        except asyncio.TimeoutError:
            log.debug("connection.shutdown_timeout")
        except ShutdownFailed as e:
            if surface:
                raise
            log.debug("connection.shutdown_failed", error=str(e))

    async def _set_cookies(self, request: HttpRequest, ctx: RedirectContext) -> None:
        jar_field = ""
        if self._deps.cookie_jar is not None:
            async with self._deps.jar_lock:
                jar_field = self._deps.cookie_jar.make_field(ctx.url)

        value = merge_cookie_fields(jar_field, self._explicit_cookies if ctx.trusted else "")
        request.erase("Cookie")
        if value:
            request.set("Cookie", value)

    async def _extract_cookies(self, head: ResponseHeadPort, url: SplitResult, log: LoggerPort) -> None:
        jar = self._deps.cookie_jar
        if jar is None:
            return
        async with self._deps.jar_lock:
            for line in head.find_all("Set-Cookie"):
                if not jar.add_set_cookie(url, line):
                    log.debug("cookie.rejected", host=url.hostname)

    def _echo_headers(self, head: ResponseHeadPort, output: OutputSink) -> None:
        if self._config.show_headers:
            output.write(head.raw())
        if self._deps.header_output is not None:
            self._deps.header_output.write(head.raw())

    def _apply_content_disposition(
        self,
        info: RequestInfo,
        head: ResponseHeadPort,
        output: OutputSink,
    ) -> OutputSink:
        if not (self._config.content_disposition and info.remote_name):
            return output
        for value in head.find_all("Content-Disposition"):
            filename = filename_from_content_disposition(value)
            if filename is None:
                continue
            output.remove_file()
            return self._deps.outputs.open(
                self._config.output_dir / filename,
                create_dirs=self._config.create_dirs,
            )
        return output

    async def _stream_body(self, exchange: HttpExchangePort, output: OutputSink) -> None:
        async for chunk in exchange.iter_body():
            if output.is_tty and b"\x00" in chunk:
                raise BinaryOutputError()
            output.write(chunk)
