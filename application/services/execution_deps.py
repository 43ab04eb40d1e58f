# application/services/execution_deps.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Optional

from application.ports.logger import LoggerPort
from application.ports.http_exchange import ExchangeFactoryPort
from application.ports.output import OutputFactoryPort, OutputSink
from application.ports.transport import ConnectorPort
from domain.cookie_jar import CookieJar


@dataclass(frozen=True)
class OperationDeps:
    """
    Resources shared by every operation of one invocation. Passed
    explicitly; nothing here is a module level singleton.
    """
    connector: ConnectorPort
    exchange_factory: ExchangeFactoryPort
    outputs: OutputFactoryPort
    logger: LoggerPort
    cookie_jar: Optional[CookieJar] = None
    # single writer for the jar when operations run as parallel tasks
    jar_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    header_output: Optional[OutputSink] = None
    default_credentials: Optional[str] = None

    def with_logger(self, logger: LoggerPort) -> "OperationDeps":
        return replace(self, logger=logger)
