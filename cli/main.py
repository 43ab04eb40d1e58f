#!/usr/bin/env python3
"""
webfetch command line entry point.

Usage:
  webfetch [options] URL [URL ...]

Examples:
  webfetch -L https://example.com/
  webfetch -d name=value -o out.html http://localhost:8000/form
  webfetch -F file=@report.pdf --retry 3 https://example.com/upload
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from application.executor.fetch_executor import ExecutionResult, FetchExecutor
from application.ports.output import OutputSink
from application.services.execution_deps import OperationDeps
from cli.options import CliOptions, parse_options
from domain.config import OperationConfig
from domain.cookie_jar import CookieJar
from domain.exceptions import FetchError
from infrastructure.cookies.netscape_cookie_file import load_jar_file, save_jar_file
from infrastructure.http.h11_exchange import H11Exchange
from infrastructure.io.output_sink import OutputFactory
from infrastructure.logging.log_setup import level_for, setup_console_logging
from infrastructure.logging.loguru_logger import LoguruLogger
from infrastructure.transport.connector import AsyncioConnector, create_ssl_context


def _build_jar(config: OperationConfig, logger: LoguruLogger) -> Optional[CookieJar]:
    if not config.enable_cookies:
        return None
    jar = CookieJar()
    for path in config.cookie_files:
        count = load_jar_file(jar, path)
        logger.debug("cookie.loaded", path=path, count=count)
    if config.cookie_session:
        jar.clear_session_cookies()
    return jar


async def _run(options: CliOptions) -> ExecutionResult:
    config = options.config
    logger = LoguruLogger()
    outputs = OutputFactory()

    connector = AsyncioConnector(
        logger,
        ssl_context=create_ssl_context(insecure=config.insecure, cacert=config.cacert),
        connect_timeout_sec=config.connect_timeout_sec,
        proxy=config.proxy,
    )
    jar = _build_jar(config, logger)

    header_output: Optional[OutputSink] = None
    if config.header_file:
        header_output = outputs.open(Path(config.header_file), create_dirs=config.create_dirs)

    deps = OperationDeps(
        connector=connector,
        exchange_factory=H11Exchange,
        outputs=outputs,
        logger=logger,
        cookie_jar=jar,
        header_output=header_output,
        default_credentials=options.default_credentials,
    )
    try:
        result = await FetchExecutor(config, deps).execute()
    finally:
        if header_output is not None:
            header_output.close()

    if jar is not None and config.cookie_jar_path:
        save_jar_file(jar, config.cookie_jar_path)
        logger.debug("cookie.saved", path=config.cookie_jar_path, count=len(jar))
    return result


def run(argv: Optional[List[str]] = None) -> int:
    try:
        options = parse_options(argv)
    except FetchError as exc:
        print(f"webfetch: {exc}", file=sys.stderr)
        return 1

    setup_console_logging(level=level_for(options.verbose, options.silent))

    try:
        asyncio.run(_run(options))
    except FetchError as exc:
        print(f"webfetch: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
