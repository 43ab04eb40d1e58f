# infrastructure/logging/log_setup.py
import sys

from loguru import logger

LOG_FORMAT = "<level>{level: <7}</level> {message} {extra}"


def setup_console_logging(level: str = "INFO") -> None:
    # stdout carries the response body, logs go to stderr
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT, colorize=None)


def level_for(verbose: bool, silent: bool) -> str:
    if silent:
        return "ERROR"
    if verbose:
        return "DEBUG"
    return "INFO"
