# domain/exceptions.py
from __future__ import annotations

from typing import Optional


class FetchError(Exception):
    """Base class for every failure an operation can surface."""


# ---------- transport level (seen by the retry controller) ----------

class TransportError(FetchError):
    pass


class ConnectFailed(TransportError):
    """
    category: "dns" | "refused" | "tls" | "connect"
    """

    def __init__(self, message: str, category: str = "connect"):
        super().__init__(message)
        self.category = category


class ProtocolError(TransportError):
    pass


class ShutdownFailed(TransportError):
    pass


class OperationCancelled(TransportError):
    pass


class ConnectTimeout(OperationCancelled):
    pass


# ---------- application level (never retried) ----------

class ApplicationError(FetchError):
    pass


class ConfigError(ApplicationError):
    pass


class InvalidUrl(ApplicationError):
    pass


class TooManyRedirects(ApplicationError):
    pass


class UnsupportedProtocol(ApplicationError):
    pass


class CredentialsInUrl(ApplicationError):
    pass


class BadRedirect(ApplicationError):
    pass


class FileSizeExceeded(ApplicationError):
    pass


class HttpStatusError(ApplicationError):
    def __init__(self, status: int, message: Optional[str] = None):
        super().__init__(message or f"The requested URL returned error: {status}")
        self.status = status


# ---------- body / output ----------

class EncoderError(FetchError):
    pass


class BinaryOutputError(FetchError):
    def __init__(self) -> None:
        super().__init__(
            "Binary output can mess up your terminal.\n"
            'Use "--output -" to tell webfetch to output it to your terminal anyway, or\n'
            'consider "--output <FILE>" to save to a file.'
        )
