# application/services/urlencoded_form.py
from __future__ import annotations

from typing import BinaryIO, Optional
from urllib.parse import quote_plus

from application.services.body_source import BodySource, BufferSource, RequestBody
from domain.exceptions import EncoderError

CHUNK_SIZE = 64 * 1024


class UrlEncodedForm(RequestBody):
    """
    application/x-www-form-urlencoded body.

    Everything is encoded into one flat buffer while the form is built;
    file inputs are read in CHUNK_SIZE pieces so a file is never held twice.
    """

    content_type = "application/x-www-form-urlencoded"

    def __init__(self) -> None:
        self._buf = bytearray()

    def _separator(self) -> None:
        if self._buf:
            self._buf += b"&"

    def append_text(self, name: Optional[str], value: str) -> "UrlEncodedForm":
        self._separator()
        if name:
            self._buf += quote_plus(name).encode("ascii") + b"="
        self._buf += quote_plus(value).encode("ascii")
        return self

    def append_stream(self, name: Optional[str], stream: BinaryIO) -> "UrlEncodedForm":
        self._separator()
        if name:
            self._buf += quote_plus(name).encode("ascii") + b"="
        try:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                # quote_plus on bytes escapes byte by byte, chunk borders are safe
                self._buf += quote_plus(chunk).encode("ascii")
        except OSError as e:
            raise EncoderError(f"Failed to read form data: {e}") from e
        return self

    def append_file(self, name: Optional[str], path: str) -> "UrlEncodedForm":
        try:
            with open(path, "rb") as f:
                return self.append_stream(name, f)
        except FileNotFoundError as e:
            raise EncoderError(f"Couldn't read data from file \"{path}\"") from e

    def append_raw(self, data: bytes) -> "UrlEncodedForm":
        """Already encoded data (-d): appended verbatim."""
        self._separator()
        self._buf += data
        return self

    @property
    def data(self) -> bytes:
        return bytes(self._buf)

    def content_length(self) -> int:
        return len(self._buf)

    def open(self) -> BodySource:
        return BufferSource(bytes(self._buf))
