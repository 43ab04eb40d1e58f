# infrastructure/http/content_decoder.py
from __future__ import annotations

import zlib
from typing import Optional

from domain.exceptions import ProtocolError

SUPPORTED_CODINGS = ("gzip", "deflate")


class ContentDecoder:
    def __init__(self, coding: str):
        self.coding = coding
        if coding == "gzip":
            self._obj = zlib.decompressobj(16 + zlib.MAX_WBITS)
        else:
            self._obj = zlib.decompressobj()
        self._first = True

    def decode(self, data: bytes) -> bytes:
        try:
            out = self._obj.decompress(data)
        except zlib.error as e:
            if self.coding == "deflate" and self._first:
                # some servers send raw deflate without the zlib wrapper
                self._obj = zlib.decompressobj(-zlib.MAX_WBITS)
                self._first = False
                return self.decode(data)
            raise ProtocolError(f"Error while processing content unencoding: {e}") from e
        self._first = False
        return out

    def flush(self) -> bytes:
        try:
            return self._obj.flush()
        except zlib.error as e:
            raise ProtocolError(f"Error while processing content unencoding: {e}") from e


def decoder_for(content_encoding: Optional[str]) -> Optional[ContentDecoder]:
    if not content_encoding:
        return None
    coding = content_encoding.strip().lower()
    if coding == "x-gzip":
        coding = "gzip"
    if coding not in SUPPORTED_CODINGS:
        return None
    return ContentDecoder(coding)
