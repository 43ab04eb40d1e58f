# application/services/multipart_form.py
from __future__ import annotations

import mimetypes
import os
import secrets
import string
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from application.services.body_source import BodySource, RequestBody
from domain.exceptions import EncoderError

BOUNDARY_PREFIX = "----WebfetchFormBoundary"
BOUNDARY_RANDOM_LEN = 24
_BOUNDARY_ALPHABET = string.ascii_letters + string.digits

CRLF = b"\r\n"

# boilerplate pieces, used both to emit and to size the body
_DASHES = b"--"
_DISPOSITION_HEAD = b'Content-Disposition: form-data; name="'
_FILENAME_HEAD = b'"; filename="'
_DISPOSITION_TAIL = b'"' + CRLF
_CONTENT_TYPE_HEAD = b"Content-Type: "


def generate_boundary() -> str:
    token = "".join(secrets.choice(_BOUNDARY_ALPHABET) for _ in range(BOUNDARY_RANDOM_LEN))
    return BOUNDARY_PREFIX + token


def _escape(value: str) -> bytes:
    return (
        value.replace('"', "%22")
        .replace("\r", "%0D")
        .replace("\n", "%0A")
        .encode("utf-8")
    )


@dataclass(frozen=True)
class FormPart:
    name: str
    text: Optional[bytes] = None
    path: Optional[str] = None
    size: int = 0
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.path is not None

    @property
    def content_size(self) -> int:
        return self.size if self.is_file else len(self.text or b"")

    def header_bytes(self) -> bytes:
        out = _DISPOSITION_HEAD + _escape(self.name)
        if self.filename is not None:
            out += _FILENAME_HEAD + _escape(self.filename)
        out += _DISPOSITION_TAIL
        if self.content_type:
            out += _CONTENT_TYPE_HEAD + self.content_type.encode("utf-8") + CRLF
        return out + CRLF

    def header_size(self) -> int:
        n = len(_DISPOSITION_HEAD) + len(_escape(self.name)) + len(_DISPOSITION_TAIL)
        if self.filename is not None:
            n += len(_FILENAME_HEAD) + len(_escape(self.filename))
        if self.content_type:
            n += len(_CONTENT_TYPE_HEAD) + len(self.content_type.encode("utf-8")) + len(CRLF)
        return n + len(CRLF)


class Step(Enum):
    BOUNDARY = "boundary"
    HEADERS = "headers"
    CONTENT = "content"
    TRAILER = "trailer"
    CLOSING = "closing"
    DONE = "done"


@dataclass
class Cursor:
    part_index: int = 0
    step: Step = Step.BOUNDARY
    offset: int = 0


class MultipartForm(RequestBody):
    """
    multipart/form-data body.

    Parts are immutable once appended. File sizes are captured at append
    time and are what gets sent, whatever happens to the file afterwards.
    """

    def __init__(self, boundary: Optional[str] = None):
        self._boundary = boundary or generate_boundary()
        self._parts: List[FormPart] = []

    @property
    def boundary(self) -> str:
        return self._boundary

    @property
    def parts(self) -> Tuple[FormPart, ...]:
        return tuple(self._parts)

    @property
    def content_type(self) -> str:  # type: ignore[override]
        return f"multipart/form-data; boundary={self._boundary}"

    def append_text(
        self,
        name: str,
        value: Union[str, bytes],
        content_type: Optional[str] = None,
    ) -> "MultipartForm":
        data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        self._parts.append(FormPart(name=name, text=data, content_type=content_type))
        return self

    def append_file(
        self,
        name: str,
        path: str,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> "MultipartForm":
        try:
            size = os.path.getsize(path)
        except OSError as e:
            raise EncoderError(f"Couldn't open file \"{path}\": {e.strerror or e}") from e

        if content_type is None:
            content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"

        self._parts.append(
            FormPart(
                name=name,
                path=path,
                size=size,
                filename=os.path.basename(path) if filename is None else filename,
                content_type=content_type,
            )
        )
        return self

    def _boundary_line(self) -> bytes:
        return _DASHES + self._boundary.encode("ascii") + CRLF

    def _closing_line(self) -> bytes:
        return _DASHES + self._boundary.encode("ascii") + _DASHES + CRLF

    def content_length(self) -> int:
        b = len(self._boundary.encode("ascii"))
        boundary_line = len(_DASHES) + b + len(CRLF)
        total = 0
        for part in self._parts:
            total += boundary_line + part.header_size() + part.content_size + len(CRLF)
        return total + len(_DASHES) + b + len(_DASHES) + len(CRLF)

    def open(self) -> "MultipartEncoder":
        return MultipartEncoder(self)


class MultipartEncoder(BodySource):
    """
    Step-indexed generator over one MultipartForm.

    The cursor offset is always below the length of the current step; a
    new encoder (form.open()) starts over from the first part.
    """

    def __init__(self, form: MultipartForm):
        self._form = form
        self._parts = form.parts
        self.cursor = Cursor()
        if not self._parts:
            self.cursor.step = Step.CLOSING

    @property
    def finished(self) -> bool:
        return self.cursor.step is Step.DONE

    def read_into(self, buf: memoryview) -> Tuple[int, bool]:
        written = 0
        while written < len(buf) and self.cursor.step is not Step.DONE:
            size = self._step_size()
            if size == 0:
                self._advance()
                continue

            n = min(len(buf) - written, size - self.cursor.offset)
            dest = buf[written:written + n]
            if self.cursor.step is Step.CONTENT:
                self._fill_content(dest)
            else:
                data = self._static_bytes()
                dest[:] = data[self.cursor.offset:self.cursor.offset + n]

            written += n
            self.cursor.offset += n
            if self.cursor.offset == size:
                self._advance()

        return written, self.finished

    def _part(self) -> FormPart:
        return self._parts[self.cursor.part_index]

    def _step_size(self) -> int:
        step = self.cursor.step
        if step is Step.CONTENT:
            return self._part().content_size
        return len(self._static_bytes())

    def _static_bytes(self) -> bytes:
        step = self.cursor.step
        if step is Step.BOUNDARY:
            return self._form._boundary_line()
        if step is Step.HEADERS:
            return self._part().header_bytes()
        if step is Step.TRAILER:
            return CRLF
        if step is Step.CLOSING:
            return self._form._closing_line()
        raise AssertionError(f"no static bytes for {step}")

    def _fill_content(self, dest: memoryview) -> None:
        part = self._part()
        start = self.cursor.offset
        if not part.is_file:
            dest[:] = part.text[start:start + len(dest)]  # type: ignore[index]
            return

        try:
            with open(part.path, "rb") as f:  # type: ignore[arg-type]
                f.seek(start)
                got = f.readinto(dest)
        except OSError as e:
            raise EncoderError(f"Failed to read \"{part.path}\": {e.strerror or e}") from e

        got = got or 0
        if got < len(dest):
            # file shrank after it was appended; keep the declared length
            dest[got:] = bytes(len(dest) - got)

    def _advance(self) -> None:
        c = self.cursor
        c.offset = 0
        if c.step is Step.BOUNDARY:
            c.step = Step.HEADERS
        elif c.step is Step.HEADERS:
            c.step = Step.CONTENT
        elif c.step is Step.CONTENT:
            c.step = Step.TRAILER
        elif c.step is Step.TRAILER:
            c.part_index += 1
            c.step = Step.BOUNDARY if c.part_index < len(self._parts) else Step.CLOSING
        elif c.step is Step.CLOSING:
            c.step = Step.DONE
