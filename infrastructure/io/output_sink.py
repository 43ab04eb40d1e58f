# infrastructure/io/output_sink.py
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import BinaryIO, Optional

from application.ports.output import OutputFactoryPort, OutputSink
from domain.exceptions import EncoderError


class StreamOutput(OutputSink):
    """stdout / stderr. Only the default stdout checks for a terminal."""

    def __init__(self, stream: BinaryIO, check_tty: bool = False):
        self._stream = stream
        self._is_tty = check_tty and _isatty(stream)

    @property
    def is_tty(self) -> bool:
        return self._is_tty

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    def close(self) -> None:
        self._stream.flush()


class FileOutput(OutputSink):
    def __init__(self, path: Path, create_dirs: bool = False):
        self.path = path
        try:
            if create_dirs:
                path.parent.mkdir(parents=True, exist_ok=True)
            self._file: Optional[BinaryIO] = open(path, "wb")
        except OSError as e:
            raise EncoderError(f"Couldn't open file \"{path}\": {e.strerror or e}") from e

    @property
    def is_tty(self) -> bool:
        return False

    def write(self, data: bytes) -> None:
        if self._file is None:
            raise ValueError(f"write to closed output {self.path}")
        self._file.write(data)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def remove_file(self) -> None:
        self.close()
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


def _isatty(stream: BinaryIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


class OutputFactory(OutputFactoryPort):
    def __init__(self, stdout: Optional[BinaryIO] = None, stderr: Optional[BinaryIO] = None):
        self._stdout = stdout or sys.stdout.buffer
        self._stderr = stderr or sys.stderr.buffer

    def open(self, path: Optional[Path], create_dirs: bool = False) -> OutputSink:
        if path is None:
            return StreamOutput(self._stdout, check_tty=True)
        if str(path) == "-":
            return StreamOutput(self._stdout)
        if str(path) == "%":
            return StreamOutput(self._stderr)
        return FileOutput(path, create_dirs=create_dirs)
