# infrastructure/io/input_source.py
from __future__ import annotations

import sys
from typing import BinaryIO, Optional

from domain.exceptions import EncoderError


def read_input(path: str, stdin: Optional[BinaryIO] = None) -> bytes:
    """Read a whole file, or stdin when path is "-"."""
    if path == "-":
        return (stdin or sys.stdin.buffer).read()
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise EncoderError(f"Couldn't read data from file \"{path}\": {e.strerror or e}") from e
