# tests/infrastructure/test_input_source.py
import io

import pytest

from domain.exceptions import EncoderError
from infrastructure.io.input_source import read_input


def test_read_file(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"\x00abc")
    assert read_input(str(path)) == b"\x00abc"


def test_dash_reads_stdin():
    assert read_input("-", stdin=io.BytesIO(b"from stdin")) == b"from stdin"


def test_missing_file(tmp_path):
    with pytest.raises(EncoderError, match="Couldn't read data"):
        read_input(str(tmp_path / "missing"))
