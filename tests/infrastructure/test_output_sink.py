# tests/infrastructure/test_output_sink.py
import io
from pathlib import Path

import pytest

from domain.exceptions import EncoderError
from infrastructure.io.output_sink import FileOutput, OutputFactory, StreamOutput


class TtyBuffer(io.BytesIO):
    def isatty(self):
        return True


def test_default_output_checks_for_terminal():
    factory = OutputFactory(stdout=TtyBuffer(), stderr=io.BytesIO())

    assert factory.open(None).is_tty is True
    assert factory.open(Path("-")).is_tty is False


def test_percent_goes_to_stderr():
    out, err = io.BytesIO(), io.BytesIO()
    sink = OutputFactory(stdout=out, stderr=err).open(Path("%"))

    sink.write(b"headers")
    sink.close()

    assert err.getvalue() == b"headers"
    assert out.getvalue() == b""


def test_file_output_creates_dirs(tmp_path):
    target = tmp_path / "a" / "b" / "out.bin"
    sink = OutputFactory().open(target, create_dirs=True)

    sink.write(b"\x00\x01")
    sink.close()

    assert target.read_bytes() == b"\x00\x01"
    assert sink.is_tty is False


def test_file_output_without_dirs_fails(tmp_path):
    with pytest.raises(EncoderError):
        FileOutput(tmp_path / "missing" / "out.bin")


def test_create_dirs_blocked_by_a_file(tmp_path):
    (tmp_path / "taken").write_bytes(b"")

    with pytest.raises(EncoderError, match="Couldn't open file"):
        FileOutput(tmp_path / "taken" / "sub" / "out.bin", create_dirs=True)


def test_remove_file(tmp_path):
    target = tmp_path / "partial.html"
    sink = FileOutput(target)
    sink.write(b"half")

    sink.remove_file()

    assert not target.exists()
    sink.remove_file()


def test_stream_output_remove_is_a_noop():
    buf = io.BytesIO()
    sink = StreamOutput(buf)
    sink.write(b"x")
    sink.remove_file()
    assert buf.getvalue() == b"x"
