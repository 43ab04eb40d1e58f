# application/ports/output.py
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


class OutputSink(ABC):
    @property
    @abstractmethod
    def is_tty(self) -> bool:
        ...

    @abstractmethod
    def write(self, data: bytes) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def remove_file(self) -> None:
        """Delete the backing file, if there is one."""
        return None


class OutputFactoryPort(ABC):
    @abstractmethod
    def open(self, path: Optional[Path], create_dirs: bool = False) -> OutputSink:
        """
        path None => the default output (stdout, terminal checks active).
        Path("-") => stdout with terminal checks disabled, Path("%") => stderr.
        """
        ...
