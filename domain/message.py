# domain/message.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, Optional, Tuple

from requests.structures import CaseInsensitiveDict

if TYPE_CHECKING:
    from application.services.body_source import RequestBody


@dataclass
class HttpRequest:
    """
    One HTTP request. Header names are case-insensitive, insertion ordered,
    and the last set() for a name wins.
    """
    method: str = "GET"
    target: str = "/"
    version: str = "1.1"
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: Optional["RequestBody"] = None

    def set(self, name: str, value: str) -> None:
        # drop first so the header moves to the caller's casing
        self.headers.pop(name, None)
        self.headers[name] = value

    def erase(self, name: str) -> None:
        self.headers.pop(name, None)

    def get(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    def header_items(self) -> Iterator[Tuple[str, str]]:
        return iter(self.headers.items())
