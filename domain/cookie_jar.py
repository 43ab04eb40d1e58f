# domain/cookie_jar.py
from __future__ import annotations

import time
from typing import Callable, Dict, Iterator, List, Optional, Tuple
from urllib.parse import SplitResult

from domain.cookie import Cookie, domain_match, parse_set_cookie


class CookieJar:
    """
    Process scoped cookie store keyed by (name, domain, path).

    Not a full RFC 6265 engine: domain suffix match, path prefix match,
    expiry and the Secure flag are all it knows about.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._cookies: Dict[Tuple[str, str, str], Cookie] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._cookies)

    def __iter__(self) -> Iterator[Cookie]:
        return iter(list(self._cookies.values()))

    def add(self, source: SplitResult, cookie: Cookie) -> bool:
        """
        Store or overwrite a cookie received from `source`.
        Returns False when the cookie was rejected.
        """
        host = (source.hostname or "").lower()
        if cookie.include_subdomains and not domain_match(host, cookie.domain):
            return False

        if cookie.is_expired(self._clock()):
            # an already-expired cookie is the server's way of deleting it
            self._cookies.pop(cookie.key, None)
            return True

        self._cookies[cookie.key] = cookie
        return True

    def add_set_cookie(self, source: SplitResult, line: str) -> bool:
        cookie = parse_set_cookie(line, source, now=self._clock())
        if cookie is None:
            return False
        return self.add(source, cookie)

    def load(self, cookie: Cookie) -> None:
        """Insert without the source-host check (persisted jar entries)."""
        self._cookies[cookie.key] = cookie

    def make_field(self, url: SplitResult) -> str:
        now = self._clock()
        host = (url.hostname or "").lower()
        path = url.path or "/"
        secure_ok = url.scheme == "https"

        for key in [k for k, c in self._cookies.items() if c.is_expired(now)]:
            del self._cookies[key]

        matched: List[Cookie] = []
        for c in self._cookies.values():
            if not c.matches_domain(host) or not c.matches_path(path):
                continue
            if c.secure and not secure_ok:
                continue
            matched.append(c)

        # longer paths first
        matched.sort(key=lambda c: len(c.path), reverse=True)
        return "; ".join(f"{c.name}={c.value}" for c in matched)

    def clear_session_cookies(self) -> None:
        for key in [k for k, c in self._cookies.items() if c.is_session]:
            del self._cookies[key]

    def snapshot(self) -> List[Cookie]:
        return list(self._cookies.values())


def merge_cookie_fields(jar_field: str, explicit: Optional[str]) -> str:
    if not explicit:
        return jar_field
    if not jar_field:
        return explicit
    return f"{jar_field}; {explicit}"
