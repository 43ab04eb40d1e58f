# domain/cookie.py
from __future__ import annotations

import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Optional, Tuple
from urllib.parse import SplitResult


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    domain: str
    path: str = "/"
    expires: Optional[int] = None  # epoch seconds, None => session cookie
    secure: bool = False
    include_subdomains: bool = False
    http_only: bool = False

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.name, self.domain, self.path)

    @property
    def is_session(self) -> bool:
        return self.expires is None

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (time.time() if now is None else now)

    def matches_domain(self, host: str) -> bool:
        return domain_match(host, self.domain, self.include_subdomains)

    def matches_path(self, path: str) -> bool:
        return path_match(path or "/", self.path)


def domain_match(host: str, domain: str, include_subdomains: bool = True) -> bool:
    host = host.lower().rstrip(".")
    domain = domain.lower().lstrip(".")
    if host == domain:
        return True
    return include_subdomains and host.endswith("." + domain)


def path_match(request_path: str, cookie_path: str) -> bool:
    if request_path == cookie_path:
        return True
    if not request_path.startswith(cookie_path):
        return False
    return cookie_path.endswith("/") or request_path[len(cookie_path)] == "/"


def default_path(request_path: str) -> str:
    if not request_path.startswith("/") or request_path.count("/") <= 1:
        return "/"
    return request_path[: request_path.rfind("/")]


def parse_set_cookie(line: str, source: SplitResult, now: Optional[float] = None) -> Optional[Cookie]:
    """
    Parse one Set-Cookie value received from `source`.
    Returns None for malformed lines.
    """
    parts = [p.strip() for p in line.split(";")]
    if not parts or "=" not in parts[0]:
        return None

    name, value = parts[0].split("=", 1)
    name = name.strip()
    value = value.strip()
    if not name:
        return None
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]

    host = (source.hostname or "").lower()
    domain = host
    include_subdomains = False
    path = default_path(source.path)
    expires: Optional[int] = None
    max_age: Optional[int] = None
    secure = False
    http_only = False

    for attr in parts[1:]:
        if not attr:
            continue
        key, _, val = attr.partition("=")
        key = key.strip().lower()
        val = val.strip()
        if key == "domain" and val:
            domain = val.lstrip(".").lower()
            include_subdomains = True
        elif key == "path" and val.startswith("/"):
            path = val
        elif key == "expires" and val:
            try:
                expires = int(parsedate_to_datetime(val).timestamp())
            except (TypeError, ValueError, IndexError, OverflowError):
                continue
        elif key == "max-age":
            try:
                max_age = int(val)
            except ValueError:
                continue
        elif key == "secure":
            secure = True
        elif key == "httponly":
            http_only = True

    # Max-Age takes precedence over Expires
    if max_age is not None:
        current = time.time() if now is None else now
        expires = int(current) + max_age if max_age > 0 else 0

    return Cookie(
        name=name,
        value=value,
        domain=domain,
        path=path,
        expires=expires,
        secure=secure,
        include_subdomains=include_subdomains,
        http_only=http_only,
    )
