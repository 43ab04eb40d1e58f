# domain/url.py
"""URL helpers on top of urllib.parse.SplitResult."""
from __future__ import annotations

from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

from domain.exceptions import InvalidUrl

DEFAULT_PORTS = {"http": 80, "https": 443}


def parse_url(raw: str) -> SplitResult:
    """
    Parse a user supplied URL. A missing scheme defaults to http and an
    empty path becomes "/".
    """
    text = raw.strip()
    if "://" not in text:
        text = "http://" + text
    try:
        url = urlsplit(text)
        _ = url.port
    except ValueError as e:
        raise InvalidUrl(f"Failed to parse URL: {raw}") from e

    if not url.hostname:
        raise InvalidUrl(f"No host part in the URL: {raw}")
    if not url.path:
        url = url._replace(path="/")
    return url._replace(scheme=url.scheme.lower(), fragment="")


def resolve(base: SplitResult, reference: str) -> SplitResult:
    joined = urljoin(urlunsplit(base), reference.strip())
    url = urlsplit(joined)
    if not url.hostname:
        raise InvalidUrl(f"Bad redirect target: {reference}")
    if not url.path:
        url = url._replace(path="/")
    return url._replace(fragment="")


def port_of(url: SplitResult) -> int:
    return url.port or DEFAULT_PORTS.get(url.scheme, 80)


def origin(url: SplitResult) -> str:
    host = (url.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    return f"{url.scheme}://{host}:{port_of(url)}"


def host_header(url: SplitResult) -> str:
    host = url.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if url.port is not None and url.port != DEFAULT_PORTS.get(url.scheme):
        return f"{host}:{url.port}"
    return host


def target(url: SplitResult) -> str:
    path = url.path or "/"
    return f"{path}?{url.query}" if url.query else path


def userinfo(url: SplitResult) -> str:
    if "@" not in url.netloc:
        return ""
    return url.netloc.rsplit("@", 1)[0]


def strip_userinfo(url: SplitResult) -> SplitResult:
    if "@" not in url.netloc:
        return url
    return url._replace(netloc=url.netloc.rsplit("@", 1)[1])


def append_query(url: SplitResult, query: str) -> SplitResult:
    if not query:
        return url
    merged = f"{url.query}&{query}" if url.query else query
    return url._replace(query=merged)


def to_string(url: SplitResult) -> str:
    return urlunsplit(url)


def last_segment(url: SplitResult) -> str:
    return url.path.rsplit("/", 1)[-1]
