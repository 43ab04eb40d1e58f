# infrastructure/cookies/netscape_cookie_file.py
"""
Netscape cookie file format: one cookie per line, seven tab separated
fields (domain, include-subdomains, path, secure, expiry, name, value).
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from domain.cookie import Cookie
from domain.cookie_jar import CookieJar
from domain.exceptions import ConfigError

HEADER = "# Netscape HTTP Cookie File\n# This file was generated by webfetch! Edit at your own risk.\n\n"
HTTP_ONLY_PREFIX = "#HttpOnly_"


def parse_line(line: str) -> Optional[Cookie]:
    line = line.rstrip("\r\n")
    http_only = False
    if line.startswith(HTTP_ONLY_PREFIX):
        line = line[len(HTTP_ONLY_PREFIX):]
        http_only = True
    elif not line.strip() or line.startswith("#"):
        return None

    fields = line.split("\t")
    if len(fields) == 6:
        fields.append("")
    if len(fields) != 7:
        return None

    domain, flag, path, secure, expiry, name, value = fields
    try:
        expires = int(expiry)
    except ValueError:
        return None

    include_subdomains = flag.upper() == "TRUE" or domain.startswith(".")
    return Cookie(
        name=name,
        value=value,
        domain=domain.lstrip(".").lower(),
        path=path or "/",
        expires=expires if expires > 0 else None,
        secure=secure.upper() == "TRUE",
        include_subdomains=include_subdomains,
        http_only=http_only,
    )


def format_line(cookie: Cookie) -> str:
    domain = ("." + cookie.domain) if cookie.include_subdomains else cookie.domain
    if cookie.http_only:
        domain = HTTP_ONLY_PREFIX + domain
    return "\t".join(
        [
            domain,
            "TRUE" if cookie.include_subdomains else "FALSE",
            cookie.path,
            "TRUE" if cookie.secure else "FALSE",
            str(cookie.expires or 0),
            cookie.name,
            cookie.value,
        ]
    )


def read_cookies(stream: TextIO) -> List[Cookie]:
    # malformed lines are skipped
    return [c for c in (parse_line(line) for line in stream) if c is not None]


def write_cookies(stream: TextIO, cookies: Iterable[Cookie]) -> None:
    stream.write(HEADER)
    for cookie in cookies:
        stream.write(format_line(cookie) + "\n")


def load_jar_file(jar: CookieJar, path: str) -> int:
    try:
        with open(path, "r", encoding="utf-8") as f:
            cookies = read_cookies(f)
    except OSError as e:
        raise ConfigError(f"Couldn't open cookie file \"{path}\": {e.strerror or e}") from e
    for cookie in cookies:
        jar.load(cookie)
    return len(cookies)


def save_jar_file(jar: CookieJar, path: str) -> None:
    target = Path(path)
    try:
        with target.open("w", encoding="utf-8") as f:
            write_cookies(f, jar.snapshot())
    except OSError as e:
        raise ConfigError(f"Couldn't write cookie jar \"{path}\": {e.strerror or e}") from e
