# domain/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, FrozenSet, List, Optional, Tuple

if TYPE_CHECKING:
    from application.services.body_source import RequestBody


DEFAULT_USER_AGENT = "webfetch/0.1"
DEFAULT_MAX_REDIRECTS = 50
DEFAULT_CONNECT_TIMEOUT_SEC = 300.0


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 0
    delay_sec: Optional[float] = None      # None => exponential backoff
    max_time_sec: Optional[float] = None   # None => no deadline
    all_errors: bool = False
    connrefused: bool = False


@dataclass(frozen=True)
class RequestInfo:
    url: str
    output: Optional[str] = None
    remote_name: bool = False


@dataclass(frozen=True)
class OperationConfig:
    requests: List[RequestInfo] = field(default_factory=list)

    # request line / headers
    method: Optional[str] = None
    head_only: bool = False
    request_target: Optional[str] = None
    user_agent: Optional[str] = None
    referer: str = ""
    auto_referer: bool = False
    headers: List[Tuple[str, str]] = field(default_factory=list)
    omit_headers: List[str] = field(default_factory=list)
    user_credentials: Optional[str] = None
    disallow_username_in_url: bool = False
    compressed: bool = False
    range: Optional[str] = None
    resume_from: Optional[int] = None

    # body
    body: Optional["RequestBody"] = None
    query: str = ""

    # redirects
    follow_location: bool = False
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    post301: bool = False
    post302: bool = False
    post303: bool = False
    unrestricted_auth: bool = False
    proto_redir: FrozenSet[str] = frozenset({"http", "https"})

    # response handling
    fail_on_error: bool = False
    fail_with_body: bool = False
    show_headers: bool = False
    header_file: Optional[str] = None
    output_dir: Path = Path(".")
    create_dirs: bool = False
    remove_on_error: bool = False
    content_disposition: bool = False
    max_filesize: Optional[int] = None

    # timing / pacing
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    max_time_sec: Optional[float] = None
    connect_timeout_sec: float = DEFAULT_CONNECT_TIMEOUT_SEC
    recv_per_second: Optional[int] = None
    send_per_second: Optional[int] = None

    # cookies
    enable_cookies: bool = False
    cookies: List[str] = field(default_factory=list)
    cookie_files: List[str] = field(default_factory=list)
    cookie_jar_path: Optional[str] = None
    cookie_session: bool = False

    # transport
    proxy: Optional[str] = None
    insecure: bool = False
    cacert: Optional[str] = None

    parallel: bool = False

    def explicit_cookies(self) -> str:
        out = ""
        for s in self.cookies:
            if out and not out.endswith(";"):
                out += ";"
            out += s
        return out
