# application/services/request_builder.py
from __future__ import annotations

import base64
from typing import Optional
from urllib.parse import SplitResult, unquote

from domain import url as urls
from domain.config import DEFAULT_USER_AGENT, OperationConfig
from domain.exceptions import CredentialsInUrl
from domain.message import HttpRequest

ACCEPT_ENCODING = "gzip, deflate"


def basic_auth(credentials: str) -> str:
    token = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def request_target(config: OperationConfig, url: SplitResult) -> str:
    if config.request_target:
        return config.request_target
    if config.proxy and url.scheme == "http":
        # absolute-form through a forward proxy
        return urls.to_string(urls.strip_userinfo(url))
    return urls.target(url)


def default_method(config: OperationConfig) -> str:
    if config.head_only:
        return "HEAD"
    if config.method:
        return config.method
    return "POST" if config.body is not None else "GET"


class RequestBuilder:
    """
    Build the first request of an operation from the configuration and the
    URL. User header additions and removals are applied last so they always
    win over generated headers.
    """

    def __init__(self, config: OperationConfig, default_credentials: Optional[str] = None):
        self._config = config
        self._default_credentials = default_credentials

    def build(self, url: SplitResult) -> HttpRequest:
        config = self._config
        userinfo = urls.userinfo(url)

        if config.disallow_username_in_url and userinfo:
            raise CredentialsInUrl("Credentials was passed in the URL when prohibited")

        request = HttpRequest(
            method=default_method(config),
            target=request_target(config, url),
            version="1.1",
        )

        request.set("Host", urls.host_header(url))
        request.set("User-Agent", config.user_agent or DEFAULT_USER_AGENT)
        request.set("Accept", "*/*")

        if config.body is not None and not config.head_only:
            request.body = config.body
            config.body.set_headers(request)

        if config.resume_from is not None:
            request.set("Range", f"bytes={config.resume_from}-")
        if config.range:
            request.set("Range", f"bytes={config.range}")

        if config.referer:
            request.set("Referer", config.referer)

        credentials = config.user_credentials or unquote(userinfo) or self._default_credentials
        if credentials:
            request.set("Authorization", basic_auth(credentials))

        if config.compressed:
            request.set("Accept-Encoding", ACCEPT_ENCODING)

        for name, value in config.headers:
            request.set(name, value)

        for name in config.omit_headers:
            request.erase(name)

        return request
