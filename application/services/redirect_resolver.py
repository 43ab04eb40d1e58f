# application/services/redirect_resolver.py
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import SplitResult

from application.ports.http_exchange import ResponseHeadPort
from application.services.request_builder import request_target
from domain import url as urls
from domain.config import OperationConfig
from domain.exceptions import BadRedirect, InvalidUrl, TooManyRedirects, UnsupportedProtocol
from domain.message import HttpRequest

# headers describing a body that no longer exists after a switch to GET
BODY_HEADERS = ("Content-Length", "Content-Encoding", "Content-Type", "Expect")


@dataclass(frozen=True)
class RedirectDecision:
    is_redirect: bool = False
    change_method: bool = False


@dataclass
class RedirectContext:
    url: SplitResult
    original: SplitResult
    referer: SplitResult
    remaining: int
    trusted: bool = True


def classify(config: OperationConfig, status: int) -> RedirectDecision:
    # 301/302 are not meant to change the method, but user agents do it
    # in practice; each status has its own opt-out
    if status == 301:
        return RedirectDecision(True, not config.post301)
    if status == 302:
        return RedirectDecision(True, not config.post302)
    if status == 303:
        return RedirectDecision(True, not config.post303)
    if status in (307, 308):
        return RedirectDecision(True, False)
    return RedirectDecision()


def can_reuse_connection(response: ResponseHeadPort, current: SplitResult, target: SplitResult) -> bool:
    if urls.origin(current) != urls.origin(target):
        return False
    if response.http_version != "1.1":
        return False
    if response.wants_close:
        return False
    return True


def redirect_url(response: ResponseHeadPort, base: SplitResult) -> SplitResult:
    location = response.get("Location")
    if not location:
        raise BadRedirect("Bad redirect response: no Location header")
    try:
        return urls.resolve(base, location)
    except InvalidUrl as e:
        raise BadRedirect(f"Bad redirect response: {location}") from e


class RedirectResolver:
    """
    Decides whether a response is followed, and rewrites the request for
    the next hop.
    """

    def __init__(self, config: OperationConfig):
        self._config = config

    def start(self, url: SplitResult) -> RedirectContext:
        return RedirectContext(
            url=url,
            original=url,
            referer=url,
            remaining=self._config.max_redirects,
        )

    def decide(self, response: ResponseHeadPort) -> RedirectDecision:
        decision = classify(self._config, response.status)
        if not decision.is_redirect or not self._config.follow_location:
            return RedirectDecision()
        return decision

    def next_url(self, ctx: RedirectContext, response: ResponseHeadPort) -> SplitResult:
        if ctx.remaining == 0:
            raise TooManyRedirects("Maximum redirects followed")
        ctx.remaining -= 1

        target = redirect_url(response, ctx.referer)
        if target.scheme not in self._config.proto_redir:
            raise UnsupportedProtocol(f"Protocol \"{target.scheme}\" not supported or disabled")
        return target

    def apply(
        self,
        ctx: RedirectContext,
        request: HttpRequest,
        target: SplitResult,
        decision: RedirectDecision,
    ) -> None:
        """Rewrite `request` in place for the hop to `target`."""
        if decision.change_method and request.method != "HEAD":
            request.method = "GET"
            for name in BODY_HEADERS:
                request.erase(name)
            request.body = None

        request.target = request_target(self._config, target)

        ctx.trusted = (
            urls.origin(ctx.original) == urls.origin(target)
            or self._config.unrestricted_auth
        )
        if not ctx.trusted:
            request.erase("Authorization")

        if self._config.auto_referer:
            request.set("Referer", urls.to_string(urls.strip_userinfo(ctx.referer)))

        request.set("Host", urls.host_header(target))

        ctx.referer = target
        ctx.url = target
