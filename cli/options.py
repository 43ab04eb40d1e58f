# cli/options.py
from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Sequence, Tuple

from application.services.body_source import RequestBody
from application.services.multipart_form import MultipartForm
from application.services.urlencoded_form import UrlEncodedForm
from domain.config import (
    DEFAULT_CONNECT_TIMEOUT_SEC,
    DEFAULT_MAX_REDIRECTS,
    OperationConfig,
    RequestInfo,
    RetryPolicy,
)
from domain.exceptions import ConfigError
from infrastructure.config import EnvDefaultsProvider, YamlConfigLoader
from infrastructure.io.input_source import read_input

_SIZE_SUFFIXES = {"k": 1024, "m": 1024 ** 2, "g": 1024 ** 3}


@dataclass(frozen=True)
class CliOptions:
    config: OperationConfig
    default_credentials: Optional[str] = None
    verbose: bool = False
    silent: bool = False


@dataclass
class _Piece:
    kind: str
    value: str


class _AppendPiece(argparse.Action):
    """Keeps -d/--data-*/-F arguments in command line order."""

    def __call__(self, parser, namespace, values, option_string=None):
        items = list(getattr(namespace, self.dest) or [])
        items.append(_Piece(self.const, values))
        setattr(namespace, self.dest, items)


def parse_size(text: Any) -> int:
    s = str(text).strip().lower()
    mult = 1
    if s and s[-1] in _SIZE_SUFFIXES:
        mult = _SIZE_SUFFIXES[s[-1]]
        s = s[:-1]
    try:
        value = int(float(s) * mult)
    except ValueError as e:
        raise ConfigError(f"Invalid size: {text}") from e
    if value <= 0:
        raise ConfigError(f"Invalid size: {text}")
    return value


def parse_header(raw: str) -> Tuple[str, Optional[str]]:
    """
    "Name: value" sets, "Name:" removes (value None), "Name;" sends an
    empty header.
    """
    if ":" in raw:
        name, value = raw.split(":", 1)
        value = value.strip()
        return name.strip(), (value if value else None)
    if raw.endswith(";"):
        return raw[:-1].strip(), ""
    raise ConfigError(f"Invalid header: {raw}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="webfetch", description="Transfer a URL over HTTP(S).")
    p.add_argument("urls", nargs="*", metavar="URL")
    p.add_argument("--url", action="append", dest="extra_urls", default=[])
    p.add_argument("-K", "--config", help="YAML file with option defaults")

    out = p.add_argument_group("output")
    out.add_argument("-o", "--output", action="append", default=[], help="write to FILE (one per URL)")
    out.add_argument("-O", "--remote-name", action="store_true", default=None)
    out.add_argument("--output-dir")
    out.add_argument("--create-dirs", action="store_true", default=None)
    out.add_argument("--remove-on-error", action="store_true", default=None)
    out.add_argument("-J", "--remote-header-name", action="store_true", default=None)
    out.add_argument("-i", "--include", action="store_true", default=None)
    out.add_argument("-D", "--dump-header", metavar="FILE")
    out.add_argument("--max-filesize")
    out.add_argument("-f", "--fail", action="store_true", default=None)
    out.add_argument("--fail-with-body", action="store_true", default=None)

    req = p.add_argument_group("request")
    req.add_argument("-X", "--request", dest="method")
    req.add_argument("-I", "--head", action="store_true", default=None)
    req.add_argument("--request-target")
    req.add_argument("-A", "--user-agent")
    req.add_argument("-e", "--referer")
    req.add_argument("-H", "--header", action="append", default=[])
    req.add_argument("-u", "--user")
    req.add_argument("--disallow-username-in-url", action="store_true", default=None)
    req.add_argument("--compressed", action="store_true", default=None)
    req.add_argument("-r", "--range")
    req.add_argument("-C", "--continue-at", type=int)

    body = p.add_argument_group("body")
    for flags, kind in (
        (("-d", "--data", "--data-ascii"), "ascii"),
        (("--data-raw",), "raw"),
        (("--data-binary",), "binary"),
        (("--data-urlencode",), "urlencode"),
    ):
        body.add_argument(*flags, dest="data_items", action=_AppendPiece, const=kind, metavar="DATA")
    body.add_argument("-F", "--form", dest="form_items", action=_AppendPiece, const="form", metavar="NAME=CONTENT")
    body.add_argument("--form-string", dest="form_items", action=_AppendPiece, const="string", metavar="NAME=STRING")
    body.add_argument("-G", "--get", action="store_true", default=None)

    redir = p.add_argument_group("redirects")
    redir.add_argument("-L", "--location", action="store_true", default=None)
    redir.add_argument("--location-trusted", action="store_true", default=None)
    redir.add_argument("--max-redirs", type=int)
    redir.add_argument("--post301", action="store_true", default=None)
    redir.add_argument("--post302", action="store_true", default=None)
    redir.add_argument("--post303", action="store_true", default=None)
    redir.add_argument("--proto-redir", help="comma separated schemes, default http,https")

    retry = p.add_argument_group("retry and timing")
    retry.add_argument("--retry", type=int)
    retry.add_argument("--retry-delay", type=float)
    retry.add_argument("--retry-max-time", type=float)
    retry.add_argument("--retry-all-errors", action="store_true", default=None)
    retry.add_argument("--retry-connrefused", action="store_true", default=None)
    retry.add_argument("-m", "--max-time", type=float)
    retry.add_argument("--connect-timeout", type=float)
    retry.add_argument("--limit-rate")
    retry.add_argument("--max-recv-speed")
    retry.add_argument("--max-send-speed")

    cookies = p.add_argument_group("cookies")
    cookies.add_argument("-b", "--cookie", action="append", default=[])
    cookies.add_argument("-c", "--cookie-jar")
    cookies.add_argument("-j", "--junk-session-cookies", action="store_true", default=None)

    net = p.add_argument_group("connection")
    net.add_argument("-x", "--proxy")
    net.add_argument("-k", "--insecure", action="store_true", default=None)
    net.add_argument("--cacert")
    net.add_argument("-Z", "--parallel", action="store_true", default=None)

    log = p.add_argument_group("logging")
    log.add_argument("-v", "--verbose", action="store_true", default=None)
    log.add_argument("-s", "--silent", action="store_true", default=None)
    return p


def _apply_defaults(ns: argparse.Namespace, values: Dict[str, Any]) -> None:
    """Fill options the command line left unset."""
    for key, value in values.items():
        if value is None or value == []:
            continue
        current = getattr(ns, key, None)
        if current is None or current == []:
            setattr(ns, key, value)


def _split_params(text: str) -> Tuple[str, Dict[str, str]]:
    head, *params = text.split(";")
    out: Dict[str, str] = {}
    for param in params:
        key, _, value = param.partition("=")
        out[key.strip().lower()] = value.strip().strip('"')
    return head, out


def _build_multipart(pieces: List[_Piece], stdin: Optional[BinaryIO]) -> MultipartForm:
    form = MultipartForm()
    for piece in pieces:
        name, sep, content = piece.value.partition("=")
        if not sep or not name:
            raise ConfigError(f"Illegal form field: {piece.value}")
        if piece.kind == "string":
            form.append_text(name, content)
            continue

        if content.startswith("@"):
            path, params = _split_params(content[1:])
            if path == "-":
                form.append_text(name, read_input("-", stdin), content_type=params.get("type"))
            else:
                form.append_file(name, path, content_type=params.get("type"), filename=params.get("filename"))
        elif content.startswith("<"):
            path, params = _split_params(content[1:])
            form.append_text(name, read_input(path, stdin), content_type=params.get("type"))
        else:
            value, params = _split_params(content)
            form.append_text(name, value, content_type=params.get("type"))
    return form


def _append_urlencode(form: UrlEncodedForm, arg: str, stdin: Optional[BinaryIO]) -> None:
    eq = arg.find("=")
    at = arg.find("@")
    if eq != -1 and (at == -1 or eq < at):
        name, value = arg[:eq], arg[eq + 1:]
        form.append_text(name or None, value)
    elif at != -1:
        name, path = arg[:at], arg[at + 1:]
        if path == "-":
            form.append_stream(name or None, stdin or sys.stdin.buffer)
        else:
            form.append_file(name or None, path)
    else:
        form.append_text(None, arg)


def _build_urlencoded(pieces: List[_Piece], stdin: Optional[BinaryIO]) -> UrlEncodedForm:
    form = UrlEncodedForm()
    for piece in pieces:
        if piece.kind == "urlencode":
            _append_urlencode(form, piece.value, stdin)
            continue
        value = piece.value
        if piece.kind in ("ascii", "binary") and value.startswith("@"):
            data = read_input(value[1:], stdin)
            if piece.kind == "ascii":
                data = data.replace(b"\r", b"").replace(b"\n", b"")
        else:
            data = value.encode("utf-8")
        form.append_raw(data)
    return form


def _build_body(ns: argparse.Namespace, stdin: Optional[BinaryIO]) -> Tuple[Optional[RequestBody], str]:
    data_items = ns.data_items or []
    form_items = ns.form_items or []
    if data_items and form_items:
        raise ConfigError("You can only select one HTTP request method! (-d and -F mixed)")
    if form_items:
        if ns.get:
            raise ConfigError("-G cannot be combined with -F")
        return _build_multipart(form_items, stdin), ""
    if data_items:
        form = _build_urlencoded(data_items, stdin)
        if ns.get:
            return None, form.data.decode("ascii", errors="replace")
        return form, ""
    return None, ""


def _requests(ns: argparse.Namespace) -> List[RequestInfo]:
    all_urls = list(ns.urls) + list(ns.extra_urls)
    if not all_urls:
        raise ConfigError("no URL specified")
    outputs = list(ns.output)
    infos = []
    for i, u in enumerate(all_urls):
        output = outputs[i] if i < len(outputs) else None
        infos.append(RequestInfo(url=u, output=output, remote_name=bool(ns.remote_name) and output is None))
    return infos


def _cookies(values: List[str]) -> Tuple[List[str], List[str]]:
    """-b takes either a "name=value" string or a cookie file path."""
    strings, files = [], []
    for v in values:
        (strings if "=" in v else files).append(v)
    return strings, files


def parse_options(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[BinaryIO] = None,
    env: Optional[EnvDefaultsProvider] = None,
) -> CliOptions:
    ns = build_parser().parse_intermixed_args(argv)

    if ns.config:
        file_values = YamlConfigLoader().load_from_file(ns.config).model_dump()
        _apply_defaults(ns, file_values)
    env_values = (env or EnvDefaultsProvider()).get()
    _apply_defaults(ns, {k: v for k, v in env_values.items() if k != "user"})

    body, query = _build_body(ns, stdin)

    headers: List[Tuple[str, str]] = []
    omit: List[str] = []
    for raw in ns.header:
        name, value = parse_header(raw)
        if value is None:
            omit.append(name)
        else:
            headers.append((name, value))

    referer = ns.referer or ""
    auto_referer = False
    if referer.endswith(";auto"):
        referer = referer[: -len(";auto")]
        auto_referer = True

    cookie_strings, cookie_files = _cookies(ns.cookie)

    limit = parse_size(ns.limit_rate) if ns.limit_rate else None
    recv = parse_size(ns.max_recv_speed) if ns.max_recv_speed else limit
    send = parse_size(ns.max_send_speed) if ns.max_send_speed else limit

    proto_redir = frozenset({"http", "https"})
    if ns.proto_redir:
        proto_redir = frozenset(s.strip().lower() for s in ns.proto_redir.split(",") if s.strip())

    config = OperationConfig(
        requests=_requests(ns),
        method=ns.method,
        head_only=bool(ns.head),
        request_target=ns.request_target,
        user_agent=ns.user_agent,
        referer=referer,
        auto_referer=auto_referer,
        headers=headers,
        omit_headers=omit,
        user_credentials=ns.user,
        disallow_username_in_url=bool(ns.disallow_username_in_url),
        compressed=bool(ns.compressed),
        range=ns.range,
        resume_from=ns.continue_at,
        body=body,
        query=query,
        follow_location=bool(ns.location or ns.location_trusted),
        max_redirects=DEFAULT_MAX_REDIRECTS if ns.max_redirs is None else ns.max_redirs,
        post301=bool(ns.post301),
        post302=bool(ns.post302),
        post303=bool(ns.post303),
        unrestricted_auth=bool(ns.location_trusted),
        proto_redir=proto_redir,
        fail_on_error=bool(ns.fail),
        fail_with_body=bool(ns.fail_with_body),
        show_headers=bool(ns.include),
        header_file=ns.dump_header,
        output_dir=Path(ns.output_dir or "."),
        create_dirs=bool(ns.create_dirs),
        remove_on_error=bool(ns.remove_on_error),
        content_disposition=bool(ns.remote_header_name),
        max_filesize=parse_size(ns.max_filesize) if ns.max_filesize else None,
        retry=RetryPolicy(
            retries=ns.retry or 0,
            delay_sec=ns.retry_delay,
            max_time_sec=ns.retry_max_time,
            all_errors=bool(ns.retry_all_errors),
            connrefused=bool(ns.retry_connrefused),
        ),
        max_time_sec=ns.max_time,
        connect_timeout_sec=ns.connect_timeout or DEFAULT_CONNECT_TIMEOUT_SEC,
        recv_per_second=recv,
        send_per_second=send,
        enable_cookies=bool(cookie_files or ns.cookie_jar),
        cookies=cookie_strings,
        cookie_files=cookie_files,
        cookie_jar_path=ns.cookie_jar,
        cookie_session=bool(ns.junk_session_cookies),
        proxy=ns.proxy,
        insecure=bool(ns.insecure),
        cacert=ns.cacert,
        parallel=bool(ns.parallel),
    )
    return CliOptions(
        config=config,
        default_credentials=env_values.get("user"),
        verbose=bool(ns.verbose),
        silent=bool(ns.silent),
    )
