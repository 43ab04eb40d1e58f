# tests/infrastructure/test_netscape_cookie_file.py
import io

import pytest

from domain.cookie import Cookie
from domain.cookie_jar import CookieJar
from domain.exceptions import ConfigError
from domain.url import parse_url
from infrastructure.cookies.netscape_cookie_file import (
    HEADER,
    format_line,
    load_jar_file,
    parse_line,
    read_cookies,
    save_jar_file,
)


def test_parse_line():
    cookie = parse_line(".example.com\tTRUE\t/app\tTRUE\t2000000000\tsid\tabc\n")

    assert cookie == Cookie(
        name="sid",
        value="abc",
        domain="example.com",
        path="/app",
        expires=2000000000,
        secure=True,
        include_subdomains=True,
    )


def test_http_only_prefix():
    cookie = parse_line("#HttpOnly_example.com\tFALSE\t/\tFALSE\t0\ttoken\tv")
    assert cookie.http_only is True
    assert cookie.domain == "example.com"
    assert cookie.is_session
    assert format_line(cookie) == "#HttpOnly_example.com\tFALSE\t/\tFALSE\t0\ttoken\tv"


def test_empty_value_with_six_fields():
    cookie = parse_line("example.com\tFALSE\t/\tFALSE\t0\tflag")
    assert (cookie.name, cookie.value) == ("flag", "")


@pytest.mark.parametrize(
    "line",
    ["", "# comment", "too\tfew\tfields", "example.com\tFALSE\t/\tFALSE\tnever\tn\tv"],
)
def test_ignored_lines(line):
    assert parse_line(line) is None


def test_read_skips_comments_and_garbage():
    stream = io.StringIO(HEADER + "garbage\nexample.com\tFALSE\t/\tFALSE\t0\ta\t1\n")
    assert [c.name for c in read_cookies(stream)] == ["a"]


def test_save_then_load_preserves_cookies(tmp_path):
    jar = CookieJar()
    jar.add_set_cookie(parse_url("https://www.example.com/"), "sid=1; Domain=example.com; Secure; HttpOnly; Max-Age=3600")
    jar.add_set_cookie(parse_url("http://example.org/a/b"), "plain=2")
    path = tmp_path / "jar.txt"

    save_jar_file(jar, str(path))
    restored = CookieJar()
    count = load_jar_file(restored, str(path))

    assert count == 2
    assert sorted(c.key for c in restored) == sorted(c.key for c in jar)
    assert path.read_text().startswith("# Netscape HTTP Cookie File")
    assert restored.make_field(parse_url("https://api.example.com/")) == "sid=1"


def test_missing_cookie_file(tmp_path):
    with pytest.raises(ConfigError):
        load_jar_file(CookieJar(), str(tmp_path / "missing.txt"))


def test_unwritable_jar(tmp_path):
    with pytest.raises(ConfigError):
        save_jar_file(CookieJar(), str(tmp_path / "no" / "such" / "dir" / "jar.txt"))
