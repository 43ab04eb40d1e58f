# tests/domain/test_cookie_jar.py
from domain.cookie import Cookie
from domain.cookie_jar import CookieJar, merge_cookie_fields
from domain.url import parse_url

NOW = 1_700_000_000


def _jar() -> CookieJar:
    return CookieJar(clock=lambda: NOW)


class TestCookieJarDomains:
    def test_domain_cookie_is_sent_to_sibling_subdomain(self):
        jar = _jar()
        assert jar.add_set_cookie(parse_url("http://www.example.com/"), "sid=abc; Domain=example.com")

        assert jar.make_field(parse_url("http://api.example.com/")) == "sid=abc"
        assert jar.make_field(parse_url("http://example.com/")) == "sid=abc"
        assert jar.make_field(parse_url("http://example.org/")) == ""

    def test_host_only_cookie_stays_on_its_host(self):
        jar = _jar()
        jar.add_set_cookie(parse_url("http://www.example.com/"), "a=1")

        assert jar.make_field(parse_url("http://www.example.com/")) == "a=1"
        assert jar.make_field(parse_url("http://api.example.com/")) == ""

    def test_foreign_domain_attribute_is_rejected(self):
        jar = _jar()
        accepted = jar.add_set_cookie(parse_url("http://evil.test/"), "sid=x; Domain=example.com")

        assert accepted is False
        assert len(jar) == 0

    def test_malformed_line_is_skipped(self):
        jar = _jar()
        assert jar.add_set_cookie(parse_url("http://example.com/"), "no-equals-sign") is False
        assert jar.add_set_cookie(parse_url("http://example.com/"), "=value") is False
        assert len(jar) == 0


class TestCookieJarMatching:
    def test_secure_cookie_only_over_https(self):
        jar = _jar()
        jar.add_set_cookie(parse_url("https://example.com/"), "s=1; Secure")

        assert jar.make_field(parse_url("http://example.com/")) == ""
        assert jar.make_field(parse_url("https://example.com/")) == "s=1"

    def test_path_prefix_and_longest_path_first(self):
        jar = _jar()
        src = parse_url("http://example.com/")
        jar.add_set_cookie(src, "root=r; Path=/")
        jar.add_set_cookie(src, "deep=d; Path=/app")

        assert jar.make_field(parse_url("http://example.com/app/page")) == "deep=d; root=r"
        assert jar.make_field(parse_url("http://example.com/application")) == "root=r"

    def test_same_key_overwrites(self):
        jar = _jar()
        src = parse_url("http://example.com/")
        jar.add_set_cookie(src, "a=1")
        jar.add_set_cookie(src, "a=2")

        assert len(jar) == 1
        assert jar.make_field(src) == "a=2"


class TestCookieJarExpiry:
    def test_max_age_zero_deletes_existing_cookie(self):
        jar = _jar()
        src = parse_url("http://example.com/")
        jar.add_set_cookie(src, "a=1")
        jar.add_set_cookie(src, "a=gone; Max-Age=0")

        assert len(jar) == 0

    def test_expired_cookies_are_purged_when_building_the_field(self):
        clock = [NOW]
        jar = CookieJar(clock=lambda: clock[0])
        src = parse_url("http://example.com/")
        jar.add_set_cookie(src, "short=1; Max-Age=10")
        jar.add_set_cookie(src, "long=2; Max-Age=1000")

        clock[0] = NOW + 100
        assert jar.make_field(src) == "long=2"
        assert len(jar) == 1

    def test_clear_session_cookies_keeps_persistent_ones(self):
        jar = _jar()
        jar.load(Cookie(name="session", value="1", domain="example.com"))
        jar.load(Cookie(name="kept", value="2", domain="example.com", expires=NOW + 3600))

        jar.clear_session_cookies()

        assert [c.name for c in jar] == ["kept"]


def test_merge_cookie_fields():
    assert merge_cookie_fields("", "a=1") == "a=1"
    assert merge_cookie_fields("b=2", "") == "b=2"
    assert merge_cookie_fields("b=2", None) == "b=2"
    assert merge_cookie_fields("b=2", "a=1") == "b=2; a=1"
