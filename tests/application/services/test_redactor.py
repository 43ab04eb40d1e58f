# tests/application/services/test_redactor.py
from application.services.redactor import mask_headers, mask_value


class TestMaskValue:
    def test_mask_authorization(self):
        assert mask_value("authorization", "Basic dXNlcjpwYXNz") == "********"

    def test_mask_proxy_authorization(self):
        assert mask_value("Proxy-Authorization", "Basic eDp5") == "********"

    def test_mask_cookie(self):
        assert mask_value("cookie", "session=abc123") == "********"

    def test_mask_set_cookie(self):
        assert mask_value("set-cookie", "session=xyz789") == "********"

    def test_mask_case_insensitive(self):
        assert mask_value("AUTHORIZATION", "token") == "********"
        assert mask_value("Cookie", "data") == "********"

    def test_no_mask_regular_header(self):
        assert mask_value("User-Agent", "webfetch/0.1") == "webfetch/0.1"
        assert mask_value("Host", "example.com") == "example.com"

    def test_mask_none_value(self):
        assert mask_value("authorization", None) is None


def test_mask_headers_keeps_order_and_masks_secrets():
    result = mask_headers([("Host", "example.com"), ("Authorization", "Basic abc"), ("Accept", "*/*")])

    assert list(result) == ["Host", "Authorization", "Accept"]
    assert result["Authorization"] == "********"
    assert result["Host"] == "example.com"
