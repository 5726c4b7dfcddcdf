"""Tests for veneer.html.caching: ETags and conditional requests."""

from veneer.html.caching import (
    NO_CACHE_HEADERS,
    CacheValidator,
    etag_matches,
    merge_vary,
    negotiate,
)
from veneer.http.response import Response


def rendered(body: str = "<h1>Orders</h1>") -> Response:
    return Response(body=body, content_type="text/html; charset=utf-8")


class TestCacheValidator:
    def test_same_body_same_etag(self) -> None:
        a = CacheValidator.for_body(b"hello", 5)
        b = CacheValidator.for_body(b"hello", 5)
        assert a.etag == b.etag

    def test_different_body_different_etag(self) -> None:
        assert CacheValidator.for_body(b"a", 5).etag != CacheValidator.for_body(b"b", 5).etag

    def test_etag_is_quoted_hex(self) -> None:
        etag = CacheValidator.for_body(b"hello", 5).etag
        assert etag.startswith('"') and etag.endswith('"')
        assert len(etag) == 18
        int(etag.strip('"'), 16)

    def test_cache_control(self) -> None:
        assert CacheValidator.for_body(b"", 30).cache_control == "private, max-age=30, must-revalidate"


class TestEtagMatches:
    def test_exact(self) -> None:
        assert etag_matches('"abc"', '"abc"')

    def test_list(self) -> None:
        assert etag_matches('"x", "abc"', '"abc"')

    def test_weak(self) -> None:
        assert etag_matches('W/"abc"', '"abc"')

    def test_star(self) -> None:
        assert etag_matches("*", '"abc"')

    def test_mismatch_and_missing(self) -> None:
        assert not etag_matches('"x"', '"abc"')
        assert not etag_matches(None, '"abc"')
        assert not etag_matches("", '"abc"')


class TestMergeVary:
    def test_empty(self) -> None:
        assert merge_vary([], "Accept-Encoding") == "Accept-Encoding"

    def test_keeps_existing(self) -> None:
        assert merge_vary(["Accept", "Cookie"], "Accept-Encoding") == "Accept, Cookie, Accept-Encoding"

    def test_no_duplicate(self) -> None:
        assert merge_vary(["accept-encoding"], "Accept-Encoding") == "accept-encoding"


class TestNegotiate:
    def test_disabled_sends_no_cache(self) -> None:
        response = negotiate(rendered(), b"<h1>Orders</h1>", if_none_match=None, enabled=False, max_age=5)
        for name, value in NO_CACHE_HEADERS:
            assert response.header(name) == value
        assert response.header("etag") is None
        assert response.status == 200

    def test_disabled_ignores_if_none_match(self) -> None:
        response = negotiate(rendered(), b"<h1>Orders</h1>", if_none_match="*", enabled=False, max_age=5)
        assert response.status == 200

    def test_fresh_render(self) -> None:
        body = b"<h1>Orders</h1>"
        response = negotiate(rendered(), body, if_none_match=None, enabled=True, max_age=5)
        assert response.status == 200
        assert response.header("etag") == CacheValidator.for_body(body, 5).etag
        assert response.header("cache-control") == "private, max-age=5, must-revalidate"
        assert response.header("vary") == "Accept-Encoding"
        assert response.text == "<h1>Orders</h1>"

    def test_not_modified(self) -> None:
        body = b"<h1>Orders</h1>"
        etag = CacheValidator.for_body(body, 5).etag
        response = negotiate(rendered(), body, if_none_match=etag, enabled=True, max_age=5)
        assert response.status == 304
        assert response.body_bytes == b""
        assert response.header("etag") == etag
        assert response.header("cache-control") == "private, max-age=5, must-revalidate"

    def test_stale_etag_renders(self) -> None:
        response = negotiate(rendered(), b"<h1>Orders</h1>", if_none_match='"old"', enabled=True, max_age=5)
        assert response.status == 200

    def test_replaces_existing_cache_headers(self) -> None:
        response = rendered().with_header("Cache-Control", "public")
        response = negotiate(response, b"<h1>Orders</h1>", if_none_match=None, enabled=True, max_age=5)
        assert response.header_list("cache-control") == ["private, max-age=5, must-revalidate"]
