"""Tests for header and date helpers."""
from datetime import datetime, timezone

import httpx

from cache_interceptor import (
    EXPIRED_SENTINEL,
    CacheControl,
    CacheEntry,
    CachePriority,
    deserialize_headers,
    extract_cache_control,
    extract_etag,
    extract_last_modified,
    format_http_date,
    get_header_value,
    has_cache_directives,
    parse_date_header,
    parse_expires_header,
    parse_http_date,
    serialize_headers,
)


FALLBACK = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestHttpDates:
    def test_parse_imf_fixdate(self):
        parsed = parse_http_date("Wed, 21 Oct 2015 07:28:00 GMT")
        assert parsed == datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)

    def test_parse_invalid(self):
        assert parse_http_date("not a date") is None
        assert parse_http_date("") is None
        assert parse_http_date(None) is None

    def test_format(self):
        value = datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)
        assert format_http_date(value) == "Wed, 21 Oct 2015 07:28:00 GMT"

    def test_date_header_fallback_when_missing(self):
        assert parse_date_header({}, FALLBACK) == FALLBACK

    def test_date_header_fallback_when_invalid(self):
        assert parse_date_header({"Date": "garbage"}, FALLBACK) == FALLBACK

    def test_date_header_parsed(self):
        parsed = parse_date_header({"Date": "Wed, 21 Oct 2015 07:28:00 GMT"}, FALLBACK)
        assert parsed.year == 2015

    def test_expires_missing(self):
        assert parse_expires_header({}) is None

    def test_expires_invalid_is_already_expired(self):
        assert parse_expires_header({"expires": "0"}) == EXPIRED_SENTINEL
        assert parse_expires_header({"expires": "-1"}) == EXPIRED_SENTINEL

    def test_expires_valid(self):
        parsed = parse_expires_header({"Expires": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert parsed == datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)


class TestHeaderHelpers:
    def test_get_header_value_case_insensitive(self):
        assert get_header_value({"ETag": '"x"'}, "etag") == '"x"'
        assert get_header_value({}, "etag") is None

    def test_extract_validators(self):
        headers = {"ETag": ' "x" ', "Last-Modified": "Wed, 21 Oct 2015 07:28:00 GMT"}
        assert extract_etag(headers) == '"x"'
        assert extract_last_modified(headers) == "Wed, 21 Oct 2015 07:28:00 GMT"

    def test_extract_cache_control(self):
        assert extract_cache_control({"Cache-Control": "max-age=5"}) == CacheControl(max_age=5)
        assert extract_cache_control({}) is None

    def test_has_cache_directives_with_etag(self):
        assert has_cache_directives({"etag": '"x"'}) is True

    def test_has_cache_directives_with_last_modified(self):
        assert has_cache_directives({"last-modified": "Wed, 21 Oct 2015 07:28:00 GMT"}) is True

    def test_has_cache_directives_without_validator(self):
        assert has_cache_directives({"cache-control": "max-age=60"}) is False

    def test_no_store_vetoes(self):
        assert has_cache_directives({"etag": '"x"', "cache-control": "no-store"}) is False

    def test_works_with_httpx_headers(self):
        headers = httpx.Headers({"ETag": '"x"', "Cache-Control": "public"})
        assert has_cache_directives(headers) is True


class TestHeaderSerialization:
    def test_multi_valued_headers(self):
        headers = httpx.Headers([("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"), ("ETag", '"x"')])
        blob = serialize_headers(headers)

        assert deserialize_headers(blob) == [
            ("set-cookie", "a=1"),
            ("set-cookie", "b=2"),
            ("etag", '"x"'),
        ]

    def test_empty_blob(self):
        assert deserialize_headers(None) == []
        assert deserialize_headers(b"") == []


class TestEntryRecord:
    def test_record_roundtrip(self):
        now = datetime.now(timezone.utc)
        entry = CacheEntry(
            key="k",
            url="https://foo.com",
            content=b"\x00\xffbody",
            headers=b'{"etag": ["x"]}',
            cache_control=CacheControl(max_age=30, private=True),
            date=now,
            response_date=now,
            expires=EXPIRED_SENTINEL,
            last_modified="Wed, 21 Oct 2015 07:28:00 GMT",
            etag='"x"',
            max_stale=now,
            priority=CachePriority.HIGH,
        )

        assert CacheEntry.from_record(entry.to_record()) == entry

    def test_to_response_drops_encoding_headers(self):
        now = datetime.now(timezone.utc)
        entry = CacheEntry(
            key="k",
            url="https://foo.com",
            content=b"plain",
            headers=b'{"content-encoding": ["gzip"], "content-length": ["99"], "etag": ["x"]}',
            date=now,
            response_date=now,
        )
        request = httpx.Request("GET", "https://foo.com")

        response = entry.to_response(request)

        assert response.status_code == 200
        assert response.content == b"plain"
        assert "content-encoding" not in response.headers
        assert response.headers["content-length"] == "5"
        assert response.headers["etag"] == "x"
        assert response.extensions["from_cache"] is True
        assert response.extensions["cache_key"] == "k"
