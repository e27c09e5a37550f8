"""
Header and date helpers for response caching.
"""
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Mapping, Optional

from .types import EXPIRED_SENTINEL, CacheControl


CACHE_CONTROL_HEADER = "cache-control"
DATE_HEADER = "date"
ETAG_HEADER = "etag"
EXPIRES_HEADER = "expires"
IF_MODIFIED_SINCE_HEADER = "if-modified-since"
IF_NONE_MATCH_HEADER = "if-none-match"
LAST_MODIFIED_HEADER = "last-modified"


def get_header_value(headers: Mapping[str, str], key: str) -> Optional[str]:
    """Get header value case-insensitively."""
    lower_key = key.lower()
    for k, v in headers.items():
        if k.lower() == lower_key:
            return v
    return None


def parse_http_date(header: Optional[str]) -> Optional[datetime]:
    """Parse an HTTP date into an aware UTC datetime, None if invalid."""
    if not header:
        return None
    try:
        parsed = parsedate_to_datetime(header)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_http_date(value: datetime) -> str:
    """Format a datetime as an IMF-fixdate HTTP date."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def parse_date_header(headers: Mapping[str, str], fallback: datetime) -> datetime:
    """Date header value, or the fallback when missing or invalid."""
    return parse_http_date(get_header_value(headers, DATE_HEADER)) or fallback


def parse_expires_header(headers: Mapping[str, str]) -> Optional[datetime]:
    """
    Expires header value.

    None when absent. An invalid value means the response already
    expired, so EXPIRED_SENTINEL is returned rather than the current time.
    """
    value = get_header_value(headers, EXPIRES_HEADER)
    if value is None:
        return None
    return parse_http_date(value) or EXPIRED_SENTINEL


def extract_etag(headers: Mapping[str, str]) -> Optional[str]:
    """Extract ETag from response headers."""
    etag = get_header_value(headers, ETAG_HEADER)
    return etag.strip() if etag else None


def extract_last_modified(headers: Mapping[str, str]) -> Optional[str]:
    """Extract Last-Modified from response headers."""
    last_modified = get_header_value(headers, LAST_MODIFIED_HEADER)
    return last_modified.strip() if last_modified else None


def extract_cache_control(headers: Mapping[str, str]) -> Optional[CacheControl]:
    """Parse the Cache-Control header, None when absent."""
    return CacheControl.from_header(get_header_value(headers, CACHE_CONTROL_HEADER))


def has_cache_directives(headers: Mapping[str, str]) -> bool:
    """
    Check whether a response carries validators and allows storage.

    Requires an ETag or Last-Modified header and no no-store directive.
    """
    has_validator = (
        get_header_value(headers, ETAG_HEADER) is not None
        or get_header_value(headers, LAST_MODIFIED_HEADER) is not None
    )
    cache_control = extract_cache_control(headers)
    return has_validator and not (cache_control is not None and cache_control.no_store)
