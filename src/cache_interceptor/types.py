"""
Types for HTTP response caching.
"""
import base64
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import httpx


EXPIRED_SENTINEL = datetime.fromtimestamp(0, tz=timezone.utc)
"""Expiration used when an Expires header cannot be parsed."""

# Already decoded by httpx, the original framing no longer applies.
_STRIPPED_RESPONSE_HEADERS = ("content-encoding", "content-length", "transfer-encoding")


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class CachePolicy(str, Enum):
    """Cache policy applied to a request."""

    REQUEST = "request"
    """Network first, conditional headers from any cached entry."""

    CACHE_FIRST = "cache_first"
    """Serve the cached entry while it is not stale."""

    CACHE_STORE_FORCE = "cache_store_force"
    """Always serve a cached entry, always persist 200 responses."""

    CACHE_STORE_NO = "cache_store_no"
    """Never persist responses."""

    REFRESH = "refresh"
    """Skip the lookup and go to the network."""


class CachePriority(IntEnum):
    """Entry priority, used by store cleanup."""

    LOW = 0
    NORMAL = 1
    HIGH = 2


@dataclass(frozen=True)
class CacheControl:
    """Parsed Cache-Control directives."""

    max_age: Optional[int] = None
    """Maximum age in seconds."""

    private: bool = False
    """Response is private (user-specific)."""

    public: bool = False
    """Response is public."""

    no_cache: bool = False
    """Response must be revalidated before use."""

    no_store: bool = False
    """Response must not be cached."""

    must_revalidate: bool = False
    """Response must be revalidated once stale."""

    other: Tuple[str, ...] = ()
    """Directives not modelled above, kept verbatim."""

    @classmethod
    def from_header(cls, header: Optional[str]) -> Optional["CacheControl"]:
        """Parse a Cache-Control header value, None when absent."""
        if header is None or not header.strip():
            return None

        max_age: Optional[int] = None
        flags = {
            "private": False,
            "public": False,
            "no-cache": False,
            "no-store": False,
            "must-revalidate": False,
        }
        other: List[str] = []

        for part in header.split(","):
            token = part.strip()
            if not token:
                continue
            if "=" in token:
                key, value = token.split("=", 1)
                key = key.strip().lower()
                value = value.strip().strip('"')
            else:
                key, value = token.lower(), None

            if key == "max-age" and value is not None:
                try:
                    max_age = int(value)
                except ValueError:
                    other.append(token)
            elif key in flags:
                flags[key] = True
            else:
                other.append(token)

        return cls(
            max_age=max_age,
            private=flags["private"],
            public=flags["public"],
            no_cache=flags["no-cache"],
            no_store=flags["no-store"],
            must_revalidate=flags["must-revalidate"],
            other=tuple(other),
        )

    def to_header(self) -> str:
        """Build a Cache-Control header value from the directives."""
        parts: List[str] = []

        if self.max_age is not None:
            parts.append(f"max-age={self.max_age}")
        if self.private:
            parts.append("private")
        if self.public:
            parts.append("public")
        if self.no_cache:
            parts.append("no-cache")
        if self.no_store:
            parts.append("no-store")
        if self.must_revalidate:
            parts.append("must-revalidate")
        parts.extend(self.other)

        return ", ".join(parts)

    def is_stale(
        self,
        response_date: datetime,
        date: Optional[datetime] = None,
        expires: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Check whether a response described by these directives is stale.

        no-cache always wins. max-age is measured from the server date,
        falling back to the capture time. Expires is only consulted when
        there is no max-age. With no signal at all the response stays fresh.
        no-store is not a staleness signal.
        """
        if self.no_cache:
            return True

        if now is None:
            now = utcnow()

        if self.max_age is not None:
            origin = date or response_date
            return (now - origin).total_seconds() > self.max_age

        if expires is not None:
            return now > expires

        return False


def serialize_headers(headers: httpx.Headers) -> bytes:
    """Encode headers as a JSON object of lower-case name to list of values."""
    result: Dict[str, List[str]] = {}
    for name, value in headers.multi_items():
        result.setdefault(name.lower(), []).append(value)
    return json.dumps(result).encode("utf-8")


def deserialize_headers(data: Optional[bytes]) -> List[Tuple[str, str]]:
    """Decode a header blob back into (name, value) pairs."""
    if not data:
        return []
    decoded: Dict[str, List[str]] = json.loads(data.decode("utf-8"))
    return [(name, value) for name, values in decoded.items() for value in values]


def _encode_bytes(value: Optional[bytes]) -> Optional[str]:
    return base64.b64encode(value).decode("ascii") if value is not None else None


def _decode_bytes(value: Optional[str]) -> Optional[bytes]:
    return base64.b64decode(value) if value is not None else None


def _encode_date(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _decode_date(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


@dataclass
class CacheEntry:
    """Persisted response record."""

    key: str
    """Cache key derived from the request."""

    url: str
    """Request URL."""

    date: datetime
    """Server Date header, or capture time when missing or invalid."""

    response_date: datetime
    """Capture time at write."""

    content: Optional[bytes] = None
    """Response body, possibly encrypted."""

    headers: Optional[bytes] = None
    """Serialized response headers, possibly encrypted."""

    cache_control: Optional[CacheControl] = None
    """Parsed Cache-Control directives."""

    expires: Optional[datetime] = None
    """Parsed Expires header, EXPIRED_SENTINEL when unparsable."""

    last_modified: Optional[str] = None
    """Last-Modified value for If-Modified-Since."""

    etag: Optional[str] = None
    """ETag value for If-None-Match."""

    max_stale: Optional[datetime] = None
    """Local retention deadline computed at write time."""

    priority: CachePriority = CachePriority.NORMAL
    """Entry priority."""

    status_code: int = 200
    """Response status code."""

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """Check staleness. An entry stored without Cache-Control is never stale."""
        if self.cache_control is None:
            return False
        return self.cache_control.is_stale(self.response_date, self.date, self.expires, now)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the max-stale deadline has passed."""
        if self.max_stale is None:
            return False
        return (now or utcnow()) > self.max_stale

    def to_response(self, request: httpx.Request) -> httpx.Response:
        """Rebuild an httpx response for the given request."""
        headers = [
            (name, value)
            for name, value in deserialize_headers(self.headers)
            if name.lower() not in _STRIPPED_RESPONSE_HEADERS
        ]
        return httpx.Response(
            status_code=self.status_code,
            headers=headers,
            content=self.content or b"",
            request=request,
            extensions={"from_cache": True, "cache_key": self.key},
        )

    def to_record(self) -> Dict[str, Any]:
        """Convert to a JSON-safe mapping."""
        return {
            "key": self.key,
            "url": self.url,
            "status_code": self.status_code,
            "content": _encode_bytes(self.content),
            "headers": _encode_bytes(self.headers),
            "cache_control": self.cache_control.to_header() if self.cache_control else None,
            "date": _encode_date(self.date),
            "response_date": _encode_date(self.response_date),
            "expires": _encode_date(self.expires),
            "last_modified": self.last_modified,
            "etag": self.etag,
            "max_stale": _encode_date(self.max_stale),
            "priority": int(self.priority),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "CacheEntry":
        """Rebuild an entry from a mapping produced by to_record."""
        return cls(
            key=record["key"],
            url=record["url"],
            status_code=record.get("status_code", 200),
            content=_decode_bytes(record.get("content")),
            headers=_decode_bytes(record.get("headers")),
            cache_control=CacheControl.from_header(record.get("cache_control")),
            date=_decode_date(record["date"]),
            response_date=_decode_date(record["response_date"]),
            expires=_decode_date(record.get("expires")),
            last_modified=record.get("last_modified"),
            etag=record.get("etag"),
            max_stale=_decode_date(record.get("max_stale")),
            priority=CachePriority(record.get("priority", CachePriority.NORMAL)),
        )


class CacheStoreError(Exception):
    """Raised when a cache store backend fails."""
    pass


class CacheStore(ABC):
    """Cache store interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        """Get an entry by key, None when absent."""
        pass

    @abstractmethod
    async def set(self, entry: CacheEntry) -> None:
        """Insert or replace the entry stored under entry.key."""
        pass

    @abstractmethod
    async def delete(self, key: str, stale_only: bool = False) -> None:
        """Delete an entry. No-op when absent."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a key exists."""
        pass

    @abstractmethod
    async def clean(
        self,
        priority_or_below: CachePriority = CachePriority.HIGH,
        stale_only: bool = False,
    ) -> None:
        """Remove entries. With no arguments, removes every entry."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the store and release resources."""
        pass


class FailureKind(str, Enum):
    """Kind of pipeline failure."""

    CANCEL = "cancel"
    RESPONSE = "response"
    OTHER = "other"


@dataclass
class PipelineFailure:
    """Failure reported by the host pipeline."""

    kind: FailureKind
    response: Optional[httpx.Response] = None
    exception: Optional[BaseException] = None


class CacheEventType(str, Enum):
    """Event types for cache operations."""

    CACHE_HIT = "cache:hit"
    CACHE_MISS = "cache:miss"
    CACHE_STORE = "cache:store"
    CACHE_REVALIDATE = "cache:revalidate"
    CACHE_NOT_MODIFIED = "cache:not-modified"
    CACHE_ERROR_FALLBACK = "cache:error-fallback"
    CACHE_BYPASS = "cache:bypass"


@dataclass
class CacheEvent:
    """Cache event."""

    type: CacheEventType
    key: str
    url: str
    timestamp: float
    metadata: Dict[str, Any] = field(default_factory=dict)


CacheEventListener = Callable[[CacheEvent], None]
"""Event listener type."""
