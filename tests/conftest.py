"""Pytest configuration and fixtures for cache interceptor tests."""
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Iterable, Optional

import httpx
import pytest

from cache_interceptor import (
    CacheEntry,
    CacheOptions,
    CachePriority,
    MemCacheStore,
    create_mem_cache_store,
    format_http_date,
)
from fetch_compose_cache_interceptor import CacheInterceptorTransport


def make_entry(
    key: str = "foo",
    *,
    content: Optional[bytes] = b"foo",
    priority: CachePriority = CachePriority.NORMAL,
    max_stale: Optional[datetime] = None,
    etag: Optional[str] = "an etag",
) -> CacheEntry:
    """Create a test entry."""
    now = datetime.now(timezone.utc)
    return CacheEntry(
        key=key,
        url=f"https://foo.com/{key}",
        content=content,
        headers=None,
        date=now,
        response_date=now,
        etag=etag,
        max_stale=max_stale,
        priority=priority,
    )


def http_date(offset_seconds: float = 0) -> str:
    """HTTP date relative to now."""
    return format_http_date(datetime.now(timezone.utc) + timedelta(seconds=offset_seconds))


class MockAsyncTransport(httpx.AsyncBaseTransport):
    """Mock async transport for testing."""

    def __init__(
        self,
        response_status: int = 200,
        response_content: bytes = b'{"success": true}',
        response_headers: dict | None = None,
    ) -> None:
        self.response_status = response_status
        self.response_content = response_content
        self.response_headers = response_headers or {"content-type": "application/json"}
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Handle the async request and return a mock response."""
        self.requests.append(request)
        return httpx.Response(
            status_code=self.response_status,
            headers=self.response_headers,
            content=self.response_content,
        )

    async def aclose(self) -> None:
        """Close the transport."""
        pass


class CacheableMockAsyncTransport(httpx.AsyncBaseTransport):
    """Mock async transport that returns responses carrying validators."""

    def __init__(
        self,
        response_content: bytes = b'{"data": "cached"}',
        etag: str | None = '"v1"',
        last_modified: str | None = None,
        cache_control: str | None = "max-age=3600",
        date: str | None = None,
        expires: str | None = None,
    ) -> None:
        self.response_content = response_content
        self.etag = etag
        self.last_modified = last_modified
        self.cache_control = cache_control
        self.date = date
        self.expires = expires
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Return 304 when the conditional headers match, 200 otherwise."""
        self.requests.append(request)

        if_none_match = request.headers.get("if-none-match")
        if_modified_since = request.headers.get("if-modified-since")

        if (self.etag and if_none_match == self.etag) or (
            self.last_modified and if_modified_since == self.last_modified
        ):
            return httpx.Response(status_code=304, headers={"etag": self.etag or ""})

        headers = {"content-type": "application/json"}
        if self.etag:
            headers["etag"] = self.etag
        if self.last_modified:
            headers["last-modified"] = self.last_modified
        if self.cache_control:
            headers["cache-control"] = self.cache_control
        if self.date:
            headers["date"] = self.date
        if self.expires:
            headers["expires"] = self.expires

        return httpx.Response(
            status_code=200,
            headers=headers,
            content=self.response_content,
        )

    async def aclose(self) -> None:
        """Close the transport."""
        pass


class SequenceMockAsyncTransport(httpx.AsyncBaseTransport):
    """Mock async transport that replays responses or errors in order."""

    def __init__(self, outcomes: Iterable[httpx.Response | Exception]) -> None:
        self.outcomes = list(outcomes)
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Return the next outcome, raising it when it is an exception."""
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        """Close the transport."""
        pass


class ErrorMockAsyncTransport(httpx.AsyncBaseTransport):
    """Mock async transport that raises errors."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Raise the configured error."""
        self.requests.append(request)
        raise self.error

    async def aclose(self) -> None:
        """Close the transport."""
        pass


class BrokenAsyncByteStream(httpx.AsyncByteStream):
    """Response body stream that fails after the first chunk."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.closed = False

    async def __aiter__(self):
        yield b'{"partial":'
        raise self.error

    async def aclose(self) -> None:
        self.closed = True


def validated_response(content: bytes = b'{"data": "cached"}', etag: str = '"v1"') -> httpx.Response:
    """200 response with an ETag."""
    return httpx.Response(
        status_code=200,
        headers={"content-type": "application/json", "etag": etag},
        content=content,
    )


async def xor_transform(data: bytes) -> bytes:
    """Symmetric test cipher."""
    return bytes(b ^ 0x5A for b in data)


@pytest.fixture
def memory_cache_store() -> MemCacheStore:
    """Create a memory cache store for testing."""
    return create_mem_cache_store()


@pytest.fixture
def cacheable_async_transport() -> CacheableMockAsyncTransport:
    """Create a cacheable mock async transport for testing."""
    return CacheableMockAsyncTransport()


@pytest.fixture
async def cache_interceptor_transport(
    cacheable_async_transport: CacheableMockAsyncTransport,
    memory_cache_store: MemCacheStore,
) -> AsyncGenerator[CacheInterceptorTransport, None]:
    """Create a cache interceptor transport for testing."""
    transport = CacheInterceptorTransport(
        cacheable_async_transport,
        options=CacheOptions(store=memory_cache_store),
    )
    yield transport
    await transport.aclose()
