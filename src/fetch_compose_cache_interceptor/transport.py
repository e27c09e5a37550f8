"""
Cache interceptor transport wrapper for httpx.

Runs the cache interceptor stages around an inner transport:
lookup before dispatch, persistence after a successful response, and
cache resolution on 304 responses and failures.
"""
import logging
from typing import Callable, Optional

import httpx

from cache_interceptor import (
    CacheInterceptor,
    CacheOptions,
    CacheStore,
    FailureKind,
    PipelineFailure,
    create_mem_cache_store,
)

logger = logging.getLogger(__name__)


def default_validate_status(status_code: int) -> bool:
    """Statuses handled as successes. 304 goes through cache resolution."""
    return status_code < 400 and status_code != 304


class CacheInterceptorTransport(httpx.AsyncBaseTransport):
    """
    Cache interceptor transport wrapper for httpx.

    Wraps another transport and serves, revalidates and persists GET
    responses according to the cache options.

    Example:
        base = httpx.AsyncHTTPTransport()
        transport = CacheInterceptorTransport(base)
        client = httpx.AsyncClient(transport=transport)

        # Per-request override
        options = transport.options.copy_with(policy=CachePolicy.REFRESH)
        await client.get(url, extensions=options.to_extensions())
    """

    def __init__(
        self,
        inner: httpx.AsyncBaseTransport,
        *,
        options: Optional[CacheOptions] = None,
        store: Optional[CacheStore] = None,
        validate_status: Optional[Callable[[int], bool]] = None,
    ) -> None:
        """
        Create a new CacheInterceptorTransport.

        Args:
            inner: The wrapped transport to delegate requests to
            options: Default cache options
            store: Default store, used when options define none. Default: memory store
            validate_status: Returns True for statuses handled as successes
        """
        options = options or CacheOptions()
        if options.store is None:
            options = options.copy_with(store=store or create_mem_cache_store())

        self._inner = inner
        self._interceptor = CacheInterceptor(options)
        self._validate_status = validate_status or default_validate_status

    @property
    def interceptor(self) -> CacheInterceptor:
        """The wrapped cache interceptor."""
        return self._interceptor

    @property
    def options(self) -> CacheOptions:
        """Default cache options."""
        return self._interceptor.options

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Handle an async HTTP request with caching capabilities."""
        cached = await self._interceptor.on_request(request)
        if cached is not None:
            return cached

        try:
            response = await self._inner.handle_async_request(request)
            try:
                await response.aread()
            except httpx.TransportError:
                await response.aclose()
                raise
        except httpx.TransportError as e:
            logger.debug(f"Transport error for {request.method} {request.url}: {e!r}")
            resolved = await self._interceptor.on_error(
                request, PipelineFailure(FailureKind.OTHER, exception=e)
            )
            if resolved is None:
                raise
            return resolved

        if not self._validate_status(response.status_code):
            resolved = await self._interceptor.on_error(
                request, PipelineFailure(FailureKind.RESPONSE, response=response)
            )
            return resolved if resolved is not None else response

        return await self._interceptor.on_response(request, response)

    async def aclose(self) -> None:
        """Close the transport."""
        await self._interceptor.close()
        await self._inner.aclose()
