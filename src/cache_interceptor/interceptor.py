"""
Cache decision engine.

Runs as three pipeline stages around a network call:

- ``on_request``: lookup. Serves a cached response or adds conditional
  headers to the outgoing request.
- ``on_response``: persists eligible 200 responses.
- ``on_error``: resolves 304 responses and, when configured, replaces
  failures with the cached response.
"""
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Set

import httpx

from .options import CacheOptions, resolve_cache_options
from .parser import (
    IF_MODIFIED_SINCE_HEADER,
    IF_NONE_MATCH_HEADER,
    extract_cache_control,
    extract_etag,
    extract_last_modified,
    has_cache_directives,
    parse_date_header,
    parse_expires_header,
)
from .stores.memory import MemCacheStore
from .types import (
    CacheEntry,
    CacheEvent,
    CacheEventListener,
    CacheEventType,
    CachePolicy,
    CacheStore,
    FailureKind,
    PipelineFailure,
    serialize_headers,
    utcnow,
)

logger = logging.getLogger(__name__)

GET_METHOD = "GET"
NOT_MODIFIED_STATUS = 304


class CacheInterceptor:
    """
    HTTP cache interceptor.

    Holds the default options and the default store. Per-request options
    attached to a request replace the defaults for that request only.

    Example:
        interceptor = CacheInterceptor(CacheOptions(store=MemCacheStore()))

        cached = await interceptor.on_request(request)
        if cached is not None:
            return cached

        response = await send(request)
        if response.status_code == 304 or response.is_error:
            failure = PipelineFailure(FailureKind.RESPONSE, response=response)
            return await interceptor.on_error(request, failure) or response

        return await interceptor.on_response(request, response)
    """

    def __init__(self, options: Optional[CacheOptions] = None) -> None:
        if options is None:
            options = CacheOptions(store=MemCacheStore())
        if options.store is None:
            raise ValueError("CacheInterceptor default options must define a store")

        self._options = options
        self._store: CacheStore = options.store
        self._listeners: Set[CacheEventListener] = set()

    @property
    def options(self) -> CacheOptions:
        """Default options."""
        return self._options

    @property
    def store(self) -> CacheStore:
        """Default store."""
        return self._store

    async def on_request(self, request: httpx.Request) -> Optional[httpx.Response]:
        """
        Lookup stage.

        Returns the cached response when it must be served, None to let
        the request reach the network.
        """
        if self._should_skip_request(request):
            return None

        options = self._get_cache_options(request)
        if options.policy == CachePolicy.REFRESH:
            self._emit(CacheEventType.CACHE_BYPASS, options, request, reason="refresh")
            return None

        entry = await self._get_cache_entry(request, options)
        if entry is None:
            self._emit(CacheEventType.CACHE_MISS, options, request)
            return None

        if self._should_return_cache(options, entry):
            self._emit(CacheEventType.CACHE_HIT, options, request, policy=options.policy.value)
            return entry.to_response(request)

        self._add_cache_directives(request, entry)
        self._emit(
            CacheEventType.CACHE_REVALIDATE,
            options,
            request,
            etag=entry.etag,
            last_modified=entry.last_modified,
        )
        return None

    async def on_response(
        self, request: httpx.Request, response: httpx.Response
    ) -> httpx.Response:
        """Persistence stage. Returns the response unchanged."""
        if self._should_skip_request(request):
            return response

        if response.status_code != 200:
            return response

        options = self._get_cache_options(request)
        if options.policy == CachePolicy.CACHE_STORE_NO:
            return response

        if options.policy == CachePolicy.CACHE_STORE_FORCE or has_cache_directives(
            response.headers
        ):
            await response.aread()
            entry = await self._build_cache_entry(
                options.key_builder(request), options, request, response
            )
            await self._get_cache_store(options).set(entry)
            self._emit(CacheEventType.CACHE_STORE, options, request, status_code=200)

        return response

    async def on_error(
        self, request: httpx.Request, failure: PipelineFailure
    ) -> Optional[httpx.Response]:
        """
        Failure stage.

        Returns a cached response to use instead of the failure, or None
        when the original failure must propagate.
        """
        if failure.kind == FailureKind.CANCEL or self._should_skip_request(request):
            return None

        options = self._get_cache_options(request)
        response = failure.response

        if response is not None and response.status_code == NOT_MODIFIED_STATUS:
            cached = await self._get_response(request, options)
            if cached is not None:
                self._emit(CacheEventType.CACHE_NOT_MODIFIED, options, request)
            return cached

        except_statuses = options.hit_cache_on_error_except
        if except_statuses is None:
            return None

        if (
            failure.kind == FailureKind.RESPONSE
            and response is not None
            and response.status_code in except_statuses
        ):
            return None

        cached = await self._get_response(request, options)
        if cached is not None:
            self._emit(
                CacheEventType.CACHE_ERROR_FALLBACK,
                options,
                request,
                kind=failure.kind.value,
                status_code=response.status_code if response is not None else None,
            )
        return cached

    def _get_cache_options(self, request: httpx.Request) -> CacheOptions:
        return resolve_cache_options(request, self._options)

    def _get_cache_store(self, options: CacheOptions) -> CacheStore:
        return options.store or self._store

    def _should_skip_request(self, request: Optional[httpx.Request]) -> bool:
        return request is None or request.method.upper() != GET_METHOD

    def _should_return_cache(self, options: CacheOptions, entry: CacheEntry) -> bool:
        if options.policy == CachePolicy.CACHE_STORE_FORCE:
            return True

        if options.policy == CachePolicy.CACHE_FIRST:
            return not entry.is_stale()

        return False

    def _add_cache_directives(self, request: httpx.Request, entry: CacheEntry) -> None:
        if entry.etag is not None:
            request.headers[IF_NONE_MATCH_HEADER] = entry.etag
        if entry.last_modified is not None:
            request.headers[IF_MODIFIED_SINCE_HEADER] = entry.last_modified

    async def _build_cache_entry(
        self,
        key: str,
        options: CacheOptions,
        request: httpx.Request,
        response: httpx.Response,
    ) -> CacheEntry:
        now = utcnow()
        headers = response.headers

        return CacheEntry(
            key=key,
            url=str(request.url),
            status_code=response.status_code,
            content=await options.encrypt_content(response.content),
            headers=await options.encrypt_content(serialize_headers(headers)),
            cache_control=extract_cache_control(headers),
            date=parse_date_header(headers, now),
            expires=parse_expires_header(headers),
            etag=extract_etag(headers),
            last_modified=extract_last_modified(headers),
            max_stale=now + options.max_stale if options.max_stale is not None else None,
            priority=options.priority,
            response_date=now,
        )

    async def _get_cache_entry(
        self, request: httpx.Request, options: CacheOptions
    ) -> Optional[CacheEntry]:
        key = options.key_builder(request)
        entry = await self._get_cache_store(options).get(key)
        if entry is None:
            return None

        return replace(
            entry,
            content=await options.decrypt_content(entry.content),
            headers=await options.decrypt_content(entry.headers),
        )

    async def _get_response(
        self, request: httpx.Request, options: CacheOptions
    ) -> Optional[httpx.Response]:
        entry = await self._get_cache_entry(request, options)
        return entry.to_response(request) if entry is not None else None

    def on(self, listener: CacheEventListener) -> Callable[[], None]:
        """Add event listener."""
        self._listeners.add(listener)
        return lambda: self._listeners.discard(listener)

    def off(self, listener: CacheEventListener) -> None:
        """Remove event listener."""
        self._listeners.discard(listener)

    def _emit(
        self,
        event_type: CacheEventType,
        options: CacheOptions,
        request: httpx.Request,
        **metadata: Any,
    ) -> None:
        """Log the decision and notify listeners."""
        url = str(request.url)
        logger.debug(f"{event_type.value} {request.method} {url} {metadata or ''}".rstrip())
        if not self._listeners:
            return

        data: Dict[str, Any] = dict(metadata)
        event = CacheEvent(
            type=event_type,
            key=options.key_builder(request),
            url=url,
            timestamp=time.time(),
            metadata=data,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Cache event listener failed for {event_type.value}")

    async def clean(self) -> None:
        """Remove every entry from the default store."""
        await self._store.clean()

    async def close(self) -> None:
        """Close the default store and drop listeners."""
        await self._store.close()
        self._listeners.clear()


def create_cache_interceptor(options: Optional[CacheOptions] = None) -> CacheInterceptor:
    """Create a cache interceptor."""
    return CacheInterceptor(options)
