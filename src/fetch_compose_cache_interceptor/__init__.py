"""
Cache interceptor transport wrapper for httpx's compose pattern.

HTTP response caching with:
- Cache policies (request, cache first, force, no store, refresh)
- ETag and Last-Modified conditional request support
- Cached responses on 304 Not Modified and, optionally, on errors
- Pluggable stores with optional content encryption
"""
from cache_interceptor import (
    CachePolicy,
    CachePriority,
    CacheControl,
    CacheEntry,
    CacheStore,
    CacheOptions,
    CacheInterceptor,
    CacheEventType,
    CacheEvent,
    MemCacheStore,
    FileCacheStore,
    DbCacheStore,
    create_mem_cache_store,
)
from .transport import CacheInterceptorTransport, default_validate_status
from .factory import (
    compose_transport,
    create_cache_interceptor_transport,
    create_cache_interceptor_client,
)


__all__ = [
    # Re-exported types from base package
    "CachePolicy",
    "CachePriority",
    "CacheControl",
    "CacheEntry",
    "CacheStore",
    "CacheOptions",
    "CacheInterceptor",
    "CacheEventType",
    "CacheEvent",
    "MemCacheStore",
    "FileCacheStore",
    "DbCacheStore",
    "create_mem_cache_store",
    # Transport wrapper
    "CacheInterceptorTransport",
    "default_validate_status",
    # Factory functions
    "compose_transport",
    "create_cache_interceptor_transport",
    "create_cache_interceptor_client",
]

__version__ = "1.0.0"
