"""
HTTP response cache interceptor.

Decides whether a GET response is served from cache, revalidated with
ETag / Last-Modified, or persisted, following Cache-Control, Expires and
Date headers and a configurable cache policy.
"""
from .types import (
    EXPIRED_SENTINEL,
    CachePolicy,
    CachePriority,
    CacheControl,
    CacheEntry,
    CacheStore,
    CacheStoreError,
    FailureKind,
    PipelineFailure,
    CacheEventType,
    CacheEvent,
    CacheEventListener,
    serialize_headers,
    deserialize_headers,
)
from .parser import (
    get_header_value,
    parse_http_date,
    format_http_date,
    parse_date_header,
    parse_expires_header,
    extract_etag,
    extract_last_modified,
    extract_cache_control,
    has_cache_directives,
)
from .options import (
    CACHE_OPTIONS_EXTENSION,
    CacheKeyBuilder,
    ContentTransform,
    CacheOptions,
    default_key_builder,
    resolve_cache_options,
    create_cache_options,
)
from .interceptor import (
    CacheInterceptor,
    create_cache_interceptor,
)
from .stores import (
    MemCacheStore,
    MemCacheStats,
    create_mem_cache_store,
    FileCacheStore,
    create_file_cache_store,
    DbCacheStore,
    create_db_cache_store,
)
from .config import (
    CacheConfigError,
    CacheSettings,
    parse_cache_settings,
    load_cache_settings,
)


__all__ = [
    # Types
    "EXPIRED_SENTINEL",
    "CachePolicy",
    "CachePriority",
    "CacheControl",
    "CacheEntry",
    "CacheStore",
    "CacheStoreError",
    "FailureKind",
    "PipelineFailure",
    "CacheEventType",
    "CacheEvent",
    "CacheEventListener",
    "serialize_headers",
    "deserialize_headers",
    # Parser utilities
    "get_header_value",
    "parse_http_date",
    "format_http_date",
    "parse_date_header",
    "parse_expires_header",
    "extract_etag",
    "extract_last_modified",
    "extract_cache_control",
    "has_cache_directives",
    # Options
    "CACHE_OPTIONS_EXTENSION",
    "CacheKeyBuilder",
    "ContentTransform",
    "CacheOptions",
    "default_key_builder",
    "resolve_cache_options",
    "create_cache_options",
    # Interceptor
    "CacheInterceptor",
    "create_cache_interceptor",
    # Stores
    "MemCacheStore",
    "MemCacheStats",
    "create_mem_cache_store",
    "FileCacheStore",
    "create_file_cache_store",
    "DbCacheStore",
    "create_db_cache_store",
    # Configuration
    "CacheConfigError",
    "CacheSettings",
    "parse_cache_settings",
    "load_cache_settings",
]

__version__ = "1.0.0"
