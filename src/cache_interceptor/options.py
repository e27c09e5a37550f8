"""
Cache options and per-request resolution.
"""
import uuid
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any, Awaitable, Callable, FrozenSet, Iterable, Mapping, Optional

import httpx

from .types import CachePolicy, CachePriority, CacheStore


CACHE_OPTIONS_EXTENSION = "cache_options"
"""Key of the per-request options in httpx request extensions."""

CacheKeyBuilder = Callable[[httpx.Request], str]
"""Builds a cache key from a request. Must be deterministic."""

ContentTransform = Callable[[bytes], Awaitable[bytes]]
"""Async byte transform used for encryption and decryption."""


def default_key_builder(request: httpx.Request) -> str:
    """Default cache key: UUID5 of method and URL."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{request.method.upper()}:{request.url}"))


@dataclass(frozen=True)
class CacheOptions:
    """
    Cache configuration.

    Interceptor-wide defaults are passed at construction. A request can
    carry its own options in its extensions; those replace the defaults
    for that request, except that a missing store falls back to the
    interceptor's store.

    hit_cache_on_error_except keeps None and an empty set apart: None never
    substitutes a cached response on error, a set substitutes unless the
    failing response status is in it.
    """

    policy: CachePolicy = CachePolicy.REQUEST
    """Cache policy."""

    key_builder: CacheKeyBuilder = default_key_builder
    """Cache key builder."""

    store: Optional[CacheStore] = None
    """Store override."""

    hit_cache_on_error_except: Optional[FrozenSet[int]] = None
    """Status codes for which a cached response is not served on error."""

    max_stale: Optional[timedelta] = None
    """Retention added to the capture time of persisted entries."""

    priority: CachePriority = CachePriority.NORMAL
    """Priority of persisted entries."""

    encrypt: Optional[ContentTransform] = None
    """Applied to content and headers before persisting."""

    decrypt: Optional[ContentTransform] = None
    """Applied to content and headers after reading."""

    def __post_init__(self) -> None:
        if self.hit_cache_on_error_except is not None and not isinstance(
            self.hit_cache_on_error_except, frozenset
        ):
            object.__setattr__(
                self,
                "hit_cache_on_error_except",
                frozenset(self.hit_cache_on_error_except),
            )

    def copy_with(self, **changes: Any) -> "CacheOptions":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_extensions(self) -> dict:
        """Extensions mapping that attaches these options to a request."""
        return {CACHE_OPTIONS_EXTENSION: self}

    @staticmethod
    def from_extensions(extensions: Mapping[str, Any]) -> Optional["CacheOptions"]:
        """Read per-request options from request extensions."""
        options = extensions.get(CACHE_OPTIONS_EXTENSION)
        return options if isinstance(options, CacheOptions) else None

    async def encrypt_content(self, data: Optional[bytes]) -> Optional[bytes]:
        """Encrypt when a hook is configured, otherwise pass through."""
        return await _apply_transform(self.encrypt, data)

    async def decrypt_content(self, data: Optional[bytes]) -> Optional[bytes]:
        """Decrypt when a hook is configured, otherwise pass through."""
        return await _apply_transform(self.decrypt, data)


async def _apply_transform(
    transform: Optional[ContentTransform], data: Optional[bytes]
) -> Optional[bytes]:
    if data is None or transform is None:
        return data
    return await transform(data)


def resolve_cache_options(request: httpx.Request, defaults: CacheOptions) -> CacheOptions:
    """Per-request options if attached, otherwise the defaults."""
    return CacheOptions.from_extensions(request.extensions) or defaults


def create_cache_options(
    policy: CachePolicy = CachePolicy.REQUEST,
    *,
    store: Optional[CacheStore] = None,
    key_builder: CacheKeyBuilder = default_key_builder,
    hit_cache_on_error_except: Optional[Iterable[int]] = None,
    max_stale: Optional[timedelta] = None,
    priority: CachePriority = CachePriority.NORMAL,
    encrypt: Optional[ContentTransform] = None,
    decrypt: Optional[ContentTransform] = None,
) -> CacheOptions:
    """Create cache options."""
    return CacheOptions(
        policy=policy,
        key_builder=key_builder,
        store=store,
        hit_cache_on_error_except=(
            frozenset(hit_cache_on_error_except)
            if hit_cache_on_error_except is not None
            else None
        ),
        max_stale=max_stale,
        priority=priority,
        encrypt=encrypt,
        decrypt=decrypt,
    )
