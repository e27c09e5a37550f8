"""
In-memory cache store with LRU eviction.
"""
import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional

from ..types import CacheEntry, CachePriority, CacheStore

logger = logging.getLogger(__name__)


@dataclass
class LruEntry:
    """LRU cache entry."""

    entry: CacheEntry
    size: int


@dataclass
class MemCacheStats:
    """Memory cache statistics."""

    entries: int
    size_bytes: int
    max_size_bytes: int
    max_entries: int
    utilization_percent: float


class MemCacheStore(CacheStore):
    """
    In-memory cache store with LRU eviction.

    Entries are copied on the way in and out so callers never alias the
    stored records.
    """

    def __init__(
        self,
        max_size: int = 100 * 1024 * 1024,  # 100MB default
        max_entries: int = 1000,
    ) -> None:
        self._cache: Dict[str, LruEntry] = {}
        self._current_size: int = 0
        self._max_size = max_size
        self._max_entries = max_entries

    def _delete_entry(self, key: str) -> bool:
        """Delete an entry and update size tracking."""
        lru_entry = self._cache.pop(key, None)
        if lru_entry is None:
            return False
        self._current_size -= lru_entry.size
        return True

    def _calculate_entry_size(self, entry: CacheEntry) -> int:
        """Approximate size of an entry in bytes."""
        size = len(entry.key) + len(entry.url)
        if entry.content:
            size += len(entry.content)
        if entry.headers:
            size += len(entry.headers)
        return size

    def _evict_if_needed(self, required_size: int) -> None:
        """Evict least recently used entries to make room."""
        while self._current_size + required_size > self._max_size and self._cache:
            oldest_key = next(iter(self._cache))
            logger.debug(f"Evicting {oldest_key} (size limit)")
            self._delete_entry(oldest_key)

        while len(self._cache) >= self._max_entries and self._cache:
            oldest_key = next(iter(self._cache))
            logger.debug(f"Evicting {oldest_key} (entry limit)")
            self._delete_entry(oldest_key)

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Get an entry by key."""
        lru_entry = self._cache.pop(key, None)
        if lru_entry is None:
            return None

        # Move to end for LRU
        self._cache[key] = lru_entry
        return replace(lru_entry.entry)

    async def set(self, entry: CacheEntry) -> None:
        """Store an entry, replacing any entry with the same key."""
        size = self._calculate_entry_size(entry)
        self._delete_entry(entry.key)
        self._evict_if_needed(size)

        self._cache[entry.key] = LruEntry(entry=replace(entry), size=size)
        self._current_size += size

    async def delete(self, key: str, stale_only: bool = False) -> None:
        """Delete an entry."""
        lru_entry = self._cache.get(key)
        if lru_entry is None:
            return
        if stale_only and not lru_entry.entry.is_expired():
            return
        self._delete_entry(key)

    async def exists(self, key: str) -> bool:
        """Check if a key exists."""
        return key in self._cache

    async def clean(
        self,
        priority_or_below: CachePriority = CachePriority.HIGH,
        stale_only: bool = False,
    ) -> None:
        """Remove entries matching the priority and staleness filters."""
        keys = [
            key
            for key, lru_entry in self._cache.items()
            if lru_entry.entry.priority <= priority_or_below
            and (not stale_only or lru_entry.entry.is_expired())
        ]
        for key in keys:
            self._delete_entry(key)
        logger.info(f"Cleaned {len(keys)} entries from memory cache store")

    async def close(self) -> None:
        """Close the store and release resources."""
        self._cache.clear()
        self._current_size = 0

    def get_stats(self) -> MemCacheStats:
        """Get cache statistics."""
        return MemCacheStats(
            entries=len(self._cache),
            size_bytes=self._current_size,
            max_size_bytes=self._max_size,
            max_entries=self._max_entries,
            utilization_percent=(self._current_size / self._max_size) * 100
            if self._max_size > 0
            else 0,
        )


def create_mem_cache_store(
    max_size: int = 100 * 1024 * 1024,
    max_entries: int = 1000,
) -> MemCacheStore:
    """Create a memory cache store."""
    return MemCacheStore(max_size=max_size, max_entries=max_entries)
