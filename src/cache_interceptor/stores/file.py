"""File system cache store, one JSON record per key."""

import asyncio
import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..types import CacheEntry, CachePriority, CacheStore, CacheStoreError

logger = logging.getLogger(__name__)


class FileCacheStore(CacheStore):
    """File system cache store.

    Records are written to a temporary file and moved into place, so a
    reader never observes a partially written entry. Concurrent writes to
    the same key resolve as last write wins.
    """

    def __init__(self, directory: Path | str) -> None:
        """Initialize the store.

        Args:
            directory: Directory holding the cache records. Created if missing.
        """
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"File cache store opened: {self.directory}")

    def _get_file_path(self, key: str) -> Path:
        """Get the record path for a cache key."""
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def _read(self, path: Path) -> Optional[CacheEntry]:
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheStoreError(f"Failed to read cache record {path}: {e}") from e

        try:
            return CacheEntry.from_record(json.loads(content))
        except (ValueError, KeyError, TypeError) as e:
            raise CacheStoreError(f"Corrupt cache record {path}: {e}") from e

    def _write(self, entry: CacheEntry) -> None:
        path = self._get_file_path(entry.key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(entry.to_record(), handle)
            os.replace(tmp_name, path)
        except OSError as e:
            raise CacheStoreError(f"Failed to write cache record {path}: {e}") from e

    def _unlink(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheStoreError(f"Failed to delete cache record {path}: {e}") from e

    def _clean(self, priority_or_below: CachePriority, stale_only: bool) -> int:
        removed = 0
        for path in self.directory.glob("*.json"):
            if priority_or_below < CachePriority.HIGH or stale_only:
                entry = self._read(path)
                if entry is None:
                    continue
                if entry.priority > priority_or_below:
                    continue
                if stale_only and not entry.is_expired():
                    continue
            self._unlink(path)
            removed += 1
        return removed

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Retrieve an entry by key."""
        return await asyncio.to_thread(self._read, self._get_file_path(key))

    async def set(self, entry: CacheEntry) -> None:
        """Store an entry."""
        await asyncio.to_thread(self._write, entry)

    async def delete(self, key: str, stale_only: bool = False) -> None:
        """Delete an entry."""
        path = self._get_file_path(key)
        if stale_only:
            entry = await self.get(key)
            if entry is None or not entry.is_expired():
                return
        await asyncio.to_thread(self._unlink, path)

    async def exists(self, key: str) -> bool:
        """Check if a key exists."""
        return await asyncio.to_thread(self._get_file_path(key).exists)

    async def clean(
        self,
        priority_or_below: CachePriority = CachePriority.HIGH,
        stale_only: bool = False,
    ) -> None:
        """Remove entries matching the priority and staleness filters."""
        removed = await asyncio.to_thread(self._clean, priority_or_below, stale_only)
        logger.info(f"Cleaned {removed} entries from {self.directory}")

    async def close(self) -> None:
        """Nothing to release, records live on disk."""
        pass


def create_file_cache_store(directory: Path | str) -> FileCacheStore:
    """Create a file system cache store."""
    return FileCacheStore(directory)
