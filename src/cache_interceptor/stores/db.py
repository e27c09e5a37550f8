"""
SQLite cache store.

Entries live in a single ``cache_entries`` table keyed by cache key.
Database calls run in a worker thread and are serialized by a lock.
"""

import asyncio
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from ..types import CacheEntry, CachePriority, CacheStore, CacheStoreError

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "http_cache.db"


class DbCacheStore(CacheStore):
    """SQLite-backed cache store."""

    def __init__(self, database_path: Path | str, db_name: str = DEFAULT_DB_NAME) -> None:
        path = Path(database_path)
        if path.suffix:
            self.db_path = path
        else:
            self.db_path = path / db_name
        self._lock = threading.Lock()
        self._connection: Optional[sqlite3.Connection] = None

    def _connect(self) -> sqlite3.Connection:
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._create_tables(self._connection)
            logger.info(f"Cache database opened: {self.db_path}")
        return self._connection

    def _create_tables(self, connection: sqlite3.Connection) -> None:
        connection.execute("""
            CREATE TABLE IF NOT EXISTS cache_entries (
                cache_key TEXT PRIMARY KEY,
                priority INTEGER NOT NULL,
                max_stale TEXT,
                record TEXT NOT NULL  -- JSON object
            )
        """)
        connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_cache_entries_priority ON cache_entries (priority)")
        connection.commit()

    def _run(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        with self._lock:
            try:
                connection = self._connect()
                result = fn(connection)
                connection.commit()
                return result
            except sqlite3.Error as e:
                raise CacheStoreError(f"Cache database error ({self.db_path}): {e}") from e

    def _decode(self, record: str) -> CacheEntry:
        try:
            return CacheEntry.from_record(json.loads(record))
        except (ValueError, KeyError, TypeError) as e:
            raise CacheStoreError(f"Corrupt cache record in {self.db_path}: {e}") from e

    async def _execute(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        return await asyncio.to_thread(self._run, fn)

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Get an entry by key."""
        row = await self._execute(
            lambda conn: conn.execute(
                "SELECT record FROM cache_entries WHERE cache_key = ?", (key,)
            ).fetchone()
        )
        if row is None:
            return None
        return self._decode(row[0])

    async def set(self, entry: CacheEntry) -> None:
        """Insert or replace an entry."""
        record = json.dumps(entry.to_record())
        max_stale = entry.max_stale.isoformat() if entry.max_stale else None
        await self._execute(
            lambda conn: conn.execute(
                """
                INSERT OR REPLACE INTO cache_entries (cache_key, priority, max_stale, record)
                VALUES (?, ?, ?, ?)
                """,
                (entry.key, int(entry.priority), max_stale, record),
            )
        )

    async def delete(self, key: str, stale_only: bool = False) -> None:
        """Delete an entry."""
        if stale_only:
            entry = await self.get(key)
            if entry is None or not entry.is_expired():
                return
        await self._execute(
            lambda conn: conn.execute("DELETE FROM cache_entries WHERE cache_key = ?", (key,))
        )

    async def exists(self, key: str) -> bool:
        """Check if a key exists."""
        row = await self._execute(
            lambda conn: conn.execute(
                "SELECT 1 FROM cache_entries WHERE cache_key = ?", (key,)
            ).fetchone()
        )
        return row is not None

    async def clean(
        self,
        priority_or_below: CachePriority = CachePriority.HIGH,
        stale_only: bool = False,
    ) -> None:
        """Remove entries matching the priority and staleness filters."""
        if stale_only:
            rows = await self._execute(
                lambda conn: conn.execute(
                    "SELECT record FROM cache_entries WHERE priority <= ? AND max_stale IS NOT NULL",
                    (int(priority_or_below),),
                ).fetchall()
            )
            keys = [
                entry.key
                for entry in (self._decode(row[0]) for row in rows)
                if entry.is_expired()
            ]
            await self._execute(
                lambda conn: conn.executemany(
                    "DELETE FROM cache_entries WHERE cache_key = ?", [(key,) for key in keys]
                )
            )
            removed = len(keys)
        else:
            cursor = await self._execute(
                lambda conn: conn.execute(
                    "DELETE FROM cache_entries WHERE priority <= ?", (int(priority_or_below),)
                )
            )
            removed = cursor.rowcount
        logger.info(f"Cleaned {removed} entries from {self.db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None


def create_db_cache_store(
    database_path: Path | str, db_name: str = DEFAULT_DB_NAME
) -> DbCacheStore:
    """Create a SQLite cache store."""
    return DbCacheStore(database_path, db_name)
