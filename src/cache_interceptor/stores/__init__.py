"""
Cache store implementations.
"""
from .memory import (
    MemCacheStore,
    MemCacheStats,
    create_mem_cache_store,
)
from .file import (
    FileCacheStore,
    create_file_cache_store,
)
from .db import (
    DbCacheStore,
    create_db_cache_store,
)

__all__ = [
    "MemCacheStore",
    "MemCacheStats",
    "create_mem_cache_store",
    "FileCacheStore",
    "create_file_cache_store",
    "DbCacheStore",
    "create_db_cache_store",
]
