"""YAML configuration for the cache interceptor.

A configuration file holds a ``cache`` section, for example::

    cache:
      policy: cache_first
      priority: high
      max_stale_seconds: 604800
      hit_cache_on_error_except: [401, 403]
      store: file
      directory: .cache/http

Settings are validated with Pydantic and turned into
:class:`~cache_interceptor.options.CacheOptions`.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .options import CacheKeyBuilder, CacheOptions, ContentTransform, default_key_builder
from .stores import DbCacheStore, FileCacheStore, MemCacheStore
from .types import CachePolicy, CachePriority, CacheStore

logger = logging.getLogger(__name__)


class CacheConfigError(Exception):
    """Raised when cache configuration cannot be loaded or validated."""
    pass


class CacheSettings(BaseModel):
    """Validated cache configuration section."""

    policy: CachePolicy = CachePolicy.REQUEST
    priority: CachePriority = CachePriority.NORMAL
    max_stale_seconds: Optional[float] = Field(default=None, ge=0)
    # None and [] differ: [] still serves the cache on every error.
    hit_cache_on_error_except: Optional[List[int]] = None
    store: Literal["memory", "file", "db"] = "memory"
    directory: Optional[str] = None
    db_path: Optional[str] = None
    max_entries: int = Field(default=1000, gt=0)
    max_size_bytes: int = Field(default=100 * 1024 * 1024, gt=0)

    @field_validator("priority", mode="before")
    @classmethod
    def _parse_priority(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return CachePriority[value.upper()]
            except KeyError as e:
                raise ValueError(f"Unknown priority: {value}") from e
        return value

    def build_store(self) -> CacheStore:
        """Instantiate the configured store backend."""
        if self.store == "file":
            if not self.directory:
                raise CacheConfigError("'directory' is required for the file store")
            return FileCacheStore(self.directory)
        if self.store == "db":
            if not self.db_path:
                raise CacheConfigError("'db_path' is required for the db store")
            return DbCacheStore(self.db_path)
        return MemCacheStore(max_size=self.max_size_bytes, max_entries=self.max_entries)

    def to_options(
        self,
        *,
        store: Optional[CacheStore] = None,
        key_builder: CacheKeyBuilder = default_key_builder,
        encrypt: Optional[ContentTransform] = None,
        decrypt: Optional[ContentTransform] = None,
    ) -> CacheOptions:
        """Build cache options, creating the configured store unless one is given."""
        return CacheOptions(
            policy=self.policy,
            key_builder=key_builder,
            store=store if store is not None else self.build_store(),
            hit_cache_on_error_except=(
                frozenset(self.hit_cache_on_error_except)
                if self.hit_cache_on_error_except is not None
                else None
            ),
            max_stale=(
                timedelta(seconds=self.max_stale_seconds)
                if self.max_stale_seconds is not None
                else None
            ),
            priority=self.priority,
            encrypt=encrypt,
            decrypt=decrypt,
        )


def parse_cache_settings(data: Dict[str, Any], section: Optional[str] = "cache") -> CacheSettings:
    """Validate a configuration mapping."""
    raw = data.get(section) if section else data
    try:
        return CacheSettings.model_validate(raw or {})
    except ValidationError as e:
        raise CacheConfigError(f"Invalid cache configuration: {e}") from e


def load_cache_settings(path: Path | str, section: Optional[str] = "cache") -> CacheSettings:
    """
    Load cache settings from a YAML file.

    Args:
        path: YAML file path
        section: Top-level key holding the cache settings, None for the whole file

    Returns:
        Validated CacheSettings
    """
    file_path = Path(path)
    logger.debug(f"Loading cache configuration from: {file_path}")

    try:
        data = yaml.safe_load(file_path.read_text()) or {}
    except FileNotFoundError as e:
        raise CacheConfigError(f"No config file found: {file_path}") from e
    except yaml.YAMLError as e:
        raise CacheConfigError(f"YAML parsing error in {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise CacheConfigError(f"Expected a mapping in {file_path}")

    settings = parse_cache_settings(data, section)
    logger.info(f"Loaded cache configuration from: {file_path} (policy={settings.policy.value})")
    return settings
