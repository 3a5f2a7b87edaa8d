"""Versioned, range-queryable cache over a sorted-index key-value store."""

from sortkey_cache.application.services.sort_key_cache import SortKeyCache
from sortkey_cache.core.config import CacheOptions, DeletePolicy
from sortkey_cache.core.constants import GENESIS_SORT_KEY, LAST_POSSIBLE_SORT_KEY
from sortkey_cache.domain.value_objects import (
    BatchOperation,
    CacheKey,
    CacheResult,
    PruneStats,
    RangeOptions,
)
from sortkey_cache.infrastructure.cache import MemoryStore, RedisStore

__all__ = [
    "SortKeyCache",
    "CacheOptions",
    "DeletePolicy",
    "GENESIS_SORT_KEY",
    "LAST_POSSIBLE_SORT_KEY",
    "BatchOperation",
    "CacheKey",
    "CacheResult",
    "PruneStats",
    "RangeOptions",
    "MemoryStore",
    "RedisStore",
]
