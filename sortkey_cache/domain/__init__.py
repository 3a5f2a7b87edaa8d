"""Domain layer: value objects, retention rules, and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from sortkey_cache.domain.exceptions import (
    AlreadyActiveError,
    ConfigurationError,
    InvalidKeyError,
    MalformedEntryError,
    NoActiveTransactionError,
    SortKeyCacheException,
    StoreConnectionError,
    TransactionStateError,
)
from sortkey_cache.domain.retention import RetentionWindow
from sortkey_cache.domain.value_objects import (
    BatchOperation,
    CacheKey,
    CacheResult,
    PruneStats,
    RangeOptions,
)

__all__ = [
    # Exceptions
    "AlreadyActiveError",
    "ConfigurationError",
    "InvalidKeyError",
    "MalformedEntryError",
    "NoActiveTransactionError",
    "SortKeyCacheException",
    "StoreConnectionError",
    "TransactionStateError",
    # Retention
    "RetentionWindow",
    # Value objects
    "BatchOperation",
    "CacheKey",
    "CacheResult",
    "PruneStats",
    "RangeOptions",
]
