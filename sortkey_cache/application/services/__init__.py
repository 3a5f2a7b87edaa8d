"""Cache engine services: range queries, transactions, cache operations."""

from sortkey_cache.application.services.range_query import RangeQueryEngine
from sortkey_cache.application.services.sort_key_cache import SortKeyCache
from sortkey_cache.application.services.transaction import (
    TransactionManager,
    TransactionState,
)

__all__ = [
    "RangeQueryEngine",
    "SortKeyCache",
    "TransactionManager",
    "TransactionState",
]
