"""Cache infrastructure: backing stores and the composite key format.

RedisStore is the production store; MemoryStore satisfies the same
IndexStoreProtocol in process. Key and index layout lives in keys.py.
"""

from sortkey_cache.infrastructure.cache.keys import CompositeKeyCodec, index_key, value_key
from sortkey_cache.infrastructure.cache.memory_store import MemoryStore
from sortkey_cache.infrastructure.cache.redis_store import RedisStore
from sortkey_cache.infrastructure.cache.store_protocol import (
    AtomicOperation,
    IndexStoreProtocol,
)

__all__ = [
    "AtomicOperation",
    "CompositeKeyCodec",
    "IndexStoreProtocol",
    "MemoryStore",
    "RedisStore",
    "index_key",
    "value_key",
]
