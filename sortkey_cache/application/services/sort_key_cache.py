"""Versioned cache operations over an index store.

SortKeyCache addresses values by (key, sort_key). It answers exact,
latest and latest-at-or-below lookups, ordered key scans and key/value
snapshots, keeps a bounded number of versions per key, and batches
mutations into all-or-nothing transactions.

Every mutation is one atomic procedure on the store (Lua on Redis), so
put/delete/prune are race-free even without begin(). begin()/commit()
make a sequence of mutations atomic together.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from sortkey_cache.application.services.range_query import RangeQueryEngine
from sortkey_cache.application.services.transaction import TransactionManager
from sortkey_cache.core.config import CacheOptions, DeletePolicy, Settings
from sortkey_cache.core.constants import (
    GENESIS_SORT_KEY,
    LAST_POSSIBLE_SORT_KEY,
    TOMBSTONE,
)
from sortkey_cache.domain.exceptions import StoreConnectionError
from sortkey_cache.domain.retention import RetentionWindow, clamp_entries_stored
from sortkey_cache.domain.value_objects import (
    BatchOperation,
    CacheKey,
    CacheResult,
    PruneStats,
    RangeOptions,
)
from sortkey_cache.infrastructure.cache.keys import CompositeKeyCodec, value_key
from sortkey_cache.infrastructure.cache.redis_store import RedisStore
from sortkey_cache.infrastructure.cache.store_protocol import (
    AtomicOperation,
    IndexStoreProtocol,
    atomic_delete,
    atomic_prune,
    atomic_put,
)
from sortkey_cache.infrastructure.serialization import JsonSerializer, Serializer
from sortkey_cache.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)

V = TypeVar("V")


class SortKeyCache(Generic[V]):
    """Versioned, range-queryable cache.

    Not-found is None. get() on a tombstoned version returns a CacheResult
    with deleted=True, so "never existed" and "deleted" stay distinct.
    """

    def __init__(
        self,
        store: IndexStoreProtocol,
        options: CacheOptions,
        serializer: Serializer[V] | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Backing store (owned or borrowed, see store.is_managed).
            options: Namespace, separator, retention and delete policy.
            serializer: Value codec; defaults to stable JSON.

        Raises:
            ConfigurationError: If options.min_retained > options.max_retained.
        """
        self.retention = RetentionWindow(options.min_retained, options.max_retained)
        self.store = store
        self.options = options
        self.namespace = options.namespace
        self.codec = CompositeKeyCodec(options.separator)
        self.serializer: Serializer[Any] = serializer or JsonSerializer()
        self._transactions = TransactionManager(store)
        self._ranges = RangeQueryEngine(store, self.codec)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        serializer: Serializer[V] | None = None,
    ) -> SortKeyCache[V]:
        """Cache over an owned RedisStore, configured entirely from settings."""
        return cls(
            RedisStore.from_settings(settings),
            CacheOptions.from_settings(settings),
            serializer,
        )

    @property
    def is_managed(self) -> bool:
        return self.store.is_managed

    @property
    def in_transaction(self) -> bool:
        return self._transactions.is_active

    def _ensure_ready(self) -> None:
        if not self.store.is_available():
            raise StoreConnectionError(
                f"Backing store for namespace {self.namespace!r} is not connected"
            )

    def _entry_name(self, key: str, sort_key: str) -> str:
        return value_key(self.namespace, self.codec.encode(key, sort_key))

    def _to_result(self, sort_key: str, payload: bytes | None) -> CacheResult[V] | None:
        if payload is None:
            return None
        if payload == TOMBSTONE:
            return CacheResult(sort_key=sort_key, cached_value=None, deleted=True)
        return CacheResult(sort_key=sort_key, cached_value=self.serializer.loads(payload))

    def _put_operation(self, cache_key: CacheKey, payload: bytes) -> AtomicOperation:
        self.codec.encode_cache_key(cache_key)
        return atomic_put(
            cache_key.key,
            cache_key.sort_key,
            payload,
            self.retention.min_retained,
            self.retention.max_retained,
            self.namespace,
            self.codec.separator,
        )

    def _serialize(self, value: V) -> bytes:
        payload = self.serializer.dumps(value)
        if payload == TOMBSTONE:
            raise ValueError("Serializer produced the reserved tombstone payload")
        return payload

    # Transactions

    async def begin(self) -> None:
        """Buffer subsequent mutations until commit() or rollback()."""
        self._transactions.begin()

    async def commit(self) -> None:
        """Apply buffered mutations as one indivisible unit."""
        self._ensure_ready()
        await self._transactions.commit()

    async def rollback(self) -> None:
        """Discard buffered mutations."""
        self._transactions.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SortKeyCache[V]]:
        """begin(); commit on normal exit, rollback if the block raises."""
        await self.begin()
        try:
            yield self
        except BaseException:
            await self.rollback()
            raise
        await self.commit()

    # Reads

    @traced("sortkey_cache.get")
    async def get(self, cache_key: CacheKey) -> CacheResult[V] | None:
        """Exact lookup of cache_key.key at cache_key.sort_key."""
        logger.debug("Cache GET: %s", cache_key)
        self._ensure_ready()
        payload = await self.store.get(self._entry_name(cache_key.key, cache_key.sort_key))
        return self._to_result(cache_key.sort_key, payload)

    @traced("sortkey_cache.get_last")
    async def get_last(self, key: str) -> CacheResult[V] | None:
        """Newest version of key."""
        logger.debug("Cache GET LAST: %s", key)
        return await self.get_less_or_equal(key, LAST_POSSIBLE_SORT_KEY)

    @traced("sortkey_cache.get_less_or_equal")
    async def get_less_or_equal(self, key: str, sort_key: str) -> CacheResult[V] | None:
        """Newest version of key whose sort key is <= sort_key."""
        logger.debug("Cache GET LESS OR EQUAL: %s <= %s", key, sort_key)
        self._ensure_ready()
        latest = await self._ranges.latest_sort_key(self.namespace, key, sort_key)
        if latest is None:
            return None
        payload = await self.store.get(self._entry_name(key, latest))
        return self._to_result(latest, payload)

    @traced("sortkey_cache.keys")
    async def keys(
        self,
        sort_key: str = LAST_POSSIBLE_SORT_KEY,
        options: RangeOptions | None = None,
    ) -> list[str]:
        """Keys having a version <= sort_key, restricted by options.

        Tombstoned keys are included: this reads the index only.
        """
        logger.debug("Cache KEYS: <= %s %s", sort_key, options)
        self._ensure_ready()
        latest = await self._ranges.latest_per_key(self.namespace, sort_key, options)
        return [cache_key.key for cache_key in latest]

    @traced("sortkey_cache.kv_map")
    async def kv_map(
        self,
        sort_key: str = LAST_POSSIBLE_SORT_KEY,
        options: RangeOptions | None = None,
    ) -> dict[str, V]:
        """Key -> value of each key's newest version <= sort_key.

        Keys whose selected version is a tombstone are left out. Order
        follows keys().
        """
        logger.debug("Cache KVMAP: <= %s %s", sort_key, options)
        self._ensure_ready()
        latest = await self._ranges.latest_per_key(self.namespace, sort_key, options)
        payloads = await self.store.mget(
            [value_key(self.namespace, self.codec.encode_cache_key(ck)) for ck in latest]
        )
        snapshot: dict[str, V] = {}
        for cache_key, payload in zip(latest, payloads):
            # None: evicted between the scan and the fetch.
            if payload is None or payload == TOMBSTONE:
                continue
            snapshot[cache_key.key] = self.serializer.loads(payload)
        return snapshot

    @traced("sortkey_cache.get_last_sort_key")
    async def get_last_sort_key(self) -> str | None:
        """Greatest sort key stored under any key, or None when empty."""
        logger.debug("Cache GET LAST SORT KEY")
        self._ensure_ready()
        return await self._ranges.last_sort_key(self.namespace)

    # Writes

    @traced("sortkey_cache.put")
    async def put(self, cache_key: CacheKey, value: V) -> None:
        """Store value at cache_key, then trim the key's history.

        Once the key holds more than max_retained versions up to this one,
        the oldest are evicted down to min_retained.
        """
        logger.debug("Cache PUT: %s", cache_key)
        operation = self._put_operation(cache_key, self._serialize(value))
        if not self.in_transaction:
            self._ensure_ready()
        evicted = await self._transactions.submit(operation)
        if evicted:
            logger.debug("Cache TRIM: %s evicted %s versions", cache_key.key, evicted)

    @traced("sortkey_cache.delete_version")
    async def delete_version(self, cache_key: CacheKey) -> None:
        """Tombstone exactly one version; other versions are untouched."""
        logger.debug("Cache DEL: %s", cache_key)
        operation = self._put_operation(cache_key, TOMBSTONE)
        if not self.in_transaction:
            self._ensure_ready()
        await self._transactions.submit(operation)

    @traced("sortkey_cache.purge")
    async def purge(self, key: str) -> None:
        """Physically remove every version of key. History is lost."""
        logger.debug("Cache PURGE: %s", key)
        self.codec.validate_key(key)
        if not self.in_transaction:
            self._ensure_ready()
        await self._transactions.submit(
            atomic_delete(key, GENESIS_SORT_KEY, self.namespace, self.codec.separator)
        )

    @traced("sortkey_cache.tombstone")
    async def tombstone(self, key: str, from_sort_key: str = GENESIS_SORT_KEY) -> None:
        """Delete key from from_sort_key onwards.

        Versions at or above from_sort_key are removed and a tombstone is
        written at from_sort_key; versions below it stay readable.
        """
        logger.debug("Cache TOMBSTONE: %s from %s", key, from_sort_key)
        cache_key = CacheKey(key=key, sort_key=from_sort_key)
        operations = [
            atomic_delete(key, from_sort_key, self.namespace, self.codec.separator),
            self._put_operation(cache_key, TOMBSTONE),
        ]
        if not self.in_transaction:
            self._ensure_ready()
        await self._transactions.submit_all(operations)

    async def delete(self, key: str) -> None:
        """Delete every version of key according to options.delete_policy."""
        if self.options.delete_policy is DeletePolicy.DESTRUCTIVE:
            await self.purge(key)
        else:
            await self.tombstone(key, GENESIS_SORT_KEY)

    @traced("sortkey_cache.prune")
    async def prune(self, entries_stored: int = 1) -> PruneStats | None:
        """Keep only the entries_stored newest versions of every key.

        Returns:
            Entry counts before/after, or None inside a transaction
            (the prune only runs at commit).
        """
        entries_stored = clamp_entries_stored(entries_stored)
        logger.debug("Cache PRUNE: keep %s per key", entries_stored)
        if not self.in_transaction:
            self._ensure_ready()
        reply = await self._transactions.submit(
            atomic_prune(entries_stored, self.namespace, self.codec.separator)
        )
        if reply is None:
            return None
        before, after = (int(count) for count in reply)
        stats = PruneStats(entries_before=before, entries_after=after)
        add_span_attributes(
            entries_before=before,
            entries_after=after,
            entries_removed=stats.entries_removed,
        )
        logger.info(
            "Cache PRUNE %s: %s entries before, %s after, %s removed",
            self.namespace,
            before,
            after,
            stats.entries_removed,
        )
        return stats

    @traced("sortkey_cache.batch")
    async def batch(self, operations: Sequence[BatchOperation[V]]) -> None:
        """Apply puts and dels as one unit.

        Joins the active transaction if there is one; otherwise runs in a
        transaction of its own.
        """
        logger.debug("Cache BATCH: %s operations", len(operations))
        pending: list[AtomicOperation] = []
        for op in operations:
            if op.type == "put":
                pending.append(self._put_operation(op.key, self._serialize(op.value)))
            elif op.type == "del":
                pending.append(self._put_operation(op.key, TOMBSTONE))
            else:
                raise ValueError(f"Unknown batch operation type: {op.type!r}")
        if not self.in_transaction:
            self._ensure_ready()
        await self._transactions.submit_all(pending)

    # Lifecycle

    async def open(self) -> None:
        """Open an owned store; apply in-memory config if requested."""
        logger.debug("Cache OPEN: %s", self.namespace)
        await self.store.open()
        if self.options.in_memory:
            await self.store.configure_in_memory()

    async def close(self) -> None:
        """Close an owned store, discarding an uncommitted transaction first."""
        logger.debug("Cache CLOSE: %s", self.namespace)
        if self.is_managed:
            return
        if self.in_transaction:
            await self.rollback()
        await self.store.close()

    async def dump(self) -> None:
        """Snapshot the store to disk. Blocks the server; not for production."""
        self._ensure_ready()
        await self.store.save()

    def storage(self) -> Any:
        """Underlying store client."""
        return self.store.storage()
