"""In-process index store.

Same contract as RedisStore for single-process ephemeral caches and
tests. There is no server to run scripts, so each atomic procedure runs
under one asyncio.Lock and never awaits midway; a batch is applied to a
copy of the state and swapped in only when every procedure succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sortkey_cache.domain.retention import (
    RetentionWindow,
    plan_prune,
    plan_trim_on_put,
)
from sortkey_cache.infrastructure.cache.keys import (
    CompositeKeyCodec,
    index_key,
    value_key,
)
from sortkey_cache.infrastructure.cache.lex_index import LexIndex
from sortkey_cache.infrastructure.cache.store_protocol import (
    ATOMIC_DELETE,
    ATOMIC_PRUNE,
    ATOMIC_PUT,
    AtomicOperation,
)

logger = logging.getLogger(__name__)


@dataclass
class _State:
    values: dict[str, bytes] = field(default_factory=dict)
    indexes: dict[str, LexIndex] = field(default_factory=dict)

    def copy(self) -> _State:
        return _State(
            values=dict(self.values),
            indexes={name: index.copy() for name, index in self.indexes.items()},
        )

    def index(self, name: str) -> LexIndex:
        return self.indexes.setdefault(name, LexIndex())

    def evict(self, namespace: str, entries: Sequence[str]) -> int:
        index = self.index(index_key(namespace))
        index.remove(*entries)
        for entry in entries:
            self.values.pop(value_key(namespace, entry), None)
        return len(entries)


def _put(state: _State, operation: AtomicOperation) -> int:
    key, sort_key = operation.keys
    value, min_retained, max_retained, namespace, separator = operation.args
    codec = CompositeKeyCodec(separator)
    entry = codec.encode(key, sort_key)
    window = RetentionWindow(int(min_retained), int(max_retained))

    index = state.index(index_key(namespace))
    state.values[value_key(namespace, entry)] = bytes(value)
    index.add(entry)

    lower, upper = codec.key_floor(key), f"[{entry}"
    if index.count(lower, upper) <= window.max_retained:
        return 0
    return state.evict(namespace, plan_trim_on_put(index.range(lower, upper), window))


def _delete(state: _State, operation: AtomicOperation) -> int:
    key, sort_key = operation.keys
    namespace, separator = operation.args
    codec = CompositeKeyCodec(separator)
    index = state.index(index_key(namespace))
    doomed = index.range(codec.entry_bound(key, sort_key), codec.key_ceiling(key))
    return state.evict(namespace, doomed)


def _prune(state: _State, operation: AtomicOperation) -> list[int]:
    (entries_stored,) = operation.keys
    namespace, separator = operation.args
    codec = CompositeKeyCodec(separator)
    index = state.index(index_key(namespace))
    stale, stats = plan_prune(list(index), int(entries_stored), codec.key_of)
    state.evict(namespace, stale)
    return [stats.entries_before, stats.entries_after]


_PROCEDURES = {
    ATOMIC_PUT: _put,
    ATOMIC_DELETE: _delete,
    ATOMIC_PRUNE: _prune,
}


class MemoryStore:
    """Index store held in process memory.

    managed=True models a store shared by several caches: it is available
    immediately and open/close do nothing.
    """

    def __init__(self, managed: bool = False) -> None:
        self.is_managed = managed
        self._state = _State()
        self._lock = asyncio.Lock()
        self._open = managed

    def is_available(self) -> bool:
        return self._open

    async def open(self) -> None:
        if self.is_managed:
            return
        self._open = True
        logger.debug("Memory store opened")

    async def close(self) -> None:
        if self.is_managed:
            return
        self._open = False
        logger.debug("Memory store closed")

    async def configure_in_memory(self) -> None:
        if self.is_managed:
            logger.warning("Memory store is managed by caller; not changing config")

    async def save(self) -> None:
        logger.warning("Memory store has no persistence; save() ignored")

    async def get(self, name: str) -> bytes | None:
        return self._state.values.get(name)

    async def mget(self, names: Sequence[str]) -> list[bytes | None]:
        return [self._state.values.get(name) for name in names]

    async def range_by_lex(
        self,
        index: str,
        lower: str,
        upper: str,
        *,
        reverse: bool = False,
        offset: int = 0,
        count: int | None = None,
    ) -> list[str]:
        lex_index = self._state.indexes.get(index)
        if lex_index is None:
            return []
        return lex_index.range(lower, upper, reverse=reverse, offset=offset, count=count)

    async def run_atomic(self, operation: AtomicOperation) -> Any:
        async with self._lock:
            # Procedures validate and plan before mutating, so a failure
            # leaves the state untouched.
            return _PROCEDURES[operation.procedure](self._state, operation)

    async def run_atomic_batch(self, operations: Sequence[AtomicOperation]) -> list[Any]:
        async with self._lock:
            draft = self._state.copy()
            results = [_PROCEDURES[op.procedure](draft, op) for op in operations]
            self._state = draft
        logger.debug("Memory transaction executed: %s operations", len(operations))
        return results

    def storage(self) -> MemoryStore:
        return self
