"""Backing store capability contract (DIP).

The cache engine depends on this protocol, never on a concrete client.
Reads are plain calls; every mutation goes through one of three atomic
procedures so a whole read-count-evict sequence runs indivisibly.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

ATOMIC_PUT = "atomic_put"
ATOMIC_DELETE = "atomic_delete"
ATOMIC_PRUNE = "atomic_prune"


@dataclass(frozen=True)
class AtomicOperation:
    """One invocation of an atomic procedure.

    keys/args keep the KEYS/ARGV split of the Lua procedures; their order
    is part of the compatibility surface with existing deployments.
    """

    procedure: str
    keys: tuple[Any, ...]
    args: tuple[Any, ...]


def atomic_put(
    key: str,
    sort_key: str,
    value: bytes,
    min_retained: int,
    max_retained: int,
    namespace: str,
    separator: str,
) -> AtomicOperation:
    """Write value at key/sort_key, index it, then trim the key's history."""
    return AtomicOperation(
        ATOMIC_PUT,
        (key, sort_key),
        (value, min_retained, max_retained, namespace, separator),
    )


def atomic_delete(key: str, sort_key: str, namespace: str, separator: str) -> AtomicOperation:
    """Remove every version of key at or above sort_key."""
    return AtomicOperation(ATOMIC_DELETE, (key, sort_key), (namespace, separator))


def atomic_prune(entries_stored: int, namespace: str, separator: str) -> AtomicOperation:
    """Keep only the entries_stored most recent versions of every key."""
    return AtomicOperation(ATOMIC_PRUNE, (entries_stored,), (namespace, separator))


class IndexStoreProtocol(Protocol):
    """Capabilities the cache needs from a sorted-index key-value store.

    Procedure replies: atomic_put and atomic_delete return the number of
    entries removed; atomic_prune returns [entries_before, entries_after].
    """

    # True when the connection belongs to the caller: open/close are no-ops
    # and store-wide configuration must not be changed.
    is_managed: bool

    def is_available(self) -> bool:
        """Return True if operations can be issued."""
        ...

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def configure_in_memory(self) -> None:
        """Turn off durability for an ephemeral, owned store."""
        ...

    async def save(self) -> None:
        """Snapshot the store to disk (blocking on the server)."""
        ...

    async def get(self, name: str) -> bytes | None: ...

    async def mget(self, names: Sequence[str]) -> list[bytes | None]: ...

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
        """Index members between lower and upper (min/max bounds in either direction)."""
        ...

    async def run_atomic(self, operation: AtomicOperation) -> Any:
        """Run one procedure indivisibly."""
        ...

    async def run_atomic_batch(self, operations: Sequence[AtomicOperation]) -> list[Any]:
        """Run procedures in order as one indivisible unit."""
        ...

    def storage(self) -> Any:
        """Underlying client, for operations outside the cache contract."""
        ...
