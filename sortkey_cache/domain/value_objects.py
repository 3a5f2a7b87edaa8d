"""Value objects for the sort-key cache.

Immutable types passed across the cache API. They have no identity,
only value.
"""

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

V = TypeVar("V")


@dataclass(frozen=True)
class CacheKey:
    """A key and one of its versions (sort key)."""

    key: str
    sort_key: str


@dataclass(frozen=True)
class CacheResult(Generic[V]):
    """A found entry: its sort key and value.

    deleted is True when the stored payload is the tombstone; value is
    then None. Not-found is represented by returning None instead of a
    CacheResult.
    """

    sort_key: str
    cached_value: V | None
    deleted: bool = False


@dataclass(frozen=True)
class RangeOptions:
    """Key-range restriction for keys() and kv_map().

    gte/lt bound the key component (not the sort key). reverse returns
    keys in descending order; limit truncates the final list.
    """

    gte: str | None = None
    lt: str | None = None
    limit: int | None = None
    reverse: bool = False


@dataclass(frozen=True)
class PruneStats:
    """Entry counts across all keys before and after a prune."""

    entries_before: int
    entries_after: int

    @property
    def entries_removed(self) -> int:
        return self.entries_before - self.entries_after


@dataclass(frozen=True)
class BatchOperation(Generic[V]):
    """One mutation of a batch: a put of value, or a del of that exact version.

    A del tombstones only key.sort_key, as delete_version() does; the
    key's other versions stay readable. To remove every version, call
    SortKeyCache.delete() or purge() instead.
    """

    type: Literal["put", "del"]
    key: CacheKey
    value: V | None = None
