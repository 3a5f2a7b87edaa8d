"""Range query engine: latest version per key over the sorted index.

Every read that is not an exact lookup is answered by one descending
lexicographic scan. Descending order puts each key's newest entry first,
so a single pass that keeps the first qualifying entry per key yields
"latest version <= max_sort_key" for every key in range.
"""

from __future__ import annotations

from collections.abc import Iterable

from sortkey_cache.core.constants import LEX_MAX, LEX_MIN
from sortkey_cache.domain.value_objects import CacheKey, RangeOptions
from sortkey_cache.infrastructure.cache.keys import CompositeKeyCodec, index_key
from sortkey_cache.infrastructure.cache.store_protocol import IndexStoreProtocol


def reduce_latest_per_key(
    entries: Iterable[str],
    codec: CompositeKeyCodec,
    max_sort_key: str,
) -> list[CacheKey]:
    """Keep the first entry per key whose sort key is <= max_sort_key.

    Args:
        entries: Index entries in descending order.
        codec: Decodes entries; malformed entries raise MalformedEntryError.
        max_sort_key: Inclusive cap on returned sort keys.

    Returns:
        One CacheKey per key, in descending key order.
    """
    latest: list[CacheKey] = []
    previous_key: str | None = None
    for entry in entries:
        cache_key = codec.decode(entry)
        if cache_key.sort_key > max_sort_key or cache_key.key == previous_key:
            continue
        latest.append(cache_key)
        previous_key = cache_key.key
    return latest


class RangeQueryEngine:
    """Computes lexicographic bounds and reduces scans for one store."""

    def __init__(self, store: IndexStoreProtocol, codec: CompositeKeyCodec) -> None:
        self._store = store
        self._codec = codec

    def key_range_bounds(self, options: RangeOptions | None) -> tuple[str, str]:
        """Lower/upper lex bounds restricting the key component to [gte, lt).

        The lower bound sits just below gte's oldest possible entry; the
        upper bound just below lt's, so no entry of lt (or of keys having
        lt as a prefix) is scanned.
        """
        lower, upper = LEX_MIN, LEX_MAX
        if options is not None:
            if options.gte:
                lower = self._codec.key_floor(options.gte)
            if options.lt:
                upper = self._codec.key_exclusive_floor(options.lt)
        return lower, upper

    async def latest_per_key(
        self,
        namespace: str,
        max_sort_key: str,
        options: RangeOptions | None = None,
    ) -> list[CacheKey]:
        """Latest entry <= max_sort_key for every key in range.

        Keys ascend unless options.reverse; options.limit truncates the
        reduced list, never the scan, so every key in range competes fairly.
        """
        self._codec.validate_sort_key(max_sort_key)
        lower, upper = self.key_range_bounds(options)
        entries = await self._store.range_by_lex(
            index_key(namespace), lower, upper, reverse=True
        )
        latest = reduce_latest_per_key(entries, self._codec, max_sort_key)
        if options is None or not options.reverse:
            latest.reverse()
        if options is not None and options.limit:
            latest = latest[: options.limit]
        return latest

    async def latest_sort_key(self, namespace: str, key: str, max_sort_key: str) -> str | None:
        """Newest sort key of key that is <= max_sort_key, or None."""
        entries = await self._store.range_by_lex(
            index_key(namespace),
            self._codec.key_floor(key),
            self._codec.entry_bound(key, max_sort_key),
            reverse=True,
            offset=0,
            count=1,
        )
        if not entries:
            return None
        cache_key = self._codec.decode(entries[0])
        if cache_key.key != key:
            # Bounds keep neighbors out; a foreign key here means the index
            # was written with another separator.
            return None
        return cache_key.sort_key

    async def last_sort_key(self, namespace: str) -> str | None:
        """Greatest sort key stored under any key of the namespace."""
        entries = await self._store.range_by_lex(index_key(namespace), LEX_MIN, LEX_MAX)
        if not entries:
            return None
        return max(self._codec.decode(entry).sort_key for entry in entries)
