"""Retention planning: which composite entries to evict.

Pure functions over lexicographically sorted index entries. Stores that
cannot run server-side scripts execute these under their own lock; the
Lua procedures implement the same rules inside Redis. Entries of one key
sort by sort key, so ascending order is oldest first.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sortkey_cache.domain.exceptions import ConfigurationError
from sortkey_cache.domain.value_objects import PruneStats


@dataclass(frozen=True)
class RetentionWindow:
    """Hysteresis band for trim-on-put.

    Writes never evict until a key holds more than max_retained versions
    (up to and including the one just written); eviction then brings it
    back down to min_retained.
    """

    min_retained: int
    max_retained: int

    def __post_init__(self) -> None:
        if self.min_retained < 1 or self.max_retained < 1:
            raise ConfigurationError(
                "Retention bounds must be positive",
                min_retained=self.min_retained,
                max_retained=self.max_retained,
            )
        if self.min_retained > self.max_retained:
            raise ConfigurationError(
                f"min_retained ({self.min_retained}) > max_retained ({self.max_retained})",
                min_retained=self.min_retained,
                max_retained=self.max_retained,
            )


def clamp_entries_stored(entries_stored: int | None) -> int:
    """Prune always keeps at least one version per key."""
    if not entries_stored or entries_stored < 1:
        return 1
    return entries_stored


def plan_trim_on_put(entries: Sequence[str], window: RetentionWindow) -> list[str]:
    """Return the entries to evict after a put.

    Args:
        entries: Ascending entries of one key, from the first version up to
            and including the version just written.
        window: Retention bounds.

    Returns:
        The oldest len(entries) - min_retained entries when the count
        exceeds max_retained; otherwise an empty list.
    """
    count = len(entries)
    if count <= window.max_retained:
        return []
    return list(entries[: count - window.min_retained])


def plan_key_prune(entries: Sequence[str], entries_stored: int) -> list[str]:
    """Return all but the entries_stored most recent of one key's ascending entries."""
    excess = len(entries) - entries_stored
    return list(entries[:excess]) if excess > 0 else []


def group_by_key(entries: Sequence[str], key_of: Callable[[str], str]) -> dict[str, list[str]]:
    """Group ascending entries by their key component, preserving order."""
    groups: dict[str, list[str]] = {}
    for entry in entries:
        groups.setdefault(key_of(entry), []).append(entry)
    return groups


def plan_prune(
    entries: Sequence[str],
    entries_stored: int,
    key_of: Callable[[str], str],
) -> tuple[list[str], PruneStats]:
    """Plan a namespace-wide prune.

    Args:
        entries: Every entry of the namespace index, ascending.
        entries_stored: Versions to keep per key (clamped to >= 1).
        key_of: Extracts the key component of an entry.

    Returns:
        Entries to evict and the before/after counts.
    """
    entries_stored = clamp_entries_stored(entries_stored)
    evicted: list[str] = []
    for key_entries in group_by_key(entries, key_of).values():
        evicted.extend(plan_key_prune(key_entries, entries_stored))
    stats = PruneStats(
        entries_before=len(entries),
        entries_after=len(entries) - len(evicted),
    )
    return evicted, stats
