"""In-process lexicographic index with Redis sorted-set bound syntax.

Members all share one score, so ordering is plain string order; bounds
use the ZRANGEBYLEX syntax: '[' inclusive, '(' exclusive, '-' and '+'
unbounded.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right, insort
from collections.abc import Iterable, Iterator

from sortkey_cache.core.constants import LEX_EXCLUSIVE, LEX_INCLUSIVE, LEX_MAX, LEX_MIN


def _parse_bound(bound: str) -> tuple[str, str]:
    """Return (kind, value) for a lex bound; raise ValueError on bad syntax."""
    if bound in (LEX_MIN, LEX_MAX):
        return bound, ""
    if bound and bound[0] in (LEX_INCLUSIVE, LEX_EXCLUSIVE):
        return bound[0], bound[1:]
    raise ValueError(f"Invalid lexicographic range bound: {bound!r}")


class LexIndex:
    """Sorted set of strings supporting lexicographic range scans."""

    def __init__(self, members: Iterable[str] = ()) -> None:
        self._members: list[str] = sorted(set(members))

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[str]:
        return iter(self._members)

    def __contains__(self, member: object) -> bool:
        i = bisect_left(self._members, member)  # type: ignore[arg-type]
        return i < len(self._members) and self._members[i] == member

    def copy(self) -> LexIndex:
        clone = LexIndex()
        clone._members = list(self._members)
        return clone

    def add(self, member: str) -> bool:
        """Insert member; return False if it was already present."""
        if member in self:
            return False
        insort(self._members, member)
        return True

    def remove(self, *members: str) -> int:
        """Remove members; return how many were present."""
        removed = 0
        for member in members:
            i = bisect_left(self._members, member)
            if i < len(self._members) and self._members[i] == member:
                del self._members[i]
                removed += 1
        return removed

    def _start(self, bound: str) -> int:
        kind, value = _parse_bound(bound)
        if kind == LEX_MIN:
            return 0
        if kind == LEX_MAX:
            return len(self._members)
        if kind == LEX_INCLUSIVE:
            return bisect_left(self._members, value)
        return bisect_right(self._members, value)

    def _stop(self, bound: str) -> int:
        kind, value = _parse_bound(bound)
        if kind == LEX_MIN:
            return 0
        if kind == LEX_MAX:
            return len(self._members)
        if kind == LEX_INCLUSIVE:
            return bisect_right(self._members, value)
        return bisect_left(self._members, value)

    def range(
        self,
        lower: str,
        upper: str,
        reverse: bool = False,
        offset: int = 0,
        count: int | None = None,
    ) -> list[str]:
        """Members between lower and upper, ascending or descending.

        offset/count apply after ordering, as LIMIT does in ZRANGE ... BYLEX.
        """
        start, stop = self._start(lower), self._stop(upper)
        if start >= stop:
            return []
        selected = self._members[start:stop]
        if reverse:
            selected.reverse()
        end = None if count is None or count < 0 else offset + count
        return selected[offset:end]

    def count(self, lower: str, upper: str) -> int:
        return max(self._stop(upper) - self._start(lower), 0)
