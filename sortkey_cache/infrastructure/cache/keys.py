"""Composite cache key codec and storage key builders.

A composite entry is key + separator + sort_key. The separator must sort
below every character of a key: then entries of different keys never
interleave in the index, even when one key is a prefix of another.
Single place for the entry and storage key format.
"""

from sortkey_cache.core.constants import (
    DEFAULT_SEPARATOR,
    GENESIS_SORT_KEY,
    INDEX_SUFFIX,
    LAST_POSSIBLE_SORT_KEY,
    LEX_EXCLUSIVE,
    LEX_INCLUSIVE,
    NAMESPACE_DELIMITER,
)
from sortkey_cache.domain.exceptions import InvalidKeyError, MalformedEntryError
from sortkey_cache.domain.value_objects import CacheKey


def index_key(namespace: str) -> str:
    """Storage key of the namespace's sorted index."""
    return f"{namespace}{NAMESPACE_DELIMITER}{INDEX_SUFFIX}"


def value_key(namespace: str, entry: str) -> str:
    """Storage key of the payload stored under a composite entry."""
    return f"{namespace}{NAMESPACE_DELIMITER}{entry}"


class CompositeKeyCodec:
    """Encodes (key, sort_key) pairs into index entries and back."""

    def __init__(self, separator: str = DEFAULT_SEPARATOR) -> None:
        if len(separator) != 1:
            raise ValueError(f"Separator must be a single character, got: {separator!r}")
        self.separator = separator
        # First character after the separator: bounds every entry of a key from above.
        self._key_ceiling = chr(ord(separator) + 1)

    def validate_key(self, key: str) -> None:
        """Raise InvalidKeyError if key is empty or has a character <= separator.

        Args:
            key: Cache key.

        Raises:
            InvalidKeyError: If key would cross key boundaries in the index.
        """
        if not key:
            raise InvalidKeyError("Cache key must be a non-empty string", "key", key)
        if min(key) <= self.separator:
            raise InvalidKeyError(
                f"Cache key {key!r} contains a character ordering at or below "
                f"separator {self.separator!r}",
                "key",
                key,
            )

    def validate_sort_key(self, sort_key: str) -> None:
        """Raise InvalidKeyError if sort_key is empty, contains the separator,
        or falls outside [GENESIS_SORT_KEY, LAST_POSSIBLE_SORT_KEY].
        """
        if not sort_key:
            raise InvalidKeyError("Sort key must be a non-empty string", "sort_key", sort_key)
        if self.separator in sort_key:
            raise InvalidKeyError(
                f"Sort key {sort_key!r} must not contain separator {self.separator!r}",
                "sort_key",
                sort_key,
            )
        if not GENESIS_SORT_KEY <= sort_key <= LAST_POSSIBLE_SORT_KEY:
            raise InvalidKeyError(
                f"Sort key {sort_key!r} sorts outside the genesis..last-possible range",
                "sort_key",
                sort_key,
            )

    def encode(self, key: str, sort_key: str) -> str:
        """Composite entry for key at sort_key."""
        self.validate_key(key)
        self.validate_sort_key(sort_key)
        return f"{key}{self.separator}{sort_key}"

    def encode_cache_key(self, cache_key: CacheKey) -> str:
        return self.encode(cache_key.key, cache_key.sort_key)

    def decode(self, entry: str) -> CacheKey:
        """Split an entry into key and sort key.

        Raises:
            MalformedEntryError: If the entry does not hold exactly one separator.
        """
        parts = entry.split(self.separator)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise MalformedEntryError(entry)
        return CacheKey(key=parts[0], sort_key=parts[1])

    def key_of(self, entry: str) -> str:
        return self.decode(entry).key

    # Lexicographic bounds

    def key_floor(self, key: str) -> str:
        """Inclusive bound below every entry of key (and of keys sorting after it)."""
        self.validate_key(key)
        return f"{LEX_INCLUSIVE}{key}{self.separator}"

    def key_ceiling(self, key: str) -> str:
        """Exclusive bound above every entry of key."""
        self.validate_key(key)
        return f"{LEX_EXCLUSIVE}{key}{self._key_ceiling}"

    def key_exclusive_floor(self, key: str) -> str:
        """Exclusive bound below every entry of key; selects only smaller keys beneath it."""
        self.validate_key(key)
        return f"{LEX_EXCLUSIVE}{key}{self.separator}"

    def entry_bound(self, key: str, sort_key: str, inclusive: bool = True) -> str:
        prefix = LEX_INCLUSIVE if inclusive else LEX_EXCLUSIVE
        return f"{prefix}{self.encode(key, sort_key)}"
