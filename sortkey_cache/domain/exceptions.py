"""Exceptions for the sort-key cache.

Configuration and codec violations, transaction misuse and an unready
store each have their own type. Errors raised by the redis client itself
are never wrapped; they reach the caller unmodified.
"""

from typing import Any


class SortKeyCacheException(Exception):
    """Base exception for all sort-key cache errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. key, separator).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(SortKeyCacheException):
    """Raised when cache options are contradictory (e.g. min_retained > max_retained)."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message, "CONFIGURATION_ERROR", details)


class InvalidKeyError(SortKeyCacheException):
    """Raised when a key or sort key cannot be encoded without breaking index order."""

    def __init__(self, message: str, field: str, value: str) -> None:
        """Initialize with the offending component.

        Args:
            message: Description of the violation.
            field: 'key' or 'sort_key'.
            value: The rejected value.
        """
        super().__init__(message, "INVALID_KEY", {"field": field, "value": value})


class MalformedEntryError(SortKeyCacheException):
    """Raised when an index entry does not decode to exactly (key, sort_key).

    Means the index was corrupted or written with another separator; never
    coerced into a not-found result.
    """

    def __init__(self, entry: str) -> None:
        super().__init__(
            f"Index entry is not a composite cache key: {entry!r}",
            "MALFORMED_ENTRY",
            {"entry": entry},
        )


class TransactionStateError(SortKeyCacheException):
    """Base for begin/commit/rollback called in the wrong state."""


class AlreadyActiveError(TransactionStateError):
    """Raised when begin() is called while a transaction is active."""

    def __init__(self) -> None:
        super().__init__("Transaction already begun", "TRANSACTION_ALREADY_ACTIVE")


class NoActiveTransactionError(TransactionStateError):
    """Raised when commit() or rollback() is called with no active transaction."""

    def __init__(self, action: str) -> None:
        super().__init__(
            f"No transaction to {action}",
            "NO_ACTIVE_TRANSACTION",
            {"action": action},
        )


class StoreConnectionError(SortKeyCacheException):
    """Raised when the backing store is not ready before an operation is issued."""

    def __init__(self, message: str = "Backing store is not connected") -> None:
        super().__init__(message, "STORE_UNAVAILABLE")
