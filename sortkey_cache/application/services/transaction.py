"""Atomicity manager: client-side transactions over atomic procedures.

Each mutation is already one indivisible procedure on the store. While a
transaction is active, procedures are buffered instead of run, and
commit() submits the buffer as one indivisible batch. Reads are never
buffered, so they observe pre-transaction state until commit.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import Any

from sortkey_cache.domain.exceptions import AlreadyActiveError, NoActiveTransactionError
from sortkey_cache.infrastructure.cache.store_protocol import (
    AtomicOperation,
    IndexStoreProtocol,
)

logger = logging.getLogger(__name__)


class TransactionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class TransactionManager:
    """At most one pending transaction per cache instance."""

    def __init__(self, store: IndexStoreProtocol) -> None:
        self._store = store
        self._pending: list[AtomicOperation] | None = None

    @property
    def state(self) -> TransactionState:
        return TransactionState.IDLE if self._pending is None else TransactionState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    @property
    def pending_count(self) -> int:
        return len(self._pending) if self._pending is not None else 0

    def begin(self) -> None:
        """Start buffering mutations.

        Raises:
            AlreadyActiveError: If a transaction is already active.
        """
        if self._pending is not None:
            raise AlreadyActiveError()
        self._pending = []
        logger.debug("Transaction BEGIN")

    async def commit(self) -> list[Any]:
        """Run the buffered procedures as one unit and return their replies.

        The manager is idle afterwards even when the store raises; the
        buffer is then lost and the store error propagates.

        Raises:
            NoActiveTransactionError: If no transaction is active.
        """
        if self._pending is None:
            raise NoActiveTransactionError("commit")
        logger.debug("Transaction COMMIT: %s operations", self.pending_count)
        operations, self._pending = self._pending, None
        return await self._store.run_atomic_batch(operations)

    def rollback(self) -> None:
        """Discard the buffered procedures.

        Raises:
            NoActiveTransactionError: If no transaction is active.
        """
        if self._pending is None:
            raise NoActiveTransactionError("rollback")
        logger.debug("Transaction ROLLBACK: %s operations discarded", self.pending_count)
        self._pending = None

    async def submit(self, operation: AtomicOperation) -> Any | None:
        """Run operation now, or buffer it (returning None) inside a transaction."""
        if self._pending is not None:
            self._pending.append(operation)
            return None
        return await self._store.run_atomic(operation)

    async def submit_all(self, operations: Sequence[AtomicOperation]) -> list[Any] | None:
        """Run operations together as one unit, or buffer them inside a transaction."""
        if self._pending is not None:
            self._pending.extend(operations)
            return None
        return await self._store.run_atomic_batch(operations)
