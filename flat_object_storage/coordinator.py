"""
Reconciliation of session state with the backing store.

The coordinator turns the session's change trackers into the smallest
batch of row operations that brings the store in line with memory:
one delete per tracked deletion that the store actually holds, and one
upsert per dirty path. Every store call is wrapped so that failures
surface as StorageIOError naming the operation and the object.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from .backends.base import DeleteRow, FlatStore, StoreOperation, UpsertRow
from .exceptions import StorageIOError, ValueDecodeError
from .logging_utils import get_storage_logger
from .state import SessionState
from .values import TypedValue

logger = get_storage_logger("coordinator")

T = TypeVar("T")


@dataclass(frozen=True)
class SaveResult:
    """Row counts written by one save()."""

    object_id: str
    deleted: int = 0
    upserted: int = 0

    @property
    def committed(self) -> bool:
        """True if a batch was sent to the store."""
        return bool(self.deleted or self.upserted)


class PersistenceCoordinator:
    """Reads objects from a store and writes session changes back to it."""

    def __init__(self, store: FlatStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    async def _call(self, operation: str, object_id: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except Exception as e:
            logger.error(
                f"Store {operation} failed for {object_id}: {e}",
                extra={"object_id": object_id, "operation": operation},
            )
            raise StorageIOError(operation, object_id, e) from e

    async def load(self, object_id: str, strict: bool = False) -> dict[str, Any]:
        """
        Read and decode every row of an object.

        Args:
            object_id: Object to read
            strict: Raise instead of substituting typed fallbacks for
                malformed stored text

        Returns:
            Flat mapping of key path -> decoded value

        Raises:
            StorageIOError: If the read fails, or a value is malformed in strict mode
        """
        rows = await self._call("load", object_id, self.store.load_rows(object_id))

        data: dict[str, Any] = {}
        for row in rows:
            result = row.decode()
            if not result.ok:
                if strict:
                    error = ValueDecodeError(row.value_type, row.value, result.error or "")
                    raise StorageIOError("load", object_id, error) from error
                logger.warning(
                    f"Malformed {row.value_type} at {object_id}:{row.key_path} "
                    f"({result.error}); using {result.value!r}",
                    extra={"object_id": object_id, "key_path": row.key_path, "operation": "load"},
                )
            data[row.key_path] = result.value

        logger.debug(
            f"Loaded {len(data)} paths for {object_id}",
            extra={"object_id": object_id, "operation": "load"},
        )
        return data

    def build_operations(self, state: SessionState, timestamp: int) -> list[StoreOperation]:
        """
        Compute the row operations needed to persist pending changes.

        Deletions of paths that never reached the store are dropped.
        Deletes come first, then upserts, each in tracking order.
        """
        object_id = state.object_id
        if object_id is None:
            return []

        operations: list[StoreOperation] = [
            DeleteRow(object_id, path) for path in state.deleted if path in state.snapshot
        ]
        operations.extend(
            UpsertRow(
                object_id=object_id,
                key_path=path,
                value=TypedValue.from_value(state.flat_data[path]),
                timestamp=timestamp,
            )
            for path in state.dirty
        )
        return operations

    async def save(self, state: SessionState) -> SaveResult:
        """
        Persist pending changes as one atomic batch.

        On success the snapshot is replaced by the current data and the
        trackers are cleared. On failure the state is left untouched so
        the call can be retried.

        Raises:
            StorageIOError: If the store rejects the batch
        """
        object_id = state.object_id
        if object_id is None:
            raise ValueError("Cannot save a session without an active object")

        operations = self.build_operations(state, int(self.clock()))
        deletes = sum(1 for op in operations if isinstance(op, DeleteRow))
        result = SaveResult(object_id, deleted=deletes, upserted=len(operations) - deletes)

        if operations:
            await self._call("save", object_id, self.store.execute_batch(object_id, operations))
            logger.debug(
                f"Saved {object_id}: {result.deleted} deletes, {result.upserted} upserts"
            )

        state.commit()
        return result

    async def exists(self, object_id: str) -> bool:
        return await self._call("exists", object_id, self.store.exists(object_id))

    async def delete_object(self, object_id: str) -> int:
        removed = await self._call("delete_object", object_id, self.store.delete_object(object_id))
        logger.debug(f"Deleted {removed} rows of {object_id}")
        return removed
