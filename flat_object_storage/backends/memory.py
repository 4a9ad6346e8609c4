"""In-memory flat object store for testing and embedded use."""

from __future__ import annotations

from collections.abc import Sequence

from ..exceptions import StorageIOError
from ..logging_utils import get_storage_logger
from .base import DeleteRow, FlatStore, StoredRow, StoreOperation, UpsertRow

logger = get_storage_logger("memory")

_RowKey = tuple[str, str]


class MemoryStore(FlatStore):
    """
    Dict-backed store.

    Data is lost when the store is closed or the process ends. Batches
    are applied to a copy of the table that replaces it only when every
    operation succeeded.

    Example:
        async with MemoryStore() as store:
            session = ObjectSession(store)
            await session.load("user:1")
    """

    def __init__(self) -> None:
        self._rows: dict[_RowKey, StoredRow] = {}
        self._initialized = False

    @classmethod
    async def create(cls) -> MemoryStore:
        """Create and initialize a memory store."""
        store = cls()
        await store.initialize()
        return store

    async def initialize(self) -> None:
        self._initialized = True

    async def close(self) -> None:
        self._rows.clear()
        self._initialized = False

    def _require_initialized(self, operation: str) -> None:
        if not self._initialized:
            raise StorageIOError(operation, cause=RuntimeError("Not initialized"))

    @staticmethod
    def _apply_upsert(rows: dict[_RowKey, StoredRow], operation: UpsertRow) -> None:
        key = (operation.object_id, operation.key_path)
        existing = rows.get(key)
        text, value_type = operation.value.to_storage()
        rows[key] = StoredRow(
            object_id=operation.object_id,
            key_path=operation.key_path,
            value=text,
            value_type=value_type,
            created_at=existing.created_at if existing else operation.timestamp,
            updated_at=operation.timestamp,
        )

    async def load_rows(self, object_id: str) -> list[StoredRow]:
        self._require_initialized("load_rows")
        return sorted(
            (row for (oid, _), row in self._rows.items() if oid == object_id),
            key=lambda row: row.key_path,
        )

    async def exists(self, object_id: str) -> bool:
        self._require_initialized("exists")
        return any(oid == object_id for oid, _ in self._rows)

    async def delete_row(self, object_id: str, key_path: str) -> bool:
        self._require_initialized("delete_row")
        return self._rows.pop((object_id, key_path), None) is not None

    async def upsert_row(self, operation: UpsertRow) -> None:
        self._require_initialized("upsert_row")
        self._apply_upsert(self._rows, operation)

    async def execute_batch(self, object_id: str, operations: Sequence[StoreOperation]) -> None:
        self._require_initialized("execute_batch")

        staged = dict(self._rows)
        for operation in operations:
            if isinstance(operation, DeleteRow):
                staged.pop((operation.object_id, operation.key_path), None)
            elif isinstance(operation, UpsertRow):
                self._apply_upsert(staged, operation)
            else:
                raise TypeError(f"Unsupported store operation: {operation!r}")

        self._rows = staged
        logger.debug(f"Applied batch of {len(operations)} operations for {object_id}")

    async def delete_object(self, object_id: str) -> int:
        self._require_initialized("delete_object")
        keys = [key for key in self._rows if key[0] == object_id]
        for key in keys:
            del self._rows[key]
        return len(keys)
