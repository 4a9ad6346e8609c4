"""
Abstract base classes for flat object stores.

A store holds one row per (object_id, key_path) leaf. The session only
needs four capabilities from it: read every row of an object, delete
one row, upsert one row, and apply a batch of those writes atomically.
Stores also answer exists() and delete_object() for whole objects.

The protocol is split into focused ABCs over a shared lifecycle:
- _StoreLifecycle: initialize/close and async context management
- FlatStoreReader: read operations
- FlatStoreWriter: write operations
- FlatStore: composed type implemented by concrete stores
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union

from ..exceptions import ObjectValidationError
from ..values import DecodeResult, TypedValue, decode

DEFAULT_TABLE_NAME = "flat_object_store"

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def validate_table_name(name: object) -> str:
    """Table names are interpolated into SQL, so only plain identifiers are allowed."""
    if not isinstance(name, str) or not _TABLE_NAME_RE.match(name):
        raise ObjectValidationError("table_name", "must be a plain SQL identifier", name)
    return name


@dataclass(frozen=True)
class StoredRow:
    """One persisted leaf, as read back from a store."""

    object_id: str
    key_path: str
    value: str | None
    value_type: str
    created_at: int
    updated_at: int

    def decode(self) -> DecodeResult:
        """Decode the column pair, reporting any lenient fallback."""
        return decode(self.value, self.value_type)

    def typed_value(self, strict: bool = False) -> TypedValue:
        """Decode the column pair into a TypedValue."""
        return TypedValue.from_storage(self.value, self.value_type, strict=strict)


@dataclass(frozen=True)
class DeleteRow:
    """Remove a single (object_id, key_path) row."""

    object_id: str
    key_path: str


@dataclass(frozen=True)
class UpsertRow:
    """Insert or overwrite a single row.

    ``timestamp`` becomes ``created_at`` only when the row is new and
    always becomes ``updated_at``.
    """

    object_id: str
    key_path: str
    value: TypedValue
    timestamp: int

    def columns(self) -> tuple[str, str, str, str, int, int]:
        """Row values in schema column order."""
        text, value_type = self.value.to_storage()
        return (
            self.object_id,
            self.key_path,
            text,
            value_type,
            self.timestamp,
            self.timestamp,
        )


StoreOperation = Union[DeleteRow, UpsertRow]


class _StoreLifecycle(ABC):
    """Shared initialize/close lifecycle for every store ABC."""

    @abstractmethod
    async def initialize(self) -> None:
        """Open connections and provision the table if needed."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connections and release resources."""
        pass

    async def __aenter__(self) -> Any:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class FlatStoreReader(_StoreLifecycle):
    """Read side of the store contract."""

    @abstractmethod
    async def load_rows(self, object_id: str) -> list[StoredRow]:
        """
        Return every row stored for an object.

        Args:
            object_id: Object identifier

        Returns:
            Rows ordered by key path (empty if the object does not exist)
        """
        pass

    @abstractmethod
    async def exists(self, object_id: str) -> bool:
        """Return True if at least one row is stored for the object."""
        pass


class FlatStoreWriter(_StoreLifecycle):
    """Write side of the store contract."""

    @abstractmethod
    async def delete_row(self, object_id: str, key_path: str) -> bool:
        """
        Delete a single row.

        Returns:
            True if the row existed
        """
        pass

    @abstractmethod
    async def upsert_row(self, operation: UpsertRow) -> None:
        """
        Insert a row, or overwrite value/type/updated_at on conflict.

        ``created_at`` of an existing row is preserved.
        """
        pass

    @abstractmethod
    async def execute_batch(self, object_id: str, operations: Sequence[StoreOperation]) -> None:
        """
        Apply operations in order as one all-or-nothing unit.

        Args:
            object_id: Object the batch belongs to (used for error context)
            operations: DeleteRow/UpsertRow operations

        Raises:
            Exception: If any operation fails; nothing is applied in that case
        """
        pass

    @abstractmethod
    async def delete_object(self, object_id: str) -> int:
        """
        Delete every row of an object.

        Returns:
            Number of rows removed
        """
        pass


class FlatStore(FlatStoreReader, FlatStoreWriter):
    """
    Abstract base for all flat object stores.

    Implementations must provide:
    - Point read of all rows for an object id
    - Single-row delete and upsert with created_at preservation
    - Atomic execution of a batch of deletes and upserts
    - Whole-object existence check and deletion
    """
