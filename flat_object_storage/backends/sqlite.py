"""
SQLite flat object store.

Uses aiosqlite so reads and batches never block the event loop.
Ideal for lightweight deployments, embedded applications, and testing.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiosqlite

from ..exceptions import StorageConnectionError, StorageIOError
from ..logging_utils import get_storage_logger
from .base import (
    DEFAULT_TABLE_NAME,
    DeleteRow,
    FlatStore,
    StoredRow,
    StoreOperation,
    UpsertRow,
    validate_table_name,
)

logger = get_storage_logger("sqlite")

# Row columns in schema order
ROW_COLUMNS = (
    "object_id",
    "key_path",
    "value",
    "value_type",
    "created_at",
    "updated_at",
)


@dataclass
class SQLiteConfig:
    """Configuration for SQLite storage."""

    db_path: str | Path = ":memory:"
    table_name: str = DEFAULT_TABLE_NAME
    connect_kwargs: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        validate_table_name(self.table_name)

    @classmethod
    def from_env(cls) -> SQLiteConfig:
        """Create config from environment variables."""
        import os

        return cls(
            db_path=os.environ.get("FLAT_OBJECT_SQLITE_PATH", ":memory:"),
            table_name=os.environ.get("FLAT_OBJECT_TABLE", DEFAULT_TABLE_NAME),
        )


class SQLiteStore(FlatStore):
    """
    SQLite-backed flat object store.

    Features:
    - Single file database (or :memory:)
    - One row per leaf, keyed by (object_id, key_path)
    - Batches run inside BEGIN/COMMIT and roll back on any failure
    """

    def __init__(self, config: SQLiteConfig):
        """
        Initialize SQLite store.

        Args:
            config: SQLite configuration
        """
        self.config = config
        self.table = config.table_name
        self.conn: Any = None  # aiosqlite.Connection
        self._initialized = False
        self._lock = asyncio.Lock()

    @classmethod
    async def create(cls, config: SQLiteConfig | None = None) -> SQLiteStore:
        """Create and initialize SQLite store."""
        if config is None:
            config = SQLiteConfig.from_env()

        store = cls(config)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Open the connection and create the table and indexes."""
        if self._initialized:
            return

        try:
            # Autocommit mode; batches manage their own transaction
            self.conn = await aiosqlite.connect(
                str(self.config.db_path),
                isolation_level=None,
                **self.config.connect_kwargs,
            )

            await self.conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    object_id TEXT NOT NULL,
                    key_path TEXT NOT NULL,
                    value TEXT,
                    value_type TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL,
                    PRIMARY KEY (object_id, key_path)
                )
            """)
            await self.conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table}_object_id ON {self.table}(object_id)"
            )
            await self.conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table}_key_path ON {self.table}(key_path)"
            )

            self._initialized = True
            logger.info(f"SQLite store initialized: {self.config.db_path} ({self.table})")

        except Exception as e:
            if self.conn is not None:
                await self.conn.close()
                self.conn = None
            raise StorageConnectionError(str(self.config.db_path), e) from e

    async def close(self) -> None:
        """Close SQLite connection."""
        if self.conn:
            await self.conn.close()
            self.conn = None

        self._initialized = False

    def _require_conn(self, operation: str) -> Any:
        if self.conn is None:
            raise StorageIOError(operation, cause=RuntimeError("Not initialized"))
        return self.conn

    # =========================================================================
    # Reads
    # =========================================================================

    async def load_rows(self, object_id: str) -> list[StoredRow]:
        conn = self._require_conn("load_rows")
        columns = ", ".join(ROW_COLUMNS)
        async with self._lock:
            async with conn.execute(
                f"SELECT {columns} FROM {self.table} WHERE object_id = ? ORDER BY key_path",
                (object_id,),
            ) as cursor:
                rows = await cursor.fetchall()

        return [StoredRow(*row) for row in rows]

    async def exists(self, object_id: str) -> bool:
        conn = self._require_conn("exists")
        async with self._lock:
            async with conn.execute(
                f"SELECT COUNT(*) FROM {self.table} WHERE object_id = ?",
                (object_id,),
            ) as cursor:
                row = await cursor.fetchone()
        return bool(row and row[0] > 0)

    # =========================================================================
    # Writes
    # =========================================================================

    @property
    def _delete_sql(self) -> str:
        return f"DELETE FROM {self.table} WHERE object_id = ? AND key_path = ?"

    @property
    def _upsert_sql(self) -> str:
        columns = ", ".join(ROW_COLUMNS)
        placeholders = ", ".join("?" for _ in ROW_COLUMNS)
        return f"""
            INSERT INTO {self.table} ({columns}) VALUES ({placeholders})
            ON CONFLICT (object_id, key_path) DO UPDATE SET
                value = excluded.value,
                value_type = excluded.value_type,
                updated_at = excluded.updated_at
        """

    async def delete_row(self, object_id: str, key_path: str) -> bool:
        conn = self._require_conn("delete_row")
        async with self._lock:
            cursor = await conn.execute(self._delete_sql, (object_id, key_path))
            deleted = cursor.rowcount
            await cursor.close()
        return deleted > 0

    async def upsert_row(self, operation: UpsertRow) -> None:
        conn = self._require_conn("upsert_row")
        async with self._lock:
            await conn.execute(self._upsert_sql, operation.columns())

    async def execute_batch(self, object_id: str, operations: Sequence[StoreOperation]) -> None:
        conn = self._require_conn("execute_batch")

        async with self._lock:
            try:
                await conn.execute("BEGIN TRANSACTION")
                for operation in operations:
                    if isinstance(operation, DeleteRow):
                        await conn.execute(
                            self._delete_sql, (operation.object_id, operation.key_path)
                        )
                    elif isinstance(operation, UpsertRow):
                        await conn.execute(self._upsert_sql, operation.columns())
                    else:
                        raise TypeError(f"Unsupported store operation: {operation!r}")

                await conn.execute("COMMIT")

            except BaseException:
                # rollback() is a no-op when BEGIN never ran
                await conn.rollback()
                raise

        logger.debug(f"Committed batch of {len(operations)} operations for {object_id}")

    async def delete_object(self, object_id: str) -> int:
        conn = self._require_conn("delete_object")
        async with self._lock:
            cursor = await conn.execute(
                f"DELETE FROM {self.table} WHERE object_id = ?", (object_id,)
            )
            deleted = cursor.rowcount
            await cursor.close()
        return max(deleted, 0)
