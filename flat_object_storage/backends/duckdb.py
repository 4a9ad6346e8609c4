"""
DuckDB flat object store.

DuckDB's Python API is synchronous, so every call runs in a worker
thread via asyncio.to_thread. Ideal for local analytics over stored
objects and single-machine deployments.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import duckdb

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

logger = get_storage_logger("duckdb")

ROW_COLUMNS = (
    "object_id",
    "key_path",
    "value",
    "value_type",
    "created_at",
    "updated_at",
)


@dataclass
class DuckDBConfig:
    """Configuration for DuckDB storage."""

    db_path: str | Path = ":memory:"  # Use :memory: for in-memory database
    table_name: str = DEFAULT_TABLE_NAME

    def __post_init__(self) -> None:
        validate_table_name(self.table_name)

    @classmethod
    def from_env(cls) -> DuckDBConfig:
        """Create config from environment variables."""
        import os

        return cls(
            db_path=os.environ.get("FLAT_OBJECT_DUCKDB_PATH", ":memory:"),
            table_name=os.environ.get("FLAT_OBJECT_TABLE", DEFAULT_TABLE_NAME),
        )


class DuckDBStore(FlatStore):
    """
    DuckDB-backed flat object store.

    Features:
    - Local database (file-based or in-memory)
    - One row per leaf, keyed by (object_id, key_path)
    - Batches run in a transaction and roll back on any failure
    """

    def __init__(self, config: DuckDBConfig):
        """
        Initialize DuckDB store.

        Args:
            config: DuckDB configuration
        """
        self.config = config
        self.table = config.table_name
        self.conn: Any = None  # DuckDB connection (using Any due to type stub limitations)
        self._initialized = False
        # One connection, used from worker threads one call at a time
        self._lock = asyncio.Lock()

    @classmethod
    async def create(cls, config: DuckDBConfig | None = None) -> DuckDBStore:
        """Create and initialize DuckDB store."""
        if config is None:
            config = DuckDBConfig.from_env()

        store = cls(config)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Open the connection and create the table."""
        if self._initialized:
            return

        def _init() -> None:
            """Run sync initialization in thread."""
            self.conn = duckdb.connect(str(self.config.db_path))
            self.conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    object_id VARCHAR NOT NULL,
                    key_path VARCHAR NOT NULL,
                    value VARCHAR,
                    value_type VARCHAR NOT NULL,
                    created_at BIGINT NOT NULL,
                    updated_at BIGINT NOT NULL,
                    PRIMARY KEY (object_id, key_path)
                )
            """)

        try:
            await asyncio.to_thread(_init)
            self._initialized = True
            logger.info(f"DuckDB store initialized: {self.config.db_path} ({self.table})")
        except Exception as e:
            raise StorageConnectionError(str(self.config.db_path), e) from e

    async def close(self) -> None:
        """Close DuckDB connection."""
        if self.conn:
            await asyncio.to_thread(self.conn.close)
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

        def _get() -> list[StoredRow]:
            columns = ", ".join(ROW_COLUMNS)
            rows = conn.execute(
                f"SELECT {columns} FROM {self.table} WHERE object_id = ? ORDER BY key_path",
                [object_id],
            ).fetchall()
            return [StoredRow(*row) for row in rows]

        async with self._lock:
            return await asyncio.to_thread(_get)

    async def exists(self, object_id: str) -> bool:
        conn = self._require_conn("exists")

        def _exists() -> bool:
            row = conn.execute(
                f"SELECT COUNT(*) FROM {self.table} WHERE object_id = ?",
                [object_id],
            ).fetchone()
            return bool(row and row[0] > 0)

        async with self._lock:
            return await asyncio.to_thread(_exists)

    # =========================================================================
    # Writes
    # =========================================================================

    def _delete(self, conn: Any, object_id: str, key_path: str) -> int:
        row = conn.execute(
            f"DELETE FROM {self.table} WHERE object_id = ? AND key_path = ?",
            [object_id, key_path],
        ).fetchone()
        return row[0] if row else 0

    def _upsert(self, conn: Any, operation: UpsertRow) -> None:
        columns = ", ".join(ROW_COLUMNS)
        placeholders = ", ".join("?" for _ in ROW_COLUMNS)
        conn.execute(
            f"""
            INSERT INTO {self.table} ({columns}) VALUES ({placeholders})
            ON CONFLICT (object_id, key_path) DO UPDATE SET
                value = excluded.value,
                value_type = excluded.value_type,
                updated_at = excluded.updated_at
            """,
            list(operation.columns()),
        )

    async def delete_row(self, object_id: str, key_path: str) -> bool:
        conn = self._require_conn("delete_row")
        async with self._lock:
            deleted = await asyncio.to_thread(self._delete, conn, object_id, key_path)
        return deleted > 0

    async def upsert_row(self, operation: UpsertRow) -> None:
        conn = self._require_conn("upsert_row")
        async with self._lock:
            await asyncio.to_thread(self._upsert, conn, operation)

    async def execute_batch(self, object_id: str, operations: Sequence[StoreOperation]) -> None:
        conn = self._require_conn("execute_batch")

        def _apply() -> None:
            conn.begin()
            try:
                for operation in operations:
                    if isinstance(operation, DeleteRow):
                        self._delete(conn, operation.object_id, operation.key_path)
                    elif isinstance(operation, UpsertRow):
                        self._upsert(conn, operation)
                    else:
                        raise TypeError(f"Unsupported store operation: {operation!r}")
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        async with self._lock:
            await asyncio.to_thread(_apply)

        logger.debug(f"Committed batch of {len(operations)} operations for {object_id}")

    async def delete_object(self, object_id: str) -> int:
        conn = self._require_conn("delete_object")

        def _delete_all() -> int:
            row = conn.execute(
                f"DELETE FROM {self.table} WHERE object_id = ?", [object_id]
            ).fetchone()
            return row[0] if row else 0

        async with self._lock:
            return await asyncio.to_thread(_delete_all)
