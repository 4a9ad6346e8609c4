"""
Flat object store abstraction layer.

Provides the store contract and its implementations (memory, SQLite,
DuckDB). Each store implements the same interface, so sessions can
switch between them freely.
"""

from .base import (
    DEFAULT_TABLE_NAME,
    DeleteRow,
    FlatStore,
    FlatStoreReader,
    FlatStoreWriter,
    StoredRow,
    StoreOperation,
    UpsertRow,
    validate_table_name,
)
from .memory import MemoryStore

__all__ = [
    # Core classes
    "FlatStore",
    # Protocol ABCs
    "FlatStoreReader",
    "FlatStoreWriter",
    # Rows and operations
    "StoredRow",
    "DeleteRow",
    "UpsertRow",
    "StoreOperation",
    # Implementations
    "MemoryStore",
    # Helpers
    "DEFAULT_TABLE_NAME",
    "validate_table_name",
]
