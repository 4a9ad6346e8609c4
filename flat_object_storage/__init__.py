"""
Flat Object Storage

Persist nested JSON-like objects as flat (object_id, key_path) rows and
work with them through a dirty-tracking write-back session.

Provides:
- Flattening codec with type-preserving round trips
- Write-back sessions that save only the paths that changed
- Interchangeable stores (memory, SQLite, DuckDB)

Usage:

    >>> from flat_object_storage import ObjectSession, SQLiteStore, SQLiteConfig
    >>> async with SQLiteStore(SQLiteConfig(db_path="objects.db")) as store:
    ...     session = ObjectSession(store)
    ...     await session.load("user:42")
    ...     session.set("profile.name", "Ada")
    ...     session.set("profile.tags", ["admin", "beta"])
    ...     await session.save()
    ...     session.get_all()
    {'profile': {'name': 'Ada', 'tags': ['admin', 'beta']}}

Store Selection:

    # In-memory, for tests and embedded use
    from flat_object_storage.backends import MemoryStore

    # SQLite for embedded applications
    from flat_object_storage.backends.sqlite import SQLiteStore, SQLiteConfig

    # DuckDB for local analytics
    from flat_object_storage.backends.duckdb import DuckDBStore, DuckDBConfig
"""

# Store abstraction
from .backends import (
    DeleteRow,
    FlatStore,
    FlatStoreReader,
    FlatStoreWriter,
    MemoryStore,
    StoredRow,
    UpsertRow,
)
from .config import SessionConfig
from .coordinator import PersistenceCoordinator, SaveResult

# Exceptions
from .exceptions import (
    NoActiveObjectError,
    ObjectStorageError,
    ObjectValidationError,
    StorageConnectionError,
    StorageIOError,
    UnsavedChangesWarning,
    ValueDecodeError,
)

# Codecs
from .flatten import deleted_keys, diff, flatten, parse_value, unflatten
from .paths import (
    is_valid_key_path,
    is_valid_object_id,
    validate_key_path,
    validate_object_id,
)
from .session import ObjectSession
from .values import (
    UNDEFINED,
    DecodeResult,
    TypedValue,
    ValueType,
    classify,
    decode,
    deserialize,
    has_value_changed,
    is_same_value,
    serialize,
)

# Conditional imports for optional stores
try:
    from .backends.sqlite import SQLiteConfig, SQLiteStore  # noqa: F401

    _has_sqlite = True
except ImportError:
    _has_sqlite = False

try:
    from .backends.duckdb import DuckDBConfig, DuckDBStore  # noqa: F401

    _has_duckdb = True
except ImportError:
    _has_duckdb = False


__all__ = [
    # Session
    "ObjectSession",
    "SessionConfig",
    "PersistenceCoordinator",
    "SaveResult",
    # Stores
    "FlatStore",
    "FlatStoreReader",
    "FlatStoreWriter",
    "MemoryStore",
    "StoredRow",
    "DeleteRow",
    "UpsertRow",
    # Codecs
    "flatten",
    "unflatten",
    "parse_value",
    "diff",
    "deleted_keys",
    "ValueType",
    "TypedValue",
    "DecodeResult",
    "UNDEFINED",
    "classify",
    "serialize",
    "deserialize",
    "decode",
    "has_value_changed",
    "is_same_value",
    "is_valid_object_id",
    "is_valid_key_path",
    "validate_object_id",
    "validate_key_path",
    # Exceptions
    "ObjectStorageError",
    "ObjectValidationError",
    "NoActiveObjectError",
    "StorageIOError",
    "StorageConnectionError",
    "ValueDecodeError",
    "UnsavedChangesWarning",
]

if _has_sqlite:
    __all__.extend(["SQLiteStore", "SQLiteConfig"])

if _has_duckdb:
    __all__.extend(["DuckDBStore", "DuckDBConfig"])

__version__ = "0.1.0"
