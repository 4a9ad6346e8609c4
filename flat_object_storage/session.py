"""
Write-back session over one stored object.

An ObjectSession keeps the active object's flat mapping in memory.
Reads and writes touch memory only; save() sends just the paths that
changed since the last load or save. Only load(), save(), exists() and
delete_object() perform I/O.

Usage:

    >>> async with SQLiteStore(SQLiteConfig("app.db")) as store:
    ...     session = ObjectSession(store)
    ...     await session.load("user:42")
    ...     session.set("profile.name", "Ada")
    ...     session.delete("profile.nickname")
    ...     await session.save()

A session is not safe for concurrent use: one caller owns it for the
duration of one logical operation. Two sessions writing the same path
of the same object race at row level and the last save wins; writes to
disjoint paths never overwrite each other.
"""

from __future__ import annotations

import warnings
from typing import Any

from .backends.base import FlatStore
from .config import SessionConfig
from .coordinator import PersistenceCoordinator, SaveResult
from .exceptions import NoActiveObjectError, UnsavedChangesWarning
from .flatten import flatten, unflatten
from .logging_utils import StorageLoggerAdapter, get_storage_logger
from .paths import validate_key_path, validate_object_id
from .state import SessionState
from .values import is_same_value

logger = get_storage_logger("session")

_MISSING = object()


class ObjectSession:
    """In-memory projection of one object with dirty tracking.

    Args:
        store: Backing store (must be initialized before use)
        config: Session options; defaults to SessionConfig()
    """

    def __init__(self, store: FlatStore, config: SessionConfig | None = None):
        self.store = store
        self.config = config or SessionConfig()
        self._coordinator = PersistenceCoordinator(store, clock=self.config.clock)
        self._state = SessionState()
        self._log = StorageLoggerAdapter(logger, {"object_id": None})

    def __repr__(self) -> str:
        return (
            f"<ObjectSession object_id={self._state.object_id!r} "
            f"paths={len(self._state.flat_data)} pending={self._state.pending_count()}>"
        )

    def _require_active(self, operation: str) -> SessionState:
        if not self._state.active:
            raise NoActiveObjectError(operation)
        return self._state

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def load(self, object_id: str) -> None:
        """
        Make object_id the active object, reading its rows from the store.

        Pending changes of the previously active object are discarded;
        an UnsavedChangesWarning is emitted when that happens. If the
        read fails the previous state is kept.

        Raises:
            ObjectValidationError: If object_id is malformed
            StorageIOError: If the store read fails
        """
        validate_object_id(object_id)
        data = await self._coordinator.load(object_id, strict=self.config.strict_decode)

        previous = self._state
        if previous.has_changes():
            message = (
                f'Switching to object "{object_id}" discards '
                f"{previous.pending_count()} unsaved change(s) of \"{previous.object_id}\""
            )
            self._log.warning(message, extra={"operation": "load"})
            warnings.warn(message, UnsavedChangesWarning, stacklevel=2)

        self._state = SessionState.loaded(object_id, data)
        self._log = StorageLoggerAdapter(logger, {"object_id": object_id})
        self._log.debug(f"Loaded {len(data)} paths")

    use = load

    @property
    def current_object_id(self) -> str | None:
        """Id of the active object, or None."""
        return self._state.object_id

    def get_current_object_id(self) -> str | None:
        """Same as current_object_id."""
        return self._state.object_id

    # =========================================================================
    # In-memory access
    # =========================================================================

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at path, or default if the path is not set."""
        validate_key_path(path)
        return self._require_active("get").flat_data.get(path, default)

    def contains(self, path: str) -> bool:
        """True if path holds a value (possibly None)."""
        validate_key_path(path)
        return path in self._require_active("contains").flat_data

    __contains__ = contains

    def set(self, path: str, value: Any) -> None:
        """
        Set the value at path.

        The path becomes dirty unless value is the very same object, or
        an equal scalar, as the one already held in memory.
        """
        validate_key_path(path)
        state = self._require_active("set")

        previous = state.flat_data.get(path, _MISSING)
        state.unmark_deleted(path)
        state.flat_data[path] = value

        if previous is _MISSING or not is_same_value(previous, value):
            state.mark_dirty(path)

    def delete(self, path: str) -> None:
        """Remove path; a no-op if it is not set."""
        validate_key_path(path)
        state = self._require_active("delete")

        if path in state.flat_data:
            del state.flat_data[path]
            state.mark_deleted(path)

    def set_all(self, value: Any) -> None:
        """
        Replace the whole object.

        Every current path is scheduled for deletion, then each path of
        the flattened value is scheduled for upsert. Paths present in
        both end up as upserts only.

        Raises:
            ObjectValidationError: If a key of value yields an invalid path
        """
        state = self._require_active("set_all")

        new_flat = flatten(value)
        for path in new_flat:
            validate_key_path(path)

        for path in state.flat_data:
            state.mark_deleted(path)

        state.flat_data = dict(new_flat)
        for path in new_flat:
            state.mark_dirty(path)

    def get_all(self) -> dict[str, Any]:
        """Return the active object as a nested structure."""
        return unflatten(self._require_active("get_all").flat_data)

    def has_unsaved_changes(self) -> bool:
        return self._require_active("has_unsaved_changes").has_changes()

    @property
    def dirty_paths(self) -> tuple[str, ...]:
        """Paths pending upsert, in the order they were changed."""
        return tuple(self._state.dirty)

    @property
    def deleted_paths(self) -> tuple[str, ...]:
        """Paths pending delete, in the order they were removed."""
        return tuple(self._state.deleted)

    def discard_changes(self) -> None:
        """Drop pending changes and restore the last loaded or saved data."""
        self._require_active("discard_changes").revert()

    # =========================================================================
    # Store operations
    # =========================================================================

    async def save(self) -> SaveResult:
        """
        Write pending changes to the store as one atomic batch.

        Raises:
            NoActiveObjectError: If no object is loaded
            StorageIOError: If the batch fails; the session is unchanged
                and save() can be retried
        """
        state = self._require_active("save")
        result = await self._coordinator.save(state)
        if result.committed:
            self._log.info(
                f"Saved {result.upserted} upserts and {result.deleted} deletes",
                extra={"operation": "save"},
            )
        return result

    async def delete_object(self, object_id: str | None = None) -> int:
        """
        Delete every row of an object from the store.

        Defaults to the active object. Deleting the active object
        resets the session to having no object.

        Returns:
            Number of rows removed
        """
        target = object_id if object_id is not None else self._state.object_id
        if target is None:
            raise NoActiveObjectError("delete_object")
        validate_object_id(target)

        removed = await self._coordinator.delete_object(target)

        if target == self._state.object_id:
            self._state = SessionState()
            self._log = StorageLoggerAdapter(logger, {"object_id": None})

        return removed

    async def exists(self, object_id: str) -> bool:
        """True if the store holds any row for object_id."""
        validate_object_id(object_id)
        return await self._coordinator.exists(object_id)
