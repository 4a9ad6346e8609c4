"""
In-memory state of one loaded object.

SessionState holds the live flat mapping, the snapshot it was loaded
from (or last saved as), and the two change trackers. The trackers are
insertion-ordered so the batch written on save is deterministic.

Invariant: a path is never pending both upsert and delete.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SessionState:
    """Flat data, snapshot and pending changes of the active object."""

    object_id: str | None = None
    flat_data: dict[str, Any] = field(default_factory=dict)
    snapshot: dict[str, Any] = field(default_factory=dict)
    dirty: dict[str, None] = field(default_factory=dict)
    deleted: dict[str, None] = field(default_factory=dict)

    @classmethod
    def loaded(cls, object_id: str, data: dict[str, Any]) -> SessionState:
        """State for a freshly loaded object: data and snapshot match."""
        return cls(object_id=object_id, flat_data=dict(data), snapshot=dict(data))

    @property
    def active(self) -> bool:
        return self.object_id is not None

    def has_changes(self) -> bool:
        return bool(self.dirty or self.deleted)

    def pending_count(self) -> int:
        return len(self.dirty) + len(self.deleted)

    def mark_dirty(self, path: str) -> None:
        self.deleted.pop(path, None)
        self.dirty[path] = None

    def mark_deleted(self, path: str) -> None:
        # Delete wins over a pending write
        self.dirty.pop(path, None)
        self.deleted[path] = None

    def unmark_deleted(self, path: str) -> None:
        self.deleted.pop(path, None)

    def clear_trackers(self) -> None:
        self.dirty.clear()
        self.deleted.clear()

    def commit(self) -> None:
        """Record flat_data as persisted."""
        self.snapshot = dict(self.flat_data)
        self.clear_trackers()

    def revert(self) -> None:
        """Drop pending changes and restore flat_data from the snapshot."""
        self.flat_data = dict(self.snapshot)
        self.clear_trackers()
