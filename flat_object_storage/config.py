"""Session configuration."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass
class SessionConfig:
    """Configuration for an ObjectSession.

    Attributes:
        strict_decode: Fail load() on stored text that does not parse for its
            type tag instead of substituting 0, [] or {}
        clock: Returns the current time in seconds; truncated to whole seconds
            for the created_at/updated_at columns
    """

    strict_decode: bool = False
    clock: Callable[[], float] = time.time

    @classmethod
    def from_env(cls) -> SessionConfig:
        """Create config from environment variables."""
        import os

        strict = os.environ.get("FLAT_OBJECT_STRICT_DECODE", "").strip().lower()
        return cls(strict_decode=strict in _TRUTHY)
