"""Validation and manipulation of object ids and dotted key paths.

Object ids name one logical document. Key paths address a leaf inside
it as a dot-joined sequence of segments, e.g. ``user.profile.name``.
"""

from __future__ import annotations

from .exceptions import ObjectValidationError

MAX_OBJECT_ID_LENGTH = 255
PATH_SEPARATOR = "."


def is_valid_object_id(value: object) -> bool:
    """Return True if value is a usable object id."""
    if not isinstance(value, str) or not value:
        return False
    if value.strip() != value:
        return False
    return len(value) <= MAX_OBJECT_ID_LENGTH


def is_valid_key_path(value: object) -> bool:
    """Return True if value is a usable dotted key path."""
    if not isinstance(value, str) or not value:
        return False
    if value.strip() != value:
        return False
    if value.startswith(PATH_SEPARATOR) or value.endswith(PATH_SEPARATOR):
        return False
    # Also rules out empty segments
    return PATH_SEPARATOR * 2 not in value


def validate_object_id(value: object) -> str:
    """Return value unchanged, or raise ObjectValidationError."""
    if not is_valid_object_id(value):
        raise ObjectValidationError(
            "object_id",
            f"must be a non-empty string without surrounding whitespace "
            f"of at most {MAX_OBJECT_ID_LENGTH} characters",
            value,
        )
    return value  # type: ignore[return-value]


def validate_key_path(value: object) -> str:
    """Return value unchanged, or raise ObjectValidationError."""
    if not is_valid_key_path(value):
        raise ObjectValidationError(
            "key_path",
            "must be a non-empty dotted path without surrounding whitespace, "
            "leading/trailing dots or empty segments",
            value,
        )
    return value  # type: ignore[return-value]


def split_key_path(path: str) -> list[str]:
    """Split a key path into its segments."""
    return path.split(PATH_SEPARATOR)


def join_key_path(prefix: str, key: str) -> str:
    """Append key to prefix; a bare key when there is no prefix."""
    return f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key
