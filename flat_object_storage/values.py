"""
Value classification and scalar text encoding.

Every stored leaf carries exactly one ValueType tag next to its textual
form. TypedValue is the single tagged value passed from the session to
the store boundary, where it turns into the ``(value, value_type)``
column pair and back.

Reads are lenient by default: text that does not parse for its tag
decodes to a typed fallback (0, [] or {}) so one corrupt field never
makes a whole object unreadable. decode() reports whether that
happened; deserialize(strict=True) turns it into ValueDecodeError.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from .exceptions import ValueDecodeError


class ValueType(Enum):
    """Closed set of leaf type tags."""

    NULL = "null"
    UNDEFINED = "undefined"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


PRIMITIVE_TYPES = frozenset({ValueType.BOOLEAN, ValueType.NUMBER, ValueType.STRING})

_CONTAINERS = (list, tuple, dict)


class _Undefined:
    """Marker for an explicitly undefined value, distinct from None."""

    __slots__ = ()
    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Undefined:
        return self

    def __deepcopy__(self, memo: dict) -> _Undefined:
        return self

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


def classify(value: Any) -> ValueType:
    """Return the type tag for a value."""
    if value is None:
        return ValueType.NULL
    if value is UNDEFINED:
        return ValueType.UNDEFINED
    if isinstance(value, (list, tuple)):
        return ValueType.ARRAY
    # bool is an int subclass
    if isinstance(value, bool):
        return ValueType.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueType.NUMBER
    if isinstance(value, (str, date)):
        return ValueType.STRING
    return ValueType.OBJECT


def _json_default(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if value is UNDEFINED:
        return None
    return str(value)


def to_json(value: Any) -> str:
    """Compact JSON text, e.g. ``[1,2]`` for ``[1, 2]``."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_json_default)


def _format_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)


def serialize(value: Any) -> str:
    """Serialize a value to its stored text form."""
    value_type = classify(value)

    if value_type in (ValueType.NULL, ValueType.UNDEFINED):
        return ""
    if value_type is ValueType.STRING:
        return value.isoformat() if isinstance(value, date) else value
    if value_type is ValueType.BOOLEAN:
        return "true" if value else "false"
    if value_type is ValueType.NUMBER:
        return _format_number(value)
    return to_json(value)


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding stored text.

    When ``ok`` is False, ``value`` holds the typed fallback and
    ``error`` says why the text was rejected.
    """

    value: Any
    ok: bool = True
    error: str | None = None


def _coerce_type(value_type: ValueType | str | None) -> ValueType | None:
    if isinstance(value_type, ValueType):
        return value_type
    try:
        return ValueType(value_type)
    except ValueError:
        return None


_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_INFINITIES = {"Infinity": math.inf, "+Infinity": math.inf, "-Infinity": -math.inf}


def _parse_number(text: str) -> DecodeResult:
    text = text.strip()
    if text in _INFINITIES:
        return DecodeResult(_INFINITIES[text])
    if not _NUMBER_RE.fullmatch(text):
        return DecodeResult(0, ok=False, error=f"not a number: {text!r}")
    try:
        return DecodeResult(int(text))
    except ValueError:
        return DecodeResult(float(text))


def _parse_container(text: str, value_type: ValueType) -> DecodeResult:
    expected, fallback = (list, []) if value_type is ValueType.ARRAY else (dict, {})
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        return DecodeResult(fallback, ok=False, error=f"invalid JSON: {e}")
    if not isinstance(parsed, expected):
        return DecodeResult(
            fallback,
            ok=False,
            error=f"expected JSON {value_type.value}, got {type(parsed).__name__}",
        )
    return DecodeResult(parsed)


def decode(text: str | None, value_type: ValueType | str | None) -> DecodeResult:
    """Decode stored text according to its tag, reporting fallbacks."""
    tag = _coerce_type(value_type)

    if tag is ValueType.NULL or not text:
        return DecodeResult(None)
    if tag is ValueType.UNDEFINED:
        return DecodeResult(UNDEFINED)
    if tag is ValueType.NUMBER:
        return _parse_number(text)
    if tag is ValueType.BOOLEAN:
        return DecodeResult(text == "true")
    if tag in (ValueType.ARRAY, ValueType.OBJECT):
        return _parse_container(text, tag)

    # Strings and unknown tags keep the raw text
    return DecodeResult(text)


def deserialize(
    text: str | None,
    value_type: ValueType | str | None,
    strict: bool = False,
) -> Any:
    """Decode stored text; raise ValueDecodeError on bad text when strict."""
    result = decode(text, value_type)
    if strict and not result.ok:
        tag = value_type.value if isinstance(value_type, ValueType) else str(value_type)
        raise ValueDecodeError(tag, text, result.error or "malformed value")
    return result.value


@dataclass(frozen=True)
class TypedValue:
    """A value together with its tag; the two can never disagree."""

    value_type: ValueType
    value: Any

    def __post_init__(self) -> None:
        actual = classify(self.value)
        if actual is not self.value_type:
            raise TypeError(
                f"{type(self.value).__name__} value cannot carry tag {self.value_type.value!r}"
                f" (classifies as {actual.value!r})"
            )

    @classmethod
    def from_value(cls, value: Any) -> TypedValue:
        return cls(classify(value), value)

    @classmethod
    def from_storage(
        cls,
        text: str | None,
        value_type: ValueType | str | None,
        strict: bool = False,
    ) -> TypedValue:
        return cls.from_value(deserialize(text, value_type, strict=strict))

    def to_storage(self) -> tuple[str, str]:
        """Return the ``(value, value_type)`` column pair."""
        return serialize(self.value), self.value_type.value


def to_storage_format(value: Any) -> tuple[str, str]:
    """Serialize a plain value to its ``(value, value_type)`` column pair."""
    return TypedValue.from_value(value).to_storage()


def from_storage_format(text: str | None, value_type: ValueType | str | None) -> Any:
    """Decode a ``(value, value_type)`` column pair leniently."""
    return deserialize(text, value_type)


def has_value_changed(old: Any, new: Any) -> bool:
    """Deep comparison by canonical text.

    Objects compare by their serialized JSON, so equal dicts with
    differently ordered keys count as changed.
    """
    if old is new:
        return False

    old_empty = old is None or old is UNDEFINED
    new_empty = new is None or new is UNDEFINED
    if old_empty or new_empty:
        return old_empty != new_empty

    old_type = classify(old)
    if old_type is not classify(new):
        return True

    if old_type in PRIMITIVE_TYPES:
        return old != new

    try:
        return to_json(old) != to_json(new)
    except (TypeError, ValueError):
        # Unserializable values are always treated as changed
        return True


def is_same_value(old: Any, new: Any) -> bool:
    """Shallow comparison: containers match only when they are the same object."""
    if old is new:
        return True
    if isinstance(old, _CONTAINERS) or isinstance(new, _CONTAINERS):
        return False
    if classify(old) is not classify(new):
        return False
    return bool(old == new)
