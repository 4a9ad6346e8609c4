"""
Conversion between nested objects and flat key-path mappings.

Examples:
    flatten({"a": {"b": 1}})   -> {"a.b": 1}
    flatten({"arr": [1, 2]})   -> {"arr": "[1,2]"}
    flatten({"val": None})     -> {"val": ""}

Lists are never exploded into indexed paths: a list is one opaque leaf
holding its JSON text. Empty dicts are kept as the ``"{}"`` marker so
they survive a round trip.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from datetime import date
from typing import Any

from .paths import join_key_path, split_key_path
from .values import UNDEFINED, has_value_changed, to_json

EMPTY_MARKER = ""
EMPTY_OBJECT_MARKER = "{}"


def _flatten_leaf(value: Any) -> Any:
    if value is None or value is UNDEFINED:
        return EMPTY_MARKER
    if isinstance(value, (list, tuple)):
        return to_json(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _flatten_into(value: Mapping, prefix: str, result: dict[str, Any]) -> None:
    for key, child in value.items():
        path = join_key_path(prefix, str(key))
        if isinstance(child, Mapping):
            if child:
                _flatten_into(child, path, result)
            else:
                result[path] = EMPTY_OBJECT_MARKER
        else:
            result[path] = _flatten_leaf(child)


def flatten(value: Any) -> dict[str, Any]:
    """
    Flatten a nested object into a key-path mapping.

    Keys are visited in the object's own iteration order. A value that
    is not a mapping has no path of its own and yields an empty result.

    Args:
        value: Nested object to flatten

    Returns:
        Insertion-ordered dict of key path -> leaf value
    """
    result: dict[str, Any] = {}
    if isinstance(value, Mapping):
        _flatten_into(value, "", result)
    return result


def parse_value(value: Any) -> Any:
    """
    Turn a flat leaf back into its nested form.

    - ``""`` -> None
    - ``"{}"`` -> {}
    - text wrapped in ``[...]`` or ``{...}`` -> parsed JSON, or the text
      itself when it does not parse
    - a list or dict is returned as a deep copy
    - anything else is returned unchanged
    """
    if value == EMPTY_MARKER:
        return None
    if isinstance(value, (list, dict)):
        return copy.deepcopy(value)
    if not isinstance(value, str):
        return value
    if value == EMPTY_OBJECT_MARKER:
        return {}
    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def unflatten(flat: Mapping[str, Any]) -> dict[str, Any]:
    """
    Rebuild a nested object from a key-path mapping.

    Paths are applied in mapping order. When a path needs a dict where
    an earlier path left a leaf, the leaf is replaced, so the later
    path wins.
    """
    result: dict[str, Any] = {}

    for path, value in flat.items():
        *parents, leaf = split_key_path(path)
        current = result
        for segment in parents:
            node = current.get(segment)
            if not isinstance(node, dict):
                node = current[segment] = {}
            current = node
        current[leaf] = parse_value(value)

    return result


def diff(old: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, Any]:
    """Return entries of new that are absent from old or whose value changed."""
    return {
        key: value
        for key, value in new.items()
        if key not in old or has_value_changed(old[key], value)
    }


def deleted_keys(old: Mapping[str, Any], new: Mapping[str, Any]) -> list[str]:
    """Return keys present in old but missing from new."""
    return [key for key in old if key not in new]
