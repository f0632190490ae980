"""Variable binding: normalize caller input into a fresh variable environment."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from liqpy.errors import InvalidKey, MalformedInput, UnsupportedInput


def from_json(text: str) -> dict[str, Any]:
    """Decode a JSON object document; the top level must be an object."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedInput(f"malformed JSON variables: {exc}", text) from exc
    if not isinstance(data, dict):
        raise MalformedInput(f"JSON variables must be an object, got {type(data).__name__}", text)
    return data


def from_mapping(data: Mapping[Any, Any]) -> dict[str, Any]:
    """Copy a mapping recursively; every key must be a string."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if not isinstance(key, str):
            raise InvalidKey(key)
        result[key] = _copy(value)
    return result


def from_key_values(items: Sequence[Any]) -> dict[str, Any]:
    """Pair up ``k1, v1, k2, v2, ...``; a trailing key without a value binds to None."""
    result: dict[str, Any] = {}
    for index in range(0, len(items), 2):
        key = items[index]
        if not isinstance(key, str):
            raise InvalidKey(key)
        result[key] = _copy(items[index + 1]) if index + 1 < len(items) else None
    return result


def _copy(value: Any) -> Any:
    if isinstance(value, Mapping):
        return from_mapping(value)
    if isinstance(value, (list, tuple)):
        return [_copy(item) for item in value]
    return value


def bind(*args: Any, **kwargs: Any) -> dict[str, Any]:
    """Dispatch on the shape of the render arguments.

    - no arguments: empty environment
    - keyword arguments only: a mapping
    - a single ``str``: a JSON object document
    - a single mapping: a mapping
    - a single list/tuple, or two or more positional arguments: a flat key/value list
    """
    if args and kwargs:
        raise UnsupportedInput("render() takes either positional or keyword variables, not both")
    if kwargs:
        return from_mapping(kwargs)
    if not args:
        return {}
    if len(args) == 1:
        (value,) = args
        if value is None:
            return {}
        if isinstance(value, str):
            return from_json(value)
        if isinstance(value, Mapping):
            return from_mapping(value)
        if isinstance(value, (list, tuple)):
            return from_key_values(value)
        raise UnsupportedInput(f"cannot bind variables from {type(value).__name__}")
    return from_key_values(args)
