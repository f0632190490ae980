"""Liquid value semantics: truthiness, stringification, empty/blank, comparisons."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class _Special:
    """The ``empty`` and ``blank`` operands; only meaningful in comparisons."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name

    def matches(self, value: Any) -> bool:
        if self.name == "blank":
            if value is None or value is False:
                return True
            if isinstance(value, str):
                return not value.strip()
        if isinstance(value, (str, list, tuple, Mapping, range)):
            return len(value) == 0
        return False


EMPTY = _Special("empty")
BLANK = _Special("blank")


def is_truthy(value: Any) -> bool:
    """Only nil and false are falsy."""
    return value is not None and value is not False


def to_liquid_string(value: Any) -> str:
    """Render a value as template output."""
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, range)):
        return "".join(to_liquid_string(item) for item in value)
    if isinstance(value, _Special):
        return ""
    return str(value)


def to_number(value: Any) -> int | float:
    """Coerce a value to a number the way arithmetic filters expect; non-numbers become 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return 0
    return 0


def to_integer(value: Any) -> int:
    return int(to_number(value))


def compare(op: str, left: Any, right: Any) -> bool:
    """Evaluate a comparison operator; incomparable operands compare as false."""
    if isinstance(right, _Special):
        left, right = right, left
    if isinstance(left, _Special):
        if op == "==":
            return left.matches(right)
        if op in ("!=", "<>"):
            return not left.matches(right)
        return False

    if op == "==":
        return _equal(left, right)
    if op in ("!=", "<>"):
        return not _equal(left, right)
    if op == "contains":
        return _contains(left, right)

    if isinstance(left, bool) or isinstance(right, bool):
        return False
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        pass
    elif not (isinstance(left, str) and isinstance(right, str)):
        return False
    if op == "<":
        return left < right
    if op == ">":
        return left > right
    if op == "<=":
        return left <= right
    if op == ">=":
        return left >= right
    raise ValueError(f"unknown comparison operator '{op}'")


def _equal(left: Any, right: Any) -> bool:
    # 1 == true must not hold, although Python says it does
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _contains(left: Any, right: Any) -> bool:
    if isinstance(left, str):
        return right is not None and to_liquid_string(right) in left
    if isinstance(left, Mapping):
        return right in left
    if isinstance(left, (list, tuple, range)):
        return right in left
    return False
