"""Filter handlers — the interface and the built-in catalogue."""

from __future__ import annotations

import html
import math
import re
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any
from urllib.parse import quote_plus, unquote_plus

from liqpy.nodes import get_item
from liqpy.registry import Registry
from liqpy.values import is_truthy, to_integer, to_liquid_string, to_number


class Filter:
    """A named value transformation: ``{{ value | name: arg1, arg2 }}``.

    Subclasses implement :meth:`apply`, which receives the piped value
    followed by the evaluated arguments.
    """

    def apply(self, value: Any, *args: Any) -> Any:
        raise NotImplementedError


class FunctionFilter(Filter):
    """Adapts a plain function ``func(value, *args)`` to the Filter interface."""

    def __init__(self, func: Callable[..., Any]) -> None:
        self.func = func

    def apply(self, value: Any, *args: Any) -> Any:
        return self.func(value, *args)

    def __repr__(self) -> str:
        return f"FunctionFilter({getattr(self.func, '__name__', self.func)!r})"


def as_filter(handler: Filter | Callable[..., Any]) -> Filter:
    """Accept a Filter instance or a plain callable."""
    if isinstance(handler, Filter):
        return handler
    if callable(handler):
        return FunctionFilter(handler)
    raise TypeError(f"filter handler must be a Filter or callable, got {type(handler).__name__}")


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def _s(value: Any) -> str:
    return to_liquid_string(value)


def _append(value: Any, suffix: Any) -> str:
    return _s(value) + _s(suffix)


def _prepend(value: Any, prefix: Any) -> str:
    return _s(prefix) + _s(value)


def _capitalize(value: Any) -> str:
    return _s(value).capitalize()


def _downcase(value: Any) -> str:
    return _s(value).lower()


def _upcase(value: Any) -> str:
    return _s(value).upper()


def _strip(value: Any) -> str:
    return _s(value).strip()


def _lstrip(value: Any) -> str:
    return _s(value).lstrip()


def _rstrip(value: Any) -> str:
    return _s(value).rstrip()


def _replace(value: Any, search: Any, replacement: Any = "") -> str:
    return _s(value).replace(_s(search), _s(replacement))


def _replace_first(value: Any, search: Any, replacement: Any = "") -> str:
    return _s(value).replace(_s(search), _s(replacement), 1)


def _remove(value: Any, search: Any) -> str:
    return _s(value).replace(_s(search), "")


def _remove_first(value: Any, search: Any) -> str:
    return _s(value).replace(_s(search), "", 1)


def _split(value: Any, separator: Any = " ") -> list[str]:
    text = _s(value)
    sep = _s(separator)
    if not text:
        return []
    if not sep:
        return list(text)
    if sep == " ":
        return text.split()
    return text.split(sep)


def _truncate(value: Any, length: Any = 50, ellipsis: Any = "...") -> str:
    text = _s(value)
    limit = to_integer(length)
    suffix = _s(ellipsis)
    if len(text) <= limit:
        return text
    return text[: max(0, limit - len(suffix))] + suffix


def _truncatewords(value: Any, words: Any = 15, ellipsis: Any = "...") -> str:
    parts = _s(value).split()
    limit = max(1, to_integer(words))
    if len(parts) <= limit:
        return _s(value)
    return " ".join(parts[:limit]) + _s(ellipsis)


def _escape(value: Any) -> str | None:
    if value is None:
        return None
    return html.escape(_s(value)).replace("&#x27;", "&#39;")


def _escape_once(value: Any) -> str | None:
    if value is None:
        return None
    return _escape(html.unescape(_s(value)))


_HTML_BLOCKS = re.compile(r"<script.*?</script>|<!--.*?-->|<style.*?</style>", re.DOTALL | re.IGNORECASE)
_HTML_TAGS = re.compile(r"<.*?>", re.DOTALL)


def _strip_html(value: Any) -> str:
    return _HTML_TAGS.sub("", _HTML_BLOCKS.sub("", _s(value)))


def _strip_newlines(value: Any) -> str:
    return re.sub(r"\r?\n", "", _s(value))


def _newline_to_br(value: Any) -> str:
    return re.sub(r"\r?\n", "<br />\n", _s(value))


def _url_encode(value: Any) -> str:
    return quote_plus(_s(value))


def _url_decode(value: Any) -> str:
    return unquote_plus(_s(value))


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def _plus(value: Any, operand: Any) -> int | float:
    return to_number(value) + to_number(operand)


def _minus(value: Any, operand: Any) -> int | float:
    return to_number(value) - to_number(operand)


def _times(value: Any, operand: Any) -> int | float:
    return to_number(value) * to_number(operand)


def _divided_by(value: Any, operand: Any) -> int | float:
    left = to_number(value)
    right = to_number(operand)
    if isinstance(left, int) and isinstance(right, int):
        return left // right
    return left / right


def _modulo(value: Any, operand: Any) -> int | float:
    return to_number(value) % to_number(operand)


def _abs(value: Any) -> int | float:
    return abs(to_number(value))


def _ceil(value: Any) -> int:
    return math.ceil(to_number(value))


def _floor(value: Any) -> int:
    return math.floor(to_number(value))


def _round(value: Any, digits: Any = 0) -> int | float:
    places = to_integer(digits)
    if places <= 0:
        return int(round(to_number(value)))
    return round(float(to_number(value)), places)


# ---------------------------------------------------------------------------
# Sequences
# ---------------------------------------------------------------------------


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, range)):
        return list(value)
    if isinstance(value, Mapping):
        return [value]
    return [value]


def _size(value: Any) -> int:
    if isinstance(value, (str, list, tuple, range, Mapping)):
        return len(value)
    return 0


def _first(value: Any) -> Any:
    if isinstance(value, (str, list, tuple, range)):
        return value[0] if len(value) else None
    return None


def _last(value: Any) -> Any:
    if isinstance(value, (str, list, tuple, range)):
        return value[-1] if len(value) else None
    return None


def _join(value: Any, separator: Any = " ") -> str:
    if isinstance(value, (list, tuple, range)):
        return _s(separator).join(_s(item) for item in value)
    return _s(value)


def _reverse(value: Any) -> Any:
    if isinstance(value, (list, tuple, range)):
        return list(reversed(value))
    return value


def _sort(value: Any, key: Any = None) -> list[Any]:
    items = _as_list(value)
    if key is None:
        present = [item for item in items if item is not None]
        return sorted(present) + [None] * (len(items) - len(present))
    present = [item for item in items if get_item(item, key) is not None]
    missing = [item for item in items if get_item(item, key) is None]
    return sorted(present, key=lambda item: get_item(item, key)) + missing


def _sort_natural(value: Any, key: Any = None) -> list[Any]:
    items = _as_list(value)
    if key is None:
        return sorted(items, key=lambda item: _s(item).lower())
    return sorted(items, key=lambda item: _s(get_item(item, key)).lower())


def _map(value: Any, key: Any) -> list[Any]:
    return [get_item(item, key) for item in _as_list(value)]


def _uniq(value: Any) -> list[Any]:
    result: list[Any] = []
    for item in _as_list(value):
        if item not in result:
            result.append(item)
    return result


def _compact(value: Any) -> list[Any]:
    return [item for item in _as_list(value) if item is not None]


def _concat(value: Any, other: Any) -> list[Any]:
    if not isinstance(other, (list, tuple, range)):
        raise TypeError("concat expects a sequence argument")
    return _as_list(value) + list(other)


def _slice(value: Any, start: Any, length: Any = 1) -> Any:
    offset = to_integer(start)
    count = to_integer(length)
    if isinstance(value, str):
        seq: Any = value
    else:
        seq = _as_list(value)
    if offset < 0:
        offset += len(seq)
    result = seq[max(0, offset) : max(0, offset) + max(0, count)]
    return result


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------


def _default(value: Any, fallback: Any = "") -> Any:
    if not is_truthy(value):
        return fallback
    if isinstance(value, (str, list, tuple, Mapping)) and len(value) == 0:
        return fallback
    return value


def _date(value: Any, fmt: Any = None) -> Any:
    if fmt is None or _s(fmt) == "":
        return value
    moment = _to_datetime(value)
    if moment is None:
        return value
    return moment.strftime(_s(fmt))


def _to_datetime(value: Any) -> datetime | date | None:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in ("now", "today"):
            return datetime.now()
        if text.lstrip("-").isdigit():
            return datetime.fromtimestamp(int(text))
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


def _make_filters() -> dict[str, Filter]:
    defs: dict[str, Filter] = {}

    def d(name: str, func: Callable[..., Any]) -> None:
        defs[name] = FunctionFilter(func)

    # Strings
    d("append", _append)
    d("prepend", _prepend)
    d("capitalize", _capitalize)
    d("downcase", _downcase)
    d("upcase", _upcase)
    d("strip", _strip)
    d("lstrip", _lstrip)
    d("rstrip", _rstrip)
    d("replace", _replace)
    d("replace_first", _replace_first)
    d("remove", _remove)
    d("remove_first", _remove_first)
    d("split", _split)
    d("truncate", _truncate)
    d("truncatewords", _truncatewords)
    d("escape", _escape)
    d("escape_once", _escape_once)
    d("strip_html", _strip_html)
    d("strip_newlines", _strip_newlines)
    d("newline_to_br", _newline_to_br)
    d("url_encode", _url_encode)
    d("url_decode", _url_decode)

    # Numbers
    d("plus", _plus)
    d("minus", _minus)
    d("times", _times)
    d("divided_by", _divided_by)
    d("modulo", _modulo)
    d("abs", _abs)
    d("ceil", _ceil)
    d("floor", _floor)
    d("round", _round)

    # Sequences
    d("size", _size)
    d("first", _first)
    d("last", _last)
    d("join", _join)
    d("reverse", _reverse)
    d("sort", _sort)
    d("sort_natural", _sort_natural)
    d("map", _map)
    d("uniq", _uniq)
    d("compact", _compact)
    d("concat", _concat)
    d("slice", _slice)

    # Misc
    d("default", _default)
    d("date", _date)

    return defs


def default_filters() -> Registry[Filter]:
    """A fresh registry seeded with the built-in filters."""
    return Registry("filter", _make_filters())
