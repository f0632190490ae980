"""Concrete syntax tree node types for parsed Liquid templates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from liqpy.tokens import Span

# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Literal:
    """String, number, boolean or nil literal."""

    value: str | int | float | bool | None
    span: Span


@dataclass(frozen=True, slots=True)
class Keyword:
    """The special operands ``empty`` and ``blank``."""

    name: str
    span: Span


@dataclass(frozen=True, slots=True)
class Lookup:
    """Variable reference with an optional path: ``a.b[0]["c"]``."""

    name: str
    path: tuple[str | Expression, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Range:
    """Inclusive integer range ``(start..stop)``."""

    start: Expression
    stop: Expression
    span: Span


@dataclass(frozen=True, slots=True)
class Comparison:
    """Binary comparison; op is one of == != <> < > <= >= contains."""

    op: str
    left: Expression
    right: Expression
    span: Span


@dataclass(frozen=True, slots=True)
class Logical:
    """``and`` / ``or``, right-associative."""

    op: str
    left: Expression
    right: Expression
    span: Span


@dataclass(frozen=True, slots=True)
class FilterCall:
    """One ``| name: arg, arg`` step of a filter chain."""

    name: str
    args: tuple[Expression, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Filtered:
    """An expression followed by a (possibly empty) filter chain."""

    expression: Expression
    filters: tuple[FilterCall, ...]
    span: Span


Expression = Union[Literal, Keyword, Lookup, Range, Comparison, Logical]

# ---------------------------------------------------------------------------
# Tag arguments: one shape per tag grammar
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Arguments:
    """Comma-separated filtered expressions, used by tags without a dedicated grammar."""

    values: tuple[Filtered, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Assign:
    target: str
    value: Filtered
    span: Span


@dataclass(frozen=True, slots=True)
class Capture:
    target: str
    span: Span


@dataclass(frozen=True, slots=True)
class Condition:
    """Test of an if, unless or elsif."""

    expression: Expression
    span: Span


@dataclass(frozen=True, slots=True)
class When:
    values: tuple[Expression, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class ForLoop:
    """Header of a for or tablerow loop."""

    variable: str
    iterable: Expression
    limit: Expression | None
    offset: Expression | None
    cols: Expression | None
    reversed: bool
    span: Span


@dataclass(frozen=True, slots=True)
class Cycle:
    group: Expression | None
    values: tuple[Expression, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Counter:
    """Variable of an increment or decrement."""

    variable: str
    span: Span


@dataclass(frozen=True, slots=True)
class Param:
    """Jekyll include parameter ``name=value``."""

    name: str
    value: Expression
    span: Span


@dataclass(frozen=True, slots=True)
class Include:
    template: Expression
    value: Expression | None
    params: tuple[Param, ...]
    span: Span


TagArgs = Union[Arguments, Assign, Capture, Condition, When, ForLoop, Cycle, Counter, Include]

# ---------------------------------------------------------------------------
# Template structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Text:
    """Literal template text."""

    value: str
    span: Span


@dataclass(frozen=True, slots=True)
class Raw:
    """Body of a raw block, emitted verbatim."""

    value: str
    span: Span


@dataclass(frozen=True, slots=True)
class Comment:
    """Body of a comment block, never emitted."""

    value: str
    span: Span


@dataclass(frozen=True, slots=True)
class Output:
    """``{{ ... }}``."""

    expression: Filtered
    markup: str
    span: Span


@dataclass(frozen=True, slots=True)
class Block:
    """Sequence of template nodes."""

    children: tuple[Node, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Branch:
    """An elsif, when or else section of a block tag."""

    name: str
    markup: str
    args: TagArgs | None
    body: Block
    span: Span


@dataclass(frozen=True, slots=True)
class Tag:
    """``{% name markup %}``, with a body and branches when it is a block tag."""

    name: str
    markup: str
    args: TagArgs | None
    body: Block | None
    branches: tuple[Branch, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class Document:
    """Root node."""

    children: tuple[Node, ...]
    span: Span


Node = Union[Text, Raw, Comment, Output, Tag]
