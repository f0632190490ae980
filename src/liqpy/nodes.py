"""Executable node graph built from the syntax tree."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from liqpy.context import TemplateContext
from liqpy.values import BLANK, EMPTY, compare, is_truthy, to_integer, to_liquid_string

if TYPE_CHECKING:
    from liqpy.filters import Filter


class Node:
    """Base class; every node kind evaluates to a value given a context."""

    __slots__ = ()

    def evaluate(self, context: TemplateContext) -> Any:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Template structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TextNode(Node):
    text: str

    def evaluate(self, context: TemplateContext) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class BlockNode(Node):
    """A sequence of nodes whose outputs are concatenated."""

    children: tuple[Node, ...]

    def evaluate(self, context: TemplateContext) -> str:
        parts: list[str] = []
        size = 0
        for child in self.children:
            context.check_deadline()
            try:
                part = to_liquid_string(child.evaluate(context))
            except LoopInterrupt as interrupt:
                interrupt.output = "".join(parts) + interrupt.output
                raise
            size += len(part)
            context.check_rendered_size(size)
            parts.append(part)
        return "".join(parts)


class LoopInterrupt(Exception):
    """Raised by break and continue; carries the output rendered so far."""

    def __init__(self, kind: str) -> None:
        super().__init__(kind)
        self.kind = kind
        self.output = ""


@dataclass(frozen=True, slots=True)
class OutputNode(Node):
    expression: Node

    def evaluate(self, context: TemplateContext) -> str:
        return to_liquid_string(self.expression.evaluate(context))


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LiteralNode(Node):
    value: Any

    def evaluate(self, context: TemplateContext) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class KeywordNode(Node):
    name: str

    def evaluate(self, context: TemplateContext) -> Any:
        return BLANK if self.name == "blank" else EMPTY


@dataclass(frozen=True, slots=True)
class LookupNode(Node):
    """Variable reference; missing names and keys evaluate to None."""

    name: str
    path: tuple[str | Node, ...]

    def evaluate(self, context: TemplateContext) -> Any:
        value = context.resolve(self.name)
        for segment in self.path:
            key = segment if isinstance(segment, str) else segment.evaluate(context)
            value = get_item(value, key)
            if value is None:
                return None
        return value


@dataclass(frozen=True, slots=True)
class RangeNode(Node):
    start: Node
    stop: Node

    def evaluate(self, context: TemplateContext) -> range:
        return range(to_integer(self.start.evaluate(context)), to_integer(self.stop.evaluate(context)) + 1)


@dataclass(frozen=True, slots=True)
class ComparisonNode(Node):
    op: str
    left: Node
    right: Node

    def evaluate(self, context: TemplateContext) -> bool:
        return compare(self.op, self.left.evaluate(context), self.right.evaluate(context))


@dataclass(frozen=True, slots=True)
class LogicalNode(Node):
    op: str
    left: Node
    right: Node

    def evaluate(self, context: TemplateContext) -> bool:
        left = is_truthy(self.left.evaluate(context))
        if self.op == "and":
            return left and is_truthy(self.right.evaluate(context))
        return left or is_truthy(self.right.evaluate(context))


@dataclass(frozen=True, slots=True)
class FilterNode(Node):
    """One resolved filter invocation; ``evaluate`` is not used, see ``apply``."""

    name: str
    handler: Filter
    args: tuple[Node, ...]

    def apply(self, value: Any, context: TemplateContext) -> Any:
        return self.handler.apply(value, *(arg.evaluate(context) for arg in self.args))

    def evaluate(self, context: TemplateContext) -> Any:
        raise TypeError(f"filter '{self.name}' needs an input value")


@dataclass(frozen=True, slots=True)
class FilteredNode(Node):
    """An expression piped through a chain of filters."""

    expression: Node
    filters: tuple[FilterNode, ...]

    def evaluate(self, context: TemplateContext) -> Any:
        value = self.expression.evaluate(context)
        for f in self.filters:
            value = f.apply(value, context)
        return value


def get_item(value: Any, key: Any) -> Any:
    """Index into a mapping or sequence, with the size/first/last pseudo-properties."""
    if isinstance(value, Mapping):
        if key in value:
            return value[key]
        if key == "size":
            return len(value)
        return None
    if isinstance(value, str):
        return len(value) if key == "size" else None
    if isinstance(value, (list, tuple, range)):
        if isinstance(key, int) and not isinstance(key, bool):
            if -len(value) <= key < len(value):
                return value[key]
            return None
        if key == "size":
            return len(value)
        if key == "first":
            return value[0] if len(value) else None
        if key == "last":
            return value[-1] if len(value) else None
    return None
