"""Tree builder — turns the syntax tree into a node graph, resolving tags and filters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from liqpy.ast import (
    Block,
    Comment,
    Comparison,
    Document,
    FilterCall,
    Filtered,
    Keyword,
    Literal,
    Logical,
    Lookup,
    Output,
    Range,
    Raw,
    Tag,
    Text,
)
from liqpy.errors import BuildError, UnknownHandler
from liqpy.flavor import Flavor
from liqpy.nodes import (
    BlockNode,
    ComparisonNode,
    FilteredNode,
    FilterNode,
    KeywordNode,
    LiteralNode,
    LogicalNode,
    LookupNode,
    Node,
    OutputNode,
    RangeNode,
    TextNode,
)
from liqpy.registry import Registry
from liqpy.tokens import Span

if TYPE_CHECKING:
    from liqpy.filters import Filter
    from liqpy import tags

logger = logging.getLogger(__name__)


class TreeBuilder:
    """Single depth-first pass from syntax tree to node graph.

    The registries are copied when the builder is created; every tag and
    filter name is resolved against those copies, and an unknown name fails
    the build before anything is evaluated.
    """

    def __init__(
        self,
        tags: Registry[tags.Tag],
        filters: Registry[Filter],
        flavor: Flavor = Flavor.LIQUID,
        source: str = "",
    ) -> None:
        self.tags = tags.snapshot()
        self.filters = filters.snapshot()
        self.flavor = flavor
        self.source = source

    def build(self, doc: Document) -> BlockNode:
        return BlockNode(tuple(self.build_node(child) for child in doc.children))

    def build_block(self, block: Block | None) -> BlockNode:
        if block is None:
            return BlockNode(())
        return BlockNode(tuple(self.build_node(child) for child in block.children))

    def build_node(self, node: object) -> Node:
        match node:
            case Text(value=value) | Raw(value=value):
                return TextNode(value)
            case Comment():
                return TextNode("")
            case Output(expression=expression):
                return OutputNode(self.build_filtered(expression))
            case Tag(name=name, span=span):
                return self.resolve_tag(name, span).build(node, self)
            case _:
                raise BuildError(f"cannot build a node from {type(node).__name__}")

    def build_expression(self, expr: object) -> Node:
        match expr:
            case Literal(value=value):
                return LiteralNode(value)
            case Keyword(name=name):
                return KeywordNode(name)
            case Lookup(name=name, path=path):
                segments = tuple(s if isinstance(s, str) else self.build_expression(s) for s in path)
                return LookupNode(name, segments)
            case Range(start=start, stop=stop):
                return RangeNode(self.build_expression(start), self.build_expression(stop))
            case Comparison(op=op, left=left, right=right):
                return ComparisonNode(op, self.build_expression(left), self.build_expression(right))
            case Logical(op=op, left=left, right=right):
                return LogicalNode(op, self.build_expression(left), self.build_expression(right))
            case Filtered():
                return self.build_filtered(expr)
            case _:
                raise BuildError(f"cannot build an expression from {type(expr).__name__}")

    def build_filtered(self, filtered: Filtered) -> Node:
        expression = self.build_expression(filtered.expression)
        if not filtered.filters:
            return expression
        return FilteredNode(expression, tuple(self.build_filter(call) for call in filtered.filters))

    def build_filter(self, call: FilterCall) -> FilterNode:
        handler = self.resolve_filter(call.name, call.span)
        return FilterNode(call.name, handler, tuple(self.build_expression(arg) for arg in call.args))

    def resolve_tag(self, name: str, span: Span | None = None) -> tags.Tag:
        handler = self.tags.resolve(name)
        if handler is None:
            raise UnknownHandler("tag", name, span, self.source)
        return handler

    def resolve_filter(self, name: str, span: Span | None = None) -> Filter:
        handler = self.filters.resolve(name)
        if handler is None:
            raise UnknownHandler("filter", name, span, self.source)
        return handler

    def error(self, message: str, span: Span | None = None) -> BuildError:
        return BuildError(message, span, self.source)


def build(
    doc: Document,
    tags: Registry[tags.Tag],
    filters: Registry[Filter],
    flavor: Flavor = Flavor.LIQUID,
    source: str = "",
) -> BlockNode:
    """Convenience function: build a node graph for *doc*."""
    graph = TreeBuilder(tags, filters, flavor, source).build(doc)
    logger.debug("built node graph with %d top-level nodes", len(graph.children))
    return graph
