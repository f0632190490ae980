"""Tree builder tests: handler resolution, node kinds and registry snapshots."""

from __future__ import annotations

import pytest

from liqpy.builder import TreeBuilder, build
from liqpy.context import TemplateContext
from liqpy.errors import BuildError, UnknownHandler
from liqpy.filters import FunctionFilter, default_filters
from liqpy.nodes import BlockNode, FilteredNode, LookupNode, OutputNode, TextNode
from liqpy.tags import FunctionTag, TagNode, default_tags
from liqpy.tokens import Position, Span

S = Span(Position(1, 1, 0), Position(1, 1, 0))


def _build(doc, tags=None, filters=None) -> BlockNode:
    return build(doc, tags or default_tags(), filters or default_filters(), source="")


class TestNodeKinds:
    def test_text_and_output(self, parse_source) -> None:
        graph = _build(parse_source("a{{ x | upcase }}"))
        assert isinstance(graph.children[0], TextNode)
        output = graph.children[1]
        assert isinstance(output, OutputNode)
        assert isinstance(output.expression, FilteredNode)
        assert isinstance(output.expression.expression, LookupNode)

    def test_unfiltered_output_skips_filter_node(self, parse_source) -> None:
        output = _build(parse_source("{{ x }}")).children[0]
        assert isinstance(output.expression, LookupNode)

    def test_comment_builds_to_empty_text(self, parse_source) -> None:
        graph = _build(parse_source("{% comment %}hidden{% endcomment %}"))
        assert graph.children == (TextNode(""),)

    def test_raw_builds_to_text(self, parse_source) -> None:
        graph = _build(parse_source("{% raw %}{{ x }}{% endraw %}"))
        assert graph.children == (TextNode("{{ x }}"),)

    def test_custom_tag_node(self, parse_source) -> None:
        tags = default_tags()
        tags.register("box", FunctionTag(lambda ctx, args, body: ""))
        node = _build(parse_source("{% box 1 %}x{% endbox %}"), tags=tags).children[0]
        assert isinstance(node, TagNode)
        assert node.name == "box"
        assert len(node.args) == 1
        assert isinstance(node.body, BlockNode)

    def test_unbuildable_variant(self) -> None:
        builder = TreeBuilder(default_tags(), default_filters())
        with pytest.raises(BuildError, match="cannot build a node from str"):
            builder.build_node("text")


class TestResolution:
    def test_unknown_tag_fails_before_evaluation(self, parse_source) -> None:
        with pytest.raises(UnknownHandler) as exc_info:
            _build(parse_source("ok {% frobnicate %}"))
        err = exc_info.value
        assert err.kind == "tag"
        assert err.name == "frobnicate"
        assert "unknown tag 'frobnicate'" in str(err)

    def test_unknown_filter(self, parse_source) -> None:
        with pytest.raises(UnknownHandler) as exc_info:
            _build(parse_source("{{ x | nope }}"))
        assert exc_info.value.kind == "filter"

    def test_unknown_filter_inside_block(self, parse_source) -> None:
        with pytest.raises(UnknownHandler):
            _build(parse_source("{% if false %}{{ x | nope }}{% endif %}"))

    def test_unknown_error_has_span(self, parse_source) -> None:
        source = "line\n{{ x | nope }}"
        with pytest.raises(UnknownHandler) as exc_info:
            build(parse_source(source), default_tags(), default_filters(), source=source)
        err = exc_info.value
        assert err.span.start.line == 2
        assert "--> " in err.format("page.liquid")

    def test_builtin_shape_mismatch(self, parse_source) -> None:
        tags = default_tags()
        tags.register("assign", FunctionTag(lambda ctx, args, body: ""))
        with pytest.raises(BuildError, match="does not accept this markup"):
            _build(parse_source("{% assign x = 1 %}"), tags=tags)


class TestSnapshot:
    def test_builder_copies_registries(self, parse_source) -> None:
        filters = default_filters()
        builder = TreeBuilder(default_tags(), filters)
        filters.register("shout", FunctionFilter(lambda v: str(v).upper()))
        with pytest.raises(UnknownHandler):
            builder.build(parse_source("{{ x | shout }}"))

    def test_built_graph_keeps_old_handler(self, parse_source) -> None:
        filters = default_filters()
        filters.register("mark", FunctionFilter(lambda v: "A"))
        graph = _build(parse_source("{{ 1 | mark }}"), filters=filters)
        filters.register("mark", FunctionFilter(lambda v: "B"))
        assert graph.evaluate(TemplateContext({})) == "A"
