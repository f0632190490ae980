"""Tag handlers — the interface and the built-in catalogue.

A tag handler turns one syntax-tree ``Tag`` into an executable node. The
default :meth:`Tag.build` suits tags with plain argument lists: it builds
the arguments and body and hands both to :meth:`Tag.render` on every
evaluation. Built-in tags with their own markup grammar override ``build``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from liqpy import ast
from liqpy.context import TemplateContext
from liqpy.errors import EvalError
from liqpy.flavor import Flavor
from liqpy.nodes import LoopInterrupt, Node
from liqpy.protection import check_size
from liqpy.registry import Registry
from liqpy.values import compare, is_truthy, to_integer, to_liquid_string

if TYPE_CHECKING:
    from liqpy.builder import TreeBuilder
    from liqpy.filters import Filter


class Tag:
    """A named template construct: ``{% name args %}`` or a block ending in ``{% endname %}``."""

    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        if tag.args is not None and not isinstance(tag.args, ast.Arguments):
            raise builder.error(f"tag '{tag.name}' does not accept this markup", tag.span)
        args = tuple(builder.build_filtered(v) for v in tag.args.values) if tag.args else ()
        body = builder.build_block(tag.body) if tag.body is not None else None
        return TagNode(self, tag.name, args, body)

    def render(self, context: TemplateContext, args: list[Any], body: Node | None) -> Any:
        raise NotImplementedError


class FunctionTag(Tag):
    """Adapts ``func(context, args, body)`` to the Tag interface."""

    def __init__(self, func: Callable[[TemplateContext, list[Any], Node | None], Any]) -> None:
        self.func = func

    def render(self, context: TemplateContext, args: list[Any], body: Node | None) -> Any:
        return self.func(context, args, body)

    def __repr__(self) -> str:
        return f"FunctionTag({getattr(self.func, '__name__', self.func)!r})"


def as_tag(handler: Tag | Callable[..., Any]) -> Tag:
    """Accept a Tag instance or a plain callable."""
    if isinstance(handler, Tag):
        return handler
    if callable(handler):
        return FunctionTag(handler)
    raise TypeError(f"tag handler must be a Tag or callable, got {type(handler).__name__}")


@dataclass(frozen=True, slots=True)
class TagNode(Node):
    handler: Tag
    name: str
    args: tuple[Node, ...]
    body: Node | None

    def evaluate(self, context: TemplateContext) -> Any:
        return self.handler.render(context, [arg.evaluate(context) for arg in self.args], self.body)


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AssignNode(Node):
    target: str
    value: Node

    def evaluate(self, context: TemplateContext) -> str:
        context.assign(self.target, self.value.evaluate(context))
        return ""


@dataclass(frozen=True, slots=True)
class CaptureNode(Node):
    target: str
    body: Node

    def evaluate(self, context: TemplateContext) -> str:
        context.assign(self.target, to_liquid_string(self.body.evaluate(context)))
        return ""


class Assign(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        args = _expect(tag, ast.Assign, builder)
        return AssignNode(args.target, builder.build_filtered(args.value))


class Capture(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        args = _expect(tag, ast.Capture, builder)
        return CaptureNode(args.target, builder.build_block(tag.body))


@dataclass(frozen=True, slots=True)
class CounterNode(Node):
    variable: str
    step: int

    def evaluate(self, context: TemplateContext) -> int:
        counters = context.register("counters")
        if self.step > 0:
            value = counters.get(self.variable, 0)
            counters[self.variable] = value + self.step
        else:
            value = counters.get(self.variable, 0) + self.step
            counters[self.variable] = value
        return value


class Increment(Tag):
    step = 1

    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        return CounterNode(_expect(tag, ast.Counter, builder).variable, self.step)


class Decrement(Increment):
    step = -1


# ---------------------------------------------------------------------------
# Conditionals
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IfNode(Node):
    """``if``/``unless`` with ``elsif`` branches; ``negate`` applies to the first test only."""

    branches: tuple[tuple[Node, Node], ...]
    alternative: Node | None
    negate: bool = False

    def evaluate(self, context: TemplateContext) -> Any:
        for index, (condition, body) in enumerate(self.branches):
            truth = is_truthy(condition.evaluate(context))
            if index == 0 and self.negate:
                truth = not truth
            if truth:
                return body.evaluate(context)
        if self.alternative is not None:
            return self.alternative.evaluate(context)
        return ""


class If(Tag):
    negate = False

    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        condition = _expect(tag, ast.Condition, builder)
        branches = [(builder.build_expression(condition.expression), builder.build_block(tag.body))]
        alternative = None
        for branch in tag.branches:
            if branch.name == "elsif" and isinstance(branch.args, ast.Condition):
                branches.append((builder.build_expression(branch.args.expression), builder.build_block(branch.body)))
            else:
                alternative = builder.build_block(branch.body)
        return IfNode(tuple(branches), alternative, self.negate)


class Unless(If):
    negate = True


@dataclass(frozen=True, slots=True)
class CaseNode(Node):
    """Renders every ``when`` that matches, or the ``else`` body when none does."""

    subject: Node
    whens: tuple[tuple[tuple[Node, ...], Node], ...]
    alternative: Node | None

    def evaluate(self, context: TemplateContext) -> str:
        value = self.subject.evaluate(context)
        parts: list[str] = []
        matched = False
        for candidates, body in self.whens:
            if any(compare("==", value, c.evaluate(context)) for c in candidates):
                matched = True
                parts.append(to_liquid_string(body.evaluate(context)))
        if not matched and self.alternative is not None:
            return to_liquid_string(self.alternative.evaluate(context))
        return "".join(parts)


class Case(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        subject = builder.build_expression(_expect(tag, ast.Condition, builder).expression)
        whens = []
        alternative = None
        for branch in tag.branches:
            if branch.name == "when" and isinstance(branch.args, ast.When):
                values = tuple(builder.build_expression(v) for v in branch.args.values)
                whens.append((values, builder.build_block(branch.body)))
            else:
                alternative = builder.build_block(branch.body)
        return CaseNode(subject, tuple(whens), alternative)


# ---------------------------------------------------------------------------
# Loops
# ---------------------------------------------------------------------------


def _iterable(value: Any) -> list[Any] | range:
    if value is None:
        return []
    if isinstance(value, range):
        return value
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, Mapping):
        return [[key, item] for key, item in value.items()]
    if isinstance(value, Iterable):
        return list(value)
    return []


@dataclass(frozen=True, slots=True)
class ForNode(Node):
    variable: str
    iterable: Node
    limit: Node | None
    offset: Node | None
    reversed: bool
    body: Node
    alternative: Node | None

    def items(self, context: TemplateContext) -> list[Any] | range:
        items = _iterable(self.iterable.evaluate(context))
        if self.offset is not None:
            items = items[max(0, to_integer(self.offset.evaluate(context))) :]
        if self.limit is not None:
            items = items[: max(0, to_integer(self.limit.evaluate(context)))]
        if self.reversed:
            items = items[::-1]
        return items

    def evaluate(self, context: TemplateContext) -> str:
        items = self.items(context)
        length = len(items)
        if not length:
            return to_liquid_string(self.alternative.evaluate(context)) if self.alternative else ""
        parent = context.resolve("forloop")
        parts: list[str] = []
        size = 0
        with context.scope() as frame:
            for index, item in enumerate(items):
                context.tick()
                frame[self.variable] = item
                frame["forloop"] = {
                    "index": index + 1,
                    "index0": index,
                    "rindex": length - index,
                    "rindex0": length - index - 1,
                    "first": index == 0,
                    "last": index == length - 1,
                    "length": length,
                    "parentloop": parent,
                }
                stop = False
                try:
                    part = to_liquid_string(self.body.evaluate(context))
                except LoopInterrupt as interrupt:
                    part = interrupt.output
                    stop = interrupt.kind == "break"
                size += len(part)
                context.check_rendered_size(size)
                parts.append(part)
                if stop:
                    break
        return "".join(parts)


class For(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        loop = _expect(tag, ast.ForLoop, builder)
        alternative = None
        for branch in tag.branches:
            alternative = builder.build_block(branch.body)
        return ForNode(
            loop.variable,
            builder.build_expression(loop.iterable),
            _optional(builder, loop.limit),
            _optional(builder, loop.offset),
            loop.reversed,
            builder.build_block(tag.body),
            alternative,
        )


@dataclass(frozen=True, slots=True)
class TablerowNode(Node):
    """HTML table rows: ``<tr class="rowN">`` wrapping ``<td class="colN">`` cells."""

    loop: ForNode
    cols: Node | None

    def evaluate(self, context: TemplateContext) -> str:
        items = self.loop.items(context)
        length = len(items)
        cols = to_integer(self.cols.evaluate(context)) if self.cols is not None else 0
        if cols <= 0:
            cols = max(length, 1)
        parts = ['<tr class="row1">\n']
        with context.scope() as frame:
            for index, item in enumerate(items):
                context.tick()
                col = index % cols
                row = index // cols
                frame[self.loop.variable] = item
                frame["tablerowloop"] = {
                    "index": index + 1,
                    "index0": index,
                    "rindex": length - index,
                    "rindex0": length - index - 1,
                    "first": index == 0,
                    "last": index == length - 1,
                    "length": length,
                    "col": col + 1,
                    "col0": col,
                    "row": row + 1,
                    "col_first": col == 0,
                    "col_last": col == cols - 1,
                }
                stop = False
                try:
                    cell = to_liquid_string(self.loop.body.evaluate(context))
                except LoopInterrupt as interrupt:
                    cell = interrupt.output
                    stop = interrupt.kind == "break"
                parts.append(f'<td class="col{col + 1}">{cell}</td>')
                if stop:
                    break
                if col == cols - 1 and index != length - 1:
                    parts.append(f'</tr>\n<tr class="row{row + 2}">')
        parts.append("</tr>\n")
        return "".join(parts)


class Tablerow(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        loop = _expect(tag, ast.ForLoop, builder)
        node = ForNode(
            loop.variable,
            builder.build_expression(loop.iterable),
            _optional(builder, loop.limit),
            _optional(builder, loop.offset),
            loop.reversed,
            builder.build_block(tag.body),
            None,
        )
        return TablerowNode(node, _optional(builder, loop.cols))


@dataclass(frozen=True, slots=True)
class InterruptNode(Node):
    kind: str

    def evaluate(self, context: TemplateContext) -> Any:
        raise LoopInterrupt(self.kind)


class Break(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        return InterruptNode("break")


class Continue(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        return InterruptNode("continue")


@dataclass(frozen=True, slots=True)
class CycleNode(Node):
    key: str
    group: Node | None
    values: tuple[Node, ...]

    def evaluate(self, context: TemplateContext) -> Any:
        key = to_liquid_string(self.group.evaluate(context)) if self.group is not None else self.key
        positions = context.register("cycle")
        position = positions.get(key, 0)
        positions[key] = position + 1
        return self.values[position % len(self.values)].evaluate(context)


class Cycle(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        cycle = _expect(tag, ast.Cycle, builder)
        if not cycle.values:
            raise builder.error("cycle needs at least one value", tag.span)
        return CycleNode(
            tag.markup.strip(),
            _optional(builder, cycle.group),
            tuple(builder.build_expression(v) for v in cycle.values),
        )


# ---------------------------------------------------------------------------
# Include
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IncludeNode(Node):
    """Renders another template file from the flavor's snippets folder."""

    template: Node
    value: Node | None
    params: tuple[tuple[str, Node], ...]
    tags: Registry[Tag]
    filters: Registry[Filter]
    flavor: Flavor

    def locate(self, context: TemplateContext, name: str) -> Path:
        extension = self.flavor.extension
        if extension and not name.endswith(extension):
            name += extension
        return context.include_root / self.flavor.snippets_folder / name

    def evaluate(self, context: TemplateContext) -> str:
        from liqpy.builder import build
        from liqpy.parser import parse

        name = to_liquid_string(self.template.evaluate(context))
        if not name:
            raise EvalError("include needs a template name")
        if context.include_depth >= context.max_include_depth:
            raise EvalError(f"include depth limit ({context.max_include_depth}) exceeded")

        path = self.locate(context, name)
        try:
            source = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise EvalError(f"included file not found: {path}") from None
        check_size(len(source.encode("utf-8")), context.protection.max_source_size_bytes)

        graph = build(parse(source, str(path), self.flavor), self.tags, self.filters, self.flavor, source)

        bindings: dict[str, Any] = {}
        if self.flavor is Flavor.JEKYLL:
            bindings["include"] = {key: node.evaluate(context) for key, node in self.params}
        elif self.value is not None:
            bindings[Path(name).stem] = self.value.evaluate(context)

        context.include_depth += 1
        try:
            with context.scope(bindings):
                return graph.evaluate(context)
        finally:
            context.include_depth -= 1


class Include(Tag):
    def build(self, tag: ast.Tag, builder: TreeBuilder) -> Node:
        include = _expect(tag, ast.Include, builder)
        return IncludeNode(
            builder.build_expression(include.template),
            _optional(builder, include.value),
            tuple((param.name, builder.build_expression(param.value)) for param in include.params),
            builder.tags,
            builder.filters,
            builder.flavor,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _expect(tag: ast.Tag, shape: type, builder: TreeBuilder) -> Any:
    if not isinstance(tag.args, shape):
        raise builder.error(f"tag '{tag.name}' expects {shape.__name__.lower()} markup", tag.span)
    return tag.args


def _optional(builder: TreeBuilder, expr: ast.Expression | None) -> Node | None:
    return builder.build_expression(expr) if expr is not None else None


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


def _make_tags() -> dict[str, Tag]:
    defs: dict[str, Tag] = {}

    def d(name: str, handler: Tag) -> None:
        defs[name] = handler

    d("assign", Assign())
    d("capture", Capture())
    d("increment", Increment())
    d("decrement", Decrement())
    d("if", If())
    d("unless", Unless())
    d("case", Case())
    d("for", For())
    d("tablerow", Tablerow())
    d("break", Break())
    d("continue", Continue())
    d("cycle", Cycle())
    d("include", Include())

    return defs


def default_tags() -> Registry[Tag]:
    """A fresh registry seeded with the built-in tags."""
    return Registry("tag", _make_tags())
