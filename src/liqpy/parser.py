"""Liquid parser — converts a token stream into a concrete syntax tree."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from liqpy.ast import (
    Block,
    Branch,
    Comment,
    Document,
    Filtered,
    Literal,
    Node,
    Output,
    Raw,
    Tag,
    TagArgs,
    Text,
)
from liqpy.errors import ParseError
from liqpy.flavor import Flavor
from liqpy.lexer import tokenize
from liqpy.markup import MarkupParser
from liqpy.tokens import Position, Span, Token, TokenType

# Tag name -> grammar of its markup. Names not listed take comma-separated arguments.
_GRAMMARS: dict[str, Callable[[MarkupParser], TagArgs | None]] = {
    "assign": MarkupParser.parse_assign,
    "capture": MarkupParser.parse_capture,
    "if": MarkupParser.parse_if,
    "elsif": MarkupParser.parse_if,
    "unless": MarkupParser.parse_if,
    "case": MarkupParser.parse_if,
    "when": MarkupParser.parse_when,
    "for": MarkupParser.parse_for,
    "tablerow": MarkupParser.parse_for,
    "cycle": MarkupParser.parse_cycle,
    "increment": MarkupParser.parse_counter,
    "decrement": MarkupParser.parse_counter,
    "include": MarkupParser.parse_include,
    "else": lambda parser: None,
    "break": lambda parser: None,
    "continue": lambda parser: None,
}

# Built-in tags that always open a block, and the branches each one accepts
_BRANCHES: dict[str, tuple[str, ...]] = {
    "if": ("elsif", "else"),
    "unless": ("elsif", "else"),
    "case": ("when", "else"),
    "for": ("else",),
    "tablerow": (),
    "capture": (),
}

# Built-in tags that never open a block
_SIMPLE_TAGS = frozenset({"assign", "cycle", "increment", "decrement", "include", "break", "continue"})

_BRANCH_NAMES = frozenset({"elsif", "else", "when"})


@dataclass
class _Frame:
    """An open block tag waiting for its end tag."""

    name: str
    markup: str
    args: TagArgs | None
    start: Position
    children: list[Node] = field(default_factory=list)
    branches: list[tuple[str, str, TagArgs | None, Position, list[Node]]] = field(default_factory=list)

    @property
    def current(self) -> list[Node]:
        if self.branches:
            return self.branches[-1][4]
        return self.children


class Parser:
    """Assemble template tokens into a Document, matching block tags to their end tags."""

    def __init__(self, tokens: list[Token], source: str, filename: str, flavor: Flavor) -> None:
        self._tokens = tokens
        self._source = source
        self._filename = filename
        self._flavor = flavor
        self._pos = 0
        # A tag without a dedicated grammar is a block when its end tag occurs anywhere
        self._end_names = frozenset(
            t.value[3:] for t in tokens if t.type == TokenType.TAG_NAME and t.value.startswith("end")
        )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _at(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.type != TokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, tt: TokenType, message: str) -> Token:
        tok = self._peek()
        if tok.type != tt:
            raise self._error(message, tok.span)
        return self._advance()

    def _prev_end(self) -> Position:
        """End position of the previously consumed token."""
        if self._pos > 0:
            return self._tokens[self._pos - 1].span.end
        return self._tokens[0].span.start

    # ------------------------------------------------------------------
    # Document level
    # ------------------------------------------------------------------

    def parse(self) -> Document:
        start = self._peek().span.start
        root = _Frame("", "", None, start)
        stack: list[_Frame] = [root]

        while not self._at(TokenType.EOF):
            tok = self._peek()
            if tok.type == TokenType.TEXT:
                self._advance()
                stack[-1].current.append(Text(tok.value, tok.span))
            elif tok.type == TokenType.RAW:
                self._advance()
                stack[-1].current.append(Raw(tok.value, tok.span))
            elif tok.type == TokenType.COMMENT:
                self._advance()
                stack[-1].current.append(Comment(tok.value, tok.span))
            elif tok.type == TokenType.OUTPUT_OPEN:
                stack[-1].current.append(self._parse_output())
            elif tok.type == TokenType.TAG_OPEN:
                self._parse_tag(stack)
            else:
                raise self._error(f"unexpected '{tok.raw}'", tok.span)

        if len(stack) > 1:
            frame = stack[-1]
            raise self._error(f"'{frame.name}' tag was never closed", Span(frame.start, frame.start))

        end = self._peek().span.end
        return Document(tuple(root.children), Span(start, end))

    def _parse_output(self) -> Output:
        start = self._advance().span.start  # consume OUTPUT_OPEN
        markup = self._expect(TokenType.MARKUP, "expected output markup")
        self._expect(TokenType.OUTPUT_CLOSE, "expected '}}'")

        if markup.value:
            parser = self._markup_parser(markup)
            expression = parser.parse_filtered()
            parser.expect_end()
        else:
            # {{ }} renders nothing
            expression = Filtered(Literal(None, markup.span), (), markup.span)
        return Output(expression, markup.value, Span(start, self._prev_end()))

    def _parse_tag(self, stack: list[_Frame]) -> None:
        start = self._advance().span.start  # consume TAG_OPEN
        name_tok = self._expect(TokenType.TAG_NAME, "expected tag name")
        markup = self._expect(TokenType.MARKUP, "expected tag markup")
        self._expect(TokenType.TAG_CLOSE, "expected '%}'")
        name = name_tok.value
        span = Span(start, self._prev_end())

        if name.startswith("end") and len(name) > 3:
            self._close_block(stack, name[3:], markup, span)
            return

        args = self._parse_args(name, markup)

        if name in _BRANCH_NAMES:
            self._open_branch(stack, name, markup.value, args, span)
            return

        if name in _BRANCHES or (name not in _SIMPLE_TAGS and name in self._end_names):
            stack.append(_Frame(name, markup.value, args, start))
            return

        stack[-1].current.append(Tag(name, markup.value, args, None, (), span))

    def _parse_args(self, name: str, markup: Token) -> TagArgs | None:
        parser = self._markup_parser(markup)
        grammar = _GRAMMARS.get(name, MarkupParser.parse_arguments)
        args = grammar(parser)
        parser.expect_end()
        return args

    def _open_branch(
        self,
        stack: list[_Frame],
        name: str,
        markup: str,
        args: TagArgs | None,
        span: Span,
    ) -> None:
        frame = stack[-1]
        if name not in _BRANCHES.get(frame.name, ()):
            raise self._error(f"unexpected '{name}'", span)
        if frame.branches and frame.branches[-1][0] == "else":
            raise self._error(f"unexpected '{name}' after 'else'", span)
        frame.branches.append((name, markup, args, span.start, []))

    def _close_block(self, stack: list[_Frame], name: str, markup: Token, span: Span) -> None:
        if markup.value:
            raise self._error(f"unexpected markup in 'end{name}'", markup.span)

        frame = stack[-1]
        if frame.name != name:
            if any(f.name == name for f in stack[1:]):
                raise self._error(f"'{frame.name}' tag was never closed", Span(frame.start, frame.start))
            raise self._error(f"unexpected 'end{name}'", span)

        stack.pop()
        end = span.start
        branches: list[Branch] = []
        # Each branch runs until the next one starts, the last until the end tag
        for i, (b_name, b_markup, b_args, b_start, b_children) in enumerate(frame.branches):
            b_end = frame.branches[i + 1][3] if i + 1 < len(frame.branches) else end
            body = Block(tuple(b_children), Span(b_start, b_end))
            branches.append(Branch(b_name, b_markup, b_args, body, Span(b_start, b_end)))

        body_end = frame.branches[0][3] if frame.branches else end
        body = Block(tuple(frame.children), Span(frame.start, body_end))
        tag = Tag(frame.name, frame.markup, frame.args, body, tuple(branches), Span(frame.start, span.end))
        stack[-1].current.append(tag)

    def _markup_parser(self, markup: Token) -> MarkupParser:
        # Parse from the raw text so positions line up with the source
        return MarkupParser(markup.raw, markup.span.start, self._source, self._flavor)

    def _error(self, message: str, span: Span | None = None) -> ParseError:
        if span is None:
            span = self._peek().span
        return ParseError(message, span, self._source)


def parse(source: str, filename: str = "input.liquid", flavor: Flavor = Flavor.LIQUID) -> Document:
    """Convenience function: parse source text and return a Document."""
    tokens = tokenize(source, filename)
    return Parser(tokens, source, filename, flavor).parse()
