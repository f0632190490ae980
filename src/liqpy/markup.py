"""Recursive descent parser for tag and output markup."""

from __future__ import annotations

import re
from functools import cached_property

from liqpy.ast import (
    Arguments,
    Assign,
    Capture,
    Comparison,
    Condition,
    Counter,
    Cycle,
    Expression,
    FilterCall,
    Filtered,
    ForLoop,
    Include,
    Keyword,
    Literal,
    Logical,
    Lookup,
    Param,
    Range,
    When,
)
from liqpy.errors import ParseError
from liqpy.flavor import Flavor
from liqpy.lexer import tokenize_markup
from liqpy.tokens import Position, Span, Token, TokenType, advance_position

_LITERAL_WORDS: dict[str, bool | None] = {"true": True, "false": False, "nil": None, "null": None}
_KEYWORDS = frozenset({"empty", "blank"})
_LOOP_ATTRIBUTES = frozenset({"limit", "offset", "cols"})

# Jekyll include: a bare file name, then key=value parameters
_JEKYLL_FILE = re.compile(r"\s*(\S+)")


class MarkupParser:
    """Parse the markup of a single tag or output into syntax tree nodes."""

    def __init__(
        self,
        markup: str,
        origin: Position,
        source: str,
        flavor: Flavor = Flavor.LIQUID,
    ) -> None:
        self._markup = markup
        self._origin = origin
        self._source = source
        self._flavor = flavor
        self._pos = 0
        self._consumed = False

    @cached_property
    def _tokens(self) -> list[Token]:
        # Lazy, so that a Jekyll include file name is never run through the expression lexer
        return tokenize_markup(self._markup, self._origin, self._source)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOF

    def _at(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _at_word(self, *words: str) -> bool:
        tok = self._peek()
        return tok.type == TokenType.IDENTIFIER and tok.value in words

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

    def _expect_word(self, word: str) -> Token:
        if not self._at_word(word):
            raise self._error(f"expected '{word}'")
        return self._advance()

    def _span_from(self, start: Position) -> Span:
        if self._pos > 0:
            return Span(start, self._tokens[self._pos - 1].span.end)
        return Span(start, start)

    def _error(self, message: str, span: Span | None = None) -> ParseError:
        if span is None:
            span = self._peek().span
        return ParseError(message, span, self._source)

    def expect_end(self) -> None:
        """Fail unless all markup has been consumed."""
        if self._consumed:
            return
        tok = self._peek()
        if tok.type != TokenType.EOF:
            raise self._error(f"unexpected '{tok.raw}' in markup", tok.span)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def parse_filtered(self) -> Filtered:
        start = self._peek().span.start
        expression = self.parse_expression()
        filters: list[FilterCall] = []
        while self._at(TokenType.PIPE):
            self._advance()
            filters.append(self._parse_filter())
        return Filtered(expression, tuple(filters), self._span_from(start))

    def _parse_filter(self) -> FilterCall:
        start = self._peek().span.start
        name = self._expect(TokenType.IDENTIFIER, "expected filter name after '|'").value
        args: list[Expression] = []
        if self._at(TokenType.COLON):
            self._advance()
            args.append(self.parse_expression())
            while self._at(TokenType.COMMA):
                self._advance()
                args.append(self.parse_expression())
        return FilterCall(name, tuple(args), self._span_from(start))

    def parse_condition(self) -> Expression:
        start = self._peek().span.start
        left = self._parse_comparison()
        if self._at_word("and", "or"):
            op = self._advance().value
            right = self.parse_condition()
            return Logical(op, left, right, self._span_from(start))
        return left

    def _parse_comparison(self) -> Expression:
        start = self._peek().span.start
        left = self.parse_expression()
        if self._at(TokenType.COMPARISON) or self._at_word("contains"):
            op = self._advance().value
            right = self.parse_expression()
            return Comparison(op, left, right, self._span_from(start))
        return left

    def parse_expression(self) -> Expression:
        tok = self._peek()
        if tok.type == TokenType.STRING:
            self._advance()
            return Literal(tok.value, tok.span)
        if tok.type == TokenType.INTEGER:
            self._advance()
            return Literal(int(tok.value), tok.span)
        if tok.type == TokenType.FLOAT:
            self._advance()
            return Literal(float(tok.value), tok.span)
        if tok.type == TokenType.LPAREN:
            return self._parse_range()
        if tok.type == TokenType.IDENTIFIER:
            if tok.value in _LITERAL_WORDS:
                self._advance()
                return Literal(_LITERAL_WORDS[tok.value], tok.span)
            if tok.value in _KEYWORDS:
                self._advance()
                return Keyword(tok.value, tok.span)
            return self._parse_lookup()
        if tok.type == TokenType.EOF:
            raise self._error("expected an expression")
        raise self._error(f"unexpected '{tok.raw}', expected an expression", tok.span)

    def _parse_range(self) -> Range:
        start = self._advance().span.start  # consume LPAREN
        low = self.parse_expression()
        self._expect(TokenType.DOTDOT, "expected '..' in range")
        high = self.parse_expression()
        self._expect(TokenType.RPAREN, "expected ')' to close range")
        return Range(low, high, self._span_from(start))

    def _parse_lookup(self) -> Lookup:
        name_tok = self._advance()
        path: list[str | Expression] = []
        while self._at(TokenType.DOT, TokenType.LBRACKET):
            if self._advance().type == TokenType.DOT:
                path.append(self._expect(TokenType.IDENTIFIER, "expected property name after '.'").value)
            else:
                path.append(self.parse_expression())
                self._expect(TokenType.RBRACKET, "expected ']'")
        return Lookup(name_tok.value, tuple(path), self._span_from(name_tok.span.start))

    def _parse_variable_name(self, what: str) -> str:
        tok = self._peek()
        if tok.type not in (TokenType.IDENTIFIER, TokenType.STRING):
            raise self._error(f"expected {what}")
        self._advance()
        return tok.value

    # ------------------------------------------------------------------
    # Tag grammars
    # ------------------------------------------------------------------

    def parse_arguments(self) -> Arguments:
        start = self._peek().span.start
        values: list[Filtered] = []
        if not self._at(TokenType.EOF):
            values.append(self.parse_filtered())
            while self._at(TokenType.COMMA):
                self._advance()
                values.append(self.parse_filtered())
        return Arguments(tuple(values), self._span_from(start))

    def parse_assign(self) -> Assign:
        start = self._peek().span.start
        target = self._expect(TokenType.IDENTIFIER, "expected variable name after 'assign'").value
        self._expect(TokenType.ASSIGN, "expected '=' in assign")
        value = self.parse_filtered()
        return Assign(target, value, self._span_from(start))

    def parse_capture(self) -> Capture:
        start = self._peek().span.start
        target = self._parse_variable_name("variable name after 'capture'")
        return Capture(target, self._span_from(start))

    def parse_if(self) -> Condition:
        start = self._peek().span.start
        expression = self.parse_condition()
        return Condition(expression, self._span_from(start))

    def parse_when(self) -> When:
        start = self._peek().span.start
        values = [self.parse_expression()]
        while self._at(TokenType.COMMA) or self._at_word("or"):
            self._advance()
            values.append(self.parse_expression())
        return When(tuple(values), self._span_from(start))

    def parse_for(self) -> ForLoop:
        start = self._peek().span.start
        variable = self._expect(TokenType.IDENTIFIER, "expected loop variable").value
        self._expect_word("in")
        iterable = self.parse_expression()

        attributes: dict[str, Expression] = {}
        reversed_ = False
        while not self._at(TokenType.EOF):
            tok = self._peek()
            if self._at_word("reversed"):
                self._advance()
                reversed_ = True
            elif tok.type == TokenType.IDENTIFIER and tok.value in _LOOP_ATTRIBUTES:
                self._advance()
                self._expect(TokenType.COLON, f"expected ':' after '{tok.value}'")
                attributes[tok.value] = self.parse_expression()
            elif tok.type == TokenType.COMMA:
                self._advance()
            else:
                raise self._error(f"unexpected '{tok.raw}' in loop header", tok.span)

        return ForLoop(
            variable,
            iterable,
            attributes.get("limit"),
            attributes.get("offset"),
            attributes.get("cols"),
            reversed_,
            self._span_from(start),
        )

    def parse_cycle(self) -> Cycle:
        start = self._peek().span.start
        group: Expression | None = None
        first = self.parse_expression()
        if self._at(TokenType.COLON):
            self._advance()
            group = first
            values = [self.parse_expression()]
        else:
            values = [first]
        while self._at(TokenType.COMMA):
            self._advance()
            values.append(self.parse_expression())
        return Cycle(group, tuple(values), self._span_from(start))

    def parse_counter(self) -> Counter:
        start = self._peek().span.start
        variable = self._expect(TokenType.IDENTIFIER, "expected variable name").value
        return Counter(variable, self._span_from(start))

    def parse_include(self) -> Include:
        if self._flavor is Flavor.JEKYLL:
            return self._parse_jekyll_include()
        start = self._peek().span.start
        template = self.parse_expression()
        value: Expression | None = None
        if self._at_word("with"):
            self._advance()
            value = self.parse_expression()
        return Include(template, value, (), self._span_from(start))

    def _parse_jekyll_include(self) -> Include:
        match = _JEKYLL_FILE.match(self._markup)
        if match is None:
            raise self._error("expected file name after 'include'")

        file_start = advance_position(self._origin, self._markup[: match.start(1)])
        file_end = advance_position(self._origin, self._markup[: match.end(1)])
        template = Literal(match.group(1), Span(file_start, file_end))

        # The parameters are ordinary markup; reparse the remainder
        rest = MarkupParser(self._markup[match.end() :], file_end, self._source, self._flavor)
        params: list[Param] = []
        while not rest._at(TokenType.EOF):
            name_tok = rest._expect(TokenType.IDENTIFIER, "expected include parameter name")
            rest._expect(TokenType.ASSIGN, f"expected '=' after '{name_tok.value}'")
            value = rest.parse_expression()
            params.append(Param(name_tok.value, value, rest._span_from(name_tok.span.start)))

        self._consumed = True
        return Include(template, None, tuple(params), Span(file_start, rest._peek().span.end))
