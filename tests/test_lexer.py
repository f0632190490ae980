"""Lexer tests: template-level and markup-level tokens."""

from __future__ import annotations

import pytest

from liqpy.errors import LexError
from liqpy.lexer import tokenize_markup
from liqpy.tokens import Position, TokenType

from conftest import assert_types, assert_values

T = TokenType
ORIGIN = Position(1, 1, 0)


def _markup(text: str) -> list:
    return [t for t in tokenize_markup(text, ORIGIN, text) if t.type != T.EOF]


class TestTemplateTokens:
    def test_plain_text(self, lex) -> None:
        tokens = lex("Hello")
        assert_types(tokens, [T.TEXT])
        assert_values(tokens, ["Hello"])

    def test_output(self, lex) -> None:
        tokens = lex("a{{ x }}b")
        assert_types(tokens, [T.TEXT, T.OUTPUT_OPEN, T.MARKUP, T.OUTPUT_CLOSE, T.TEXT])
        assert tokens[2].value == "x"
        assert tokens[2].raw == " x "

    def test_tag(self, lex) -> None:
        tokens = lex("{% if x %}")
        assert_types(tokens, [T.TAG_OPEN, T.TAG_NAME, T.MARKUP, T.TAG_CLOSE])
        assert_values(tokens, ["{%", "if", "x", "%}"])

    def test_closer_inside_quotes(self, lex) -> None:
        tokens = lex("{{ '}}' }}")
        assert tokens[1].value == "'}}'"

    def test_raw_region(self, lex) -> None:
        tokens = lex("{% raw %}{{ x }}{% endraw %}")
        assert_types(tokens, [T.RAW])
        assert tokens[0].value == "{{ x }}"

    def test_comment_region(self, lex) -> None:
        tokens = lex("{% comment %}hi{% endcomment %}")
        assert_types(tokens, [T.COMMENT])
        assert tokens[0].value == "hi"

    def test_positions_on_second_line(self, lex) -> None:
        tokens = lex("ab\n{{ x }}")
        start = tokens[1].span.start
        assert (start.line, start.column, start.offset) == (2, 1, 3)


class TestWhitespaceControl:
    def test_output_trims_both_sides(self, lex) -> None:
        tokens = lex("a  {{- x -}}  b")
        assert_types(tokens, [T.TEXT, T.OUTPUT_OPEN, T.MARKUP, T.OUTPUT_CLOSE, T.TEXT])
        assert_values(tokens, ["a", "{{", "x", "}}", "b"])

    def test_tag_trims_left_only(self, lex) -> None:
        tokens = lex("a \n{%- if x %} b")
        assert tokens[0].value == "a"
        assert tokens[-1].value == " b"

    def test_raw_keeps_original_text(self, lex) -> None:
        tokens = lex("a  {{- x }}")
        assert tokens[0].raw == "a  "


class TestTemplateErrors:
    def test_unterminated_output(self, lex) -> None:
        with pytest.raises(LexError, match="unterminated output") as exc_info:
            lex("{{ x")
        assert exc_info.value.position.column == 1

    def test_unterminated_tag(self, lex) -> None:
        with pytest.raises(LexError, match="unterminated tag"):
            lex("text {% if x")

    def test_missing_tag_name(self, lex) -> None:
        with pytest.raises(LexError, match="expected tag name"):
            lex("{% %}")

    def test_unclosed_raw(self, lex) -> None:
        with pytest.raises(LexError, match="'raw' tag was never closed"):
            lex("{% raw %}x")


class TestMarkupTokens:
    def test_lookup_and_filter(self) -> None:
        tokens = _markup("a.b[0] | plus: 1")
        assert_types(
            tokens,
            [T.IDENTIFIER, T.DOT, T.IDENTIFIER, T.LBRACKET, T.INTEGER, T.RBRACKET, T.PIPE, T.IDENTIFIER, T.COLON, T.INTEGER],
        )

    def test_range_is_not_a_float(self) -> None:
        tokens = _markup("(1..5)")
        assert_types(tokens, [T.LPAREN, T.INTEGER, T.DOTDOT, T.INTEGER, T.RPAREN])

    def test_numbers(self) -> None:
        tokens = _markup("1.5 -3")
        assert_types(tokens, [T.FLOAT, T.INTEGER])
        assert_values(tokens, ["1.5", "-3"])

    def test_strings_are_unquoted(self) -> None:
        tokens = _markup("'a b' \"c\"")
        assert_types(tokens, [T.STRING, T.STRING])
        assert_values(tokens, ["a b", "c"])

    def test_comparison_longest_first(self) -> None:
        tokens = _markup("a <= b")
        assert tokens[1].type == T.COMPARISON
        assert tokens[1].value == "<="

    def test_question_mark_identifier(self) -> None:
        assert_values(_markup("empty?"), ["empty?"])

    def test_absolute_positions(self) -> None:
        source = "{{ x }}"
        tokens = tokenize_markup(" x ", Position(1, 3, 2), source)
        assert tokens[0].span.start == Position(1, 4, 3)

    def test_unexpected_character(self) -> None:
        with pytest.raises(LexError, match="unexpected character '@'"):
            _markup("a @ b")

    def test_unterminated_string(self) -> None:
        with pytest.raises(LexError, match="unterminated string"):
            _markup("'abc")
