"""Liquid lexers — template text into delimiter tokens, tag markup into expression tokens."""

from __future__ import annotations

import re
from dataclasses import replace

from liqpy.errors import LexError
from liqpy.tokens import (
    COMPARISON_OPERATORS,
    Position,
    Span,
    Token,
    TokenType,
    advance_position,
    is_ident_char,
    is_ident_start,
)

# {% raw %} and {% comment %} open a verbatim region closed by the matching end tag
_VERBATIM_OPEN = re.compile(r"\{%-?\s*(raw|comment)\s*-?%\}")
_VERBATIM_CLOSE = {
    "raw": re.compile(r"\{%-?\s*endraw\s*-?%\}"),
    "comment": re.compile(r"\{%-?\s*endcomment\s*-?%\}"),
}


class Lexer:
    """Split Liquid source into text, output, tag and verbatim tokens."""

    def __init__(self, source: str, filename: str = "input.liquid") -> None:
        self._source = source
        self._filename = filename
        self._pos = 0
        self._line = 1
        self._col = 1
        self._tokens: list[Token] = []
        self._trim_next = False  # set by a closing -}} or -%}

    def tokenize(self) -> list[Token]:
        """Tokenize the full source and return the token list."""
        while self._pos < len(self._source):
            if self._source.startswith("{{", self._pos):
                self._lex_output()
            elif self._source.startswith("{%", self._pos):
                verbatim = _VERBATIM_OPEN.match(self._source, self._pos)
                if verbatim is not None:
                    self._lex_verbatim(verbatim)
                else:
                    self._lex_tag()
            else:
                self._lex_text()

        self._emit(TokenType.EOF, "", "")
        return self._tokens

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _current_pos(self) -> Position:
        return Position(self._line, self._col, self._pos)

    def _advance(self) -> str:
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _advance_to(self, end: int) -> str:
        start = self._pos
        while self._pos < end:
            self._advance()
        return self._source[start:end]

    def _emit(self, tt: TokenType, value: str, raw: str, start: Position | None = None) -> Token:
        end = self._current_pos()
        if start is None:
            start = end
        tok = Token(tt, value, raw, Span(start, end))
        self._tokens.append(tok)
        return tok

    def _error(self, message: str, pos: Position | None = None) -> LexError:
        if pos is None:
            pos = self._current_pos()
        return LexError(message, pos, self._source)

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _lex_text(self) -> None:
        start = self._current_pos()
        candidates = [
            i for i in (self._source.find("{{", self._pos), self._source.find("{%", self._pos)) if i >= 0
        ]
        end = min(candidates) if candidates else len(self._source)
        text = self._advance_to(end)
        value = text.lstrip() if self._trim_next else text
        self._trim_next = False
        self._emit(TokenType.TEXT, value, text, start)

    def _trim_previous_text(self) -> None:
        """A leading {{- or {%- strips whitespace from the end of the preceding text."""
        if self._tokens and self._tokens[-1].type == TokenType.TEXT:
            self._tokens[-1] = replace(self._tokens[-1], value=self._tokens[-1].value.rstrip())

    def _lex_opener(self, tt: TokenType, opener: str) -> Position:
        self._trim_next = False
        start = self._current_pos()
        raw = self._advance_to(self._pos + 2)
        if self._source.startswith("-", self._pos):
            raw += self._advance()
            self._trim_previous_text()
        self._emit(tt, opener, raw, start)
        return start

    # ------------------------------------------------------------------
    # {{ ... }} and {% ... %}
    # ------------------------------------------------------------------

    def _lex_output(self) -> None:
        start = self._lex_opener(TokenType.OUTPUT_OPEN, "{{")
        self._lex_markup("}}", start)
        close = self._current_pos()
        self._advance_to(self._pos + 2)
        self._emit(TokenType.OUTPUT_CLOSE, "}}", "}}", close)

    def _lex_tag(self) -> None:
        start = self._lex_opener(TokenType.TAG_OPEN, "{%")

        while self._pos < len(self._source) and self._source[self._pos] in " \t\r\n":
            self._advance()

        name_start = self._current_pos()
        if self._pos >= len(self._source) or not is_ident_start(self._source[self._pos]):
            raise self._error("expected tag name after '{%'", name_start)
        chars = []
        while self._pos < len(self._source) and is_ident_char(self._source[self._pos]):
            chars.append(self._advance())
        name = "".join(chars)
        self._emit(TokenType.TAG_NAME, name, name, name_start)

        self._lex_markup("%}", start)
        close = self._current_pos()
        self._advance_to(self._pos + 2)
        self._emit(TokenType.TAG_CLOSE, "%}", "%}", close)

    def _lex_markup(self, closer: str, opened_at: Position) -> None:
        """Emit everything up to *closer* as one MARKUP token, honouring quotes."""
        start = self._current_pos()
        quote: str | None = None
        i = self._pos
        while i < len(self._source):
            ch = self._source[i]
            if quote is not None:
                if ch == quote:
                    quote = None
            elif ch in "'\"":
                quote = ch
            elif self._source.startswith(closer, i):
                break
            i += 1
        else:
            kind = "output" if closer == "}}" else "tag"
            raise self._error(f"unterminated {kind}, expected '{closer}'", opened_at)

        trim = i > self._pos and self._source[i - 1] == "-"
        raw = self._advance_to(i - 1 if trim else i)
        self._emit(TokenType.MARKUP, raw.strip(), raw, start)
        if trim:
            self._advance()
            self._trim_next = True

    # ------------------------------------------------------------------
    # Verbatim regions
    # ------------------------------------------------------------------

    def _lex_verbatim(self, opening: re.Match[str]) -> None:
        start = self._current_pos()
        kind = opening.group(1)
        closing = _VERBATIM_CLOSE[kind].search(self._source, opening.end())
        if closing is None:
            raise self._error(f"'{kind}' tag was never closed", start)
        if opening.group(0).startswith("{%-"):
            self._trim_previous_text()

        body = self._source[opening.end() : closing.start()]
        raw = self._advance_to(closing.end())
        tt = TokenType.RAW if kind == "raw" else TokenType.COMMENT
        self._emit(tt, body, raw, start)
        self._trim_next = raw.endswith("-%}")


class MarkupLexer:
    """Tokenize the markup of one tag or output into expression tokens.

    Positions are absolute in the enclosing template: *origin* is where the
    markup starts, and *source* is the whole template for error context.
    """

    def __init__(self, markup: str, origin: Position, source: str) -> None:
        self._markup = markup
        self._source = source
        self._pos = 0
        self._origin = origin
        self._here = origin
        self._tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        while self._pos < len(self._markup):
            ch = self._markup[self._pos]
            if ch in " \t\r\n":
                self._consume(1)
            elif ch in "'\"":
                self._lex_string(ch)
            elif ch.isdigit() or (ch == "-" and self._peek(1).isdigit()):
                self._lex_number()
            elif is_ident_start(ch):
                self._lex_identifier()
            else:
                self._lex_punctuation(ch)

        self._tokens.append(Token(TokenType.EOF, "", "", Span(self._here, self._here)))
        return self._tokens

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._markup):
            return self._markup[idx]
        return ""

    def _consume(self, count: int) -> tuple[str, Span]:
        start = self._here
        text = self._markup[self._pos : self._pos + count]
        self._pos += count
        self._here = advance_position(self._here, text)
        return text, Span(start, self._here)

    def _emit(self, tt: TokenType, value: str, count: int) -> None:
        raw, span = self._consume(count)
        self._tokens.append(Token(tt, value, raw, span))

    def _error(self, message: str) -> LexError:
        return LexError(message, self._here, self._source)

    def _lex_string(self, quote: str) -> None:
        end = self._markup.find(quote, self._pos + 1)
        if end < 0:
            raise self._error("unterminated string literal")
        value = self._markup[self._pos + 1 : end]
        self._emit(TokenType.STRING, value, end + 1 - self._pos)

    def _lex_number(self) -> None:
        i = self._pos + 1
        while i < len(self._markup) and self._markup[i].isdigit():
            i += 1
        # A dot only belongs to the number when a digit follows, so (1..5) stays a range
        if i + 1 < len(self._markup) and self._markup[i] == "." and self._markup[i + 1].isdigit():
            i += 1
            while i < len(self._markup) and self._markup[i].isdigit():
                i += 1
            self._emit(TokenType.FLOAT, self._markup[self._pos : i], i - self._pos)
        else:
            self._emit(TokenType.INTEGER, self._markup[self._pos : i], i - self._pos)

    def _lex_identifier(self) -> None:
        i = self._pos + 1
        while i < len(self._markup) and is_ident_char(self._markup[i]):
            i += 1
        if i < len(self._markup) and self._markup[i] == "?":
            i += 1
        self._emit(TokenType.IDENTIFIER, self._markup[self._pos : i], i - self._pos)

    def _lex_punctuation(self, ch: str) -> None:
        if self._markup.startswith("..", self._pos):
            self._emit(TokenType.DOTDOT, "..", 2)
            return
        for op in COMPARISON_OPERATORS:
            if self._markup.startswith(op, self._pos):
                self._emit(TokenType.COMPARISON, op, len(op))
                return
        single = {
            ".": TokenType.DOT,
            "[": TokenType.LBRACKET,
            "]": TokenType.RBRACKET,
            "(": TokenType.LPAREN,
            ")": TokenType.RPAREN,
            "|": TokenType.PIPE,
            ":": TokenType.COLON,
            ",": TokenType.COMMA,
            "=": TokenType.ASSIGN,
        }
        if ch in single:
            self._emit(single[ch], ch, 1)
            return
        raise self._error(f"unexpected character '{ch}' in markup")


def tokenize(source: str, filename: str = "input.liquid") -> list[Token]:
    """Convenience function: tokenize template source and return token list."""
    return Lexer(source, filename).tokenize()


def tokenize_markup(markup: str, origin: Position, source: str) -> list[Token]:
    """Convenience function: tokenize tag or output markup."""
    return MarkupLexer(markup, origin, source).tokenize()
