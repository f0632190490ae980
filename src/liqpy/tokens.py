"""Token types, data structures, and character classification helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    # Template level
    TEXT = auto()  # literal text between delimiters
    OUTPUT_OPEN = auto()  # {{
    OUTPUT_CLOSE = auto()  # }}
    TAG_OPEN = auto()  # {%
    TAG_CLOSE = auto()  # %}
    TAG_NAME = auto()  # identifier directly after {%
    MARKUP = auto()  # unparsed text between the tag name (or {{) and the closing delimiter
    RAW = auto()  # body of {% raw %}...{% endraw %}
    COMMENT = auto()  # body of {% comment %}...{% endcomment %}

    # Markup level
    IDENTIFIER = auto()  # [A-Za-z_][A-Za-z0-9_-]*[?]?
    STRING = auto()  # 'single' or "double" quoted, value is unquoted
    INTEGER = auto()
    FLOAT = auto()
    DOT = auto()  # .
    DOTDOT = auto()  # ..
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    PIPE = auto()  # |
    COLON = auto()  # :
    COMMA = auto()  # ,
    ASSIGN = auto()  # =
    COMPARISON = auto()  # == != <> < > <= >=

    EOF = auto()


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based character offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start to end position."""

    start: Position
    end: Position


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexer token with resolved value and original source text."""

    type: TokenType
    value: str
    raw: str
    span: Span


# Comparison operators, longest first so that "<=" wins over "<"
COMPARISON_OPERATORS: tuple[str, ...] = ("==", "!=", "<>", "<=", ">=", "<", ">")


def is_ident_start(ch: str) -> bool:
    """Return True if ch may start an identifier."""
    return ch.isalpha() or ch == "_"


def is_ident_char(ch: str) -> bool:
    """Return True if ch may continue an identifier."""
    return ch.isalnum() or ch in "_-"


def advance_position(origin: Position, text: str) -> Position:
    """Return the position reached after consuming *text* from *origin*."""
    line = origin.line
    column = origin.column
    for ch in text:
        if ch == "\n":
            line += 1
            column = 1
        else:
            column += 1
    return Position(line, column, origin.offset + len(text))
