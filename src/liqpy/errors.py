"""Error types with formatted source context."""

from __future__ import annotations

from liqpy.tokens import Position, Span


def _snippet(message: str, span: Span, source: str, filename: str) -> str:
    """Format *message* with the offending source line and a caret underline."""
    lines = source.splitlines(keepends=True)
    line_idx = span.start.line - 1
    col = span.start.column

    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    # Underline the full span when on one line, otherwise to end of line
    if span.end.line == span.start.line:
        underline_len = max(1, span.end.column - col)
    else:
        underline_len = max(1, len(source_line) - col + 1)

    pad = " " * (col - 1)
    carets = "^" * underline_len

    line_num = str(span.start.line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"error: {message}\n"
        f"{' ' * gutter_width}--> {filename}:{span.start.line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )


class LiquidError(Exception):
    """Base class for every error raised by liqpy."""

    def __init__(self, message: str, span: Span | None = None, source: str = "") -> None:
        self.message = message
        self.span = span
        self.source = source
        super().__init__(self.format())

    def format(self, filename: str = "input.liquid") -> str:
        if self.span is None or not self.source:
            return f"error: {self.message}"
        return _snippet(self.message, self.span, self.source, filename)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class ParseError(LiquidError):
    """Raised on the first parse error, with span and source context."""

    def __init__(self, message: str, span: Span, source: str) -> None:
        super().__init__(message, span, source)


class LexError(ParseError):
    """Raised on the first lexing error, with position and source context."""

    def __init__(self, message: str, position: Position, source: str) -> None:
        self.position = position
        super().__init__(message, Span(position, position), source)


# ---------------------------------------------------------------------------
# Tree building
# ---------------------------------------------------------------------------


class BuildError(LiquidError):
    """Raised when a syntax tree cannot be turned into a node graph."""


class UnknownHandler(BuildError):
    """A tag or filter name that is absent from its registry."""

    def __init__(self, kind: str, name: str, span: Span | None = None, source: str = "") -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"unknown {kind} '{name}'", span, source)


# ---------------------------------------------------------------------------
# Variable binding
# ---------------------------------------------------------------------------


class BindError(LiquidError):
    """Caller-supplied variables cannot be used."""


class MalformedInput(BindError):
    """A structured-text variable payload that does not decode to an object."""

    def __init__(self, message: str, payload: str = "") -> None:
        self.payload = payload
        super().__init__(message)


class UnsupportedInput(BindError, TypeError):
    """Render arguments that match none of the accepted variable shapes."""


class InvalidKey(BindError):
    """A variable key that is not a string."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"invalid key: {key!r} (keys must be strings)")


# ---------------------------------------------------------------------------
# Protection limits
# ---------------------------------------------------------------------------


class ProtectionError(LiquidError):
    """A configured protection limit was hit."""


class SizeExceeded(ProtectionError):
    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"template exceeds {limit} bytes ({size} bytes)")


class RenderTimeout(ProtectionError, TimeoutError):
    def __init__(self, limit: float) -> None:
        self.limit = limit
        super().__init__(f"exceeded the max amount of time ({limit:g} s)")


class IterationsExceeded(ProtectionError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"exceeded the max amount of iterations ({limit})")


class RenderedSizeExceeded(ProtectionError):
    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"rendered output exceeds {limit} characters ({size} characters)")


class EvaluationBacklog(ProtectionError):
    """Too many timed-out evaluations are still running in the background."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"{count} abandoned evaluations are still running")


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class EvalError(LiquidError):
    """Raised when a node or handler fails during evaluation."""

    def __init__(
        self,
        message: str,
        span: Span | None = None,
        source: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.cause = cause
        super().__init__(message, span, source)
