"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from liqpy.ast import Document, Tag
from liqpy.flavor import Flavor
from liqpy.lexer import tokenize
from liqpy.parser import parse
from liqpy.template import Template
from liqpy.tokens import Token, TokenType


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns tokens (excluding EOF)."""

    def _lex(source: str) -> list[Token]:
        tokens = tokenize(source)
        # Strip trailing EOF for convenience
        return [t for t in tokens if t.type != TokenType.EOF]

    return _lex


@pytest.fixture
def parse_source():
    """Return a helper that parses source and returns a Document."""

    def _parse(source: str, flavor: Flavor = Flavor.LIQUID) -> Document:
        return parse(source, "test.liquid", flavor)

    return _parse


@pytest.fixture
def render():
    """Return a helper that parses and renders source in one call."""

    def _render(source: str, *args, **kwargs) -> str:
        return Template.parse(source).render(*args, **kwargs)

    return _render


def assert_types(tokens: list[Token], expected: list[TokenType]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t.type for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t.value for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def only_tag(doc: Document) -> Tag:
    """Return the single Tag child of a document."""
    tags = [c for c in doc.children if isinstance(c, Tag)]
    assert len(tags) == 1, f"Expected one tag, got {len(tags)}"
    return tags[0]
