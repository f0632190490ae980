"""Minimal LSP server for Liquid templates — diagnostics only."""

from __future__ import annotations

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from liqpy.builder import build
from liqpy.errors import BuildError, LiquidError, ParseError
from liqpy.filters import default_filters
from liqpy.flavor import Flavor
from liqpy.parser import parse
from liqpy.tags import default_tags

server = LanguageServer("liqpy-lsp", "0.1.0", text_document_sync_kind=TextDocumentSyncKind.Full)


def _flavor_for(uri: str) -> Flavor:
    """Templates under a Jekyll ``_includes``/``_layouts`` folder use the Jekyll flavor."""
    if "/_includes/" in uri or "/_layouts/" in uri:
        return Flavor.JEKYLL
    return Flavor.LIQUID


def _diagnostic(exc: LiquidError, severity: DiagnosticSeverity) -> Diagnostic:
    if exc.span is None:
        start = end = Position(line=0, character=0)
    else:
        start = Position(line=exc.span.start.line - 1, character=exc.span.start.column - 1)
        end = Position(line=exc.span.end.line - 1, character=exc.span.end.column - 1)
        if end == start:
            end = Position(line=start.line, character=start.character + 1)
    return Diagnostic(
        range=Range(start=start, end=end),
        message=exc.message,
        severity=severity,
        source="liqpy",
    )


def _validate(ls: LanguageServer, uri: str) -> None:
    """Parse and build the template and publish diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    source = doc.source
    filename = uri.rsplit("/", 1)[-1] if "/" in uri else uri
    flavor = _flavor_for(uri)
    diagnostics: list[Diagnostic] = []

    try:
        tree = parse(source, filename, flavor)
    except ParseError as exc:
        diagnostics.append(_diagnostic(exc, DiagnosticSeverity.Error))
    else:
        try:
            build(tree, default_tags(), default_filters(), flavor, source)
        except BuildError as exc:
            diagnostics.append(_diagnostic(exc, DiagnosticSeverity.Warning))

    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
