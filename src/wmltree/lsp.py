"""Minimal LSP server for WML config files: diagnostics only."""

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

from wmltree.builder import build
from wmltree.coerce import coerce
from wmltree.errors import SemanticError, WmlError
from wmltree.expand import Expander
from wmltree.macros import MacroTable, preprocess

server = LanguageServer("wmltree-lsp", "0.1.0", text_document_sync_kind=TextDocumentSyncKind.Full)


def _line_range(line: int) -> Range:
    """Whole-line range for a 1-based line number (0 means unknown)."""
    idx = max(line - 1, 0)
    return Range(start=Position(line=idx, character=0), end=Position(line=idx + 1, character=0))


def _validate(ls: LanguageServer, uri: str) -> None:
    """Run the wmltree pipeline and publish diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    source = doc.source
    filename = uri.rsplit("/", 1)[-1] if "/" in uri else uri
    diagnostics: list[Diagnostic] = []

    table = MacroTable()
    expander = Expander(table, filename)
    try:
        text = preprocess(source, filename, table)
        table.freeze()
        coerce(build(expander.expand(text), filename))
    except WmlError as exc:
        message = exc.message
        if isinstance(exc, SemanticError) and exc.call_stack:
            chain = " -> ".join(exc.call_stack)
            message += f" (in expansion: {chain})"
        diagnostics.append(
            Diagnostic(
                range=_line_range(exc.line),
                message=message,
                severity=DiagnosticSeverity.Error,
                source="wmltree",
            )
        )

    for warning in expander.warnings:
        diagnostics.append(
            Diagnostic(
                range=_line_range(warning.line),
                message=warning.message,
                severity=DiagnosticSeverity.Warning,
                source="wmltree",
            )
        )

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
