"""pygls LSP server for scopelint."""

import pathlib

from lsprotocol import types
from pygls.lsp import server as pygls_server

from scopelint import analyzer as scopelint_analyzer
from scopelint import config as scopelint_config
from scopelint import rules, source
from scopelint.rules import base

server = pygls_server.LanguageServer("scopelint", "v0.1.0")


def _to_lsp(finding: base.Finding, text: str) -> types.Diagnostic:
    """Convert a scopelint Finding to an LSP Diagnostic."""
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(
                line=source.line_of(text, finding.loc.start) - 1,
                character=source.column_of(text, finding.loc.start),
            ),
            end=types.Position(
                line=source.line_of(text, finding.loc.end) - 1,
                character=source.column_of(text, finding.loc.end),
            ),
        ),
        message=f"{finding.rule.value}: {finding.message}",
        severity=types.DiagnosticSeverity.Warning,
        source="scopelint",
    )


def findings_for(path: pathlib.Path, text: str) -> list[base.Finding]:
    """Return the unsuppressed findings for an open document.

    The document's location decides its file kind and which `.scopelint`
    ignores apply. Ignored and unclassified documents have no findings.
    """
    cfg = scopelint_config.load_config(start=path.parent)
    if cfg.is_file_ignored(path):
        return []
    kind = cfg.classify(path)
    if kind is None:
        return []
    active_rules = scopelint_config.filter_rules(rules.ALL_RULES, cfg, path, kind)
    analyzer = scopelint_analyzer.Analyzer(rules=active_rules)
    return analyzer.analyze(text, cfg.display_path(path), kind)


def _publish(ls: pygls_server.LanguageServer, uri: str) -> None:
    """Analyze a document and publish diagnostics to the client."""
    document = ls.workspace.get_text_document(uri)
    text = document.source
    findings = findings_for(pathlib.Path(document.path), text)
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(
            uri=uri,
            diagnostics=[_to_lsp(finding, text) for finding in findings],
        )
    )


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(
    ls: pygls_server.LanguageServer,
    params: types.DidOpenTextDocumentParams,
) -> None:
    """Analyze a newly opened document."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(
    ls: pygls_server.LanguageServer,
    params: types.DidChangeTextDocumentParams,
) -> None:
    """Re-analyze a document after every change."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
def did_close(
    ls: pygls_server.LanguageServer,
    params: types.DidCloseTextDocumentParams,
) -> None:
    """Clear diagnostics when a document is closed."""
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=params.text_document.uri, diagnostics=[])
    )


def start() -> None:
    """Start the LSP server over stdio."""
    server.start_io()
