"""
stalkercfg Language Server implementation using pygls.

Hosts the validator and formatter for editors: diagnostics are published
for every open .cfg document on open, change and save, and document
formatting returns indentation edits. Every request works on the current
snapshot of the document; nothing is cached between requests.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from lsprotocol.types import (
    INITIALIZE,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    TEXT_DOCUMENT_FORMATTING,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    DocumentFormattingParams,
    InitializeParams,
    Position,
    PublishDiagnosticsParams,
    Range,
)
from lsprotocol.types import Diagnostic as LspDiagnostic
from lsprotocol.types import TextEdit as LspTextEdit
from pygls import uris
from pygls.lsp.server import LanguageServer
from pygls.workspace import TextDocument

from stalkercfg._version import get_version
from stalkercfg.core.config import FormatSettings, resolve_settings
from stalkercfg.core.diagnostics import Diagnostic, Severity, TextEdit
from stalkercfg.core.errors import ConfigError
from stalkercfg.core.formatter import format_document
from stalkercfg.core.parser import split_lines
from stalkercfg.core.validator import validate_document

logger = logging.getLogger(__name__)

SOURCE_NAME = "stalkercfg"
# Settings section used by the editor extension
SETTINGS_SECTION = "stalker2CfgValidator"

# Create server instance
server = LanguageServer("stalkercfg-lsp", f"v{get_version()}")

# Store workspace state on server
server.workspace_root = None
server.format_settings = FormatSettings()


def _int_option(options: dict[str, Any], key: str) -> int | None:
    value = options.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        logger.warning("Ignoring initialization option %s=%r: not an integer", key, value)
        return None
    return value


def settings_from_options(
    options: Any, workspace_root: Path | None = None
) -> FormatSettings:
    """
    Resolve settings for the server.

    Initialization options (``indentLevel``, ``tabWidth``, optionally nested
    under the extension's settings section) win over a settings file found
    from the workspace root, which wins over the defaults.
    """
    if not isinstance(options, dict):
        options = {}
    if isinstance(options.get(SETTINGS_SECTION), dict):
        options = options[SETTINGS_SECTION]

    indent_step = _int_option(options, "indentLevel")
    tab_width = _int_option(options, "tabWidth")
    try:
        return resolve_settings(
            start=workspace_root, indent_step=indent_step, tab_width=tab_width
        )
    except ConfigError as e:
        logger.error("Invalid settings, using defaults: %s", e)
        return FormatSettings()


def to_lsp_diagnostic(
    diagnostic: Diagnostic, document: TextDocument, lines: Sequence[str] | None = None
) -> LspDiagnostic:
    """
    Convert a core diagnostic into an LSP diagnostic (UTF-16 columns).

    ``lines`` should be the lines the diagnostic was computed on; they default
    to the document split the way the validator splits it.
    """
    if lines is None:
        lines = split_lines(document.source)
    line = diagnostic.line
    range_ = Range(
        start=Position(line=line, character=diagnostic.start_column),
        end=Position(line=line, character=diagnostic.end_column),
    )
    return LspDiagnostic(
        range=document.position_codec.range_to_client_units(lines, range_),
        message=diagnostic.message,
        severity=(
            DiagnosticSeverity.Error
            if diagnostic.severity == Severity.ERROR
            else DiagnosticSeverity.Warning
        ),
        code=diagnostic.code,
        source=SOURCE_NAME,
    )


def to_lsp_text_edit(edit: TextEdit) -> LspTextEdit:
    """Convert an indentation edit; leading whitespace is ASCII so no unit conversion applies."""
    return LspTextEdit(
        range=Range(
            start=Position(line=edit.line, character=edit.start_column),
            end=Position(line=edit.line, character=edit.end_column),
        ),
        new_text=edit.new_text,
    )


def _publish(ls: LanguageServer, uri: str) -> None:
    """Validate the current snapshot of ``uri`` and publish the result."""
    document = ls.workspace.get_text_document(uri)
    lines = split_lines(document.source)
    diagnostics = validate_document(lines, ls.format_settings)
    logger.info("Validated %s: %d diagnostic(s)", uri, len(diagnostics))
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(
            uri=uri,
            version=document.version,
            diagnostics=[to_lsp_diagnostic(d, document, lines) for d in diagnostics],
        )
    )


@server.feature(INITIALIZE)
def initialize(ls: LanguageServer, params: InitializeParams) -> None:
    """Initialize the language server."""
    if params.root_uri:
        root = uris.to_fs_path(params.root_uri)
        ls.workspace_root = Path(root) if root else None
        logger.info("Workspace root: %s", ls.workspace_root)

    ls.format_settings = settings_from_options(
        params.initialization_options, ls.workspace_root
    )
    logger.info(
        "Using indent step %d, tab width %d",
        ls.format_settings.indent_step,
        ls.format_settings.tab_width,
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    """Handle document open."""
    logger.info("Opened: %s", params.text_document.uri)
    _publish(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    """Handle document change."""
    _publish(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: LanguageServer, params: DidSaveTextDocumentParams) -> None:
    """Handle document save."""
    logger.info("Saved: %s", params.text_document.uri)
    _publish(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: LanguageServer, params: DidCloseTextDocumentParams) -> None:
    """Handle document close: clear its diagnostics."""
    logger.info("Closed: %s", params.text_document.uri)
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=params.text_document.uri, diagnostics=[])
    )


@server.feature(TEXT_DOCUMENT_FORMATTING)
def formatting(ls: LanguageServer, params: DocumentFormattingParams) -> list[LspTextEdit]:
    """Return indentation edits; none while the document has errors."""
    document = ls.workspace.get_text_document(params.text_document.uri)
    edits = format_document(document.source, ls.format_settings)
    logger.info("Formatting %s: %d edit(s)", params.text_document.uri, len(edits))
    return [to_lsp_text_edit(edit) for edit in edits]


def start_server(tcp: bool = False, host: str = "127.0.0.1", port: int = 2087) -> None:
    """Start the stalkercfg LSP server."""
    logging.basicConfig(level=logging.INFO)
    logging.getLogger("pygls").setLevel(logging.WARNING)
    logger.info("Starting stalkercfg Language Server...")
    if tcp:
        server.start_tcp(host, port)
    else:
        server.start_io()
