"""Core stalkercfg functionality: tokenizer, block resolver, AST, validator, formatter."""

from .ast import BlockNode, DocumentNode, NodeKind, iter_blocks, iter_nodes
from .config import FormatSettings, resolve_settings
from .diagnostics import Diagnostic, Severity, TextEdit, has_errors
from .errors import ConfigError, DocumentError, ErrorContext, StalkerCfgError
from .fileset import discover_cfg_files, read_document
from .formatter import apply_edits, format_document, format_text
from .parser import ParseResult, parse_document
from .validator import validate_document

__all__ = [
    "StalkerCfgError",
    "ConfigError",
    "DocumentError",
    "ErrorContext",
    "FormatSettings",
    "resolve_settings",
    "parse_document",
    "ParseResult",
    "DocumentNode",
    "BlockNode",
    "NodeKind",
    "iter_blocks",
    "iter_nodes",
    "validate_document",
    "Diagnostic",
    "Severity",
    "TextEdit",
    "has_errors",
    "format_document",
    "format_text",
    "apply_edits",
    "discover_cfg_files",
    "read_document",
]
