"""
stalkercfg - validator and indentation formatter for STALKER 2 .cfg files.

Parses the nested ``struct.begin`` / ``struct.end`` block format, reports
structural and style problems, and computes indentation fixes. The same
core drives the command line and the language server.
"""

from ._version import get_version
from .core.diagnostics import Diagnostic, Severity, TextEdit
from .core.errors import ConfigError, DocumentError, StalkerCfgError
from .core.formatter import apply_edits, format_document
from .core.validator import validate_document

__version__ = get_version()

__all__ = [
    "__version__",
    "Diagnostic",
    "Severity",
    "TextEdit",
    "StalkerCfgError",
    "ConfigError",
    "DocumentError",
    "validate_document",
    "format_document",
    "apply_edits",
]
