"""
Error types for stalkercfg configuration and document loading.

The parsing passes never raise for malformed document text; problems in the
text are reported as diagnostics. These exceptions cover the surfaces around
the core: reading files and loading settings.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class StalkerCfgError(Exception):
    """Base exception for all stalkercfg errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ConfigError(StalkerCfgError):
    """
    Raised when formatting settings cannot be loaded.

    Examples:
    - Invalid TOML in stalkercfg.toml
    - Non-integer or non-positive indent_step / tab_width
    """

    pass


class DocumentError(StalkerCfgError):
    """
    Raised when a .cfg document cannot be read.

    Examples:
    - File does not exist
    - File is not valid UTF-8
    """

    pass


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the file where the error occurred
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional text showing the error location
        key: Optional configuration key involved
    """

    file: Path
    line: int = 1
    column: int = 1
    snippet: str | None = None
    key: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "stalkercfg.toml:3:1 (format.indent_step)"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.key:
            location += f" ({self.key})"

        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format snippet with a line-number gutter and an error marker."""
        if not self.snippet:
            return ""

        prefix = f"{self.line:4d} | "
        marker = " " * (len(prefix) + self.column - 1) + "^^^"
        return f"{prefix}{self.snippet}\n{marker}"


def make_config_error(
    message: str,
    file: Path,
    key: str | None = None,
    line: int = 1,
    column: int = 1,
) -> ConfigError:
    """
    Helper to create a ConfigError with file context.

    Args:
        message: Error description
        file: Settings file path
        key: Optional dotted key, e.g. "format.tab_width"
        line: Line number (1-indexed)
        column: Column number (1-indexed)

    Returns:
        ConfigError with context attached
    """
    context = ErrorContext(file=file, line=line, column=column, key=key)
    return ConfigError(message, context)


def make_document_error(message: str, file: Path) -> DocumentError:
    """Helper to create a DocumentError pointing at a file."""
    return DocumentError(message, ErrorContext(file=file))
