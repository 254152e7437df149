"""
Output types: diagnostics and indentation edits.

Lines and columns are 0-based; hosts convert as needed.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"


class Diagnostic(BaseModel):
    """
    A single problem found in a document.

    Attributes:
        line: Line index (0-based)
        start_column: First column of the flagged range
        end_column: Column after the flagged range
        message: Human-readable description
        severity: ERROR or WARNING
        code: Stable identifier of the rule that produced it
    """

    line: int
    start_column: int
    end_column: int
    message: str
    severity: Severity
    code: str

    model_config = ConfigDict(frozen=True)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


class TextEdit(BaseModel):
    """
    Replace ``[start_column, end_column)`` on ``line`` with ``new_text``.

    The formatter only ever replaces a line's leading whitespace with a run
    of spaces, so ``start_column`` is always 0.
    """

    line: int
    start_column: int
    end_column: int
    new_text: str

    model_config = ConfigDict(frozen=True)


def has_errors(diagnostics: list[Diagnostic]) -> bool:
    return any(d.is_error for d in diagnostics)


def sort_diagnostics(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    """Order by position; the stable sort keeps rule order for ties."""
    return sorted(diagnostics, key=lambda d: (d.line, d.start_column))
