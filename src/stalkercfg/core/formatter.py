"""
Indentation formatter for .cfg documents.

The formatter only rewrites leading whitespace. Each nested header is placed
at the required content indent of its parent as recomputed from the parent's
rewritten header, so a wrongly indented parent does not push its whole
subtree off. Content lines follow their block; closers align with their
header. Lines outside any block other than headers are left alone.

Formatting is refused (no edits) while the document has any error-severity
diagnostic, since indentation derived from a broken structure would be wrong.
"""

import logging
from collections.abc import Sequence

from .ast import BlockNode, DocumentNode, InvalidNode, MalformedHeaderNode, PropertyNode
from .config import FormatSettings, leading_whitespace
from .diagnostics import TextEdit, has_errors
from .parser import LINE_BREAK_RE, ParseResult, parse_document
from .validator import validate_parse

logger = logging.getLogger(__name__)


def _indent_edit(lines: Sequence[str], line: int, indent: int) -> TextEdit | None:
    current = leading_whitespace(lines[line])
    wanted = " " * indent
    if current == wanted:
        return None
    return TextEdit(line=line, start_column=0, end_column=len(current), new_text=wanted)


def _collect_edits(
    parse: ParseResult, settings: FormatSettings
) -> list[TextEdit]:
    edits: list[TextEdit] = []

    def add(line: int, indent: int) -> None:
        edit = _indent_edit(parse.lines, line, indent)
        if edit is not None:
            edits.append(edit)

    def walk(container: DocumentNode | BlockNode, required: int) -> None:
        inside_block = isinstance(container, BlockNode)
        for child in container.children:
            if isinstance(child, BlockNode):
                add(child.start_line, required)
                walk(child, required + settings.indent_step)
                if child.end_line is not None:
                    add(child.end_line, required)
            elif inside_block and isinstance(
                child, PropertyNode | InvalidNode | MalformedHeaderNode
            ):
                add(child.start_line, required)

    walk(parse.document, 0)
    edits.sort(key=lambda e: e.line)
    return edits


def format_parse(parse: ParseResult, settings: FormatSettings | None = None) -> list[TextEdit]:
    """Compute indentation edits for an existing parse."""
    settings = settings or FormatSettings()
    diagnostics = validate_parse(parse, settings)
    if has_errors(diagnostics):
        logger.info(
            "Skipping formatting: document has %d error(s)",
            sum(1 for d in diagnostics if d.is_error),
        )
        return []
    return _collect_edits(parse, settings)


def format_document(
    text: str | Sequence[str], settings: FormatSettings | None = None
) -> list[TextEdit]:
    """
    Compute indentation edits for a document.

    Args:
        text: Full document text or its lines
        settings: Indentation settings (indent step and tab width)

    Returns:
        One edit per line whose leading whitespace must change, ordered by
        line; empty if the document has errors or is already formatted
    """
    settings = settings or FormatSettings()
    return format_parse(parse_document(text, settings), settings)


def apply_edits(lines: Sequence[str], edits: Sequence[TextEdit]) -> list[str]:
    """Apply single-line edits to ``lines`` and return the new lines."""
    result = list(lines)
    for edit in sorted(edits, key=lambda e: (e.line, e.start_column), reverse=True):
        text = result[edit.line]
        result[edit.line] = text[: edit.start_column] + edit.new_text + text[edit.end_column :]
    return result


def apply_text_edits(text: str, edits: Sequence[TextEdit]) -> str:
    """
    Apply edits to full document text.

    Every line keeps its own terminator, so mixed line endings and a
    missing or present final newline come through unchanged.
    """
    if not edits:
        return text
    pieces = LINE_BREAK_RE.split(text)
    terminators = LINE_BREAK_RE.findall(text)
    lines = apply_edits(pieces, edits)
    return "".join(line + end for line, end in zip(lines, [*terminators, ""]))


def format_text(text: str, settings: FormatSettings | None = None) -> str:
    """Format a whole document and return the new text."""
    return apply_text_edits(text, format_document(text, settings))
