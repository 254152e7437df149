"""
AST builder for .cfg documents.

Second pass over the document. Header and closer lines are already covered
by the block resolution; every other non-blank line is classified as a
property, a malformed header or an invalid line and attached to the
innermost block whose span contains it.
"""

import logging
import re
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

from .ast import (
    BlockNode,
    ContentNode,
    DocumentNode,
    EndNode,
    HeaderNode,
    InvalidNode,
    MalformedHeaderNode,
    PropertyNode,
)
from .blocks import BlockResolution, BlockSpan, resolve_blocks
from .config import FormatSettings, count_indent
from .lexer import Token, TokenType, code_text, code_tokens, tokenize
from .params import parse_params, split_trailing_params

logger = logging.getLogger(__name__)

# Following lines searched for a brace-only parameter line after a property.
PROPERTY_PARAM_LOOKAHEAD_LINES = 2

LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class ParseResult:
    """Everything one parse produces; discarded when the request finishes."""

    lines: tuple[str, ...]
    tokens: tuple[tuple[Token, ...], ...]
    resolution: BlockResolution
    document: DocumentNode


def split_lines(text: str | Sequence[str]) -> tuple[str, ...]:
    """
    Accept document text or a line sequence and return lines.

    Only CR, LF and CRLF end a line. Form feeds, NEL and the Unicode line
    separators stay inside the line, the same way editors count lines.
    """
    if isinstance(text, str):
        lines = LINE_BREAK_RE.split(text)
        if lines[-1] == "":
            lines.pop()
        return tuple(lines)
    return tuple(text)


def find_top_level_equals(tokens: Sequence[Token]) -> int | None:
    """Index of the first ``=`` outside any brackets or braces."""
    depth = 0
    for i, token in enumerate(tokens):
        if token.type in (TokenType.LBRACKET, TokenType.LBRACE):
            depth += 1
        elif token.type in (TokenType.RBRACKET, TokenType.RBRACE):
            depth = max(0, depth - 1)
        elif token.type == TokenType.EQUALS and depth == 0:
            return i
    return None


def _property_lookahead(
    lines: Sequence[str],
    tokens: Sequence[Sequence[Token]],
    line: int,
    skip: set[int] | frozenset[int],
) -> int | None:
    """Find a brace-only line right after a property, if there is one."""
    last = min(len(lines) - 1, line + PROPERTY_PARAM_LOOKAHEAD_LINES)
    for candidate in range(line + 1, last + 1):
        code = code_text(lines[candidate], tokens[candidate]).strip()
        if not code:
            continue
        if candidate in skip:
            return None
        if code.startswith("{") and code.endswith("}") and code.count("{") == 1:
            return candidate
        return None
    return None


def _classify_line(
    lines: Sequence[str],
    tokens: Sequence[Sequence[Token]],
    line: int,
    settings: FormatSettings,
    skip: set[int],
) -> ContentNode:
    text = lines[line]
    toks = code_tokens(tokens[line])
    code = code_text(text, tokens[line])
    indent = count_indent(text, settings.tab_width)

    eq_index = find_top_level_equals(toks)
    if eq_index is not None and eq_index > 0:
        key = "".join(t.text for t in toks[:eq_index])
        value, trailing = split_trailing_params(code[toks[eq_index].end :])
        param_set = parse_params(trailing) if trailing else None
        param_line = None
        if param_set is None:
            param_line = _property_lookahead(lines, tokens, line, skip)
            if param_line is not None:
                param_set = parse_params(code_text(lines[param_line], tokens[param_line]))
                skip.add(param_line)
        return PropertyNode(
            start_line=line,
            key=key,
            value=value,
            indent=indent,
            key_column=toks[0].start,
            param_set=param_set,
            param_line=param_line,
        )

    if any(t.type == TokenType.COLON for t in toks):
        return MalformedHeaderNode(start_line=line, text=code.strip(), indent=indent)

    return InvalidNode(start_line=line, text=code.strip(), indent=indent)


def _innermost(active: list[BlockSpan]) -> BlockSpan | None:
    if not active:
        return None
    return min(active, key=lambda s: (s.span_length(), -s.start_line))


def build_ast(
    lines: Sequence[str],
    tokens: Sequence[Sequence[Token]],
    resolution: BlockResolution,
    settings: FormatSettings | None = None,
) -> DocumentNode:
    """
    Build the document tree from lines, tokens and resolved blocks.

    Args:
        lines: Document lines
        tokens: Per-line tokens
        resolution: Output of resolve_blocks for the same lines
        settings: Indentation settings

    Returns:
        DocumentNode whose children are ordered by start line
    """
    settings = settings or FormatSettings()
    logger.debug("Starting AST build for %d line(s)", len(lines))

    skip: set[int] = set(resolution.consumed)
    skip.update(resolution.header_lines)
    skip.update(resolution.close_lines)
    orphan_lines = {orphan.line: orphan for orphan in resolution.orphans}

    by_parent: dict[int | None, list[ContentNode]] = defaultdict(list)
    spans = resolution.spans
    active: list[BlockSpan] = []
    next_span = 0

    for i in range(len(lines)):
        while next_span < len(spans) and spans[next_span].start_line < i:
            active.append(spans[next_span])
            next_span += 1
        active = [s for s in active if s.contains_line(i)]

        if i in skip:
            continue
        if i in orphan_lines:
            # Orphan closers are surfaced at the top level.
            by_parent[None].append(EndNode(start_line=i, indent=orphan_lines[i].indent))
            continue
        if not code_tokens(tokens[i]):
            continue

        parent = _innermost(active)
        node = _classify_line(lines, tokens, i, settings, skip)
        by_parent[parent.index if parent else None].append(node)

    child_spans: dict[int | None, list[BlockSpan]] = defaultdict(list)
    for span in spans:
        child_spans[span.parent].append(span)

    def build_block(span: BlockSpan) -> BlockNode:
        header = HeaderNode(
            start_line=span.start_line,
            name=span.name,
            indent=span.indent,
            param_set=span.params,
            param_lines=span.param_lines,
        )
        children = by_parent[span.index] + [build_block(c) for c in child_spans[span.index]]
        children.sort(key=lambda node: node.start_line)
        return BlockNode(
            start_line=span.start_line,
            end_line=span.end_line,
            header=header,
            children=children,
            header_indent=span.indent,
            required_content_indent=span.indent + settings.indent_step,
            recovered=span.recovered,
        )

    root_children = by_parent[None] + [build_block(span) for span in child_spans[None]]
    root_children.sort(key=lambda node: node.start_line)
    document = DocumentNode(start_line=0, children=root_children, line_count=len(lines))

    logger.debug("AST build finished. Found %d root node(s).", len(document.children))
    return document


def parse_document(
    text: str | Sequence[str], settings: FormatSettings | None = None
) -> ParseResult:
    """
    Run tokenizer, block resolution and AST builder over a document.

    Args:
        text: Full document text or its lines
        settings: Indentation settings

    Returns:
        ParseResult holding every intermediate product
    """
    settings = settings or FormatSettings()
    lines = split_lines(text)
    tokens = tokenize(lines)
    resolution = resolve_blocks(lines, settings, tokens)
    document = build_ast(lines, tokens, resolution, settings)
    return ParseResult(
        lines=lines,
        tokens=tuple(tuple(t) for t in tokens),
        resolution=resolution,
        document=document,
    )
