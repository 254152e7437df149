"""
Block resolution for .cfg documents.

First pass over the document: finds ``name : struct.begin`` openers and
``struct.end`` closers, reads header parameters (inline, on a following
brace block, or on a brace-only line shortly after), and pairs openers with
closers. The result is immutable and is handed to the AST builder.

Pairing is stack based. A closer with nothing open is an orphan; orphans
then get one recovery attempt against openers that are still unclosed.
Stack pairing leaves no such opener ahead of an orphan, so that attempt
only pairs anything for callers that pass in their own unclosed openers.
Parents are computed only after every span is final, because recovery can
change spans after the scan.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from .config import FormatSettings, count_indent, leading_whitespace
from .lexer import Token, TokenType, code_text, code_tokens, tokenize
from .params import ParamSet, parse_params

logger = logging.getLogger(__name__)

END_KEYWORD = "struct.end"
BEGIN_KEYWORD = "struct.begin"

# Lines a multi-line {...} header parameter block may span.
PARAM_BLOCK_MAX_LINES = 6
# Lines after a header searched for a brace-only parameter line.
PARAM_LOOKAHEAD_LINES = 3
# Maximum distance between an orphan closer and the opener it is paired with.
RECOVERY_WINDOW_LINES = 50

_BRACE_ONLY_RE = re.compile(r"^\{[^{}]*\}$")


@dataclass(frozen=True)
class BlockSpan:
    """
    One resolved block.

    Attributes:
        index: Position in BlockResolution.spans (ordered by start line)
        start_line: Header line
        end_line: Matching closer line, or None if the block is unclosed
        name: Block name from the header
        indent: Measured indent of the header line
        params: Header parameters, if any segment was found
        param_lines: Lines consumed as header parameters
        recovered: True if the closer was assigned by orphan recovery
        parent: Index of the smallest enclosing span, or None at top level
    """

    index: int
    start_line: int
    end_line: int | None
    name: str
    indent: int
    params: ParamSet | None = None
    param_lines: tuple[int, ...] = ()
    recovered: bool = False
    parent: int | None = None

    @property
    def closed(self) -> bool:
        return self.end_line is not None

    def contains_line(self, line: int) -> bool:
        """True if ``line`` lies strictly inside this block's span."""
        return self.start_line < line and (self.end_line is None or line < self.end_line)

    def span_length(self) -> float:
        return float("inf") if self.end_line is None else self.end_line - self.start_line


@dataclass(frozen=True)
class OrphanEnd:
    """A ``struct.end`` that no opener claimed."""

    line: int
    indent: int


@dataclass(frozen=True)
class BlockResolution:
    """
    Output of the block resolution pass.

    ``consumed`` holds lines swallowed as header parameters; the AST builder
    skips them along with header and closer lines.
    """

    spans: tuple[BlockSpan, ...]
    orphans: tuple[OrphanEnd, ...]
    consumed: frozenset[int]
    close_lines: dict[int, int] = field(default_factory=dict)

    @property
    def header_lines(self) -> dict[int, int]:
        return {span.start_line: span.index for span in self.spans}

    @property
    def unclosed(self) -> list[BlockSpan]:
        return [span for span in self.spans if not span.closed]


@dataclass
class _PendingBlock:
    """Mutable scan state for one opener; frozen into a BlockSpan at the end."""

    start_line: int
    name: str
    indent: int
    params: ParamSet | None
    param_lines: tuple[int, ...]
    end_line: int | None = None
    recovered: bool = False


def is_end_line(code: str) -> bool:
    """True if the line (comment already removed) is exactly ``struct.end``."""
    return code.strip() == END_KEYWORD


@dataclass(frozen=True)
class HeaderMatch:
    """The parts of a ``name : struct.begin`` line."""

    indent_text: str
    name: str
    colon: int
    rest: str


def match_header(code: str, tokens: Sequence[Token]) -> HeaderMatch | None:
    """
    Match a block opener on a line with its comment removed.

    The line must hold ``:`` followed by the ``struct`` ``.`` ``begin``
    tokens with nothing else in between; quoted text is a single token, so
    a string value can never turn a line into a header.
    """
    toks = code_tokens(tokens)
    for i in range(len(toks) - 3):
        colon, word, dot, keyword = toks[i : i + 4]
        if (
            colon.type == TokenType.COLON
            and word.text == "struct"
            and dot.type == TokenType.DOT
            and keyword.text == "begin"
            and word.end == dot.start
            and dot.end == keyword.start
        ):
            if not code[: colon.start]:
                return None
            indent_text = leading_whitespace(code[: colon.start])
            return HeaderMatch(
                indent_text=indent_text,
                name=code[len(indent_text) : colon.start].strip(),
                colon=colon.start,
                rest=code[keyword.end :],
            )
    return None


def _is_blank(code: str) -> bool:
    return not code.strip()


def _accumulate_braces(
    codes: Sequence[str],
    first_line: int,
    first_text: str,
    header_indent: int,
    settings: FormatSettings,
) -> tuple[str, tuple[int, ...]] | None:
    """
    Collect a brace-delimited segment that starts with ``first_text`` on
    ``first_line`` and may continue onto following lines.

    Returns the joined text and the continuation lines used, or None if the
    braces do not balance within the window or a continuation line is less
    indented than the header.
    """
    depth = 0
    pieces: list[str] = []
    used: list[int] = []
    last_line = min(len(codes) - 1, first_line + PARAM_BLOCK_MAX_LINES)

    for line in range(first_line, last_line + 1):
        if line == first_line:
            text = first_text
        else:
            text = codes[line]
            if _is_blank(text):
                continue
            if count_indent(text, settings.tab_width) < header_indent:
                return None
            used.append(line)
        text = text.strip()
        for i, ch in enumerate(text):
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    pieces.append(text[: i + 1])
                    return " ".join(pieces), tuple(used)
        pieces.append(text)
    return None


def _read_header_params(
    codes: Sequence[str],
    line: int,
    rest: str,
    header_indent: int,
    settings: FormatSettings,
) -> tuple[ParamSet | None, tuple[int, ...]]:
    """
    Find the parameter segment for the header on ``line``.

    Priority: inline text after ``struct.begin`` (which may itself continue
    onto following lines), then a brace block starting on the next non-blank
    line, then a single brace-only line within the look-ahead window.
    """
    rest = rest.strip()
    if rest:
        if rest.startswith("{"):
            collected = _accumulate_braces(codes, line, rest, header_indent, settings)
            if collected is not None:
                text, used = collected
                if not used:
                    # closed on the header line; keep any trailing text for the validator
                    return parse_params(rest), ()
                return parse_params(text), used
        return parse_params(rest), ()

    # Brace block on the next non-blank line.
    last = min(len(codes) - 1, line + PARAM_LOOKAHEAD_LINES)
    nxt = line + 1
    while nxt <= last and _is_blank(codes[nxt]):
        nxt += 1
    if nxt <= last and codes[nxt].strip().startswith("{"):
        if count_indent(codes[nxt], settings.tab_width) >= header_indent:
            collected = _accumulate_braces(codes, nxt, codes[nxt], header_indent, settings)
            if collected is not None:
                text, used = collected
                return parse_params(text), (nxt, *used)

    # Brace-only line within the look-ahead window, skipping blank and
    # comment-only lines.
    for candidate in range(line + 1, last + 1):
        text = codes[candidate].strip()
        if not text:
            continue
        if _BRACE_ONLY_RE.match(text):
            return parse_params(text), (candidate,)
        break
    return None, ()


def _recover_orphans(
    pending: list[_PendingBlock], orphans: list[OrphanEnd]
) -> list[OrphanEnd]:
    """
    Try to give each orphan closer an unclosed opener.

    Candidates are unclosed openers before the orphan and within
    RECOVERY_WINDOW_LINES, most recent first. An opener indented no deeper
    than the orphan is preferred; otherwise the nearest candidate is used.

    The stack pass only records an orphan while nothing is open, so every
    opener before it is already closed and ``resolve_blocks`` never hands
    this function a candidate. Spans marked ``recovered`` only come from
    callers that pass in unclosed openers of their own.

    Returns the orphans that stay unmatched.
    """
    remaining: list[OrphanEnd] = []
    for orphan in orphans:
        candidates = [
            block
            for block in reversed(pending)
            if block.end_line is None
            and block.start_line < orphan.line
            and orphan.line - block.start_line <= RECOVERY_WINDOW_LINES
        ]
        choice = next((b for b in candidates if b.indent <= orphan.indent), None)
        if choice is None and candidates:
            choice = candidates[0]
        if choice is None:
            remaining.append(orphan)
            continue
        choice.end_line = orphan.line
        choice.recovered = True
        logger.debug(
            "Recovered orphan struct.end on line %d for block %r (line %d)",
            orphan.line + 1,
            choice.name,
            choice.start_line + 1,
        )
    return remaining


def _assign_parents(pending: list[_PendingBlock]) -> list[BlockSpan]:
    """
    Freeze pending blocks into spans with parents set.

    The parent of a block is the smallest other block whose span contains
    its header line. Blocks are swept in start order with a stack of
    possible containers.
    """
    spans: list[BlockSpan] = []
    stack: list[BlockSpan] = []
    for index, block in enumerate(pending):
        span = BlockSpan(
            index=index,
            start_line=block.start_line,
            end_line=block.end_line,
            name=block.name,
            indent=block.indent,
            params=block.params,
            param_lines=block.param_lines,
            recovered=block.recovered,
        )
        while stack and stack[-1].end_line is not None and stack[-1].end_line <= span.start_line:
            stack.pop()
        containers = [s for s in stack if s.contains_line(span.start_line)]
        if containers:
            parent = min(containers, key=lambda s: (s.span_length(), -s.start_line))
            span = replace(span, parent=parent.index)
        spans.append(span)
        stack.append(span)
    return spans


def resolve_blocks(
    lines: Sequence[str],
    settings: FormatSettings | None = None,
    tokens: Sequence[Sequence[Token]] | None = None,
) -> BlockResolution:
    """
    Resolve block openers and closers into a forest of spans.

    Args:
        lines: Document lines
        settings: Indentation settings (tab width is used for measuring)
        tokens: Per-line tokens, if already computed

    Returns:
        BlockResolution with spans ordered by start line
    """
    settings = settings or FormatSettings()
    if tokens is None:
        tokens = tokenize(lines)
    codes = [code_text(text, toks) for text, toks in zip(lines, tokens)]

    pending: list[_PendingBlock] = []
    stack: list[_PendingBlock] = []
    orphans: list[OrphanEnd] = []
    consumed: set[int] = set()
    close_of: dict[int, _PendingBlock] = {}

    for i, code in enumerate(codes):
        if i in consumed or _is_blank(code):
            continue

        header = match_header(code, tokens[i])
        if header:
            indent = count_indent(header.indent_text, settings.tab_width)
            params, used = _read_header_params(codes, i, header.rest, indent, settings)
            consumed.update(used)
            block = _PendingBlock(
                start_line=i,
                name=header.name,
                indent=indent,
                params=params,
                param_lines=used,
            )
            pending.append(block)
            stack.append(block)
            continue

        if is_end_line(code):
            if stack:
                block = stack.pop()
                block.end_line = i
                close_of[i] = block
            else:
                orphans.append(OrphanEnd(line=i, indent=count_indent(code, settings.tab_width)))

    if orphans:
        before = len(orphans)
        orphans = _recover_orphans(pending, orphans)
        for block in pending:
            if block.recovered and block.end_line is not None:
                close_of[block.end_line] = block
        if len(orphans) != before:
            logger.debug("Orphan recovery paired %d closer(s)", before - len(orphans))

    spans = _assign_parents(pending)
    index_of = {id(block): index for index, block in enumerate(pending)}
    close_lines = {line: index_of[id(block)] for line, block in close_of.items()}

    return BlockResolution(
        spans=tuple(spans),
        orphans=tuple(orphans),
        consumed=frozenset(consumed),
        close_lines=close_lines,
    )
