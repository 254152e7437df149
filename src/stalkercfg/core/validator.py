"""
Validation of .cfg documents.

Every rule walks the freshly built tree (or the raw tokens) and returns its
own diagnostics. Rules are independent: all of them run on every call, and
an unexpected failure inside one rule is logged without stopping the rest.

Severity policy:
- Structural problems (unclosed block, orphan closer, unbalanced brackets,
  under-indented nested header) and unterminated strings are errors.
- Shape and style problems are warnings; they never block formatting.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .ast import (
    BlockNode,
    DocumentNode,
    EndNode,
    InvalidNode,
    MalformedHeaderNode,
    PropertyNode,
    iter_blocks,
    iter_nodes,
)
from .blocks import BEGIN_KEYWORD, END_KEYWORD, match_header
from .config import FormatSettings, count_indent, leading_whitespace
from .diagnostics import Diagnostic, Severity, sort_diagnostics
from .lexer import Token, TokenType, code_text, code_tokens
from .params import ParamSet, ParamShapeError
from .parser import ParseResult, find_top_level_equals, parse_document

logger = logging.getLogger(__name__)

# =============================================================================
# Validation Constants
# =============================================================================

NAME_RE = re.compile(r"^[A-Za-z0-9_.\-\[\]*]+$")
PARAM_KEY_RE = re.compile(r"^[A-Za-z0-9_\-]+$")
ARRAY_INDEX_RE = re.compile(r"^(.*)\[(\d+)\]$")
WILDCARD_KEY = "[*]"

STRING_LITERAL_RE = re.compile(r"""^("(?:[^"]|"")*"|'(?:[^']|'')*')$""")
NUMERIC_LITERAL_RE = re.compile(r"^-?(\d+(\.\d*)?|\.\d+)f?$")

BRACKET_PAIRS = {
    TokenType.RBRACE: TokenType.LBRACE,
    TokenType.RBRACKET: TokenType.LBRACKET,
}
BRACKET_NAMES = {
    TokenType.LBRACE: "brace",
    TokenType.RBRACE: "brace",
    TokenType.LBRACKET: "bracket",
    TokenType.RBRACKET: "bracket",
}


@dataclass(frozen=True)
class ValidationContext:
    """Inputs shared by every rule for one validation run."""

    parse: ParseResult
    settings: FormatSettings

    @property
    def document(self) -> DocumentNode:
        return self.parse.document

    @property
    def lines(self) -> tuple[str, ...]:
        return self.parse.lines

    def diagnostic(
        self,
        line: int,
        message: str,
        severity: Severity,
        code: str,
        start: int | None = None,
        end: int | None = None,
    ) -> Diagnostic:
        """Build a diagnostic; the range defaults to the line's content."""
        text = self.lines[line] if 0 <= line < len(self.lines) else ""
        if start is None:
            start = len(leading_whitespace(text))
        if end is None:
            end = len(text)
        return Diagnostic(
            line=line,
            start_column=start,
            end_column=max(end, start),
            message=message,
            severity=severity,
            code=code,
        )

    def is_blank(self, line: int) -> bool:
        return not code_text(self.lines[line], self.parse.tokens[line]).strip()


Rule = Callable[[ValidationContext], list[Diagnostic]]


def _containers(document: DocumentNode) -> list[DocumentNode | BlockNode]:
    return [document, *iter_blocks(document)]


def _container_label(container: DocumentNode | BlockNode) -> str:
    if isinstance(container, BlockNode):
        return f'block "{container.name}"'
    return "the document root"


# =============================================================================
# Structural Rules
# =============================================================================


def validate_brackets(ctx: ValidationContext) -> list[Diagnostic]:
    """Stack-based brace/bracket balance over the whole document."""
    diagnostics: list[Diagnostic] = []
    stack: list[Token] = []
    for line_tokens in ctx.parse.tokens:
        for token in line_tokens:
            if token.type in (TokenType.LBRACE, TokenType.LBRACKET):
                stack.append(token)
            elif token.type in BRACKET_PAIRS:
                if stack and stack[-1].type == BRACKET_PAIRS[token.type]:
                    stack.pop()
                else:
                    diagnostics.append(
                        ctx.diagnostic(
                            token.line,
                            f"Unexpected closing {BRACKET_NAMES[token.type]}.",
                            Severity.ERROR,
                            "unbalanced-brackets",
                            token.start,
                            token.end,
                        )
                    )
    for token in stack:
        diagnostics.append(
            ctx.diagnostic(
                token.line,
                f"Unclosed {BRACKET_NAMES[token.type]}.",
                Severity.ERROR,
                "unbalanced-brackets",
                token.start,
                token.end,
            )
        )
    return diagnostics


def validate_unclosed_blocks(ctx: ValidationContext) -> list[Diagnostic]:
    return [
        ctx.diagnostic(
            block.start_line,
            f'Block "{block.name}" was not closed. Missing "{END_KEYWORD}".',
            Severity.ERROR,
            "unclosed-block",
        )
        for block in iter_blocks(ctx.document)
        if not block.closed
    ]


def validate_orphan_ends(ctx: ValidationContext) -> list[Diagnostic]:
    """
    Report closers without an opener.

    The first orphan is always reported. A later orphan is suppressed when
    the previous non-blank line is another orphan, or the next non-blank
    line is a block header (or end of file): such runs are usually the
    fallout of one earlier mistake.
    """
    orphans = [node for node in ctx.document.children if isinstance(node, EndNode)]
    orphan_lines = {node.start_line for node in orphans}
    header_lines = ctx.parse.resolution.header_lines

    def prev_non_blank(line: int) -> int | None:
        for i in range(line - 1, -1, -1):
            if not ctx.is_blank(i):
                return i
        return None

    def next_non_blank(line: int) -> int | None:
        for i in range(line + 1, len(ctx.lines)):
            if not ctx.is_blank(i):
                return i
        return None

    diagnostics: list[Diagnostic] = []
    for node in orphans:
        previous = prev_non_blank(node.start_line)
        following = next_non_blank(node.start_line)
        cascaded = previous in orphan_lines or following is None or following in header_lines
        if diagnostics and cascaded:
            logger.debug("Suppressing cascaded orphan struct.end on line %d", node.start_line + 1)
            continue
        diagnostics.append(
            ctx.diagnostic(
                node.start_line,
                f'Found "{END_KEYWORD}" without a matching "{BEGIN_KEYWORD}".',
                Severity.ERROR,
                "orphan-end",
            )
        )
    return diagnostics


def validate_header_indentation(ctx: ValidationContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for node, parent in iter_nodes(ctx.document):
        if not isinstance(node, BlockNode) or not isinstance(parent, BlockNode):
            continue
        expected = parent.header_indent + ctx.settings.indent_step
        if node.header_indent < expected:
            diagnostics.append(
                ctx.diagnostic(
                    node.start_line,
                    f'Block header "{node.name}" should be indented at least {expected} '
                    f"spaces (found {node.header_indent}).",
                    Severity.ERROR,
                    "header-indent",
                )
            )
    return diagnostics


def validate_unterminated_strings(ctx: ValidationContext) -> list[Diagnostic]:
    return [
        ctx.diagnostic(
            token.line,
            "Unterminated string literal.",
            Severity.ERROR,
            "unterminated-string",
            token.start,
            token.end,
        )
        for line_tokens in ctx.parse.tokens
        for token in line_tokens
        if token.is_unterminated_string
    ]


# =============================================================================
# Shape and Style Rules
# =============================================================================


def _param_column(ctx: ValidationContext, line: int, param_set: ParamSet) -> int | None:
    index = ctx.lines[line].find(param_set.raw.strip()[:20])
    return index if index >= 0 else None


def _check_param_set(
    ctx: ValidationContext, line: int, owner: str, param_set: ParamSet
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    start = _param_column(ctx, line, param_set)

    if not param_set.ok:
        if param_set.shape_error == ParamShapeError.MISSING_OPEN_BRACE:
            hint = 'missing opening brace "{".'
        elif param_set.shape_error == ParamShapeError.MISSING_CLOSE_BRACE:
            hint = 'missing closing brace "}".'
        else:
            hint = "expected { key=value, ... }."
            if param_set.malformed_segments:
                quoted = ", ".join(f'"{s}"' for s in param_set.malformed_segments)
                hint = f"expected {{ key=value, ... }} (could not read {quoted})."
        diagnostics.append(
            ctx.diagnostic(
                line,
                f"Malformed parameters for {owner}: {hint}",
                Severity.WARNING,
                "malformed-params",
                start,
            )
        )
        return diagnostics

    for key, value in (param_set.params or {}).items():
        if not PARAM_KEY_RE.match(key):
            diagnostics.append(
                ctx.diagnostic(
                    line,
                    f'Parameter name "{key}" looks invalid (allowed: A-Za-z0-9_-).',
                    Severity.WARNING,
                    "param-name",
                    start,
                )
            )
        if value == "":
            diagnostics.append(
                ctx.diagnostic(
                    line,
                    f'Parameter "{key}" has an empty value.',
                    Severity.WARNING,
                    "param-empty-value",
                    start,
                )
            )
    return diagnostics


def validate_parameters(ctx: ValidationContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for node, _parent in iter_nodes(ctx.document):
        if isinstance(node, BlockNode) and node.header.param_set is not None:
            diagnostics.extend(
                _check_param_set(
                    ctx, node.start_line, f'block "{node.name}"', node.header.param_set
                )
            )
        elif isinstance(node, PropertyNode) and node.param_set is not None:
            line = node.param_line if node.param_line is not None else node.start_line
            diagnostics.extend(
                _check_param_set(ctx, line, f'property "{node.key}"', node.param_set)
            )
    return diagnostics


def validate_content_indentation(ctx: ValidationContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for node, parent in iter_nodes(ctx.document):
        if not isinstance(parent, BlockNode):
            continue
        if not isinstance(node, PropertyNode | InvalidNode | EndNode):
            continue
        expected = parent.header_indent + ctx.settings.indent_step
        if node.indent < expected:
            diagnostics.append(
                ctx.diagnostic(
                    node.start_line,
                    f'Content inside block "{parent.name}" should be indented at least '
                    f"{expected} spaces (found {node.indent}).",
                    Severity.WARNING,
                    "content-indent",
                )
            )
    return diagnostics


def validate_array_ordering(ctx: ValidationContext) -> list[Diagnostic]:
    """
    Numeric array indices among siblings must count up by one.

    ``arr[1]`` after ``arr[2]`` is out of order; ``arr[3]`` after ``arr[1]``
    skips an index. The wildcard ``[*]`` is ignored.
    """
    diagnostics: list[Diagnostic] = []
    for container in _containers(ctx.document):
        last_index: dict[str, int] = {}
        for node in container.children:
            if not isinstance(node, PropertyNode):
                continue
            match = ARRAY_INDEX_RE.match(node.key)
            if not match:
                continue
            prefix, index = match.group(1), int(match.group(2))
            previous = last_index.get(prefix)
            last_index[prefix] = index
            if previous is None:
                continue
            if index <= previous:
                diagnostics.append(
                    ctx.diagnostic(
                        node.start_line,
                        f'Array index out of order: "{node.key}" follows index {previous}.',
                        Severity.WARNING,
                        "array-order",
                    )
                )
            elif index != previous + 1:
                diagnostics.append(
                    ctx.diagnostic(
                        node.start_line,
                        f'Array index skipped: "{node.key}" found, expected index {previous + 1}.',
                        Severity.WARNING,
                        "array-gap",
                    )
                )
    return diagnostics


def _key_range(ctx: ValidationContext, node: PropertyNode) -> tuple[int, int]:
    """Columns of a property key, from its first token to the token before '='."""
    toks = code_tokens(ctx.parse.tokens[node.start_line])
    eq_index = find_top_level_equals(toks)
    if not eq_index:
        return node.key_column, node.key_column + len(node.key)
    return node.key_column, toks[eq_index - 1].end


def validate_naming(ctx: ValidationContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for node, _parent in iter_nodes(ctx.document):
        if isinstance(node, BlockNode) and not NAME_RE.match(node.name):
            diagnostics.append(
                ctx.diagnostic(
                    node.start_line,
                    f'Invalid block name: "{node.name}". Block names can only contain '
                    "alphanumeric characters, underscores, hyphens, periods, asterisks, "
                    "and square brackets.",
                    Severity.WARNING,
                    "block-name",
                )
            )
        elif isinstance(node, PropertyNode) and not NAME_RE.match(node.key):
            diagnostics.append(
                ctx.diagnostic(
                    node.start_line,
                    f'Invalid property key: "{node.key}". Property keys can only contain '
                    "alphanumeric characters, underscores, hyphens, periods, asterisks, "
                    "and square brackets.",
                    Severity.WARNING,
                    "property-name",
                    *_key_range(ctx, node),
                )
            )
    return diagnostics


def validate_duplicate_keys(ctx: ValidationContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for container in _containers(ctx.document):
        seen: set[str] = set()
        for node in container.children:
            if not isinstance(node, PropertyNode) or node.key == WILDCARD_KEY:
                continue
            if node.key in seen:
                diagnostics.append(
                    ctx.diagnostic(
                        node.start_line,
                        f'Duplicate property key "{node.key}" in {_container_label(container)}.',
                        Severity.WARNING,
                        "duplicate-key",
                        *_key_range(ctx, node),
                    )
                )
            else:
                seen.add(node.key)
    return diagnostics


def validate_floating_literals(ctx: ValidationContext) -> list[Diagnostic]:
    """
    Literals sitting on a line that is not an assignment.

    Lines that are nothing but one literal are explained by the invalid-line
    rule; this rule covers literals mixed into other invalid text. Numbers
    inside ``[...]`` are index placeholders and are allowed.
    """
    diagnostics: list[Diagnostic] = []
    for node, _parent in iter_nodes(ctx.document):
        if not isinstance(node, InvalidNode):
            continue
        if STRING_LITERAL_RE.match(node.text) or NUMERIC_LITERAL_RE.match(node.text):
            continue
        depth = 0
        for token in code_tokens(ctx.parse.tokens[node.start_line]):
            if token.type == TokenType.LBRACKET:
                depth += 1
            elif token.type == TokenType.RBRACKET:
                depth = max(0, depth - 1)
            elif token.is_string and not token.is_unterminated_string:
                diagnostics.append(
                    ctx.diagnostic(
                        node.start_line,
                        f"Floating string literal {token.text} found outside a "
                        "'key = value' assignment.",
                        Severity.WARNING,
                        "floating-literal",
                        token.start,
                        token.end,
                    )
                )
            elif token.is_number and depth == 0:
                diagnostics.append(
                    ctx.diagnostic(
                        node.start_line,
                        f"Floating numeric literal {token.text} found outside a "
                        "'key = value' assignment.",
                        Severity.WARNING,
                        "floating-literal",
                        token.start,
                        token.end,
                    )
                )
    return diagnostics


def _invalid_message(node: InvalidNode) -> str:
    text = node.text
    if STRING_LITERAL_RE.match(text):
        return (
            "Floating string literal found. All values must be part of a "
            "'key = value' assignment."
        )
    if NUMERIC_LITERAL_RE.match(text):
        return (
            "Floating numeric literal found. All values must be part of a "
            "'key = value' assignment."
        )
    if text.startswith("struct.") and text != END_KEYWORD:
        return "Possible typo in keyword. Did you mean 'struct.end'?"
    if BEGIN_KEYWORD in text:
        return "Block header is missing ':' between the block name and 'struct.begin'."
    return (
        f'Invalid syntax: "{text}". Expected a property (key = value) or a block definition.'
    )


def _malformed_header_message(node: MalformedHeaderNode) -> str:
    _, _, after_colon = node.text.partition(":")
    after_colon = after_colon.strip()
    if "struct" in after_colon and "begin" in after_colon:
        return "Possible typo in keyword. Did you mean 'struct.begin'?"
    return "Expected 'struct.begin' after ':'."


def validate_invalid_lines(ctx: ValidationContext) -> list[Diagnostic]:
    """Explain why lines that failed classification did not parse."""
    diagnostics: list[Diagnostic] = []
    for node, _parent in iter_nodes(ctx.document):
        if isinstance(node, MalformedHeaderNode):
            message = _malformed_header_message(node)
            code = "malformed-header"
        elif isinstance(node, InvalidNode):
            tokens = ctx.parse.tokens[node.start_line]
            if any(token.is_unterminated_string for token in tokens):
                # the unterminated-string error already explains this line
                continue
            message = _invalid_message(node)
            code = "invalid-line"
        else:
            continue
        diagnostics.append(ctx.diagnostic(node.start_line, message, Severity.WARNING, code))
    return diagnostics


def validate_colon_spacing(ctx: ValidationContext) -> list[Diagnostic]:
    """``name : struct.begin`` wants the same spacing on both sides of ':'."""
    diagnostics: list[Diagnostic] = []
    for block in iter_blocks(ctx.document):
        line = block.start_line
        code = code_text(ctx.lines[line], ctx.parse.tokens[line])
        match = match_header(code, ctx.parse.tokens[line])
        if not match:
            continue
        colon = match.colon
        space_before = code[colon - 1] in " \t" if colon > 0 else False
        space_after = code[colon + 1] in " \t" if colon + 1 < len(code) else False
        if space_before != space_after:
            diagnostics.append(
                ctx.diagnostic(
                    line,
                    "Inconsistent spacing around ':'. Expected 'name : struct.begin'.",
                    Severity.WARNING,
                    "colon-spacing",
                    colon,
                    colon + 1,
                )
            )
    return diagnostics


def validate_end_alignment(ctx: ValidationContext) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for block in iter_blocks(ctx.document):
        if block.end_line is None:
            continue
        end_indent = count_indent(ctx.lines[block.end_line], ctx.settings.tab_width)
        if end_indent != block.header_indent:
            diagnostics.append(
                ctx.diagnostic(
                    block.end_line,
                    f"Block end indentation ({end_indent}) should match header indentation "
                    f'({block.header_indent}) for block "{block.name}".',
                    Severity.WARNING,
                    "end-indent",
                )
            )
    return diagnostics


def validate_empty_values(ctx: ValidationContext) -> list[Diagnostic]:
    return [
        ctx.diagnostic(
            node.start_line,
            f'Property "{node.key}" has an empty value.',
            Severity.WARNING,
            "empty-value",
        )
        for node, _parent in iter_nodes(ctx.document)
        if isinstance(node, PropertyNode) and node.value == "" and node.param_set is None
    ]


# =============================================================================
# Entry Points
# =============================================================================

RULES: tuple[tuple[str, Rule], ...] = (
    ("brackets", validate_brackets),
    ("unclosed-blocks", validate_unclosed_blocks),
    ("orphan-ends", validate_orphan_ends),
    ("header-indentation", validate_header_indentation),
    ("unterminated-strings", validate_unterminated_strings),
    ("parameters", validate_parameters),
    ("content-indentation", validate_content_indentation),
    ("array-ordering", validate_array_ordering),
    ("naming", validate_naming),
    ("duplicate-keys", validate_duplicate_keys),
    ("floating-literals", validate_floating_literals),
    ("invalid-lines", validate_invalid_lines),
    ("colon-spacing", validate_colon_spacing),
    ("end-alignment", validate_end_alignment),
    ("empty-values", validate_empty_values),
)


def validate_parse(
    parse: ParseResult,
    settings: FormatSettings | None = None,
    rules: Sequence[tuple[str, Rule]] = RULES,
) -> list[Diagnostic]:
    """
    Run every rule over an existing parse.

    Args:
        parse: Result of parse_document
        settings: Indentation settings used for the parse
        rules: (name, rule) pairs to run, in order

    Returns:
        Diagnostics ordered by line and column
    """
    ctx = ValidationContext(parse=parse, settings=settings or FormatSettings())
    diagnostics: list[Diagnostic] = []
    for name, rule in rules:
        try:
            diagnostics.extend(rule(ctx))
        except Exception:
            logger.exception("Validation rule %s failed", name)
    return sort_diagnostics(diagnostics)


def validate_document(
    text: str | Sequence[str], settings: FormatSettings | None = None
) -> list[Diagnostic]:
    """
    Validate a document.

    Args:
        text: Full document text or its lines
        settings: Indentation settings (indent step and tab width)

    Returns:
        Diagnostics ordered by line and column
    """
    settings = settings or FormatSettings()
    return validate_parse(parse_document(text, settings), settings)
