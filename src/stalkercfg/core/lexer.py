"""
Lexer/Tokenizer for STALKER 2 .cfg struct files.

Splits each line into typed tokens with column tracking. Tokens never span
lines; a ``//`` comment becomes a single trailing COMMENT token. Whitespace
is skipped, so joining token text with the original gaps reproduces the line.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum


class TokenType(Enum):
    """Token types in .cfg files."""

    IDENTIFIER = "IDENTIFIER"
    LBRACE = "{"
    RBRACE = "}"
    COLON = ":"
    EQUALS = "="
    DOT = "."
    LBRACKET = "["
    RBRACKET = "]"
    COMMENT = "COMMENT"
    STRING = "STRING"  # 'single quoted'
    DOUBLE_STRING = "DOUBLE_STRING"  # "double quoted"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    OTHER = "OTHER"


PUNCTUATION: dict[str, TokenType] = {
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ":": TokenType.COLON,
    "=": TokenType.EQUALS,
    ".": TokenType.DOT,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
}

STRING_TYPES = frozenset({TokenType.STRING, TokenType.DOUBLE_STRING})
NUMBER_TYPES = frozenset({TokenType.INTEGER, TokenType.FLOAT})

COMMENT_MARKER = "//"

# Trailing "f" only counts when it does not run into an identifier (1foo).
NUMBER_RE = re.compile(r"-?(?:[0-9]+(?:\.[0-9]*)?)(?:f(?![A-Za-z0-9_]))?")
IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*")


@dataclass(frozen=True)
class Token:
    """
    A single token on one line.

    Attributes:
        type: Type of token
        text: Exact source text of the token
        line: Line index (0-based)
        start: Start column (0-based, inclusive)
        end: End column (0-based, exclusive)
    """

    type: TokenType
    text: str
    line: int
    start: int
    end: int

    @property
    def is_string(self) -> bool:
        return self.type in STRING_TYPES

    @property
    def is_number(self) -> bool:
        return self.type in NUMBER_TYPES

    @property
    def is_unterminated_string(self) -> bool:
        """True for a quoted literal that never found its closing quote."""
        if not self.is_string:
            return False
        quote = self.text[0]
        return len(self.text) < 2 or not self.text.endswith(quote)

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.text!r}, {self.line}:{self.start}-{self.end})"


def _read_quoted(text: str, pos: int) -> int:
    """
    Return the end column of a quoted literal starting at ``pos``.

    A doubled quote ('' or "") inside the literal is an escaped quote. If the
    closing quote is missing the literal runs to end of line.
    """
    quote = text[pos]
    i = pos + 1
    n = len(text)
    while i < n:
        if text[i] == quote:
            if i + 1 < n and text[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return n


def tokenize_line(text: str, line: int = 0) -> list[Token]:
    """
    Tokenize a single line.

    Recognition order at each position, first match wins: comment marker,
    punctuation, quoted literal, numeric literal, identifier, then a
    one-character OTHER token.

    Args:
        text: Line text without the line terminator
        line: Line index stored on each token

    Returns:
        Tokens in column order
    """
    tokens: list[Token] = []
    pos = 0
    n = len(text)

    while pos < n:
        ch = text[pos]

        if ch in (" ", "\t"):
            pos += 1
            continue

        if text.startswith(COMMENT_MARKER, pos):
            tokens.append(Token(TokenType.COMMENT, text[pos:], line, pos, n))
            break

        punct = PUNCTUATION.get(ch)
        if punct is not None:
            tokens.append(Token(punct, ch, line, pos, pos + 1))
            pos += 1
            continue

        if ch in ("'", '"'):
            end = _read_quoted(text, pos)
            token_type = TokenType.STRING if ch == "'" else TokenType.DOUBLE_STRING
            tokens.append(Token(token_type, text[pos:end], line, pos, end))
            pos = end
            continue

        number = NUMBER_RE.match(text, pos)
        if number:
            value = number.group(0)
            token_type = (
                TokenType.FLOAT if "." in value or value.endswith("f") else TokenType.INTEGER
            )
            tokens.append(Token(token_type, value, line, pos, number.end()))
            pos = number.end()
            continue

        ident = IDENTIFIER_RE.match(text, pos)
        if ident:
            tokens.append(Token(TokenType.IDENTIFIER, ident.group(0), line, pos, ident.end()))
            pos = ident.end()
            continue

        tokens.append(Token(TokenType.OTHER, ch, line, pos, pos + 1))
        pos += 1

    return tokens


def tokenize(lines: Sequence[str]) -> list[list[Token]]:
    """
    Convenience function to tokenize every line of a document.

    Args:
        lines: Document lines

    Returns:
        One token list per line, in line order
    """
    return [tokenize_line(text, i) for i, text in enumerate(lines)]


def code_tokens(tokens: Sequence[Token]) -> list[Token]:
    """Return tokens with any trailing COMMENT token removed."""
    if tokens and tokens[-1].type == TokenType.COMMENT:
        return list(tokens[:-1])
    return list(tokens)


def code_text(text: str, tokens: Sequence[Token]) -> str:
    """Return the part of a line before its comment, if any."""
    if tokens and tokens[-1].type == TokenType.COMMENT:
        return text[: tokens[-1].start]
    return text
