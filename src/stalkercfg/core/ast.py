"""
AST node types for .cfg documents.

Nodes form a closed tagged union discriminated by ``kind``. All nodes are
frozen: the tree is built once per request and only read afterwards.
Line numbers are 0-based.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .params import ParamSet


class NodeKind(str, Enum):
    """Discriminator for AST nodes."""

    DOCUMENT = "Document"
    BLOCK = "Block"
    HEADER = "Header"
    PROPERTY = "Property"
    END = "End"
    INVALID = "Invalid"
    MALFORMED_HEADER = "MalformedHeader"


class ASTNode(BaseModel):
    """Fields common to every node."""

    start_line: int
    end_line: int | None = None

    model_config = ConfigDict(frozen=True)


class HeaderNode(ASTNode):
    """
    The opener line of a block.

    Examples:
        - ``Name : struct.begin``: HeaderNode(name="Name", param_set=None)
        - ``Name : struct.begin {a=1}``: param_set.params == {"a": "1"}
    """

    kind: Literal[NodeKind.HEADER] = NodeKind.HEADER
    name: str
    indent: int
    param_set: ParamSet | None = None
    param_lines: tuple[int, ...] = ()

    @property
    def params(self) -> dict[str, str] | None:
        return self.param_set.params if self.param_set else None

    @property
    def params_raw(self) -> str | None:
        return self.param_set.raw if self.param_set else None


class PropertyNode(ASTNode):
    """
    A ``key = value`` line.

    ``key`` is the token text before the first top-level ``=`` joined
    without whitespace, so ``arr [ 0 ]`` and ``arr[0]`` share a key.
    """

    kind: Literal[NodeKind.PROPERTY] = NodeKind.PROPERTY
    key: str
    value: str
    indent: int
    key_column: int = 0
    param_set: ParamSet | None = None
    param_line: int | None = None  # look-ahead line the parameters came from

    @property
    def params(self) -> dict[str, str] | None:
        return self.param_set.params if self.param_set else None

    @property
    def params_raw(self) -> str | None:
        return self.param_set.raw if self.param_set else None


class EndNode(ASTNode):
    """A ``struct.end`` no block claimed."""

    kind: Literal[NodeKind.END] = NodeKind.END
    indent: int


class InvalidNode(ASTNode):
    """A line that is neither header, closer nor property."""

    kind: Literal[NodeKind.INVALID] = NodeKind.INVALID
    text: str
    indent: int


class MalformedHeaderNode(ASTNode):
    """A line with ``:`` but no valid ``struct.begin``; likely a mistyped opener."""

    kind: Literal[NodeKind.MALFORMED_HEADER] = NodeKind.MALFORMED_HEADER
    text: str
    indent: int


class BlockNode(ASTNode):
    """
    A ``struct.begin`` ... ``struct.end`` region.

    ``end_line`` stays None for an unclosed block. ``required_content_indent``
    is the parse-time value (header indent plus indent step); the formatter
    recomputes its own from rewritten header lines.
    """

    kind: Literal[NodeKind.BLOCK] = NodeKind.BLOCK
    header: HeaderNode
    children: list[ContentNode] = Field(default_factory=list)
    header_indent: int
    required_content_indent: int
    recovered: bool = False

    @property
    def name(self) -> str:
        return self.header.name

    @property
    def closed(self) -> bool:
        return self.end_line is not None


ContentNode = Annotated[
    Union[BlockNode, PropertyNode, EndNode, InvalidNode, MalformedHeaderNode],
    Field(discriminator="kind"),
]


class DocumentNode(ASTNode):
    """Root of the tree."""

    kind: Literal[NodeKind.DOCUMENT] = NodeKind.DOCUMENT
    children: list[ContentNode] = Field(default_factory=list)
    line_count: int = 0


BlockNode.model_rebuild()
DocumentNode.model_rebuild()


def iter_blocks(node: DocumentNode | BlockNode) -> Iterator[BlockNode]:
    """Yield every block under ``node`` depth-first, in source order."""
    for child in node.children:
        if isinstance(child, BlockNode):
            yield child
            yield from iter_blocks(child)


def iter_nodes(
    node: DocumentNode | BlockNode,
) -> Iterator[tuple[ContentNode, DocumentNode | BlockNode]]:
    """Yield ``(node, parent)`` for every content node depth-first."""
    for child in node.children:
        yield child, node
        if isinstance(child, BlockNode):
            yield from iter_nodes(child)
