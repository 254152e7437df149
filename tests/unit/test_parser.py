"""Tests for the AST builder."""

from stalkercfg.core.ast import (
    BlockNode,
    EndNode,
    InvalidNode,
    MalformedHeaderNode,
    NodeKind,
    PropertyNode,
    iter_blocks,
    iter_nodes,
)
from stalkercfg.core.config import FormatSettings
from stalkercfg.core.lexer import tokenize_line
from stalkercfg.core.parser import find_top_level_equals, parse_document, split_lines


def _children(text: str, settings: FormatSettings | None = None):
    return parse_document(text, settings).document.children


def _only_block(text: str) -> BlockNode:
    children = _children(text)
    assert len(children) == 1
    assert isinstance(children[0], BlockNode)
    return children[0]


class TestDocumentStructure:
    def test_well_formed_tree(self, well_formed: str) -> None:
        document = parse_document(well_formed).document
        (block,) = document.children
        assert block.kind == NodeKind.BLOCK
        assert block.name == "Name"
        assert block.header.params == {"param": "value", "flag": "true"}
        assert [type(c) for c in block.children] == [
            PropertyNode,
            PropertyNode,
            PropertyNode,
            BlockNode,
        ]
        assert document.line_count == 7

    def test_required_content_indent(self) -> None:
        block = _only_block("   A : struct.begin\n   struct.end\n")
        assert block.header_indent == 3
        assert block.required_content_indent == 6

    def test_required_content_indent_uses_indent_step(self) -> None:
        document = parse_document("A : struct.begin\nstruct.end\n", FormatSettings(indent_step=2))
        assert document.document.children[0].required_content_indent == 2

    def test_nested_children_attach_to_innermost_block(self) -> None:
        block = _only_block(
            "A : struct.begin\n"
            "   a = 1\n"
            "   B : struct.begin\n"
            "      b = 2\n"
            "   struct.end\n"
            "   c = 3\n"
            "struct.end\n"
        )
        keys = [c.key for c in block.children if isinstance(c, PropertyNode)]
        assert keys == ["a", "c"]
        inner = [c for c in block.children if isinstance(c, BlockNode)][0]
        assert [c.key for c in inner.children] == ["b"]
        assert inner.end_line == 4

    def test_root_level_properties(self) -> None:
        children = _children("x = 1\ny = 2\n")
        assert [c.key for c in children] == ["x", "y"]

    def test_blank_and_comment_lines_are_skipped(self) -> None:
        block = _only_block("A : struct.begin\n\n   // note\n   x = 1\nstruct.end\n")
        assert len(block.children) == 1

    def test_orphan_close_is_root_end_node(self) -> None:
        children = _children("x = 1\nstruct.end\n")
        assert isinstance(children[1], EndNode)
        assert children[1].start_line == 1

    def test_unclosed_block_collects_rest_of_document(self) -> None:
        block = _only_block("A : struct.begin\n   x = 1\n   y = 2\n")
        assert not block.closed
        assert len(block.children) == 2

    def test_iter_helpers(self, well_formed: str) -> None:
        document = parse_document(well_formed).document
        assert [b.name for b in iter_blocks(document)] == ["Name", "Nested"]
        parents = {
            node.start_line: parent.kind
            for node, parent in iter_nodes(document)
        }
        assert parents[0] == NodeKind.DOCUMENT
        assert parents[4] == NodeKind.BLOCK


class TestLineClassification:
    def test_property(self) -> None:
        prop = _only_block("A : struct.begin\n   x = 1\nstruct.end\n").children[0]
        assert isinstance(prop, PropertyNode)
        assert (prop.key, prop.value, prop.indent, prop.key_column) == ("x", "1", 3, 3)
        assert prop.params is None

    def test_key_is_joined_without_whitespace(self) -> None:
        prop = _children("arr [ 0 ] = 5\n")[0]
        assert prop.key == "arr[0]"

    def test_value_keeps_inner_text(self) -> None:
        prop = _children("name = some value, more // comment\n")[0]
        assert prop.value == "some value, more"

    def test_equals_inside_brackets_is_not_top_level(self) -> None:
        tokens = tokenize_line("a[x=1] = 2")
        assert find_top_level_equals(tokens) == 6

    def test_property_with_trailing_params(self) -> None:
        prop = _children("Item = Value {a=1}\n")[0]
        assert prop.value == "Value"
        assert prop.params == {"a": "1"}
        assert prop.params_raw == "{a=1}"

    def test_property_params_on_following_line(self) -> None:
        block = _only_block("A : struct.begin\n   Item = Value\n   {a=1}\nstruct.end\n")
        assert len(block.children) == 1
        prop = block.children[0]
        assert prop.params == {"a": "1"}
        assert prop.param_line == 2

    def test_invalid_line(self) -> None:
        node = _only_block("A : struct.begin\n   hello there\nstruct.end\n").children[0]
        assert isinstance(node, InvalidNode)
        assert node.text == "hello there"
        assert node.indent == 3

    def test_line_starting_with_equals_is_invalid(self) -> None:
        assert isinstance(_children("= 1\n")[0], InvalidNode)

    def test_malformed_header(self) -> None:
        node = _only_block("A : struct.begin\n   B : strct.begin\nstruct.end\n").children[0]
        assert isinstance(node, MalformedHeaderNode)
        assert node.text == "B : strct.begin"

    def test_tab_indent_uses_tab_width(self) -> None:
        settings = FormatSettings(tab_width=4)
        children = _children("A : struct.begin\n\tx = 1\nstruct.end\n", settings)
        assert children[0].children[0].indent == 4


class TestSplitLines:
    def test_accepts_text_or_lines(self) -> None:
        assert split_lines("a\r\nb\n") == ("a", "b")
        assert split_lines(["a", "b"]) == ("a", "b")

    def test_only_cr_and_lf_end_lines(self) -> None:
        assert split_lines("a\rb\r\nc\nd") == ("a", "b", "c", "d")
        assert split_lines("x = a\x0cb\ny = c\u2028d\x85e\n") == ("x = a\x0cb", "y = c\u2028d\x85e")

    def test_blank_last_line_is_kept(self) -> None:
        assert split_lines("a\n\n") == ("a", "")
        assert split_lines("") == ()

    def test_separator_characters_stay_in_the_property(self) -> None:
        parse = parse_document("A : struct.begin\n   x = a\u2028b\nstruct.end\n")
        assert len(parse.lines) == 3
        prop = parse.document.children[0].children[0]
        assert isinstance(prop, PropertyNode)
        assert prop.value == "a\u2028b"
