"""Tests for the indentation formatter."""

from stalkercfg.core.config import FormatSettings
from stalkercfg.core.diagnostics import TextEdit
from stalkercfg.core.formatter import apply_edits, format_document, format_text


def _format_lines(text: str, settings: FormatSettings | None = None) -> list[str]:
    lines = text.splitlines()
    return apply_edits(lines, format_document(lines, settings))


class TestEdits:
    def test_indents_property_with_step_two(self) -> None:
        edits = format_document(
            "A : struct.begin\nx = 1\nstruct.end", FormatSettings(indent_step=2)
        )
        assert edits == [TextEdit(line=1, start_column=0, end_column=0, new_text="  ")]

    def test_formatted_document_yields_no_edits(self) -> None:
        assert format_document("A : struct.begin\n   x = 1\nstruct.end\n") == []

    def test_edits_replace_only_leading_whitespace(self) -> None:
        edits = format_document("A : struct.begin\n     x = 1\nstruct.end\n")
        assert edits == [TextEdit(line=1, start_column=0, end_column=5, new_text="   ")]

    def test_tabs_are_normalised(self) -> None:
        edits = format_document("A : struct.begin\n\tx = 1\nstruct.end\n")
        assert edits == [TextEdit(line=1, start_column=0, end_column=1, new_text="   ")]

    def test_close_aligns_with_header(self) -> None:
        assert _format_lines("A : struct.begin\n   struct.end\n") == [
            "A : struct.begin",
            "struct.end",
        ]

    def test_root_level_lines_are_left_alone(self) -> None:
        assert format_document("  x = 1\n") == []

    def test_root_header_moves_to_column_zero(self) -> None:
        assert _format_lines("  A : struct.begin\n     x = 1\n  struct.end\n") == [
            "A : struct.begin",
            "   x = 1",
            "struct.end",
        ]

    def test_malformed_header_and_invalid_lines_are_indented(self) -> None:
        assert _format_lines("A : struct.begin\nB : strct\nhello\nstruct.end\n") == [
            "A : struct.begin",
            "   B : strct",
            "   hello",
            "struct.end",
        ]

    def test_comment_only_lines_are_untouched(self) -> None:
        assert format_document("A : struct.begin\n// note\n   x = 1\nstruct.end\n") == []


class TestSubtree:
    def test_misindented_subtree_is_fixed_in_one_pass(self) -> None:
        text = (
            "A : struct.begin\n"
            "      B : struct.begin\n"
            "x = 1\n"
            "      struct.end\n"
            "struct.end\n"
        )
        assert _format_lines(text) == [
            "A : struct.begin",
            "   B : struct.begin",
            "      x = 1",
            "   struct.end",
            "struct.end",
        ]

    def test_children_follow_rewritten_header(self, well_formed: str) -> None:
        lines = _format_lines(well_formed)
        assert lines == [
            "Name : struct.begin {param=value, flag}",
            "   key = value",
            "   arr[0] = value",
            "   arr[1] = value {param2=val}",
            "   Nested : struct.begin",
            "   struct.end",
            "struct.end",
        ]


class TestIdempotence:
    def test_second_pass_has_no_edits(self, well_formed: str) -> None:
        text = (
            well_formed
            + "Other : struct.begin\n"
            + "\t\tdeep = 1\n"
            + "        Inner : struct.begin {a=1}\n"
            + "x = 2\n"
            + "struct.end\n"
            + "  struct.end\n"
        )
        once = _format_lines(text)
        assert once != text.splitlines()
        assert format_document(once) == []

    def test_each_child_sits_at_header_plus_step(self) -> None:
        settings = FormatSettings(indent_step=4)
        lines = _format_lines(
            "A : struct.begin\n      B : struct.begin\nb = 1\n  struct.end\na = 1\nstruct.end\n",
            settings,
        )
        assert lines == [
            "A : struct.begin",
            "    B : struct.begin",
            "        b = 1",
            "    struct.end",
            "    a = 1",
            "struct.end",
        ]
        assert format_document(lines, settings) == []


class TestErrorVeto:
    def test_unclosed_block_vetoes(self) -> None:
        assert format_document("A : struct.begin\nx = 1") == []

    def test_orphan_close_vetoes(self) -> None:
        assert format_document("A : struct.begin\nx = 1\nstruct.end\nstruct.end\n") == []

    def test_unterminated_string_vetoes(self) -> None:
        assert format_document("A : struct.begin\nx = 'oops\nstruct.end\n") == []

    def test_warnings_do_not_veto(self) -> None:
        text = "A : struct.begin\nx = 1\nx = 2\nstruct.end\n"
        assert len(format_document(text)) == 2


class TestText:
    def test_format_text_keeps_trailing_newline(self) -> None:
        assert format_text("A : struct.begin\nx = 1\nstruct.end\n") == (
            "A : struct.begin\n   x = 1\nstruct.end\n"
        )

    def test_format_text_keeps_crlf(self) -> None:
        assert format_text("A : struct.begin\r\nx = 1\r\nstruct.end") == (
            "A : struct.begin\r\n   x = 1\r\nstruct.end"
        )

    def test_unchanged_text_is_returned_as_is(self) -> None:
        text = "A : struct.begin\n   x = 1\nstruct.end\n"
        assert format_text(text) is text

    def test_apply_edits_does_not_mutate_input(self) -> None:
        lines = ["  x"]
        result = apply_edits(lines, [TextEdit(line=0, start_column=0, end_column=2, new_text="")])
        assert result == ["x"]
        assert lines == ["  x"]

    def test_format_text_keeps_mixed_line_endings(self) -> None:
        assert format_text("A : struct.begin\r\nx = 1\ny = 2\rstruct.end\r\n") == (
            "A : struct.begin\r\n   x = 1\n   y = 2\rstruct.end\r\n"
        )

    def test_form_feed_inside_value_is_kept(self) -> None:
        assert format_text("A : struct.begin\nx = a\x0cb\nstruct.end\n") == (
            "A : struct.begin\n   x = a\x0cb\nstruct.end\n"
        )

    def test_unicode_line_separator_is_not_a_line_break(self) -> None:
        text = "A : struct.begin\nx = a\u2028b\nstruct.end\n"
        edits = format_document(text)
        assert [e.line for e in edits] == [1]
        assert format_text(text) == "A : struct.begin\n   x = a\u2028b\nstruct.end\n"
