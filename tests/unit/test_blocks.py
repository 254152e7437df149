"""Tests for block resolution: pairing, header parameters, recovery, containment."""

from stalkercfg.core.blocks import (
    RECOVERY_WINDOW_LINES,
    OrphanEnd,
    _PendingBlock,
    _recover_orphans,
    match_header,
    resolve_blocks,
)
from stalkercfg.core.lexer import tokenize_line


def _resolve(text: str):
    return resolve_blocks(text.splitlines())


class TestPairing:
    """Openers and closers pair up with a stack."""

    def test_well_formed_has_no_orphans_or_unclosed(self, well_formed: str) -> None:
        resolution = _resolve(well_formed)
        assert resolution.orphans == ()
        assert resolution.unclosed == []
        assert [s.name for s in resolution.spans] == ["Name", "Nested"]

    def test_nested_pairs(self) -> None:
        resolution = _resolve(
            "A : struct.begin\n"
            "   B : struct.begin\n"
            "   struct.end\n"
            "struct.end\n"
        )
        a, b = resolution.spans
        assert (a.start_line, a.end_line) == (0, 3)
        assert (b.start_line, b.end_line) == (1, 2)
        assert resolution.close_lines == {2: 1, 3: 0}
        assert resolution.header_lines == {0: 0, 1: 1}

    def test_unclosed_block(self) -> None:
        resolution = _resolve("A : struct.begin\n   x = 1\n")
        assert resolution.spans[0].end_line is None
        assert not resolution.spans[0].closed
        assert len(resolution.unclosed) == 1

    def test_orphan_close(self) -> None:
        resolution = _resolve("x = 1\n   struct.end\n")
        assert resolution.orphans == (OrphanEnd(line=1, indent=3),)
        assert resolution.spans == ()

    def test_close_with_trailing_comment(self) -> None:
        resolution = _resolve("A : struct.begin\nstruct.end // done\n")
        assert resolution.spans[0].end_line == 1

    def test_keywords_are_case_sensitive(self) -> None:
        resolution = _resolve("A : Struct.Begin\nSTRUCT.END\n")
        assert resolution.spans == ()
        assert resolution.orphans == ()

    def test_commented_out_header_is_ignored(self) -> None:
        resolution = _resolve("// A : struct.begin\n")
        assert resolution.spans == ()

    def test_header_text_inside_string_is_not_a_header(self) -> None:
        resolution = _resolve('A : struct.begin\n   x = "a : struct.begin"\nstruct.end\n')
        assert [(s.name, s.start_line, s.end_line) for s in resolution.spans] == [("A", 0, 2)]
        assert resolution.unclosed == []


class TestMatchHeader:
    def _match(self, code: str):
        return match_header(code, tokenize_line(code))

    def test_parts(self) -> None:
        match = self._match("   Name : struct.begin {x=1}")
        assert match is not None
        assert (match.indent_text, match.name, match.colon, match.rest) == (
            "   ",
            "Name",
            8,
            " {x=1}",
        )

    def test_colon_without_spaces(self) -> None:
        match = self._match("Name:struct.begin")
        assert match is not None
        assert (match.name, match.colon, match.rest) == ("Name", 4, "")

    def test_quoted_keyword_does_not_match(self) -> None:
        assert self._match("x = 'b : struct.begin'") is None
        assert self._match('Name : "struct.begin"') is None

    def test_keyword_must_be_whole(self) -> None:
        assert self._match("Name : struct.beginning") is None
        assert self._match("Name : struct. begin") is None

    def test_needs_text_before_colon(self) -> None:
        assert self._match(": struct.begin") is None


class TestHeaderParameters:
    """Inline, multi-line and look-ahead parameter segments."""

    def test_inline(self) -> None:
        span = _resolve("A : struct.begin {x=1, y}\nstruct.end\n").spans[0]
        assert span.params is not None
        assert span.params.params == {"x": "1", "y": "true"}
        assert span.param_lines == ()

    def test_inline_brace_continues_on_following_lines(self) -> None:
        resolution = _resolve(
            "A : struct.begin {\n"
            "   a=1,\n"
            "   b=2 }\n"
            "struct.end\n"
        )
        span = resolution.spans[0]
        assert span.params.params == {"a": "1", "b": "2"}
        assert span.param_lines == (1, 2)
        assert resolution.consumed == frozenset({1, 2})
        assert span.end_line == 3

    def test_brace_block_on_next_line(self) -> None:
        resolution = _resolve("A : struct.begin\n{a=1}\nstruct.end\n")
        span = resolution.spans[0]
        assert span.params.params == {"a": "1"}
        assert span.param_lines == (1,)
        assert span.end_line == 2

    def test_brace_only_line_after_blank(self) -> None:
        span = _resolve("A : struct.begin\n\n   {a=1}\nstruct.end\n").spans[0]
        assert span.params.params == {"a": "1"}
        assert span.param_lines == (2,)

    def test_property_line_is_not_taken_as_parameters(self) -> None:
        resolution = _resolve("A : struct.begin\n   x = {a=1}\nstruct.end\n")
        assert resolution.spans[0].params is None
        assert resolution.consumed == frozenset()

    def test_unterminated_inline_params_keep_following_lines(self) -> None:
        resolution = _resolve("A : struct.begin {x=1\nstruct.end\n")
        span = resolution.spans[0]
        assert span.params is not None
        assert not span.params.ok
        assert span.end_line == 1


class TestRecovery:
    """Orphan recovery against still-open blocks."""

    def test_stack_pairing_leaves_nothing_to_recover(self) -> None:
        resolution = _resolve(
            "A : struct.begin\n"
            "   B : struct.begin\n"
            "struct.end\n"
            "struct.end\n"
            "struct.end\n"
            "C : struct.begin\n"
        )
        assert [(s.name, s.end_line) for s in resolution.spans] == [
            ("A", 3),
            ("B", 2),
            ("C", None),
        ]
        assert not any(span.recovered for span in resolution.spans)
        assert resolution.orphans == (OrphanEnd(line=4, indent=0),)

    def test_prefers_opener_indented_no_deeper(self) -> None:
        outer = _PendingBlock(start_line=0, name="A", indent=0, params=None, param_lines=())
        inner = _PendingBlock(start_line=5, name="B", indent=3, params=None, param_lines=())
        remaining = _recover_orphans([outer, inner], [OrphanEnd(line=10, indent=0)])
        assert remaining == []
        assert outer.end_line == 10
        assert outer.recovered
        assert inner.end_line is None

    def test_falls_back_to_nearest(self) -> None:
        first = _PendingBlock(start_line=0, name="A", indent=6, params=None, param_lines=())
        second = _PendingBlock(start_line=2, name="B", indent=6, params=None, param_lines=())
        remaining = _recover_orphans([first, second], [OrphanEnd(line=4, indent=0)])
        assert remaining == []
        assert second.end_line == 4
        assert first.end_line is None

    def test_outside_window_stays_orphan(self) -> None:
        block = _PendingBlock(start_line=0, name="A", indent=0, params=None, param_lines=())
        orphan = OrphanEnd(line=RECOVERY_WINDOW_LINES + 1, indent=0)
        assert _recover_orphans([block], [orphan]) == [orphan]
        assert block.end_line is None

    def test_closed_blocks_are_not_candidates(self) -> None:
        block = _PendingBlock(
            start_line=0, name="A", indent=0, params=None, param_lines=(), end_line=3
        )
        orphan = OrphanEnd(line=5, indent=0)
        assert _recover_orphans([block], [orphan]) == [orphan]


class TestContainment:
    """Parents are the smallest enclosing span."""

    def test_three_levels(self) -> None:
        resolution = _resolve(
            "A : struct.begin\n"
            "   B : struct.begin\n"
            "      C : struct.begin\n"
            "      struct.end\n"
            "   struct.end\n"
            "   D : struct.begin\n"
            "   struct.end\n"
            "struct.end\n"
        )
        parents = {s.name: s.parent for s in resolution.spans}
        assert parents == {"A": None, "B": 0, "C": 1, "D": 0}

    def test_siblings_at_root(self) -> None:
        resolution = _resolve("A : struct.begin\nstruct.end\nB : struct.begin\nstruct.end\n")
        assert [s.parent for s in resolution.spans] == [None, None]

    def test_unclosed_block_contains_everything_after(self) -> None:
        resolution = _resolve("A : struct.begin\n   B : struct.begin\n   struct.end\n")
        a, b = resolution.spans
        assert a.end_line is None
        assert b.parent == 0
        assert a.contains_line(100)
