"""Tests for {key=value} parameter parsing."""

from stalkercfg.core.params import ParamShapeError, parse_params, split_trailing_params


class TestParseParams:
    def test_pairs_and_flags(self) -> None:
        result = parse_params("{x=1, y}")
        assert result.ok
        assert result.params == {"x": "1", "y": "true"}

    def test_values_are_trimmed(self) -> None:
        assert parse_params("{ a = 1 ,b= two }").params == {"a": "1", "b": "two"}

    def test_empty_braces(self) -> None:
        result = parse_params("{}")
        assert result.ok
        assert result.params == {}

    def test_empty_value_is_kept(self) -> None:
        assert parse_params("{x=}").params == {"x": ""}

    def test_missing_open_brace(self) -> None:
        result = parse_params("x=1}")
        assert not result.ok
        assert result.shape_error == ParamShapeError.MISSING_OPEN_BRACE

    def test_missing_close_brace(self) -> None:
        result = parse_params("{x=1")
        assert result.shape_error == ParamShapeError.MISSING_CLOSE_BRACE

    def test_text_after_close_brace_is_malformed(self) -> None:
        assert parse_params("{x=1} extra").shape_error == ParamShapeError.MALFORMED

    def test_nested_braces_are_malformed(self) -> None:
        result = parse_params("{a={b}}")
        assert result.shape_error == ParamShapeError.MALFORMED
        assert result.malformed_segments == ["a={b}"]

    def test_empty_key_is_malformed_and_preserved(self) -> None:
        result = parse_params("{x=1, =2}")
        assert result.params is None
        assert result.shape_error == ParamShapeError.MALFORMED
        assert result.malformed_segments == ["=2"]

    def test_raw_text_is_kept(self) -> None:
        assert parse_params("  {a}  ").raw == "  {a}  "


class TestSplitTrailingParams:
    def test_value_with_params(self) -> None:
        assert split_trailing_params("value {a=1}") == ("value", "{a=1}")

    def test_value_without_params(self) -> None:
        assert split_trailing_params(" plain ") == ("plain", None)

    def test_whole_value_in_braces_is_not_params(self) -> None:
        assert split_trailing_params("{a=1}") == ("{a=1}", None)

    def test_only_last_segment_is_split(self) -> None:
        assert split_trailing_params("v {x} {a=1}") == ("v {x}", "{a=1}")
