"""Tests for .cfg file discovery, reading and error formatting."""

from pathlib import Path

import pytest

from stalkercfg.core.errors import DocumentError, ErrorContext, make_config_error
from stalkercfg.core.fileset import discover_cfg_files, read_document, write_document


class TestDiscovery:
    def test_files_and_directories(self, tmp_path: Path) -> None:
        (tmp_path / "a.cfg").write_text("")
        sub = tmp_path / "sub"
        sub.mkdir()
        (sub / "b.cfg").write_text("")
        (sub / "c.txt").write_text("")

        files = discover_cfg_files([tmp_path])
        assert [f.name for f in files] == ["a.cfg", "b.cfg"]

    def test_explicit_file_is_kept_whatever_its_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("")
        assert discover_cfg_files([path]) == [path.resolve()]

    def test_duplicates_are_removed(self, tmp_path: Path) -> None:
        path = tmp_path / "a.cfg"
        path.write_text("")
        assert len(discover_cfg_files([path, tmp_path])) == 1

    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(DocumentError, match="File or directory not found"):
            discover_cfg_files([tmp_path / "nope"])


class TestReadWrite:
    def test_bom_is_dropped(self, tmp_path: Path) -> None:
        path = tmp_path / "a.cfg"
        path.write_bytes(b"\xef\xbb\xbfx = 1\n")
        assert read_document(path) == "x = 1\n"

    def test_line_endings_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "a.cfg"
        path.write_bytes(b"a\r\nb\r\n")
        text = read_document(path)
        assert text == "a\r\nb\r\n"
        write_document(path, text)
        assert path.read_bytes() == b"a\r\nb\r\n"

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "a.cfg"
        path.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(DocumentError, match="not valid UTF-8"):
            read_document(path)


class TestErrorContext:
    def test_location_and_key(self) -> None:
        err = make_config_error(
            "bad value", Path("stalkercfg.toml"), key="format.tab_width", line=3
        )
        assert str(err) == "stalkercfg.toml:3:1 (format.tab_width)\nbad value"

    def test_snippet(self) -> None:
        ctx = ErrorContext(file=Path("a.toml"), line=2, column=3, snippet="x = 0")
        assert ctx.format() == "a.toml:2:3\n   2 | x = 0\n         ^^^"
