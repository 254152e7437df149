"""Shared pytest fixtures for stalkercfg tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from stalkercfg.core.config import FormatSettings

WELL_FORMED = """\
Name : struct.begin {param=value, flag}
    key = value
    arr[0] = value
    arr[1] = value {param2=val}
    Nested : struct.begin
    struct.end
struct.end
"""


@pytest.fixture
def settings() -> FormatSettings:
    """Default settings: indent step 3, tab width 3."""
    return FormatSettings()


@pytest.fixture
def well_formed() -> str:
    """A small document with nesting, parameters and array keys."""
    return WELL_FORMED


@pytest.fixture
def write_cfg(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes a .cfg file under tmp_path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
