"""
Formatting settings for stalkercfg.

Two values drive every pass: the indent step (spaces added per nesting
level) and the tab width (columns a tab counts for when measuring
indentation). They are defined once here and handed to the validator,
formatter and language server through a single FormatSettings value.
"""

import logging
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .errors import make_config_error

logger = logging.getLogger(__name__)

DEFAULT_INDENT_STEP = 3
DEFAULT_TAB_WIDTH = 3

SETTINGS_FILENAME = "stalkercfg.toml"
PYPROJECT_FILENAME = "pyproject.toml"


@dataclass(frozen=True)
class FormatSettings:
    """Indentation settings shared by the validator and the formatter."""

    indent_step: int = DEFAULT_INDENT_STEP
    tab_width: int = DEFAULT_TAB_WIDTH

    def with_overrides(
        self, indent_step: int | None = None, tab_width: int | None = None
    ) -> "FormatSettings":
        """Return a copy with any non-None override applied."""
        changes: dict[str, int] = {}
        if indent_step is not None:
            changes["indent_step"] = _require_positive(indent_step, "indent_step")
        if tab_width is not None:
            changes["tab_width"] = _require_positive(tab_width, "tab_width")
        return replace(self, **changes) if changes else self


def count_indent(text: str, tab_width: int) -> int:
    """Measure leading indentation, counting a tab as ``tab_width`` columns."""
    count = 0
    for ch in text:
        if ch == " ":
            count += 1
        elif ch == "\t":
            count += tab_width
        else:
            break
    return count


def leading_whitespace(text: str) -> str:
    """Return the run of spaces and tabs at the start of ``text``."""
    return text[: len(text) - len(text.lstrip(" \t"))]


def _require_positive(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{key} must be a positive integer (got {value!r})")
    return value


def _settings_from_table(table: dict[str, Any], path: Path, prefix: str) -> FormatSettings:
    settings = FormatSettings()
    for key in ("indent_step", "tab_width"):
        if key not in table:
            continue
        try:
            _require_positive(table[key], key)
        except ValueError as e:
            raise make_config_error(str(e), path, key=f"{prefix}.{key}")
    return settings.with_overrides(
        indent_step=table.get("indent_step"),
        tab_width=table.get("tab_width"),
    )


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise make_config_error(f"Invalid TOML: {e}", path)
    except OSError as e:
        raise make_config_error(f"Cannot read settings file: {e}", path)


def load_settings_file(path: Path) -> FormatSettings:
    """
    Load settings from a stalkercfg.toml or pyproject.toml file.

    stalkercfg.toml keeps its values in a ``[format]`` table; pyproject.toml
    uses ``[tool.stalkercfg]``.

    Args:
        path: Settings file to read

    Returns:
        FormatSettings with defaults for any missing key

    Raises:
        ConfigError: If the file is not valid TOML or a value is invalid
    """
    data = _read_toml(path)
    if path.name == PYPROJECT_FILENAME:
        table = data.get("tool", {}).get("stalkercfg", {})
        prefix = "tool.stalkercfg"
    else:
        table = data.get("format", {})
        prefix = "format"
    settings = _settings_from_table(table, path, prefix)
    logger.debug("Loaded settings from %s: %s", path, settings)
    return settings


def find_settings_file(start: Path) -> Path | None:
    """
    Walk up from ``start`` looking for a settings file.

    A stalkercfg.toml wins over a pyproject.toml in the same directory; a
    pyproject.toml only counts when it has a ``[tool.stalkercfg]`` table.
    """
    directory = start if start.is_dir() else start.parent
    for candidate_dir in (directory, *directory.parents):
        dedicated = candidate_dir / SETTINGS_FILENAME
        if dedicated.is_file():
            return dedicated
        pyproject = candidate_dir / PYPROJECT_FILENAME
        if pyproject.is_file() and "stalkercfg" in _read_toml(pyproject).get("tool", {}):
            return pyproject
    return None


def resolve_settings(
    start: Path | None = None,
    indent_step: int | None = None,
    tab_width: int | None = None,
) -> FormatSettings:
    """
    Resolve effective settings: defaults, then a discovered settings file,
    then explicit overrides.
    """
    settings = FormatSettings()
    if start is not None:
        settings_file = find_settings_file(start.resolve())
        if settings_file is not None:
            settings = load_settings_file(settings_file)
    try:
        return settings.with_overrides(indent_step=indent_step, tab_width=tab_width)
    except ValueError as e:
        raise make_config_error(str(e), Path("<options>"))
