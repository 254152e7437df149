"""
Parameter text parsing.

Headers and properties may carry a ``{key=value, flag}`` segment. Parsing
never fails outright: shape problems are recorded on the result so the
validator can explain them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

FLAG_VALUE = "true"


class ParamShapeError(str, Enum):
    """Why a parameter segment could not be parsed into key/value pairs."""

    MISSING_OPEN_BRACE = "missing_open_brace"
    MISSING_CLOSE_BRACE = "missing_close_brace"
    MALFORMED = "malformed"


class ParamSet(BaseModel):
    """
    Result of parsing one ``{...}`` parameter segment.

    ``params`` is None when the text could not be parsed; ``raw`` is always
    the original text so diagnostics can quote it.
    """

    raw: str
    params: dict[str, str] | None = None
    shape_error: ParamShapeError | None = None
    malformed_segments: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        return self.params is not None


def parse_params(raw: str) -> ParamSet:
    """
    Parse a parameter segment such as ``{x=1, y}``.

    Segments are comma separated; ``key=value`` maps key to the trimmed
    value and a bare ``key`` maps to ``"true"``. Segments with an empty key
    or nested braces make the whole set malformed, but are kept on the
    result for reporting.
    """
    text = raw.strip()
    if not text.startswith("{"):
        return ParamSet(raw=raw, shape_error=ParamShapeError.MISSING_OPEN_BRACE)
    if not text.endswith("}") or len(text) < 2:
        shape = ParamShapeError.MALFORMED if "}" in text else ParamShapeError.MISSING_CLOSE_BRACE
        return ParamSet(raw=raw, shape_error=shape)

    inner = text[1:-1]
    if "{" in inner or "}" in inner:
        return ParamSet(
            raw=raw, shape_error=ParamShapeError.MALFORMED, malformed_segments=[inner.strip()]
        )

    params: dict[str, str] = {}
    malformed: list[str] = []
    for part in inner.split(","):
        segment = part.strip()
        if not segment:
            continue
        key, eq, value = segment.partition("=")
        key = key.strip()
        if not key:
            malformed.append(segment)
            continue
        params[key] = value.strip() if eq else FLAG_VALUE

    if malformed:
        return ParamSet(
            raw=raw, shape_error=ParamShapeError.MALFORMED, malformed_segments=malformed
        )
    return ParamSet(raw=raw, params=params)


def split_trailing_params(value: str) -> tuple[str, str | None]:
    """
    Split ``value {a=1}`` into ``("value", "{a=1}")``.

    The trailing segment only counts when some value text precedes it, so a
    value that is entirely ``{...}`` (a brace literal) is left untouched.
    """
    stripped = value.rstrip()
    if not stripped.endswith("}"):
        return value.strip(), None
    depth = 0
    for i in range(len(stripped) - 1, -1, -1):
        ch = stripped[i]
        if ch == "}":
            depth += 1
        elif ch == "{":
            depth -= 1
            if depth == 0:
                head = stripped[:i].strip()
                if not head:
                    return value.strip(), None
                return head, stripped[i:]
    return value.strip(), None
