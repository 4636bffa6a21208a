"""Coordinate extraction from map-provider links."""

from __future__ import annotations

import math
import re

from zwm_import.common.models import Coordinates

# Map links carry the viewport as ".../@<lon>,<lat>,<zoom>z...".
_VIEWPORT_RE = re.compile(r"@(.*?),(.*?),")
_FLOAT_PREFIX_RE = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _safe_float(value: str | None) -> float:
    if not value:
        return 0.0
    match = _FLOAT_PREFIX_RE.match(value)
    if match is None:
        return 0.0
    parsed = float(match.group(0))
    if not math.isfinite(parsed):
        return 0.0
    return parsed


def resolve_coordinates(link: str | None) -> Coordinates:
    if not link:
        return Coordinates()
    match = _VIEWPORT_RE.search(link)
    if match is None:
        return Coordinates()
    return Coordinates(
        longitude=_safe_float(match.group(1)),
        latitude=_safe_float(match.group(2)),
    )
