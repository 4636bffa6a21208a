"""Data models used across the pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ExtractedFields:
    name: str
    link_href: str | None
    contacts: tuple[str, ...]
    image_src: str | None = None


@dataclass(frozen=True)
class Coordinates:
    longitude: float = 0.0
    latitude: float = 0.0

    def to_point(self) -> dict[str, Any]:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


@dataclass(frozen=True)
class ImageReference:
    src: str
    uuid: str

    def to_dict(self) -> dict[str, str]:
        return {"src": self.src, "uuid": self.uuid}


@dataclass(frozen=True)
class Violation:
    field_path: str
    message: str


@dataclass(frozen=True)
class RowOutcome:
    index: int
    record: dict[str, Any] | None = None
    violations: tuple[Violation, ...] = ()
    error: str | None = None


@dataclass
class PipelineResult:
    pipeline: str
    rows_in: int
    rows_out: int
    output_path: Path
    rejected: int = 0
    failed: int = 0
    parse_ms: int = 0
    write_ms: int = 0
    failed_rows: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "rejected": self.rejected,
            "failed": self.failed,
            "failed_rows": list(self.failed_rows),
            "output": str(self.output_path),
            "parse_ms": self.parse_ms,
            "write_ms": self.write_ms,
        }
