"""Filesystem helpers."""

from __future__ import annotations

import csv
import json
import os
from pathlib import Path

from zwm_import.common.errors import StageError


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _part_path(path: Path) -> Path:
    return path.with_name(f"{path.name}.part")


def write_json(path: Path, payload, *, indent: int = 2, sort_keys: bool = True) -> None:
    """Serialise ``payload`` next to ``path`` and move it into place when complete."""
    ensure_dir(path.parent)
    tmp_path = _part_path(path)
    try:
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=indent, sort_keys=sort_keys)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


def read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def read_csv_rows(path: Path) -> list[dict[str, str]]:
    if not path.exists():
        raise StageError(f"Missing CSV input: {path}")
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        # Short rows come back with None for the missing cells.
        return [{key: value or "" for key, value in row.items() if key is not None} for row in reader]


def clear_dir(path: Path) -> int:
    """Delete every entry of ``path``, creating it when missing.

    Returns the number of removed entries.
    """
    ensure_dir(path)
    removed = 0
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            clear_dir(entry)
            entry.rmdir()
        else:
            entry.unlink()
        removed += 1
    return removed


def write_bytes_atomic(path: Path, payload: bytes) -> None:
    """Write ``payload`` so that ``path`` either holds all of it or does not exist."""
    ensure_dir(path.parent)
    tmp_path = _part_path(path)
    try:
        with tmp_path.open("wb") as f:
            f.write(payload)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
