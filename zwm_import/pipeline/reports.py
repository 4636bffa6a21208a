"""Run summary report."""

from __future__ import annotations

from pathlib import Path

from zwm_import.common.fs import write_json
from zwm_import.common.models import PipelineResult


def summary_status(results: dict[str, PipelineResult], failures: dict[str, str]) -> str:
    if failures:
        return "error"
    if any(result.rejected or result.failed for result in results.values()):
        return "partial"
    return "success"


def write_run_summary(
    path: Path,
    *,
    run_id: str,
    results: dict[str, PipelineResult],
    failures: dict[str, str],
) -> Path:
    payload = {
        "run_id": run_id,
        "status": summary_status(results, failures),
        "pipelines": {name: result.to_dict() for name, result in results.items()},
        "failed_pipelines": failures,
    }
    write_json(path, payload)
    return path
