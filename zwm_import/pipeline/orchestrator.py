"""Batch orchestration: staging cleanup, concurrent pipelines, run summary."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from zwm_import.common.config_loader import Settings
from zwm_import.common.constants import PIPELINES
from zwm_import.common.errors import BatchError, StageError
from zwm_import.common.fs import clear_dir
from zwm_import.common.http import HttpClient
from zwm_import.common.logging import log_event
from zwm_import.common.models import PipelineResult
from zwm_import.pipeline.crowdfundings import run_crowdfundings
from zwm_import.pipeline.images import ImageRelocator
from zwm_import.pipeline.location_schema import LocationValidator
from zwm_import.pipeline.locations import run_locations
from zwm_import.pipeline.reports import write_run_summary


@dataclass
class BatchResult:
    run_id: str
    results: dict[str, PipelineResult] = field(default_factory=dict)
    summary_path: Path | None = None

    @property
    def had_row_failures(self) -> bool:
        return any(result.failed for result in self.results.values())


async def clean_staging(staging_dir: Path, logger: logging.Logger, run_id: str) -> int:
    try:
        removed = await asyncio.to_thread(clear_dir, staging_dir)
    except OSError as exc:
        raise StageError(f"Could not clear staging directory {staging_dir}: {exc}") from exc
    log_event(logger, f"cleared {removed} staged files", run_id=run_id, event="CLEAN", status="ok", rows_out=removed)
    return removed


async def run_batch(
    settings: Settings,
    logger: logging.Logger,
    *,
    run_id: str,
    http_client: HttpClient | None = None,
    validator: LocationValidator | None = None,
) -> BatchResult:
    log_event(logger, "run start", run_id=run_id, event="RUN_START", status="ok")
    await clean_staging(settings.staging_dir, logger, run_id)

    owns_client = http_client is None
    client = http_client or HttpClient(retry=settings.http_retry, **_user_agent(settings))
    relocator = ImageRelocator(
        client,
        origin=settings.image_origin,
        public_base_url=settings.image_public_base_url,
        staging_dir=settings.staging_dir,
        timeout=settings.image_timeout,
    )
    try:
        outcomes = await asyncio.gather(
            run_crowdfundings(
                input_path=settings.crowdfundings_input,
                output_path=settings.crowdfundings_output,
                columns=settings.columns,
                logger=logger,
                run_id=run_id,
            ),
            run_locations(
                input_path=settings.locations_input,
                output_path=settings.locations_output,
                columns=settings.columns,
                relocator=relocator,
                validator=validator or LocationValidator(),
                default_address=settings.default_address,
                logger=logger,
                run_id=run_id,
            ),
            return_exceptions=True,
        )
    finally:
        if owns_client:
            client.close()

    batch = BatchResult(run_id=run_id)
    failed: dict[str, BaseException] = {}
    for name, outcome in zip(PIPELINES, outcomes):
        if isinstance(outcome, BaseException):
            failed[name] = outcome
            log_event(
                logger,
                f"{name} pipeline failed: {outcome}",
                level=logging.ERROR,
                run_id=run_id,
                pipeline=name,
                event="PIPELINE_FAIL",
                status="error",
                error_code=getattr(outcome, "error_code", "UNEXPECTED_ERROR"),
            )
        else:
            batch.results[name] = outcome

    batch.summary_path = write_run_summary(
        settings.summary_output,
        run_id=run_id,
        results=batch.results,
        failures={name: str(exc) for name, exc in failed.items()},
    )
    log_event(
        logger,
        "run end",
        run_id=run_id,
        event="RUN_END",
        status="error" if failed else "ok",
        rows_out=sum(result.rows_out for result in batch.results.values()),
    )

    if failed:
        raise BatchError(failed)
    return batch


def _user_agent(settings: Settings) -> dict[str, str]:
    if settings.user_agent:
        return {"user_agent": settings.user_agent}
    return {}
