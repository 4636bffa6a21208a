"""Supermarket locations pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Mapping

from zwm_import.common.config_loader import ColumnNames
from zwm_import.common.fs import read_csv_rows, write_json
from zwm_import.common.logging import log_event
from zwm_import.common.models import PipelineResult, RowOutcome
from zwm_import.common.time_utils import elapsed_ms
from zwm_import.extract.markup import extract_fields
from zwm_import.pipeline.assemble import assemble_location, check_location
from zwm_import.pipeline.coordinates import resolve_coordinates
from zwm_import.pipeline.images import ImageRelocator
from zwm_import.pipeline.location_schema import LocationValidator
from zwm_import.pipeline.opening_date import normalize_opening_date

PIPELINE = "locations"


async def transform_location_row(
    index: int,
    row: Mapping[str, str],
    *,
    columns: ColumnNames,
    relocator: ImageRelocator,
    validator: LocationValidator,
    default_address: Mapping[str, str],
    logger: logging.Logger,
    run_id: str | None = None,
) -> RowOutcome:
    fields = extract_fields(row, columns)
    coordinates = resolve_coordinates(fields.link_href)
    opening_date = normalize_opening_date(row.get(columns.open_since))

    # Check the record before touching the network so rejected rows never stage an image.
    draft = assemble_location(
        fields,
        coordinates,
        image=None,
        opening_date=opening_date,
        default_address=default_address,
    )
    kept, violations = check_location(draft, validator, logger, row=index, run_id=run_id)
    if kept is None:
        return RowOutcome(index=index, violations=tuple(violations))

    image = await relocator.relocate_async(fields.image_src)
    if image is None:
        return RowOutcome(index=index, record=draft)

    record = assemble_location(
        fields,
        coordinates,
        image=image,
        opening_date=opening_date,
        default_address=default_address,
    )
    kept, violations = check_location(record, validator, logger, row=index, run_id=run_id)
    if kept is None:
        relocator.discard(image)
        return RowOutcome(index=index, violations=tuple(violations))
    return RowOutcome(index=index, record=record)


def _failed_outcome(index: int, exc: Exception, logger: logging.Logger, run_id: str | None) -> RowOutcome:
    error_code = getattr(exc, "error_code", "UNEXPECTED_ERROR")
    log_event(
        logger,
        f"location row {index} failed: {exc}",
        level=logging.ERROR,
        run_id=run_id,
        pipeline=PIPELINE,
        event="ROW_FAIL",
        status="error",
        row=index,
        error_code=error_code,
    )
    return RowOutcome(index=index, error=str(exc))


async def transform_location_rows(
    rows: list[dict[str, str]],
    *,
    columns: ColumnNames,
    relocator: ImageRelocator,
    validator: LocationValidator,
    default_address: Mapping[str, str],
    logger: logging.Logger,
    run_id: str | None = None,
) -> list[RowOutcome]:
    """Transform every row concurrently, one outcome per row in input order.

    A failing row never cancels its siblings; its slot carries the error.
    """
    results = await asyncio.gather(
        *(
            transform_location_row(
                index,
                row,
                columns=columns,
                relocator=relocator,
                validator=validator,
                default_address=default_address,
                logger=logger,
                run_id=run_id,
            )
            for index, row in enumerate(rows)
        ),
        return_exceptions=True,
    )

    outcomes: list[RowOutcome] = []
    for index, result in enumerate(results):
        if isinstance(result, Exception):
            outcomes.append(_failed_outcome(index, result, logger, run_id))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(result)
    return outcomes


def emitted_records(outcomes: list[RowOutcome]) -> list[dict[str, Any]]:
    return [outcome.record for outcome in outcomes if outcome.record is not None]


async def run_locations(
    *,
    input_path: Path,
    output_path: Path,
    columns: ColumnNames,
    relocator: ImageRelocator,
    validator: LocationValidator,
    default_address: Mapping[str, str],
    logger: logging.Logger,
    run_id: str | None = None,
) -> PipelineResult:
    started = time.monotonic()
    log_event(logger, "setting locations", run_id=run_id, pipeline=PIPELINE, event="PIPELINE_START", status="ok")

    rows = await asyncio.to_thread(read_csv_rows, input_path)
    outcomes = await transform_location_rows(
        rows,
        columns=columns,
        relocator=relocator,
        validator=validator,
        default_address=default_address,
        logger=logger,
        run_id=run_id,
    )
    records = emitted_records(outcomes)
    parse_ms = elapsed_ms(started)
    log_event(
        logger,
        "Done parsing locations",
        run_id=run_id,
        pipeline=PIPELINE,
        event="PARSE_DONE",
        status="ok",
        duration_ms=parse_ms,
        rows_in=len(rows),
        rows_out=len(records),
    )

    write_started = time.monotonic()
    await asyncio.to_thread(write_json, output_path, records, indent=4, sort_keys=False)
    write_ms = elapsed_ms(write_started)
    log_event(
        logger,
        "Wrote location file",
        run_id=run_id,
        pipeline=PIPELINE,
        event="WRITE_DONE",
        status="ok",
        duration_ms=write_ms,
        rows_out=len(records),
    )

    return PipelineResult(
        pipeline=PIPELINE,
        rows_in=len(rows),
        rows_out=len(records),
        output_path=output_path,
        rejected=sum(1 for outcome in outcomes if outcome.violations),
        failed=sum(1 for outcome in outcomes if outcome.error is not None),
        failed_rows=[outcome.index for outcome in outcomes if outcome.error is not None],
        parse_ms=parse_ms,
        write_ms=write_ms,
    )
