"""Crowdfunding campaigns pipeline.

Campaign rows are not checked against a contract; every row yields a record.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Mapping

from zwm_import.common.config_loader import ColumnNames
from zwm_import.common.fs import read_csv_rows, write_json
from zwm_import.common.logging import log_event
from zwm_import.common.models import PipelineResult
from zwm_import.common.time_utils import elapsed_ms
from zwm_import.extract.markup import extract_crowdfunding_address, extract_name

PIPELINE = "crowdfundings"


def transform_crowdfunding_row(row: Mapping[str, str], columns: ColumnNames | None = None) -> dict[str, str]:
    columns = columns or ColumnNames()
    return {
        "name": extract_name(row.get(columns.shop, "")),
        "address": extract_crowdfunding_address(row.get(columns.location, "")),
    }


async def run_crowdfundings(
    *,
    input_path: Path,
    output_path: Path,
    columns: ColumnNames,
    logger: logging.Logger,
    run_id: str | None = None,
) -> PipelineResult:
    started = time.monotonic()
    log_event(logger, "setting crowdfundings", run_id=run_id, pipeline=PIPELINE, event="PIPELINE_START", status="ok")

    rows = await asyncio.to_thread(read_csv_rows, input_path)
    records = [transform_crowdfunding_row(row, columns) for row in rows]
    parse_ms = elapsed_ms(started)
    log_event(
        logger,
        "Done parsing crowdfundings",
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
        "Wrote crowdfunding file",
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
        parse_ms=parse_ms,
        write_ms=write_ms,
    )
