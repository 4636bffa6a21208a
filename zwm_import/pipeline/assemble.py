"""Location record assembly and contract checks."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from zwm_import.common.logging import log_event
from zwm_import.common.models import Coordinates, ExtractedFields, ImageReference, Violation
from zwm_import.pipeline.location_schema import LocationValidator


def assemble_location(
    fields: ExtractedFields,
    coordinates: Coordinates,
    *,
    image: ImageReference | None,
    opening_date: str | None,
    default_address: Mapping[str, str],
) -> dict[str, Any]:
    record: dict[str, Any] = {}
    if image is not None:
        record["image"] = image.to_dict()
    record["name"] = fields.name
    record["geometry"] = coordinates.to_point()

    meta: dict[str, Any] = {"contact": list(fields.contacts)}
    if opening_date:
        meta["openingDate"] = opening_date
    record["meta"] = meta

    record["address"] = dict(default_address)
    return record


def check_location(
    record: dict[str, Any],
    validator: LocationValidator,
    logger: logging.Logger,
    *,
    row: int | None = None,
    run_id: str | None = None,
) -> tuple[dict[str, Any] | None, list[Violation]]:
    violations = validator.validate(record)
    if not violations:
        return record, []

    for violation in violations:
        log_event(
            logger,
            violation.message,
            level=logging.ERROR,
            run_id=run_id,
            pipeline="locations",
            event="RECORD_INVALID",
            status="rejected",
            row=row,
            field_path=violation.field_path,
            record=record,
        )
    return None, violations
