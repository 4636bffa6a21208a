from __future__ import annotations

import asyncio
import csv
import json
import logging
import threading
import time
import uuid
from pathlib import Path

import pytest

from zwm_import.common.config_loader import ColumnNames
from zwm_import.common.http import HttpRequestError
from zwm_import.pipeline.images import ImageRelocator
from zwm_import.pipeline.location_schema import LocationRecord, LocationValidator
from zwm_import.pipeline.locations import emitted_records, run_locations, transform_location_rows

DEFAULT_ADDRESS = {"zip": "B1000", "countryCode": "BE"}
PUBLIC_BASE = "https://static.zerowastemap.app/file/zerowastemap/"

EXAMPLE_ROW = {
    "Shop": "<a href='x'>Zero Waste Store</a><img src='http://host/img.jpg'>",
    "Location": "<a href='https://maps/?q=@4.35,50.85,15z'>link</a>",
    "Contact": "<a>+32 2 000 0000</a>",
    "Open Since": "March 2018",
}


class FakeHttpClient:
    def __init__(self, failing_paths: set[str] | None = None, delays: dict[str, float] | None = None):
        self.failing_paths = failing_paths or set()
        self.delays = delays or {}
        self.calls: list[str] = []
        self.lock = threading.Lock()

    def get_bytes(self, url: str, **_kwargs) -> bytes:
        with self.lock:
            self.calls.append(url)
        path = url.split("bepakt.com", 1)[1]
        time.sleep(self.delays.get(path, 0.0))
        if path in self.failing_paths:
            raise HttpRequestError("HTTP status: 404")
        return f"bytes:{path}".encode()

    def close(self):
        return None


def _shop_row(name: str, image_path: str | None = None, link: str = "https://maps/@4.35,50.85,15z") -> dict:
    image = f"<img src='http://host{image_path}'>" if image_path else ""
    return {
        "Shop": f"<a>{name}</a>{image}",
        "Location": f"<a href='{link}'>map</a>",
        "Contact": "",
        "Open Since": "",
    }


def _transform(rows, client, staging: Path, logger: logging.Logger, validator=None, public_base_url=PUBLIC_BASE):
    relocator = ImageRelocator(client, origin="http://bepakt.com", public_base_url=public_base_url, staging_dir=staging)
    return asyncio.run(
        transform_location_rows(
            rows,
            columns=ColumnNames(),
            relocator=relocator,
            validator=validator or LocationValidator(),
            default_address=DEFAULT_ADDRESS,
            logger=logger,
            run_id="run-test",
        )
    )


@pytest.mark.integration
def test_example_row_becomes_full_location_record(tmp_path: Path):
    client = FakeHttpClient()
    outcomes = _transform([EXAMPLE_ROW], client, tmp_path, logging.getLogger("zwm-test.locations"))

    [record] = emitted_records(outcomes)
    assert record["name"] == "Zero Waste Store"
    assert record["geometry"] == {"type": "Point", "coordinates": [4.35, 50.85]}
    assert record["meta"] == {"contact": ["+32 2 000 0000"], "openingDate": "2018-03-01"}
    assert record["address"] == {"zip": "B1000", "countryCode": "BE"}
    assert uuid.UUID(record["image"]["uuid"]).version == 4
    assert record["image"]["src"] == PUBLIC_BASE + record["image"]["uuid"]
    assert (tmp_path / record["image"]["uuid"]).read_bytes() == b"bytes:/img.jpg"
    assert client.calls == ["http://bepakt.com/img.jpg"]


@pytest.mark.integration
def test_row_missing_required_field_is_dropped_and_logged(tmp_path: Path, caplog):
    class StricterLocation(LocationRecord):
        website: str

    client = FakeHttpClient()
    logger = logging.getLogger("zwm-test.locations")

    with caplog.at_level(logging.ERROR, logger="zwm-test.locations"):
        outcomes = _transform([EXAMPLE_ROW], client, tmp_path, logger, validator=LocationValidator(StricterLocation))

    assert emitted_records(outcomes) == []
    invalid = [r for r in caplog.records if getattr(r, "event", None) == "RECORD_INVALID"]
    assert len(invalid) == 1
    assert invalid[0].field_path == "website"
    assert invalid[0].record["name"] == "Zero Waste Store"
    assert client.calls == []
    assert list(tmp_path.iterdir()) == []


@pytest.mark.integration
def test_failed_image_drops_only_its_row(tmp_path: Path, caplog):
    rows = [_shop_row("A", "/a.jpg"), _shop_row("B", "/broken.jpg"), _shop_row("C", "/c.jpg")]
    client = FakeHttpClient(failing_paths={"/broken.jpg"})
    logger = logging.getLogger("zwm-test.locations")

    with caplog.at_level(logging.ERROR, logger="zwm-test.locations"):
        outcomes = _transform(rows, client, tmp_path, logger)

    assert [o.index for o in outcomes] == [0, 1, 2]
    assert outcomes[1].error is not None
    assert [r["name"] for r in emitted_records(outcomes)] == ["A", "C"]
    failures = [r for r in caplog.records if getattr(r, "event", None) == "ROW_FAIL"]
    assert [(r.row, r.error_code) for r in failures] == [(1, "IMAGE_FETCH_ERROR")]
    assert len(list(tmp_path.iterdir())) == 2


@pytest.mark.integration
def test_record_with_unusable_image_url_is_rejected_and_unstaged(tmp_path: Path, caplog):
    rows = [_shop_row("A", "/a.jpg"), _shop_row("B")]
    client = FakeHttpClient()
    logger = logging.getLogger("zwm-test.locations")

    with caplog.at_level(logging.ERROR, logger="zwm-test.locations"):
        outcomes = _transform(rows, client, tmp_path, logger, public_base_url="not-a-url/")

    assert [r["name"] for r in emitted_records(outcomes)] == ["B"]
    invalid = [r for r in caplog.records if getattr(r, "event", None) == "RECORD_INVALID"]
    assert [(r.row, r.field_path) for r in invalid] == [(0, "image.src")]
    assert client.calls == ["http://bepakt.com/a.jpg"]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.integration
def test_output_order_follows_input_not_completion(tmp_path: Path):
    rows = [_shop_row("slow", "/slow.jpg"), _shop_row("fast", "/fast.jpg"), _shop_row("no image")]
    client = FakeHttpClient(delays={"/slow.jpg": 0.2})

    outcomes = _transform(rows, client, tmp_path, logging.getLogger("zwm-test.locations"))

    assert [r["name"] for r in emitted_records(outcomes)] == ["slow", "fast", "no image"]
    assert "image" not in emitted_records(outcomes)[2]


@pytest.mark.integration
def test_run_locations_writes_four_space_json(tmp_path: Path):
    input_path = tmp_path / "tables" / "supermarkets.csv"
    input_path.parent.mkdir()
    with input_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(EXAMPLE_ROW))
        writer.writeheader()
        writer.writerow(EXAMPLE_ROW)
        writer.writerow(_shop_row("", link="nowhere"))

    output_path = tmp_path / "json" / "data-locations.json"
    relocator = ImageRelocator(
        FakeHttpClient(),
        origin="http://bepakt.com",
        public_base_url=PUBLIC_BASE,
        staging_dir=tmp_path / "assets",
    )

    result = asyncio.run(
        run_locations(
            input_path=input_path,
            output_path=output_path,
            columns=ColumnNames(),
            relocator=relocator,
            validator=LocationValidator(),
            default_address=DEFAULT_ADDRESS,
            logger=logging.getLogger("zwm-test.locations"),
        )
    )

    assert (result.rows_in, result.rows_out, result.rejected, result.failed) == (2, 1, 1, 0)
    text = output_path.read_text(encoding="utf-8")
    assert text.startswith("[\n    {\n")
    [record] = json.loads(text)
    assert list(record) == ["image", "name", "geometry", "meta", "address"]
    assert record["name"] == "Zero Waste Store"
