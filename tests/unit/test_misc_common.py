import json
import logging
import os
import uuid
from pathlib import Path

import pytest

from zwm_import.common import fs
from zwm_import.common.errors import StageError
from zwm_import.common.fs import clear_dir, read_csv_rows, write_bytes_atomic, write_json
from zwm_import.common.ids import generate_image_id, generate_run_id
from zwm_import.common.logging import JsonLineFormatter, build_logger, close_logger, log_event


def test_generate_ids():
    assert generate_run_id().startswith("run-")
    assert uuid.UUID(generate_image_id()).version == 4


def test_clear_dir_removes_files_and_subdirs(tmp_path: Path):
    staging = tmp_path / "assets"
    (staging / "nested").mkdir(parents=True)
    (staging / "a").write_bytes(b"1")
    (staging / "nested" / "b").write_bytes(b"2")

    assert clear_dir(staging) == 2
    assert list(staging.iterdir()) == []


def test_clear_dir_creates_missing_dir(tmp_path: Path):
    assert clear_dir(tmp_path / "missing") == 0
    assert (tmp_path / "missing").is_dir()


def test_write_bytes_atomic_leaves_nothing_on_failure(monkeypatch, tmp_path: Path):
    def fail_replace(*_args, **_kwargs):
        raise OSError("rename failed")

    monkeypatch.setattr(fs.os, "replace", fail_replace)

    with pytest.raises(OSError):
        write_bytes_atomic(tmp_path / "img", b"payload")
    assert list(tmp_path.iterdir()) == []


def test_write_bytes_atomic_writes_payload(tmp_path: Path):
    write_bytes_atomic(tmp_path / "assets" / "img", b"payload")
    assert (tmp_path / "assets" / "img").read_bytes() == b"payload"
    assert os.listdir(tmp_path / "assets") == ["img"]


def test_write_json_four_space_indent_keeps_key_order(tmp_path: Path):
    path = tmp_path / "out.json"
    write_json(path, [{"name": "x", "address": "y"}], indent=4, sort_keys=False)
    text = path.read_text(encoding="utf-8")
    assert text.startswith('[\n    {\n        "name": "x",\n        "address": "y"')


def test_write_json_failure_keeps_previous_file(tmp_path: Path):
    path = tmp_path / "out.json"
    write_json(path, [{"name": "before"}], indent=4, sort_keys=False)

    with pytest.raises(UnicodeEncodeError):
        write_json(path, [{"name": "Caf\ud83d"}], indent=4, sort_keys=False)

    assert json.loads(path.read_text(encoding="utf-8")) == [{"name": "before"}]
    assert os.listdir(tmp_path) == ["out.json"]


def test_read_csv_rows_fills_short_rows(tmp_path: Path):
    path = tmp_path / "t.csv"
    path.write_text("Shop,Location,Contact\n<a>x</a>,here\n", encoding="utf-8")
    assert read_csv_rows(path) == [{"Shop": "<a>x</a>", "Location": "here", "Contact": ""}]


def test_read_csv_rows_missing_file(tmp_path: Path):
    with pytest.raises(StageError):
        read_csv_rows(tmp_path / "missing.csv")


def test_json_line_formatter_emits_stable_fields():
    record = logging.LogRecord("zwm", logging.ERROR, __file__, 1, "bad record", None, None)
    record.pipeline = "locations"
    record.field_path = "name"
    record.record = {"name": ""}

    payload = json.loads(JsonLineFormatter().format(record))

    assert payload["message"] == "bad record"
    assert payload["level"] == "ERROR"
    assert payload["pipeline"] == "locations"
    assert payload["field_path"] == "name"
    assert payload["record"] == {"name": ""}
    assert payload["duration_ms"] is None


def test_build_logger_writes_jsonl_file(tmp_path: Path):
    logger = build_logger("run-test", log_dir=tmp_path)
    log_event(logger, "hello", event="RUN_START", status="ok")
    close_logger(logger)

    lines = (tmp_path / "run-test.log.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["event"] == "RUN_START"


def test_close_logger_releases_the_log_file(tmp_path: Path):
    logger = build_logger("run-close", log_dir=tmp_path)
    [file_handler] = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]

    close_logger(logger)

    assert logger.handlers == []
    assert file_handler.stream is None


def test_rebuilding_a_logger_closes_its_previous_file(tmp_path: Path):
    first = build_logger("run-again", log_dir=tmp_path)
    [old_handler] = [h for h in first.handlers if isinstance(h, logging.FileHandler)]

    second = build_logger("run-again", log_dir=tmp_path)

    assert second is first
    assert old_handler.stream is None
    assert len(second.handlers) == 2
    close_logger(second)
