"""CLI entrypoint for the zerowastemap table import."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from zwm_import.common.config_loader import load_settings
from zwm_import.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from zwm_import.common.errors import PipelineError
from zwm_import.common.ids import generate_run_id
from zwm_import.common.logging import build_logger, close_logger, log_event
from zwm_import.pipeline.orchestrator import run_batch


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--base-dir", default=".")
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    base_dir = Path(args.base_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    settings = load_settings(Path(args.config_dir), base_dir=base_dir, overlay_config_dir=overlay_config_dir)
    logger = build_logger(run_id, log_dir=settings.log_dir, level=args.log_level)

    try:
        batch = asyncio.run(run_batch(settings, logger, run_id=run_id))
    except PipelineError as exc:
        log_event(
            logger,
            f"run failed: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            event="RUN_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL
    finally:
        close_logger(logger)

    if batch.had_row_failures:
        return EXIT_HARD_FAIL if args.strict else EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
