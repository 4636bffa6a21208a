"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from zwm_import.common.errors import ConfigError
from zwm_import.common.fs import read_yaml
from zwm_import.common.http import RetryConfig, TimeoutConfig
from zwm_import.common.schema import validate_import_config

CONFIG_FILENAME = "zerowastemap.yml"


@dataclass(frozen=True)
class ColumnNames:
    shop: str = "Shop"
    location: str = "Location"
    contact: str = "Contact"
    open_since: str = "Open Since"


@dataclass(frozen=True)
class Settings:
    locations_input: Path
    crowdfundings_input: Path
    locations_output: Path
    crowdfundings_output: Path
    summary_output: Path
    staging_dir: Path
    log_dir: Path | None
    image_origin: str
    image_public_base_url: str
    image_timeout: TimeoutConfig
    http_retry: RetryConfig
    user_agent: str | None
    default_address: dict[str, str]
    columns: ColumnNames


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path) or {}
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path) or {}
    return _deep_merge(base, overlay)


def settings_from_config(cfg: dict, base_dir: Path) -> Settings:
    def _path(value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else base_dir / path

    images = cfg["images"]
    http_cfg = cfg.get("http") or {}
    timeout_seconds = float(images.get("timeout_seconds", 60))
    log_dir = cfg.get("log_dir")

    return Settings(
        locations_input=_path(cfg["inputs"]["locations"]),
        crowdfundings_input=_path(cfg["inputs"]["crowdfundings"]),
        locations_output=_path(cfg["outputs"]["locations"]),
        crowdfundings_output=_path(cfg["outputs"]["crowdfundings"]),
        summary_output=_path(cfg["outputs"]["summary"]),
        staging_dir=_path(cfg["staging_dir"]),
        log_dir=_path(log_dir) if log_dir else None,
        image_origin=images["origin"].rstrip("/"),
        image_public_base_url=images["public_base_url"],
        image_timeout=TimeoutConfig(connect=min(timeout_seconds, 20.0), read=timeout_seconds),
        http_retry=RetryConfig(max_attempts=int(http_cfg.get("max_attempts", 1))),
        user_agent=http_cfg.get("user_agent"),
        default_address={
            "zip": str(cfg["default_address"]["zip"]),
            "countryCode": str(cfg["default_address"]["countryCode"]),
        },
        columns=ColumnNames(**cfg["columns"]),
    )


def load_settings(
    config_dir: Path,
    *,
    base_dir: Path = Path("."),
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> Settings:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / CONFIG_FILENAME
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    validated = validate_import_config(cfg, allow_unknown=allow_unknown)
    return settings_from_config(validated, base_dir)
