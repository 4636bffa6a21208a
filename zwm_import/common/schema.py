"""Minimal strict schema for YAML config validation."""

from __future__ import annotations

from zwm_import.common.errors import ConfigError

TOP_REQUIRED = {
    "inputs",
    "outputs",
    "staging_dir",
    "images",
    "default_address",
    "columns",
}
TOP_OPTIONAL = {"log_dir", "http"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_non_empty_strings(obj: dict, keys: set[str], ctx: str) -> None:
    for key in sorted(keys):
        value = obj[key]
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(f"{ctx}.{key} must be a non-empty string")


def validate_import_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_required_keys(cfg, TOP_REQUIRED, "import config")
    _assert_no_unknown_keys(cfg, TOP_REQUIRED | TOP_OPTIONAL, "import config", allow_unknown)

    _assert_required_keys(cfg["inputs"], {"locations", "crowdfundings"}, "inputs")
    _assert_non_empty_strings(cfg["inputs"], {"locations", "crowdfundings"}, "inputs")
    _assert_required_keys(cfg["outputs"], {"locations", "crowdfundings", "summary"}, "outputs")
    _assert_non_empty_strings(cfg["outputs"], {"locations", "crowdfundings", "summary"}, "outputs")

    _assert_required_keys(cfg["images"], {"origin", "public_base_url"}, "images")
    _assert_non_empty_strings(cfg["images"], {"origin", "public_base_url"}, "images")
    if not cfg["images"]["origin"].startswith(("http://", "https://")):
        raise ConfigError("images.origin must be an http(s) URL")

    _assert_required_keys(cfg["default_address"], {"zip", "countryCode"}, "default_address")
    _assert_non_empty_strings(cfg["default_address"], {"zip", "countryCode"}, "default_address")

    column_keys = {"shop", "location", "contact", "open_since"}
    _assert_required_keys(cfg["columns"], column_keys, "columns")
    _assert_no_unknown_keys(cfg["columns"], column_keys, "columns", allow_unknown)
    _assert_non_empty_strings(cfg["columns"], column_keys, "columns")

    http_cfg = cfg.get("http") or {}
    attempts = http_cfg.get("max_attempts", 1)
    if not isinstance(attempts, int) or attempts < 1:
        raise ConfigError("http.max_attempts must be a positive integer")

    return cfg
