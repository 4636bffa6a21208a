"""Application constants."""

USER_AGENT = "zwm-import/1.0 (+https://zerowastemap.app)"
PIPELINES = (
    "crowdfundings",
    "locations",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "pipeline",
    "event",
    "status",
    "row",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "field_path",
    "record",
    "message",
)
