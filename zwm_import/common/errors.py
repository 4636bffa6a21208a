"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for import failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised when a pipeline step cannot read or write what it needs."""

    error_code = "STAGE_ERROR"


class ImageFetchError(StageError):
    """Raised when a shop image cannot be fetched or persisted."""

    error_code = "IMAGE_FETCH_ERROR"


class BatchError(PipelineError):
    """Raised when one or more pipelines of a run failed."""

    error_code = "BATCH_ERROR"

    def __init__(self, failed: dict[str, BaseException]) -> None:
        self.failed = failed
        names = ", ".join(sorted(failed))
        super().__init__(f"Pipelines failed: {names}")
