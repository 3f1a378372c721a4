"""
Exceptions raised by the pool schedule pipeline.

    PipelineError
    ├── ConfigurationError      missing API key, unreadable pools file
    ├── DiscoveryError          pool listing no longer matches the registry
    ├── DownloadError           one PDF could not be fetched
    └── ExtractionError         LLM call failed or returned junk
        └── SchemaValidationError
"""


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    def __init__(self, message, pool_id=None, cause=None):
        self.pool_id = pool_id
        self.cause = cause
        super().__init__(message)
        if cause and not self.__cause__:
            self.__cause__ = cause

    def to_dict(self):
        d = {"error_type": type(self).__name__, "message": str(self)}
        if self.pool_id:
            d["pool_id"] = self.pool_id
        if self.cause:
            d["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return d


class ConfigurationError(PipelineError):
    pass


class DiscoveryError(PipelineError):
    """The scraped pool listing disagrees with the pool registry."""

    def __init__(self, message, errors=None):
        self.errors = list(errors or [])
        super().__init__(message)


class DownloadError(PipelineError):
    pass


class ExtractionError(PipelineError):
    pass


class SchemaValidationError(ExtractionError):
    """The extraction response parsed as JSON but does not match the schema."""
