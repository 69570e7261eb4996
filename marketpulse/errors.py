from typing import Optional


class MarketPulseError(Exception):
    """Base class for every error raised by the ingestion service."""


class UpstreamError(MarketPulseError):
    """A source API could not be reached, answered non-2xx, or sent a malformed payload."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message
        self.status_code = status_code


class AuthError(UpstreamError):
    """Token exchange with a source API failed."""


class StoreError(MarketPulseError):
    """The document store is unreachable or rejected a read or write."""


class PartialFailure(MarketPulseError):
    """A pipeline run for one source aborted at a given stage."""

    def __init__(self, source: str, stage: str, cause: Exception):
        super().__init__(f"Pipeline for '{source}' failed during {stage}: {cause}")
        self.source = source
        self.stage = stage
        self.cause = cause


class RunInProgress(MarketPulseError):
    def __init__(self, source: str):
        super().__init__(f"A pipeline run for '{source}' is already in progress")
        self.source = source


class UnknownSourceError(MarketPulseError):
    def __init__(self, source: str):
        super().__init__(f"No adapter registered for source '{source}'")
        self.source = source
