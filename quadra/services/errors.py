"""Error taxonomy for the fetch → extract → translate → rewrite pipeline."""

from typing import Optional


class PipelineError(Exception):
    """Base class for every error raised by the pipeline services."""


class ValidationError(PipelineError, ValueError):
    """The input URL is empty or malformed; raised before any network call."""


class NetworkError(PipelineError):
    """The page fetch failed or the proxy answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProxyError(PipelineError, RuntimeError):
    """The proxy answered, but its body cannot be used as HTML text."""


class TranslationError(PipelineError):
    """A single text unit could not be translated."""


class UnknownError(PipelineError):
    """Any other failure while fetching or parsing the page."""


class SupersededError(PipelineError):
    """The run was cancelled because a newer run started for the same session."""
