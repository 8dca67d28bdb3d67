"""Error taxonomy for the extraction pipeline."""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for every failure surfaced by the pipeline."""


class ConfigurationError(ExtractionError, ValueError):
    """Credential missing or malformed, or a configuration value is invalid."""


class UnsupportedInputError(ExtractionError):
    """Input MIME type outside the accepted set, or no input at all."""


class BackendError(ExtractionError):
    """The inference backend could not produce a reply."""


class BackendUnavailableError(BackendError):
    """Every model in the fallback chain reported itself unavailable."""


class BackendFault(BackendError):
    """Auth, rate-limit, request or network failure. Never retried."""


class ParseError(ExtractionError):
    """The backend reply could not be decoded as a JSON object."""

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class ExtractionTimeoutError(ExtractionError):
    """The overall extraction call exceeded its wall-clock budget."""


NOT_CONFIGURED_MESSAGE = "Receipt scanning is not configured. Please contact support."
GENERIC_FAILURE_MESSAGE = "Failed to extract receipt data. Please try again."


def user_message(error: ExtractionError) -> str:
    """Map a pipeline error to the message shown to the end user.

    Configuration problems and bad input get specific messages; everything
    else collapses into a generic retry prompt.
    """
    if isinstance(error, ConfigurationError):
        return NOT_CONFIGURED_MESSAGE
    if isinstance(error, UnsupportedInputError):
        return str(error)
    return GENERIC_FAILURE_MESSAGE
