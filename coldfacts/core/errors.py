"""Exception hierarchy for the extraction pipeline."""

from typing import Optional


class ColdFactsError(Exception):
    """Base class for every failure the pipeline reports to its caller."""


class TerminalError(ColdFactsError):
    """A failure that will not succeed on retry."""


class ConfigError(TerminalError):
    """Missing or unusable local configuration, detected before any backend call."""


class AuthError(TerminalError):
    """The backend rejected our credentials."""


class InvalidRequestError(TerminalError):
    """The backend rejected the request itself."""


class TransientBackendError(ColdFactsError):
    """Timeouts, rate limits and other plausibly temporary backend failures."""


class RetryCancelledError(ColdFactsError):
    """The caller stopped a retry sequence between attempts."""


class DecodeError(ColdFactsError):
    """No decoder stage could recover a document from the backend text."""

    def __init__(self, message: str = "Failed to parse response", excerpt: str = ""):
        super().__init__(message)
        self.excerpt = excerpt


class ShapeError(ColdFactsError):
    """A decoded document does not have the expected structure."""

    def __init__(self, message: str, index: Optional[int] = None, field: Optional[str] = None):
        super().__init__(message)
        self.index = index
        self.field = field
