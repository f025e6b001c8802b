"""
Error taxonomy for tracking lookups.

RequestValidationError is the only error that reaches the caller. Fetch
errors are recovered by advancing the fallback chain, and exhaustion or the
global timeout are recovered by substituting synthetic data.
"""

from enum import Enum
from typing import Optional


class TrackingError(Exception):
    """Base class for tracking engine errors."""


class RequestValidationError(TrackingError):
    """Malformed request or unsupported carrier."""


class FetchErrorKind(str, Enum):
    """Why a single source attempt failed."""
    UNAVAILABLE = "unavailable"
    NO_DATA = "no_data"
    TIMEOUT = "timeout"


class FetchError(TrackingError):
    """A single source adapter failed."""

    kind: FetchErrorKind = FetchErrorKind.UNAVAILABLE

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class SourceUnavailable(FetchError):
    """Transport failure, non-success response or unparseable payload."""
    kind = FetchErrorKind.UNAVAILABLE


class NoTrackingData(FetchError):
    """The source has no record of the tracking number."""
    kind = FetchErrorKind.NO_DATA


class EmptyTimelineError(NoTrackingData):
    """A source answered but yielded zero parseable events."""


class FetchTimeout(FetchError):
    """The source did not answer within its slice of the budget."""
    kind = FetchErrorKind.TIMEOUT


class ExhaustionError(TrackingError):
    """Every real source in the chain failed."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.last_error = last_error


class GlobalTimeout(ExhaustionError):
    """The request deadline elapsed before any source succeeded."""


UNSUPPORTED_MESSAGE = (
    "Real-time tracking is not supported for this carrier yet. "
    "Showing estimated progress instead."
)
NO_DATA_MESSAGE = (
    "No tracking information was found for this tracking number. "
    "Check the number and carrier, or try again later if the parcel was registered recently."
)
TIMEOUT_MESSAGE = (
    "Carrier lookup hit the timeout before any tracking source responded. "
    "Please try again later."
)
UNAVAILABLE_MESSAGE = (
    "An error occurred while retrieving tracking information from the carrier. "
    "Try again later or check the carrier's own site."
)


def describe_failure(error: Optional[BaseException]) -> str:
    """Human-readable explanation attached to degraded results."""
    if isinstance(error, GlobalTimeout):
        return TIMEOUT_MESSAGE
    if isinstance(error, ExhaustionError):
        return describe_failure(error.last_error)
    if isinstance(error, FetchError):
        if error.kind == FetchErrorKind.NO_DATA:
            return NO_DATA_MESSAGE
        if error.kind == FetchErrorKind.TIMEOUT:
            return TIMEOUT_MESSAGE
    return UNAVAILABLE_MESSAGE
