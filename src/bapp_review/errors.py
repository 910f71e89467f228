"""Error taxonomy shared by the sheet and portal clients."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ReviewError(Exception):
    """Base error for review pipeline failures."""

    message: str
    code: str = "review_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class AuthFailedError(ReviewError):
    """Portal login was rejected; the previous token is still in place."""

    code: str = "auth_failed"


@dataclass(slots=True)
class NoSessionError(ReviewError):
    """No session token was ever obtained."""

    code: str = "no_session"


@dataclass(slots=True)
class SourceUnavailableError(ReviewError):
    """The spreadsheet could not be read or written."""

    code: str = "source_unavailable"


@dataclass(slots=True)
class TransientError(ReviewError):
    """Retryable network, timeout or HTTP status failure for one call."""

    code: str = "transient"
    status_code: int | None = None


@dataclass(slots=True)
class PortalRequestError(ReviewError):
    """The portal answered a lookup or detail request with a non-2xx status."""

    code: str = "portal_request"
    status_code: int | None = None


@dataclass(slots=True)
class DecisionRejectedError(ReviewError):
    """The portal refused a submitted decision."""

    code: str = "decision_rejected"
    status_code: int | None = None
    raw_body: str = ""


def describe_error(error: ReviewError) -> str:
    """Map a pipeline error to a message suitable for the reviewer."""

    if isinstance(error, NoSessionError):
        return "Not logged in to the approval portal. Please log in again."
    if isinstance(error, AuthFailedError):
        return f"Session renewal failed, continuing with the previous session: {error.message}"
    if isinstance(error, SourceUnavailableError):
        return f"Spreadsheet unavailable: {error.message}"
    if isinstance(error, TransientError):
        return f"Network problem, try again: {error.message}"
    if isinstance(error, PortalRequestError):
        return f"Portal refused the request, the session may have expired: {error.message}"
    if isinstance(error, DecisionRejectedError):
        return f"Decision was not accepted by the portal: {error.message}"
    return error.message
