"""
Error taxonomy for Smart Study Planner.

Every failure the core can report is a StudyPlannerError carrying a
human-readable message suitable for an alert. HTTP-level failures derive
from APIError and carry the status code when one was received.
"""

from typing import Optional


class StudyPlannerError(Exception):
    """Base class for all errors raised by the core."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# HTTP / API errors
# ---------------------------------------------------------------------------

class APIError(StudyPlannerError):
    """A request to a remote service failed."""

    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkError(APIError):
    """The request never produced an HTTP response (offline, DNS, timeout)."""

    default_message = "Network error"

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None) -> None:
        super().__init__(message or (str(cause) if cause else None))
        self.cause = cause


class BadRequest(APIError):
    default_message = "Bad request"


class Unauthorized(APIError):
    default_message = "Unauthorized"


class Forbidden(APIError):
    default_message = "Forbidden"


class NotFound(APIError):
    default_message = "Resource not found"


class ServerError(APIError):
    default_message = "Server error"


class UnexpectedStatus(APIError):
    default_message = "Unexpected error"


class EmptyResponse(APIError):
    default_message = "No data received"


class DecodeError(APIError):
    """The success body could not be parsed into the expected shape."""

    default_message = "Invalid response data"

    def __init__(self, message: Optional[str] = None, raw_body: str = "",
                 status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code)
        self.raw_body = raw_body


# ---------------------------------------------------------------------------
# Client-side errors
# ---------------------------------------------------------------------------

class ValidationError(StudyPlannerError):
    """Input rejected before any network call was made."""

    default_message = "Invalid input"


class AuthenticationInProgress(StudyPlannerError):
    """Another authentication transition is already in flight."""

    default_message = "Authentication already in progress"


class NoStoredCredentials(StudyPlannerError):
    default_message = "No stored credentials found"


class BiometricAuthFailed(StudyPlannerError):
    """Biometric approval was denied or is unavailable."""

    default_message = "Authentication failed"

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = self.message


class IdentityProviderError(StudyPlannerError):
    default_message = "Third-party sign-in failed"


class PersistenceError(StudyPlannerError):
    """A local store could not commit a mutation."""

    default_message = "Could not save changes"


# Status code -> error class. 5xx is handled as a range.
_STATUS_ERRORS = {
    400: BadRequest,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
}


def error_for_status(status_code: int) -> Optional[APIError]:
    """
    Map a non-success HTTP status to its error.

    Args:
        status_code: HTTP status code from the response.

    Returns:
        The error instance to raise, or None for 2xx codes.
    """
    if 200 <= status_code <= 299:
        return None
    error_cls = _STATUS_ERRORS.get(status_code)
    if error_cls is None:
        error_cls = ServerError if 500 <= status_code <= 599 else UnexpectedStatus
    return error_cls(status_code=status_code)
