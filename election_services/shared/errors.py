"""
Typed failure outcomes for the election voting system.

Every failure the Vote Service can report is a subclass of VotingError.
The class carries the HTTP status code and the error name used on the
wire, so the API can render it and the client can rebuild it.
"""

from typing import Any, Dict, Optional, Type


class VotingError(Exception):
    """Base class for all vote service failures."""

    status_code: int = 500
    retryable: bool = False
    default_message = "Internal server error"

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details

    @property
    def error(self) -> str:
        """Error name sent to clients."""
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the error response body."""
        return {
            "error": self.error,
            "message": self.message,
            "details": self.details,
        }


class Unauthorized(VotingError):
    """Missing, invalid or expired bearer token."""
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(VotingError):
    """Authenticated caller lacks the required role."""
    status_code = 403
    default_message = "Administrator role required"


class NotFound(VotingError):
    """Unknown election."""
    status_code = 404
    default_message = "Election not found"


class InvalidCandidate(VotingError):
    """Candidate name is not part of the election."""
    status_code = 400
    default_message = "Candidate is not part of this election"


class DuplicateVote(VotingError):
    """Voter already has a Vote Record for this election."""
    status_code = 400
    default_message = "You have already voted in this election"


class ElectionClosed(VotingError):
    """Election no longer accepts votes."""
    status_code = 409
    default_message = "Voting is closed for this election"


class TransientStoreFailure(VotingError):
    """Underlying store unavailable. Safe to retry."""
    status_code = 503
    retryable = True
    default_message = "Election store temporarily unavailable"


ERROR_TYPES: Dict[str, Type[VotingError]] = {
    cls.__name__: cls
    for cls in (
        VotingError,
        Unauthorized,
        Forbidden,
        NotFound,
        InvalidCandidate,
        DuplicateVote,
        ElectionClosed,
        TransientStoreFailure,
    )
}


def error_from_response(status_code: int, body: Optional[Dict[str, Any]]) -> VotingError:
    """
    Rebuild a typed error from an API error response.

    Args:
        status_code: HTTP status code of the response
        body: Decoded JSON body, if any

    Returns:
        VotingError: Instance of the matching subclass
    """
    body = body if isinstance(body, dict) else {}
    error_cls = ERROR_TYPES.get(body.get("error", ""))

    if error_cls is None:
        # Fall back on the status code (e.g. 401 raised by the framework)
        error_cls = next(
            (cls for cls in ERROR_TYPES.values()
             if cls is not VotingError and cls.status_code == status_code),
            VotingError
        )

    message = body.get("message") or body.get("detail") or ""
    if not isinstance(message, str):
        message = str(message)
    details = body.get("details") if isinstance(body.get("details"), dict) else {}
    return error_cls(message, **details)
