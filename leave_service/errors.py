"""
Error taxonomy for the leave service.

Business failures are raised where they are detected and travel unchanged up
to the HTTP layer, which maps ``status_code`` onto the response.
"""

from typing import Any


class LeaveServiceError(Exception):
    """Base class for failures the caller can act on."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": self.message}


class ValidationError(LeaveServiceError):
    """Malformed or rule-violating input. Fixed by correcting the input."""

    status_code = 400


class NotFoundError(LeaveServiceError):
    """A referenced employee or leave request does not exist."""

    status_code = 404


class ConflictError(LeaveServiceError):
    """
    State-dependent rule violation: duplicate email, overlapping dates,
    already-reviewed request.

    ``conflicts`` lists the records the caller collided with, if any.
    """

    status_code = 409

    def __init__(self, message: str, conflicts: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.conflicts = conflicts or []

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.conflicts:
            payload["data"] = {"conflicting_requests": self.conflicts}
        return payload


class InvalidTransitionError(ConflictError):
    """A review was attempted on a request that is no longer PENDING."""


class UnexpectedError(LeaveServiceError):
    """Store or infrastructure failure. Safe for the caller to retry."""

    status_code = 500


class StoreUnavailableError(UnexpectedError):
    """Raised when the store circuit breaker blocks a call."""
