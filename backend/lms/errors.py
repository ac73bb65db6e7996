"""Application error taxonomy.

Services raise these; ``lms.main`` renders them as JSON with the matching
HTTP status. ``redirect_to`` names the page a browser client should be sent
to (sign-in, pending or rejected page) when the failure is about access
rather than data.
"""
from typing import Optional


class LMSError(Exception):
    """Base exception for all classroom errors."""

    status_code = 500

    def __init__(self, message: str, redirect_to: Optional[str] = None):
        self.message = message
        self.redirect_to = redirect_to
        super().__init__(message)


class Unauthenticated(LMSError):
    """No caller identity."""

    status_code = 401


class Forbidden(LMSError):
    """Role, ownership or membership-status mismatch."""

    status_code = 403


class NotFound(LMSError):
    """Missing server, member, assessment or result."""

    status_code = 404


class InvalidInput(LMSError):
    """Missing or malformed required fields."""

    status_code = 400


class Conflict(LMSError):
    """Duplicate creation or a transition not allowed from the current state."""

    status_code = 409


class InternalFailure(LMSError):
    """Storage or unexpected failure; the message never carries internals."""

    status_code = 500


class GradingUnavailable(LMSError):
    """AI grader not configured or not reachable."""

    status_code = 503
