"""
Exception taxonomy for the auto-organize workflow.

Partial move failures are not exceptions: they are reported through
MoveExecutionResult.errors.
"""
from typing import Optional


class OrganizeError(Exception):
    """Base class for all organize errors."""


class ValidationError(OrganizeError):
    """Pre-flight check failed (no folder, empty folder, too many files)."""


class AuthError(OrganizeError):
    """No usable access token."""


class UnauthorizedError(AuthError):
    """The service rejected the access token (HTTP 401)."""


class TransportError(OrganizeError):
    """The remote call could not complete."""


class ServiceError(OrganizeError):
    """The service answered with a non-success status or an unreadable body."""

    def __init__(self, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        message = f"API error: {status_code}"
        if detail:
            message = f"{message} - {detail}"
        super().__init__(message)


class StateError(OrganizeError):
    """Operation is not allowed in the current session step."""
