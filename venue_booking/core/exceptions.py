"""
Application error taxonomy.

Services raise these; api/errors.py renders them as the standard
{"success": false, "message": ..., "errors": [...]} envelope.
"""

from typing import Optional


class BookingAPIError(Exception):
    """Base class for all errors that map to a client-visible response."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[list[dict]] = None) -> None:
        self.message = message
        self.errors = errors
        super().__init__(message)


class ValidationError(BookingAPIError):
    """Malformed or missing input. `errors` carries field-level detail."""

    status_code = 422

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class NotFoundError(BookingAPIError):
    status_code = 404


class AuthorizationError(BookingAPIError):
    status_code = 403


class ConflictError(BookingAPIError):
    """Illegal state transition, capacity exhausted, or active references."""

    status_code = 409


class DependencyError(BookingAPIError):
    """Store or downstream service unavailable."""

    status_code = 503
