from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class NotFoundError(DomainError):
    """Raised when a zone or attendance record does not exist."""

    code = "not_found"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "forbidden"


class AttendanceError(DomainError):
    """Base for rejected check-in/check-out transitions."""

    code = "attendance_error"


class OutsideAnyZone(AttendanceError):
    """The check-in point lies in no active zone."""

    code = "outside_any_zone"


class AlreadyCheckedIn(AttendanceError):
    """The worker already has an open, valid session."""

    code = "already_checked_in"

    def __init__(self, message: str, *, record_id: Optional[int] = None):
        super().__init__(message)
        self.record_id = record_id


class NotCheckedIn(AttendanceError):
    """The worker has no open, valid session to close."""

    code = "not_checked_in"


class ConcurrencyConflict(AttendanceError):
    """The atomic check-and-set lost a race. Callers may retry once."""

    code = "concurrency_conflict"
