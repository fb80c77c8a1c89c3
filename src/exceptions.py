"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenException(AppException):
    code = "FORBIDDEN"
    status_code = 403


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ValidationException(AppException):
    """Field- or row-level problem the caller can correct and resubmit."""

    code = "VALIDATION_ERROR"
    status_code = 422


class InvalidTransitionException(AppException):
    """State change not permitted from the current status."""

    code = "INVALID_TRANSITION"
    status_code = 409


class AllocationRejectedException(ValidationException):
    """A confirmation batch failed allocation checks; nothing was written.

    ``details`` holds one entry per problem (unknown article, invalid field,
    over-allocated article) so the caller can fix each row.
    """

    code = "ALLOCATION_REJECTED"


class PersistenceException(AppException):
    """The atomic write failed; the transaction was rolled back in full."""

    code = "PERSISTENCE_FAILURE"
    status_code = 503


class NotificationException(AppException):
    """Outbound notification could not be delivered. Never fatal to the caller."""

    code = "NOTIFICATION_FAILURE"
    status_code = 502
