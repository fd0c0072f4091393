"""
Scheduling error taxonomy.

Every failure the engine reports to a caller is a SchedulingError subclass
with a stable error_code. None of them are fatal to the process; the API
layer maps them to HTTP responses in a single exception handler.
"""

from typing import Any


class SchedulingError(Exception):
    """Base class for all recoverable per-request scheduling failures."""

    error_code = "SCHEDULING_ERROR"
    retryable = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidServiceError(SchedulingError):
    """Unknown or inactive service id."""

    error_code = "INVALID_SERVICE"


class InvalidStylistError(SchedulingError):
    """Unknown or inactive stylist."""

    error_code = "INVALID_STYLIST"


class InvalidTimeError(SchedulingError):
    """Malformed date/time, non-positive duration, or a booking that crosses midnight."""

    error_code = "INVALID_TIME"


class SlotUnavailableError(SchedulingError):
    """
    Requested interval is outside the working window or overlaps a reservation.

    Also raised when a concurrent booking won the race at commit time; the
    caller may retry with another slot.
    """

    error_code = "SLOT_UNAVAILABLE"
    retryable = True


class InvalidTransitionError(SchedulingError):
    """Illegal reservation status change."""

    error_code = "INVALID_TRANSITION"


class AccessDeniedError(SchedulingError):
    """Non-owner, non-admin attempting to view or mutate a reservation."""

    error_code = "ACCESS_DENIED"


class NotFoundError(SchedulingError):
    """Reservation, stylist or service absent."""

    error_code = "NOT_FOUND"


class ScheduleConflictError(SchedulingError):
    """A stylist already has an active window for that weekday."""

    error_code = "SCHEDULE_CONFLICT"
