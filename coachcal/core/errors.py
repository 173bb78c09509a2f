# coachcal/core/errors.py
from __future__ import annotations


class SchedulingError(Exception):
    """
    Base class for every typed outcome the booking core hands back to its caller.

    `code` is a short snake_case identifier the HTTP layer uses as `detail`.
    """

    code = "scheduling_error"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        if code:
            self.code = code
        super().__init__(message or self.code)


class ValidationError(SchedulingError):
    """
    Malformed input at the boundary (bad rule times, non-positive duration, ...).
    """

    code = "invalid_request"


class OutsideBookingWindow(ValidationError):
    """Requested start is before the notice window or beyond the advance window."""

    code = "outside_booking_window"


class Conflict(SchedulingError):
    """
    Expected, retryable outcome: slot already taken or illegal status transition.
    """

    code = "conflict"


class SlotTaken(Conflict):
    code = "slot_taken"


class InvalidTransition(Conflict):
    code = "invalid_transition"


class NotFound(SchedulingError):
    """
    Referenced object does not exist or is not visible to the requester.
    """

    code = "not_found"


class CalendarNotFound(NotFound):
    code = "calendar_not_found"


class RuleNotFound(NotFound):
    code = "rule_not_found"


class BlockedTimeNotFound(NotFound):
    code = "blocked_time_not_found"


class AppointmentNotFound(NotFound):
    code = "appointment_not_found"


class Unavailable(SchedulingError):
    """
    Persistence or identity collaborator failure. Transient, caller retries.
    """

    code = "service_unavailable"


__all__ = [
    "SchedulingError",
    "ValidationError",
    "OutsideBookingWindow",
    "Conflict",
    "SlotTaken",
    "InvalidTransition",
    "NotFound",
    "CalendarNotFound",
    "RuleNotFound",
    "BlockedTimeNotFound",
    "AppointmentNotFound",
    "Unavailable",
]
