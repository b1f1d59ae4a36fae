from __future__ import annotations

from typing import Iterable


class CalendarError(Exception):
    """Base class for recoverable calendar failures."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ValidationError(CalendarError, ValueError):
    """Raised when input is rejected before any mutation happens."""


class BookingValidationError(ValidationError):
    pass


class EventValidationError(ValidationError):
    pass


class ConflictError(CalendarError):
    """Raised when a requested slot overlaps a blocked date or existing event."""


class DateConflictError(ConflictError):
    def __init__(self, reason: str, dates: Iterable[str] = ()) -> None:
        super().__init__(reason)
        self.dates = list(dates)


class TimeConflictError(ConflictError):
    pass


class PersistenceError(CalendarError):
    """Raised by persistence providers when the backing store is unreachable."""


__all__ = [
    "BookingValidationError",
    "CalendarError",
    "ConflictError",
    "DateConflictError",
    "EventValidationError",
    "PersistenceError",
    "TimeConflictError",
    "ValidationError",
]
