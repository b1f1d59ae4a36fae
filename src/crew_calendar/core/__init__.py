"""Core calendar primitives: dates, errors and application paths."""

from .config import (
    APP_NAME,
    AVAILABILITY_FILE,
    DATA_DIR,
    FALLBACK_FILE,
)
from .dates import (
    format_date_key,
    is_date_key,
    is_valid_time,
    iter_day_keys,
    iter_days,
    minutes_to_time,
    parse_date_key,
    parse_local_date,
    shift_key,
    time_to_minutes,
)
from .errors import (
    BookingValidationError,
    CalendarError,
    ConflictError,
    DateConflictError,
    EventValidationError,
    PersistenceError,
    TimeConflictError,
    ValidationError,
)

__all__ = [
    "APP_NAME",
    "AVAILABILITY_FILE",
    "DATA_DIR",
    "FALLBACK_FILE",
    "format_date_key",
    "is_date_key",
    "is_valid_time",
    "iter_day_keys",
    "iter_days",
    "minutes_to_time",
    "parse_date_key",
    "parse_local_date",
    "shift_key",
    "time_to_minutes",
    "BookingValidationError",
    "CalendarError",
    "ConflictError",
    "DateConflictError",
    "EventValidationError",
    "PersistenceError",
    "TimeConflictError",
    "ValidationError",
]
