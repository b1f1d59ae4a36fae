"""Calendar-date keys and time-of-day arithmetic.

Every lookup in the calendar is keyed by a ``YYYY-MM-DD`` string. Dates are
always built from their year/month/day components, never from timestamps, so
a key names the same day whatever the host timezone is.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Iterator

logger = logging.getLogger(__name__)

DATE_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
MINUTES_PER_DAY = 24 * 60


def is_date_key(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    match = DATE_KEY_PATTERN.match(value)
    if not match:
        return False
    year, month, day = (int(part) for part in match.groups())
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def format_date_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_local_date(value: Any) -> date:
    """Return the calendar day named by ``value``.

    Accepts a ``YYYY-MM-DD`` string, a ``date`` or a ``datetime`` (its own
    wall-clock date is used). Anything else falls back to today with a
    warning instead of raising.
    """

    if isinstance(value, datetime):
        return date(value.year, value.month, value.day)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        match = DATE_KEY_PATTERN.match(value.strip())
        if match:
            year, month, day = (int(part) for part in match.groups())
            try:
                return date(year, month, day)
            except ValueError:
                pass
    logger.warning("Invalid date value %r; falling back to today", value)
    return date.today()


def parse_date_key(value: Any) -> date:
    """Strict variant of :func:`parse_local_date` that raises ``ValueError``."""

    if isinstance(value, (date, datetime)):
        return parse_local_date(value)
    if not is_date_key(value):
        raise ValueError(f"Invalid date, expected YYYY-MM-DD: {value!r}")
    return parse_local_date(value)


def shift_key(key: str, days: int) -> str:
    return format_date_key(parse_date_key(key) + timedelta(days=days))


def iter_days(start: date, end: date) -> Iterator[date]:
    delta = (end - start).days
    for index in range(delta + 1):
        yield start + timedelta(days=index)


def iter_day_keys(start: Any, end: Any) -> Iterator[str]:
    for day in iter_days(parse_date_key(start), parse_date_key(end)):
        yield format_date_key(day)


def is_valid_time(value: Any) -> bool:
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def time_to_minutes(value: Any) -> int:
    # 0 doubles as the "unset" value for malformed input
    if not is_valid_time(value):
        return 0
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    clamped = max(0, min(int(minutes), MINUTES_PER_DAY - 1))
    return f"{clamped // 60:02d}:{clamped % 60:02d}"


__all__ = [
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
]
