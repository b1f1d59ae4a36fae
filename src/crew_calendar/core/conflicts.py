"""Date-range and time-window conflict checks against an availability store.

Blocked dates and full-day events occupy a whole day. Timed events occupy the
half-open interval ``[start, end)``, so an event ending at 10:00 and another
starting at 10:00 do not overlap.
"""

from __future__ import annotations

from typing import Any, List, Optional

from .dates import iter_day_keys, time_to_minutes
from .store import AvailabilityStore


def day_conflicts(store: AvailabilityStore, key: str, exclude_event_id: Optional[str] = None) -> bool:
    if store.is_blocked(key):
        return True
    return any(
        event.full_day and event.id != exclude_event_id
        for event in store.events_on(key)
    )


def find_date_conflicts(
    store: AvailabilityStore,
    start: Any,
    end: Any,
    exclude_event_id: Optional[str] = None,
) -> List[str]:
    return [key for key in iter_day_keys(start, end) if day_conflicts(store, key, exclude_event_id)]


def has_date_range_conflict(
    store: AvailabilityStore,
    start: Any,
    end: Any,
    exclude_event_id: Optional[str] = None,
) -> bool:
    return any(day_conflicts(store, key, exclude_event_id) for key in iter_day_keys(start, end))


def has_time_conflict(
    store: AvailabilityStore,
    date_key: str,
    start_time: str,
    end_time: str,
    exclude_event_id: Optional[str] = None,
) -> bool:
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    for event in store.events_on(date_key):
        if event.id == exclude_event_id:
            continue
        if event.full_day:
            return True
        if start < event.end_minutes and end > event.start_minutes:
            return True
    return False


__all__ = ["day_conflicts", "find_date_conflicts", "has_date_range_conflict", "has_time_conflict"]
