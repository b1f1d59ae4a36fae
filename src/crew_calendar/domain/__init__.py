"""Domain models for crew availability and bookings."""

from __future__ import annotations

from .enums import EventType
from .models import (
    BlockedEvent,
    BookedEvent,
    BookingSet,
    CalendarEvent,
    ClientData,
    EVENT_CLASSES,
    RegularEvent,
    event_from_record,
    new_booking_set_id,
    new_event_id,
)

__all__ = [
    "BlockedEvent",
    "BookedEvent",
    "BookingSet",
    "CalendarEvent",
    "ClientData",
    "EVENT_CLASSES",
    "EventType",
    "RegularEvent",
    "event_from_record",
    "new_booking_set_id",
    "new_event_id",
]
