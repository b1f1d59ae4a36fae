from __future__ import annotations

from enum import Enum


class EventType(str, Enum):
    REGULAR = "regular"
    BOOKED = "booked"
    BLOCKED = "blocked"
