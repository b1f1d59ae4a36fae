"""Application services orchestrating the availability store."""

from __future__ import annotations

from .booking import BookingOutcome, BookingService
from .context import ServiceContext
from .events import EventService

__all__ = ["BookingOutcome", "BookingService", "EventService", "ServiceContext"]
