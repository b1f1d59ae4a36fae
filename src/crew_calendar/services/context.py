from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config import AppSettings, get_settings
from ..core.store import AvailabilityStore
from ..providers import PersistenceProvider, build_providers
from .booking import BookingService
from .events import EventService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContext:
    """Aggregate root for services to share settings, providers and the store."""

    settings: AppSettings = field(default_factory=get_settings)
    provider: Optional[PersistenceProvider] = None
    fallback: Optional[PersistenceProvider] = None
    store: AvailabilityStore = field(init=False)
    bookings: BookingService = field(init=False)
    events: EventService = field(init=False)

    def __post_init__(self) -> None:
        if self.provider is None:
            self.provider, self.fallback = build_providers(self.settings)
        self.store = AvailabilityStore(
            self.provider,
            fallback=self.fallback,
            default_start=self.settings.calendar.default_start,
            default_end=self.settings.calendar.default_end,
        )
        self.bookings = BookingService(self.store)
        self.events = EventService(self.store)

    async def ensure_loaded(self) -> AvailabilityStore:
        if not self.store.loaded:
            report = await self.store.load()
            logger.info(
                "Calendar loaded from %s with %d repairs",
                self.provider.name,
                len(report.repairs),
            )
        return self.store

    async def aclose(self) -> None:
        for provider in (self.provider, self.fallback):
            closer = getattr(provider, "aclose", None)
            if closer is not None:
                await closer()
