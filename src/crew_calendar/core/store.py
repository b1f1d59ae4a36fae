from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from ..domain import BookedEvent, BookingSet, CalendarEvent, event_from_record
from ..providers.base import PersistenceProvider
from .errors import CalendarError
from .integrity import DEFAULT_END_TIME, DEFAULT_START_TIME, SweepReport, sweep

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[["AvailabilityStore"], None]


@dataclass(frozen=True)
class MutationResult(Generic[T]):
    value: T
    persisted: bool


class AvailabilityStore:
    """Single source of truth for blocked dates and calendar events.

    State is loaded wholesale from a persistence provider and flushed
    wholesale after every mutation. Mutations run through :meth:`mutate`,
    which holds the store lock for the check-then-write callback and the
    following save, so two operations never interleave.
    """

    def __init__(
        self,
        provider: PersistenceProvider,
        *,
        fallback: Optional[PersistenceProvider] = None,
        default_start: str = DEFAULT_START_TIME,
        default_end: str = DEFAULT_END_TIME,
    ) -> None:
        self._provider = provider
        self._fallback = fallback
        self._default_start = default_start
        self._default_end = default_end
        self._lock = asyncio.Lock()
        self._listeners: List[Listener] = []
        self._dirty = False
        self.blocked_dates: Dict[str, str] = {}
        self.events: Dict[str, List[CalendarEvent]] = {}
        self._by_id: Dict[str, CalendarEvent] = {}
        self._filed_on: Dict[str, str] = {}
        self._booking_sets: Dict[str, BookingSet] = {}
        self.loaded = False
        self.unsaved = False

    @property
    def provider(self) -> PersistenceProvider:
        return self._provider

    # Persistence -------------------------------------------------------------

    async def load(self) -> SweepReport:
        async with self._lock:
            raw = await self._fetch()
            report = self._sweep(raw)
            self._hydrate(report.data)
            self.loaded = True
            if report.repaired:
                logger.info("Persisting %d integrity repairs", len(report.repairs))
                await self._write()
            self._notify()
            return report

    async def save(self) -> bool:
        async with self._lock:
            return await self._write()

    async def apply_external_update(self, data: Any) -> SweepReport:
        """Replace in-memory state with a document pulled from another session."""

        async with self._lock:
            report = self._sweep(data)
            self._hydrate(report.data)
            self._dirty = False
            self._notify()
            return report

    async def mutate(self, callback: Callable[["AvailabilityStore"], T]) -> MutationResult[T]:
        async with self._lock:
            self._dirty = False
            snapshot = self.to_payload()
            try:
                result = callback(self)
            except Exception:
                if self._dirty:
                    logger.warning("Mutation failed part way; restoring previous calendar state")
                    self._hydrate(snapshot)
                    self._dirty = False
                raise
            persisted = True
            if self._dirty:
                persisted = await self._write()
                self._notify()
            return MutationResult(value=result, persisted=persisted)

    async def _fetch(self) -> Any:
        try:
            data = await self._provider.load_calendar_data()
        except Exception:  # noqa: BLE001
            logger.exception("Loading calendar data from %s failed", self._provider.name)
        else:
            if data is not None or self._fallback is None:
                return data
        if self._fallback is None:
            return None
        try:
            data = await self._fallback.load_calendar_data()
            logger.info("Calendar data loaded from fallback %s", self._fallback.name)
            return data
        except Exception:  # noqa: BLE001
            logger.exception("Loading calendar data from fallback %s failed", self._fallback.name)
        return None

    async def _write(self) -> bool:
        payload = self.to_payload()
        saved = False
        try:
            saved = bool(await self._provider.save_calendar_data(payload))
        except Exception:  # noqa: BLE001
            logger.exception("Saving calendar data to %s failed", self._provider.name)
        if saved:
            self._dirty = False
            self.unsaved = False
            return True
        if self._fallback is not None:
            logger.warning("Writing calendar data to fallback %s", self._fallback.name)
            try:
                saved = bool(await self._fallback.save_calendar_data(payload))
            except Exception:  # noqa: BLE001
                logger.exception("Saving calendar data to fallback %s failed", self._fallback.name)
        if saved:
            self._dirty = False
            self.unsaved = False
        else:
            self.unsaved = True
            logger.error("Calendar data could not be saved; in-memory state is unsaved")
        return saved

    def _sweep(self, raw: Any) -> SweepReport:
        return sweep(raw, default_start=self._default_start, default_end=self._default_end)

    def _hydrate(self, data: Dict[str, Any]) -> None:
        self.blocked_dates = dict(data.get("blockedDates", {}))
        self.events = {}
        self._by_id = {}
        self._filed_on = {}
        self._booking_sets = {}
        for key, records in data.get("events", {}).items():
            for record in records:
                try:
                    event = event_from_record(record)
                except CalendarError as exc:
                    logger.warning("Skipping unreadable event on %s: %s", key, exc.reason)
                    continue
                self._index(event)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "blockedDates": {key: self.blocked_dates[key] for key in sorted(self.blocked_dates)},
            "events": {
                key: [event.to_record() for event in self.events[key]]
                for key in sorted(self.events)
            },
            "lastUpdated": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
        }

    # Change notifications ----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:  # noqa: BLE001
                logger.exception("Availability listener %r failed", listener)

    # Reads -------------------------------------------------------------------

    def events_on(self, key: str) -> List[CalendarEvent]:
        return list(self.events.get(key, []))

    def find_event(self, event_id: str) -> Optional[CalendarEvent]:
        return self._by_id.get(event_id)

    def is_blocked(self, key: str) -> bool:
        return key in self.blocked_dates

    def booking_set(self, booking_set_id: str) -> Optional[BookingSet]:
        return self._booking_sets.get(booking_set_id)

    def booking_sets(self) -> List[BookingSet]:
        return sorted(self._booking_sets.values(), key=lambda item: item.start_date or "")

    def all_events(self) -> Iterable[CalendarEvent]:
        for key in sorted(self.events):
            yield from self.events[key]

    # Mutation primitives, called from inside ``mutate`` callbacks -------------

    def add_event(self, event: CalendarEvent) -> None:
        if event.id in self._by_id:
            raise ValueError(f"Event {event.id} is already stored.")
        self._index(event)
        self._dirty = True

    def remove_event(self, event_id: str) -> Optional[CalendarEvent]:
        event = self._by_id.pop(event_id, None)
        if event is None:
            return None
        key = self._filed_on.pop(event_id, event.date)
        bucket = [item for item in self.events.get(key, []) if item.id != event_id]
        if bucket:
            self.events[key] = bucket
        else:
            self.events.pop(key, None)
        if isinstance(event, BookedEvent) and event.booking_set_id:
            booking = self._booking_sets.get(event.booking_set_id)
            if booking is not None:
                booking.remove(event_id)
                if not booking.events:
                    del self._booking_sets[event.booking_set_id]
        self._dirty = True
        return event

    def set_blocked(self, key: str, reason: str) -> None:
        self.blocked_dates[key] = reason
        self._dirty = True

    def clear_blocked(self, key: str) -> bool:
        if key not in self.blocked_dates:
            return False
        del self.blocked_dates[key]
        self._dirty = True
        return True

    def touch(self) -> None:
        self._dirty = True

    def _index(self, event: CalendarEvent) -> None:
        self.events.setdefault(event.date, []).append(event)
        self._by_id[event.id] = event
        self._filed_on[event.id] = event.date
        if isinstance(event, BookedEvent) and event.booking_set_id:
            booking = self._booking_sets.setdefault(event.booking_set_id, BookingSet(event.booking_set_id))
            booking.add(event)


__all__ = ["AvailabilityStore", "MutationResult"]
