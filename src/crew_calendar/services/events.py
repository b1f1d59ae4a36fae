from __future__ import annotations

import logging
from typing import List, Optional

from ..core.conflicts import has_time_conflict
from ..core.errors import DateConflictError, EventValidationError, TimeConflictError
from ..core.store import AvailabilityStore, MutationResult
from ..domain import BlockedEvent, CalendarEvent, EVENT_CLASSES

logger = logging.getLogger(__name__)


def _registers_block(event: Optional[CalendarEvent]) -> bool:
    return isinstance(event, BlockedEvent) and event.full_day


class EventService:
    """Create, move and delete individual calendar events."""

    def __init__(self, store: AvailabilityStore) -> None:
        self.store = store

    def get(self, event_id: str) -> Optional[CalendarEvent]:
        event = self.store.find_event(event_id)
        return event.clone() if event is not None else None

    def events_for_date(self, key: str) -> List[CalendarEvent]:
        return sorted(
            (event.clone() for event in self.store.events_on(key)),
            key=lambda event: (not event.full_day, event.start_minutes, event.title),
        )

    async def create_or_update(self, event: CalendarEvent) -> MutationResult[CalendarEvent]:
        if not isinstance(event, tuple(EVENT_CLASSES.values())):
            raise EventValidationError(f"Unsupported event object {type(event).__name__}.")
        # the store keeps its own copy so later edits to ``event`` go through here again
        event = event.clone()

        def _save(store: AvailabilityStore) -> CalendarEvent:
            existing = store.find_event(event.id)
            _check_slot(store, event, existing)
            if existing is not None:
                store.remove_event(existing.id)
                if _registers_block(existing) and not (
                    _registers_block(event) and event.date == existing.date
                ):
                    store.clear_blocked(existing.date)
            store.add_event(event)
            if _registers_block(event):
                store.set_blocked(event.date, event.reason)
            return event

        result = await self.store.mutate(_save)
        logger.info("Saved %s event %s on %s", event.type.value, event.id, event.date)
        return result

    async def delete(self, event_id: str) -> bool:
        def _delete(store: AvailabilityStore) -> bool:
            event = store.remove_event(event_id)
            if event is None:
                return False
            if _registers_block(event):
                store.clear_blocked(event.date)
            return True

        result = await self.store.mutate(_delete)
        if not result.value:
            logger.debug("Delete requested for unknown event %s", event_id)
        return result.value


def _check_slot(store: AvailabilityStore, event: CalendarEvent, existing: Optional[CalendarEvent]) -> None:
    owns_block = _registers_block(existing) and existing.date == event.date
    if store.is_blocked(event.date) and not isinstance(event, BlockedEvent) and not owns_block:
        raise DateConflictError(f"{event.date} is blocked: {store.blocked_dates[event.date]}", dates=[event.date])
    if event.full_day:
        others = [item for item in store.events_on(event.date) if item.id != event.id]
        if others:
            raise DateConflictError(
                f"{event.date} already has {len(others)} event(s); a full-day event needs a free day.",
                dates=[event.date],
            )
        return
    if has_time_conflict(store, event.date, event.start_time, event.end_time, exclude_event_id=event.id):
        raise TimeConflictError(f"{event.start_time}-{event.end_time} on {event.date} overlaps another event.")


__all__ = ["EventService"]
