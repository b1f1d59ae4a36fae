from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from ..core.config import DEFAULT_BLOCK_REASON, MAX_TRAVEL_DAYS, TRAVEL_LABEL
from ..core.conflicts import day_conflicts, find_date_conflicts
from ..core.dates import format_date_key, iter_day_keys, parse_date_key, parse_local_date, shift_key
from ..core.errors import BookingValidationError, DateConflictError
from ..core.store import AvailabilityStore
from ..domain import BlockedEvent, BookedEvent, BookingSet, ClientData, new_booking_set_id

logger = logging.getLogger(__name__)

ClientInput = Union[ClientData, Dict[str, Any]]


@dataclass(slots=True)
class BookingOutcome:
    booking: BookingSet
    skipped_travel_dates: List[str] = field(default_factory=list)
    persisted: bool = True

    @property
    def booking_set_id(self) -> str:
        return self.booking.booking_set_id


def _coerce_client(client_data: ClientInput) -> ClientData:
    if isinstance(client_data, ClientData):
        return client_data.copy()
    if isinstance(client_data, dict):
        return ClientData.from_record(client_data)
    raise BookingValidationError("Client data must be a mapping of booking details.")


def _validated_range(start: Any, end: Any) -> Tuple[str, str]:
    try:
        start_key = format_date_key(parse_date_key(start))
        end_key = format_date_key(parse_date_key(end))
    except ValueError as exc:
        raise BookingValidationError(str(exc)) from exc
    if start_key > end_key:
        raise BookingValidationError("Start date must be on or before end date.")
    return start_key, end_key


class BookingService:
    """Books multi-day client engagements and manual blocks on the store.

    A booking runs in stages: validate the request, check the primary dates
    for conflicts, create one full-day booked event per day, add any travel
    days that are still free, then persist and notify through the store.
    Conflicts on a primary date reject the whole request; conflicting travel
    days are skipped.
    """

    def __init__(self, store: AvailabilityStore) -> None:
        self.store = store

    async def book_date_range(self, start: Any, end: Any, client_data: ClientInput) -> BookingOutcome:
        client = _coerce_client(client_data)
        if not client.client_name:
            raise BookingValidationError("Client name is required.")
        if client.travel_days > MAX_TRAVEL_DAYS:
            raise BookingValidationError(f"At most {MAX_TRAVEL_DAYS} travel days can be added on each side.")
        start_key, end_key = _validated_range(start, end)

        def _book(store: AvailabilityStore) -> Tuple[str, List[str]]:
            conflicts = find_date_conflicts(store, start_key, end_key)
            if conflicts:
                raise DateConflictError(
                    f"Dates are already booked or blocked: {', '.join(conflicts)}",
                    dates=conflicts,
                )
            booking_set_id = new_booking_set_id()
            base = client.copy(
                booking_set_id=booking_set_id,
                project_start_date=start_key,
                project_end_date=end_key,
                is_travel=False,
                travel_label=None,
            )
            for key in iter_day_keys(start_key, end_key):
                store.add_event(_booked_event(key, base.copy()))

            skipped: List[str] = []
            for offset in range(1, base.travel_days + 1):
                for key in (shift_key(start_key, -offset), shift_key(end_key, offset)):
                    if day_conflicts(store, key):
                        logger.warning("Skipping travel day %s for %s: date unavailable", key, base.client_name)
                        skipped.append(key)
                        continue
                    store.add_event(_booked_event(key, base.copy(is_travel=True, travel_label=TRAVEL_LABEL)))
            return booking_set_id, sorted(skipped)

        result = await self.store.mutate(_book)
        booking_set_id, skipped = result.value
        booking = self.store.booking_set(booking_set_id)
        logger.info(
            "Booked %s from %s to %s (%d events)",
            client.client_name,
            start_key,
            end_key,
            len(booking) if booking else 0,
        )
        return BookingOutcome(booking=booking, skipped_travel_dates=skipped, persisted=result.persisted)

    async def cancel_booking_set(self, booking_set_id: str) -> bool:
        def _cancel(store: AvailabilityStore) -> bool:
            booking = store.booking_set(booking_set_id)
            if booking is None:
                return False
            for event in list(booking.events):
                store.remove_event(event.id)
            return True

        result = await self.store.mutate(_cancel)
        if result.value:
            logger.info("Cancelled booking set %s", booking_set_id)
        return result.value

    async def set_booking_set_paid(self, booking_set_id: str, paid: bool) -> bool:
        def _mark(store: AvailabilityStore) -> bool:
            booking = store.booking_set(booking_set_id)
            if booking is None:
                return False
            for event in booking.events:
                event.client.deposit_paid = bool(paid)
            store.touch()
            return True

        result = await self.store.mutate(_mark)
        return result.value

    async def block_date_range(self, start: Any, end: Any, reason: str = "") -> List[str]:
        """Mark every day in ``[start, end]`` unavailable and return the keys."""

        start_key, end_key = _validated_range(start, end)
        label = reason.strip() or DEFAULT_BLOCK_REASON

        def _block(store: AvailabilityStore) -> List[str]:
            keys = list(iter_day_keys(start_key, end_key))
            for key in keys:
                store.set_blocked(key, label)
            return keys

        result = await self.store.mutate(_block)
        logger.info("Blocked %d dates from %s to %s", len(result.value), start_key, end_key)
        return result.value

    async def unblock_date(self, key: Any) -> bool:
        try:
            date_key = format_date_key(parse_date_key(key))
        except ValueError as exc:
            raise BookingValidationError(str(exc)) from exc

        def _unblock(store: AvailabilityStore) -> bool:
            removed = store.clear_blocked(date_key)
            for event in store.events_on(date_key):
                if isinstance(event, BlockedEvent) and event.full_day:
                    store.remove_event(event.id)
                    removed = True
            return removed

        result = await self.store.mutate(_unblock)
        return result.value

    def upcoming_bookings(self, today: Optional[Any] = None) -> List[BookingSet]:
        cutoff = format_date_key(parse_local_date(today) if today is not None else date.today())
        upcoming = [
            booking
            for booking in self.store.booking_sets()
            if any(key >= cutoff for key in booking.dates)
        ]
        return sorted(upcoming, key=lambda booking: booking.start_date or "")


def _booked_event(key: str, client: ClientData) -> BookedEvent:
    return BookedEvent(
        date=key,
        title=client.client_name,
        description=client.project_name,
        full_day=True,
        client=client,
    )


__all__ = ["BookingOutcome", "BookingService"]
