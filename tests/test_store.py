from __future__ import annotations

import asyncio

import orjson
import pytest

from conftest import FailingProvider, InMemoryProvider
from crew_calendar.core.errors import DateConflictError
from crew_calendar.core.store import AvailabilityStore
from crew_calendar.services import BookingService

STORED = {
    "blockedDates": {"2025-06-01": "Holiday"},
    "events": {
        "2025-06-10": [
            {
                "id": "evt_1",
                "date": "2025-06-10",
                "title": "Acme",
                "description": "Launch",
                "type": "booked",
                "fullDay": True,
                "clientData": {"clientName": "Acme", "bookingSetId": "bks_1", "depositPaid": False},
            }
        ]
    },
}


@pytest.mark.asyncio
async def test_load_hydrates_store_and_notifies():
    store = AvailabilityStore(InMemoryProvider(STORED))
    seen = []
    store.subscribe(lambda current: seen.append(sorted(current.events)))

    report = await store.load()

    assert report.repairs == []
    assert store.loaded is True
    assert store.is_blocked("2025-06-01")
    assert store.find_event("evt_1").client.client_name == "Acme"
    assert store.booking_set("bks_1").dates == ["2025-06-10"]
    assert seen == [["2025-06-10"]]


@pytest.mark.asyncio
async def test_load_falls_back_when_primary_fails():
    fallback = InMemoryProvider(STORED)
    store = AvailabilityStore(FailingProvider(), fallback=fallback)

    await store.load()

    assert store.find_event("evt_1") is not None


@pytest.mark.asyncio
async def test_load_with_everything_failing_starts_empty():
    store = AvailabilityStore(FailingProvider(), fallback=FailingProvider())

    report = await store.load()

    assert report.data == {"blockedDates": {}, "events": {}}
    assert store.events == {}
    assert store.blocked_dates == {}


@pytest.mark.asyncio
async def test_load_persists_repairs():
    provider = InMemoryProvider({"events": {"2025-06-10": [{"title": "No id", "type": "regular", "fullDay": True}]}})
    store = AvailabilityStore(provider)

    report = await store.load()

    assert report.repaired is True
    assert len(provider.saves) == 1
    assert provider.data["events"]["2025-06-10"][0]["id"].startswith("evt_")


@pytest.mark.asyncio
async def test_save_writes_fallback_when_primary_rejects():
    primary = InMemoryProvider(accept_saves=False)
    fallback = InMemoryProvider()
    store = AvailabilityStore(primary, fallback=fallback)
    await BookingService(store).block_date_range("2025-06-10", "2025-06-10", "Holiday")

    assert primary.saves == []
    assert fallback.data["blockedDates"] == {"2025-06-10": "Holiday"}
    assert store.unsaved is False


@pytest.mark.asyncio
async def test_save_reports_failure_when_nothing_accepts(caplog):
    store = AvailabilityStore(FailingProvider(), fallback=InMemoryProvider(accept_saves=False))
    store.set_blocked("2025-06-10", "Holiday")

    assert await store.save() is False
    assert store.unsaved is True
    assert store.blocked_dates == {"2025-06-10": "Holiday"}
    assert "could not be saved" in caplog.text


@pytest.mark.asyncio
async def test_payload_shape():
    store = AvailabilityStore(InMemoryProvider(STORED))
    await store.load()

    payload = store.to_payload()

    assert list(payload) == ["blockedDates", "events", "lastUpdated"]
    assert payload["lastUpdated"].endswith("Z")
    assert payload["events"]["2025-06-10"][0]["clientData"]["bookingSetId"] == "bks_1"


@pytest.mark.asyncio
async def test_external_update_replaces_state():
    store = AvailabilityStore(InMemoryProvider(STORED))
    await store.load()
    calls = []
    unsubscribe = store.subscribe(lambda current: calls.append(len(current.blocked_dates)))

    await store.apply_external_update({"blockedDates": {"2025-07-04": "Holiday", "2025-07-05": "Holiday"}})
    unsubscribe()
    await store.apply_external_update({})

    assert calls == [2]
    assert store.events == {}
    assert store.booking_set("bks_1") is None


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_mutation(store, bookings):
    def _broken(_store):
        raise RuntimeError("listener bug")

    store.subscribe(_broken)

    dates = await bookings.block_date_range("2025-06-10", "2025-06-10")
    assert dates == ["2025-06-10"]


@pytest.mark.asyncio
async def test_concurrent_bookings_cannot_double_book(store, bookings):
    results = await asyncio.gather(
        bookings.book_date_range("2025-06-10", "2025-06-12", {"clientName": "First"}),
        bookings.book_date_range("2025-06-12", "2025-06-14", {"clientName": "Second"}),
        return_exceptions=True,
    )

    failures = [item for item in results if isinstance(item, DateConflictError)]
    assert len(failures) == 1
    assert failures[0].dates == ["2025-06-12"]
    assert len(store.events_on("2025-06-12")) == 1


@pytest.mark.asyncio
async def test_mutation_without_changes_does_not_save(store, provider):
    result = await store.mutate(lambda current: current.is_blocked("2025-06-10"))

    assert result.value is False
    assert result.persisted is True
    assert provider.saves == []


@pytest.mark.asyncio
async def test_serialized_event_list_is_repaired_once():
    serialized = orjson.dumps(
        [
            {
                "id": "evt_call",
                "date": "2025-06-10",
                "title": "Call",
                "type": "regular",
                "fullDay": False,
                "startTime": "09:00",
                "endTime": "09:30",
            }
        ]
    ).decode()
    provider = InMemoryProvider({"blockedDates": {}, "events": {"2025-06-10": serialized}})

    first = await AvailabilityStore(provider).load()

    assert first.repaired is True
    assert len(provider.saves) == 1
    assert isinstance(provider.data["events"]["2025-06-10"], list)

    reloaded = AvailabilityStore(provider)
    second = await reloaded.load()

    assert second.repaired is False
    assert len(provider.saves) == 1
    assert reloaded.find_event("evt_call").start_time == "09:00"


@pytest.mark.asyncio
async def test_failed_callback_restores_state(store, provider):
    store.set_blocked("2025-06-01", "Holiday")
    notified = []
    store.subscribe(lambda current: notified.append(True))

    def _half_done(current):
        current.set_blocked("2025-06-10", "Holiday")
        current.clear_blocked("2025-06-01")
        raise RuntimeError("callback bug")

    with pytest.raises(RuntimeError):
        await store.mutate(_half_done)

    assert store.blocked_dates == {"2025-06-01": "Holiday"}
    assert provider.saves == []
    assert notified == []

    result = await store.mutate(lambda current: current.is_blocked("2025-06-10"))
    assert result.value is False
    assert provider.saves == []
