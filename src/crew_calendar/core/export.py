from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import orjson
from icalendar import Calendar, Event, vText

from ..domain import BlockedEvent, BookedEvent, CalendarEvent
from .config import DEFAULT_BLOCK_REASON
from .dates import parse_date_key
from .store import AvailabilityStore

logger = logging.getLogger(__name__)

PRODID = "-//Crew Calendar//Production Availability//EN"
UID_DOMAIN = "crew-calendar"


def build_calendar(
    store: AvailabilityStore,
    *,
    calendar_name: str = "Production Calendar",
    tz_name: str = "UTC",
    now: Optional[datetime] = None,
) -> Calendar:
    """Create an iCalendar document for every blocked date and event."""

    local_tz = ZoneInfo(tz_name)
    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).replace(microsecond=0)

    calendar = Calendar()
    calendar.add("prodid", PRODID)
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("method", "PUBLISH")
    calendar.add("x-wr-calname", vText(calendar_name))
    calendar.add("x-wr-timezone", vText(tz_name))

    for key, reason in sorted(store.blocked_dates.items()):
        calendar.add_component(_blocked_date_component(key, reason, stamp))

    for event in store.all_events():
        if isinstance(event, BlockedEvent) and event.full_day and store.is_blocked(event.date):
            continue
        calendar.add_component(_event_component(event, stamp, local_tz))
    return calendar


def export_ics(
    store: AvailabilityStore,
    *,
    calendar_name: str = "Production Calendar",
    tz_name: str = "UTC",
    now: Optional[datetime] = None,
) -> str:
    calendar = build_calendar(store, calendar_name=calendar_name, tz_name=tz_name, now=now)
    logger.debug("Exporting %d calendar components", len(calendar.subcomponents))
    return calendar.to_ical().decode("utf-8")


def export_json(store: AvailabilityStore, *, now: Optional[datetime] = None) -> bytes:
    payload = store.to_payload()
    exported = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).replace(microsecond=0)
    payload["exportedAt"] = exported.isoformat().replace("+00:00", "Z")
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2) + b"\n"


def _blocked_date_component(key: str, reason: str, stamp: datetime) -> Event:
    day = parse_date_key(key)
    label = reason or DEFAULT_BLOCK_REASON
    component = Event()
    component.add("uid", f"blocked-{key}@{UID_DOMAIN}")
    component.add("dtstamp", stamp)
    component.add("dtstart", day)
    component.add("dtend", day + timedelta(days=1))
    component.add("summary", f"BLOCKED - {label}")
    component.add("description", label)
    component.add("categories", ["blocked"])
    component.add("status", "CONFIRMED")
    component.add("transp", "OPAQUE")
    return component


def _event_component(event: CalendarEvent, stamp: datetime, local_tz: ZoneInfo) -> Event:
    day = parse_date_key(event.date)
    component = Event()
    component.add("uid", f"{event.id}@{UID_DOMAIN}")
    component.add("dtstamp", stamp)
    if event.full_day:
        component.add("dtstart", day)
        component.add("dtend", day + timedelta(days=1))
    else:
        component.add("dtstart", _to_utc(day, event.start_time, local_tz))
        component.add("dtend", _to_utc(day, event.end_time, local_tz))
    component.add("categories", [event.type.value])
    component.add("transp", "OPAQUE")

    if isinstance(event, BookedEvent):
        client = event.client
        summary = f"{client.client_name} - {client.project_name or 'Unnamed Project'}"
        if client.is_travel:
            summary = f"{summary} ({client.travel_label or 'Travel Day'})"
        lines = [f"Client: {client.client_name}", f"Project: {client.project_name or 'Unnamed Project'}"]
        if client.project_location:
            lines.append(f"Location: {client.project_location}")
        if client.notes:
            lines.append(f"Notes: {client.notes}")
        if event.description:
            lines.append(event.description)
        component.add("summary", summary)
        component.add("description", "\n".join(lines))
        component.add("status", "CONFIRMED" if client.deposit_paid else "TENTATIVE")
    else:
        component.add("summary", event.title)
        if event.description:
            component.add("description", event.description)
        component.add("status", "CONFIRMED")
    return component


def _to_utc(day, clock: Optional[str], local_tz: ZoneInfo) -> datetime:
    hours, minutes = (int(part) for part in (clock or "00:00").split(":"))
    local = datetime.combine(day, time(hours, minutes), tzinfo=local_tz)
    return local.astimezone(timezone.utc)


__all__ = ["build_calendar", "export_ics", "export_json"]
