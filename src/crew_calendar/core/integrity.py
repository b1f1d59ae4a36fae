"""Validation and repair of raw availability documents.

Documents written by older versions, other clients or interrupted saves can
carry events stored as JSON strings, missing fields or mismatched dates.
:func:`sweep` returns a normalized copy together with a list of human
readable repairs; an empty list means the input was already clean, which
makes the sweep safe to run repeatedly.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import orjson

from ..domain.enums import EventType
from ..domain.models import new_booking_set_id, new_event_id
from .config import DEFAULT_BLOCK_REASON, DEFAULT_EVENT_TITLE
from .dates import is_date_key, is_valid_time, minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = "09:00"
DEFAULT_END_TIME = "10:00"
UNNAMED_CLIENT = "Unnamed Client"
_EVENT_TYPES = {item.value for item in EventType}


@dataclass
class SweepReport:
    data: Dict[str, Any]
    repairs: List[str] = field(default_factory=list)

    @property
    def repaired(self) -> bool:
        return bool(self.repairs)


def sweep(
    raw: Any,
    *,
    default_start: str = DEFAULT_START_TIME,
    default_end: str = DEFAULT_END_TIME,
) -> SweepReport:
    repairs: List[str] = []
    if not isinstance(raw, dict):
        if raw is not None:
            repairs.append(f"top-level document was {type(raw).__name__}; reset")
        raw = {}
    else:
        raw = deepcopy(raw)

    blocked = _sweep_blocked(raw.get("blockedDates"), repairs)
    events = _sweep_events(raw.get("events"), repairs, default_start, default_end)

    legacy = raw.get("bookedDates")
    if isinstance(legacy, dict) and legacy:
        _migrate_booked_dates(legacy, events, repairs)
    elif legacy not in (None, {}):
        repairs.append("discarded malformed legacy bookedDates")

    _dedupe_ids(events, repairs)

    for message in repairs:
        logger.warning("Integrity sweep: %s", message)
    return SweepReport(data={"blockedDates": blocked, "events": events}, repairs=repairs)


def _sweep_blocked(value: Any, repairs: List[str]) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        repairs.append("blockedDates was not an object; reset")
        return {}
    cleaned: Dict[str, str] = {}
    for key, reason in value.items():
        if not is_date_key(key):
            repairs.append(f"removed blocked date with invalid key {key!r}")
            continue
        if not isinstance(reason, str):
            repairs.append(f"blocked date {key} had a non-text reason")
            reason = DEFAULT_BLOCK_REASON
        cleaned[key] = reason
    return cleaned


def _coerce_event_list(key: str, value: Any, repairs: List[str]) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, (str, bytes)):
        try:
            parsed = orjson.loads(value)
        except orjson.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            repairs.append(f"parsed serialized event list for {key}")
            return parsed
    repairs.append(f"reset malformed event list for {key}")
    return []


def _sweep_events(
    value: Any,
    repairs: List[str],
    default_start: str,
    default_end: str,
) -> Dict[str, List[Dict[str, Any]]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        repairs.append("events was not an object; reset")
        return {}
    cleaned: Dict[str, List[Dict[str, Any]]] = {}
    for key, entries in value.items():
        if not is_date_key(key):
            repairs.append(f"removed events under invalid key {key!r}")
            continue
        items = _coerce_event_list(key, entries, repairs)
        fixed: List[Dict[str, Any]] = []
        for item in items:
            if not isinstance(item, dict):
                repairs.append(f"dropped non-object event on {key}")
                continue
            fixed.append(_sweep_event(key, item, repairs, default_start, default_end))
        if fixed:
            cleaned[key] = fixed
        elif isinstance(entries, list) and not entries:
            repairs.append(f"dropped empty event list for {key}")
    return cleaned


def _sweep_event(
    key: str,
    event: Dict[str, Any],
    repairs: List[str],
    default_start: str,
    default_end: str,
) -> Dict[str, Any]:
    if not event.get("id") or not isinstance(event.get("id"), str):
        event["id"] = new_event_id()
        repairs.append(f"synthesized id for event on {key}")
    label = event["id"]

    title = event.get("title")
    if not isinstance(title, str) or not title.strip():
        event["title"] = DEFAULT_EVENT_TITLE
        repairs.append(f"defaulted title of {label}")

    if not isinstance(event.get("description", ""), str):
        event["description"] = ""
        repairs.append(f"cleared non-text description of {label}")

    if event.get("type") not in _EVENT_TYPES:
        event["type"] = EventType.REGULAR.value
        repairs.append(f"reset invalid type of {label} to regular")

    if event["type"] == EventType.BOOKED.value:
        client = event.get("clientData")
        if not isinstance(client, dict):
            event["type"] = EventType.REGULAR.value
            event.pop("clientData", None)
            repairs.append(f"booked event {label} had no client data; now regular")
        elif not isinstance(client.get("clientName"), str) or not client["clientName"].strip():
            client["clientName"] = UNNAMED_CLIENT
            repairs.append(f"defaulted client name of {label}")

    if "fullDay" not in event:
        event["fullDay"] = False
        repairs.append(f"defaulted fullDay of {label}")
    elif not isinstance(event["fullDay"], bool):
        event["fullDay"] = bool(event["fullDay"])
        repairs.append(f"coerced fullDay of {label}")

    if not event["fullDay"]:
        _sweep_times(event, label, repairs, default_start, default_end)

    if event.get("date") != key:
        repairs.append(f"moved date of {label} from {event.get('date')!r} to {key}")
        event["date"] = key
    return event


def _sweep_times(
    event: Dict[str, Any],
    label: str,
    repairs: List[str],
    default_start: str,
    default_end: str,
) -> None:
    if not is_valid_time(event.get("startTime")):
        event["startTime"] = default_start
        repairs.append(f"defaulted start time of {label}")
    if not is_valid_time(event.get("endTime")):
        event["endTime"] = default_end
        repairs.append(f"defaulted end time of {label}")
    start = time_to_minutes(event["startTime"])
    end = time_to_minutes(event["endTime"])
    if end <= start:
        end = min(start + 60, 24 * 60 - 1)
        if end <= start:
            start = end - 60
            event["startTime"] = minutes_to_time(start)
        event["endTime"] = minutes_to_time(end)
        repairs.append(f"shifted end time of {label} one hour after start")


def _migrate_booked_dates(
    legacy: Dict[str, Any],
    events: Dict[str, List[Dict[str, Any]]],
    repairs: List[str],
) -> None:
    """Convert the old ``bookedDates`` map into full-day booked events."""

    groups: Dict[Tuple[str, str, str], str] = {}
    migrated = 0
    for key in sorted(legacy):
        payload = legacy[key]
        if not is_date_key(key) or not isinstance(payload, dict):
            continue
        existing = events.get(key, [])
        if any(item.get("fullDay") for item in existing):
            continue
        client = dict(payload)
        if not isinstance(client.get("clientName"), str) or not client["clientName"].strip():
            client["clientName"] = UNNAMED_CLIENT
        group_key = (
            client["clientName"],
            str(client.get("projectName") or ""),
            str(client.get("projectStartDate") or key),
        )
        client.setdefault("bookingSetId", groups.setdefault(group_key, new_booking_set_id()))
        events.setdefault(key, []).append(
            {
                "id": new_event_id(),
                "date": key,
                "title": client["clientName"],
                "description": str(client.get("projectName") or ""),
                "type": EventType.BOOKED.value,
                "fullDay": True,
                "clientData": client,
            }
        )
        migrated += 1
    repairs.append(f"migrated {migrated} legacy booked dates into {len(groups)} booking sets")


def _dedupe_ids(events: Dict[str, List[Dict[str, Any]]], repairs: List[str]) -> None:
    seen: set[str] = set()
    for key in sorted(events):
        for event in events[key]:
            if event["id"] in seen:
                old = event["id"]
                event["id"] = new_event_id()
                repairs.append(f"renamed duplicate event id {old} on {key}")
            seen.add(event["id"])


__all__ = ["SweepReport", "sweep", "DEFAULT_START_TIME", "DEFAULT_END_TIME"]
