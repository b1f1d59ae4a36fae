from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Dict, List, Optional, Union
from uuid import uuid4

from ..core.config import DEFAULT_BLOCK_REASON, DEFAULT_EVENT_TITLE
from ..core.dates import is_date_key, is_valid_time, time_to_minutes
from ..core.errors import EventValidationError
from .enums import EventType

_CLIENT_KEYS = {
    "clientName": "client_name",
    "projectName": "project_name",
    "projectLocation": "project_location",
    "notes": "notes",
    "depositPaid": "deposit_paid",
    "travelDays": "travel_days",
    "bookingSetId": "booking_set_id",
    "projectStartDate": "project_start_date",
    "projectEndDate": "project_end_date",
    "isTravel": "is_travel",
    "travelLabel": "travel_label",
}


def new_event_id() -> str:
    return f"evt_{uuid4().hex}"


def new_booking_set_id() -> str:
    return f"bks_{uuid4().hex}"


def _as_int(value: Any) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


@dataclass(slots=True)
class ClientData:
    client_name: str
    project_name: str = ""
    project_location: str = ""
    notes: str = ""
    deposit_paid: bool = False
    travel_days: int = 0
    booking_set_id: Optional[str] = None
    project_start_date: Optional[str] = None
    project_end_date: Optional[str] = None
    is_travel: bool = False
    travel_label: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ClientData":
        extra = {key: value for key, value in record.items() if key not in _CLIENT_KEYS}
        return cls(
            client_name=str(record.get("clientName") or "").strip(),
            project_name=str(record.get("projectName") or ""),
            project_location=str(record.get("projectLocation") or ""),
            notes=str(record.get("notes") or ""),
            deposit_paid=bool(record.get("depositPaid", False)),
            travel_days=_as_int(record.get("travelDays", 0)),
            booking_set_id=record.get("bookingSetId"),
            project_start_date=record.get("projectStartDate"),
            project_end_date=record.get("projectEndDate"),
            is_travel=bool(record.get("isTravel", False)),
            travel_label=record.get("travelLabel"),
            extra=extra,
        )

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = dict(self.extra)
        record.update(
            {
                "clientName": self.client_name,
                "projectName": self.project_name,
                "projectLocation": self.project_location,
                "notes": self.notes,
                "depositPaid": self.deposit_paid,
                "travelDays": self.travel_days,
                "bookingSetId": self.booking_set_id,
                "projectStartDate": self.project_start_date,
                "projectEndDate": self.project_end_date,
                "isTravel": self.is_travel,
            }
        )
        if self.travel_label:
            record["travelLabel"] = self.travel_label
        return record

    def copy(self, **changes: Any) -> "ClientData":
        data = {name: getattr(self, name) for name in _CLIENT_KEYS.values()}
        data["extra"] = dict(self.extra)
        data.update(changes)
        return ClientData(**data)


@dataclass(kw_only=True)
class _BaseEvent:
    """Fields shared by every calendar entry.

    Construction validates the entry: the date must be a ``YYYY-MM-DD`` key
    and timed entries need ordered ``HH:MM`` start and end times. Full-day
    entries drop their times.
    """

    event_type: ClassVar[EventType]

    date: str
    id: str = field(default_factory=new_event_id)
    title: str = ""
    description: str = ""
    full_day: bool = False
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    def __post_init__(self) -> None:
        if not is_date_key(self.date):
            raise EventValidationError(f"Invalid event date {self.date!r}; expected YYYY-MM-DD.")
        if not self.id:
            self.id = new_event_id()
        self.full_day = bool(self.full_day)
        self.title = (self.title or "").strip() or self._default_title()
        self.description = self.description or ""
        if self.full_day:
            self.start_time = None
            self.end_time = None
        else:
            if not (is_valid_time(self.start_time) and is_valid_time(self.end_time)):
                raise EventValidationError("Start and end times (HH:MM) are required for timed events.")
            if time_to_minutes(self.start_time) >= time_to_minutes(self.end_time):
                raise EventValidationError("End time must be after start time.")
        self._validate_variant()

    def _default_title(self) -> str:
        return DEFAULT_EVENT_TITLE

    def _validate_variant(self) -> None:
        return None

    @property
    def type(self) -> EventType:
        return self.event_type

    @property
    def start_minutes(self) -> int:
        return 0 if self.full_day else time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return 24 * 60 if self.full_day else time_to_minutes(self.end_time)

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "title": self.title,
            "description": self.description,
            "type": self.event_type.value,
            "fullDay": self.full_day,
        }
        if not self.full_day:
            record["startTime"] = self.start_time
            record["endTime"] = self.end_time
        return record

    def clone(self) -> "_BaseEvent":
        """Independent copy; construction validation runs again."""

        return replace(self)


@dataclass(kw_only=True)
class RegularEvent(_BaseEvent):
    event_type: ClassVar[EventType] = EventType.REGULAR


@dataclass(kw_only=True)
class BlockedEvent(_BaseEvent):
    event_type: ClassVar[EventType] = EventType.BLOCKED

    def _default_title(self) -> str:
        return DEFAULT_BLOCK_REASON

    @property
    def reason(self) -> str:
        return self.description.strip() or self.title


@dataclass(kw_only=True)
class BookedEvent(_BaseEvent):
    event_type: ClassVar[EventType] = EventType.BOOKED

    client: ClientData

    def _default_title(self) -> str:
        if isinstance(self.client, ClientData) and self.client.client_name:
            return self.client.client_name
        return DEFAULT_EVENT_TITLE

    def _validate_variant(self) -> None:
        if not isinstance(self.client, ClientData) or not self.client.client_name:
            raise EventValidationError("Booked events require client data with a client name.")

    @property
    def booking_set_id(self) -> Optional[str]:
        return self.client.booking_set_id

    @property
    def is_travel(self) -> bool:
        return self.client.is_travel

    def to_record(self) -> Dict[str, Any]:
        record = super().to_record()
        record["clientData"] = self.client.to_record()
        return record

    def clone(self) -> "BookedEvent":
        return replace(self, client=self.client.copy())


CalendarEvent = Union[RegularEvent, BookedEvent, BlockedEvent]

EVENT_CLASSES: Dict[EventType, type] = {
    EventType.REGULAR: RegularEvent,
    EventType.BOOKED: BookedEvent,
    EventType.BLOCKED: BlockedEvent,
}


def event_from_record(record: Dict[str, Any]) -> CalendarEvent:
    """Build the event variant named by ``record["type"]``."""

    try:
        event_type = EventType(record.get("type") or EventType.REGULAR)
    except ValueError as exc:
        raise EventValidationError(f"Unknown event type {record.get('type')!r}.") from exc
    common: Dict[str, Any] = {
        "id": str(record.get("id") or ""),
        "date": record.get("date"),
        "title": record.get("title") or "",
        "description": record.get("description") or "",
        "full_day": bool(record.get("fullDay", False)),
        "start_time": record.get("startTime"),
        "end_time": record.get("endTime"),
    }
    if event_type is EventType.BOOKED:
        client_payload = record.get("clientData")
        if not isinstance(client_payload, dict):
            raise EventValidationError("Booked events require client data with a client name.")
        return BookedEvent(client=ClientData.from_record(client_payload), **common)
    return EVENT_CLASSES[event_type](**common)


@dataclass
class BookingSet:
    """All booked events of one client engagement, ordered by date."""

    booking_set_id: str
    events: List[BookedEvent] = field(default_factory=list)

    def add(self, event: BookedEvent) -> None:
        self.remove(event.id)
        self.events.append(event)
        self.events.sort(key=lambda item: item.date)

    def remove(self, event_id: str) -> bool:
        for index, event in enumerate(self.events):
            if event.id == event_id:
                del self.events[index]
                return True
        return False

    def __len__(self) -> int:
        return len(self.events)

    @property
    def primary_events(self) -> List[BookedEvent]:
        return [event for event in self.events if not event.is_travel]

    @property
    def client(self) -> Optional[ClientData]:
        source = self.primary_events or self.events
        return source[0].client if source else None

    @property
    def dates(self) -> List[str]:
        return [event.date for event in self.events]

    @property
    def travel_dates(self) -> List[str]:
        return [event.date for event in self.events if event.is_travel]

    @property
    def start_date(self) -> Optional[str]:
        client = self.client
        if client and client.project_start_date:
            return client.project_start_date
        primary = self.primary_events or self.events
        return primary[0].date if primary else None

    @property
    def end_date(self) -> Optional[str]:
        client = self.client
        if client and client.project_end_date:
            return client.project_end_date
        primary = self.primary_events or self.events
        return primary[-1].date if primary else None

    @property
    def deposit_paid(self) -> bool:
        return bool(self.events) and all(event.client.deposit_paid for event in self.events)

    def to_summary(self) -> Dict[str, Any]:
        client = self.client
        return {
            "bookingSetId": self.booking_set_id,
            "clientName": client.client_name if client else "Unnamed Client",
            "projectName": (client.project_name if client else "") or "Unnamed Project",
            "projectLocation": client.project_location if client else "",
            "startDate": self.start_date,
            "endDate": self.end_date,
            "dates": self.dates,
            "travelDates": self.travel_dates,
            "depositPaid": self.deposit_paid,
        }
