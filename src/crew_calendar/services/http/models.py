from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...core.config import MAX_TRAVEL_DAYS
from ...domain import BookingSet, ClientData
from ..booking import BookingOutcome


class ClientPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    client_name: str = Field(default="", alias="clientName")
    project_name: str = Field(default="", alias="projectName")
    project_location: str = Field(default="", alias="projectLocation")
    notes: str = Field(default="")
    deposit_paid: bool = Field(default=False, alias="depositPaid")
    travel_days: int = Field(default=0, ge=0, le=MAX_TRAVEL_DAYS, alias="travelDays")

    def to_domain(self) -> ClientData:
        return ClientData.from_record(self.model_dump(by_alias=True))


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: str = Field(alias="startDate")
    end_date: str = Field(alias="endDate")
    client: ClientPayload


class PaymentRequest(BaseModel):
    paid: bool = True


class BlockRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: str = Field(alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    reason: str = Field(default="")


class EventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None)
    date: str
    title: str = Field(default="")
    description: str = Field(default="")
    type: str = Field(default="regular")
    full_day: bool = Field(default=False, alias="fullDay")
    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    client_data: Optional[Dict[str, Any]] = Field(default=None, alias="clientData")

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BookingPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    booking_set_id: str = Field(alias="bookingSetId")
    client_name: str = Field(alias="clientName")
    project_name: str = Field(alias="projectName")
    project_location: str = Field(default="", alias="projectLocation")
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    dates: List[str] = Field(default_factory=list)
    travel_dates: List[str] = Field(default_factory=list, alias="travelDates")
    deposit_paid: bool = Field(default=False, alias="depositPaid")

    @classmethod
    def from_domain(cls, booking: BookingSet) -> "BookingPayload":
        return cls(**booking.to_summary())


class BookingResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    booking: BookingPayload
    skipped_travel_dates: List[str] = Field(default_factory=list, alias="skippedTravelDates")
    persisted: bool = True

    @classmethod
    def from_outcome(cls, outcome: BookingOutcome) -> "BookingResult":
        return cls(
            booking=BookingPayload.from_domain(outcome.booking),
            skipped_travel_dates=outcome.skipped_travel_dates,
            persisted=outcome.persisted,
        )
