from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from ...bootstrap import configure_logging
from ...core.conflicts import find_date_conflicts, has_time_conflict
from ...core.dates import format_date_key, is_valid_time, parse_date_key
from ...core.errors import ConflictError, DateConflictError, ValidationError
from ...core.export import export_ics, export_json
from ...domain import event_from_record
from ..context import ServiceContext
from .models import BlockRequest, BookingPayload, BookingRequest, BookingResult, EventRequest, PaymentRequest

logger = logging.getLogger(__name__)

app = FastAPI(title="Crew Calendar API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_CONTEXT: Optional[ServiceContext] = None


async def get_context() -> ServiceContext:
    global _CONTEXT
    if _CONTEXT is None:
        _CONTEXT = ServiceContext()
    await _CONTEXT.ensure_loaded()
    return _CONTEXT


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.reason)
    return JSONResponse({"detail": exc.reason}, status_code=400)


@app.exception_handler(ConflictError)
async def _conflict_error(request: Request, exc: ConflictError) -> JSONResponse:
    logger.info("Conflict on %s %s: %s", request.method, request.url.path, exc.reason)
    body: Dict[str, Any] = {"detail": exc.reason}
    if isinstance(exc, DateConflictError):
        body["dates"] = exc.dates
    return JSONResponse(body, status_code=409)


def _date_key(value: str) -> str:
    try:
        return format_date_key(parse_date_key(value))
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


@app.get("/api/availability")
async def get_availability(context: ServiceContext = Depends(get_context)) -> JSONResponse:
    payload = context.store.to_payload()
    payload["unsaved"] = context.store.unsaved
    return JSONResponse(payload)


@app.post("/api/bookings", status_code=201)
async def create_booking(request: BookingRequest, context: ServiceContext = Depends(get_context)) -> Dict[str, Any]:
    outcome = await context.bookings.book_date_range(
        request.start_date,
        request.end_date,
        request.client.to_domain(),
    )
    return BookingResult.from_outcome(outcome).model_dump(by_alias=True)


@app.get("/api/bookings/upcoming")
async def list_upcoming_bookings(
    today: Optional[str] = None,
    context: ServiceContext = Depends(get_context),
) -> Dict[str, List[Dict[str, Any]]]:
    bookings = context.bookings.upcoming_bookings(_date_key(today) if today else None)
    return {"bookings": [BookingPayload.from_domain(item).model_dump(by_alias=True) for item in bookings]}


@app.delete("/api/bookings/{booking_set_id}")
async def cancel_booking(booking_set_id: str, context: ServiceContext = Depends(get_context)) -> Dict[str, Any]:
    if not await context.bookings.cancel_booking_set(booking_set_id):
        raise HTTPException(status_code=404, detail=f"Unknown booking {booking_set_id}")
    return {"cancelled": booking_set_id, "persisted": not context.store.unsaved}


@app.post("/api/bookings/{booking_set_id}/payment")
async def mark_booking_paid(
    booking_set_id: str,
    request: PaymentRequest,
    context: ServiceContext = Depends(get_context),
) -> Dict[str, Any]:
    if not await context.bookings.set_booking_set_paid(booking_set_id, request.paid):
        raise HTTPException(status_code=404, detail=f"Unknown booking {booking_set_id}")
    booking = context.store.booking_set(booking_set_id)
    return BookingPayload.from_domain(booking).model_dump(by_alias=True)


@app.post("/api/blocks", status_code=201)
async def block_dates(request: BlockRequest, context: ServiceContext = Depends(get_context)) -> Dict[str, Any]:
    dates = await context.bookings.block_date_range(
        request.start_date,
        request.end_date or request.start_date,
        request.reason,
    )
    return {"dates": dates, "persisted": not context.store.unsaved}


@app.delete("/api/blocks/{date_key}")
async def unblock_date(date_key: str, context: ServiceContext = Depends(get_context)) -> Dict[str, Any]:
    if not await context.bookings.unblock_date(_date_key(date_key)):
        raise HTTPException(status_code=404, detail=f"{date_key} is not blocked")
    return {"unblocked": date_key}


@app.put("/api/events")
async def save_event(request: EventRequest, context: ServiceContext = Depends(get_context)) -> Dict[str, Any]:
    event = event_from_record(request.to_record())
    result = await context.events.create_or_update(event)
    return {"event": result.value.to_record(), "persisted": result.persisted}


@app.delete("/api/events/{event_id}")
async def delete_event(event_id: str, context: ServiceContext = Depends(get_context)) -> Dict[str, Any]:
    if not await context.events.delete(event_id):
        raise HTTPException(status_code=404, detail=f"Unknown event {event_id}")
    return {"deleted": event_id}


@app.get("/api/conflicts")
async def check_conflicts(
    start: str,
    end: Optional[str] = None,
    start_time: Optional[str] = Query(default=None, alias="startTime"),
    end_time: Optional[str] = Query(default=None, alias="endTime"),
    exclude_event_id: Optional[str] = Query(default=None, alias="excludeEventId"),
    context: ServiceContext = Depends(get_context),
) -> Dict[str, Any]:
    start_key = _date_key(start)
    end_key = _date_key(end) if end else start_key
    if start_key > end_key:
        raise ValidationError("Start date must be on or before end date.")
    dates = find_date_conflicts(context.store, start_key, end_key, exclude_event_id)
    body: Dict[str, Any] = {"dates": dates, "hasConflict": bool(dates)}
    if start_time and end_time:
        if not (is_valid_time(start_time) and is_valid_time(end_time)):
            raise ValidationError("Times must use the HH:MM format.")
        time_conflict = has_time_conflict(context.store, start_key, start_time, end_time, exclude_event_id)
        body["timeConflict"] = time_conflict
        body["hasConflict"] = body["hasConflict"] or time_conflict
    return body


@app.get("/api/export.ics")
async def download_ics(context: ServiceContext = Depends(get_context)) -> Response:
    calendar = context.settings.calendar
    body = export_ics(context.store, calendar_name=calendar.calendar_name, tz_name=calendar.timezone)
    return Response(
        content=body,
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="production-calendar.ics"'},
    )


@app.get("/api/export.json")
async def download_json(context: ServiceContext = Depends(get_context)) -> Response:
    return Response(content=export_json(context.store), media_type="application/json")


def run_local_server(host: str = "127.0.0.1", port: int = 8000) -> None:
    import asyncio
    from hypercorn.asyncio import serve
    from hypercorn.config import Config

    configure_logging()
    config = Config()
    config.bind = [f"{host}:{port}"]
    logger.info("Serving Crew Calendar API on %s:%d", host, port)
    asyncio.run(serve(app, config))
