from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import orjson

from .bootstrap import configure_logging
from .core.errors import CalendarError
from .core.export import export_ics, export_json
from .domain import event_from_record
from .services import ServiceContext
from .services.http import run_local_server

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crew Calendar availability and booking tool.")
    parser.add_argument("--log-level", default=None, help="Override CREW_LOG_LEVEL.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    show_parser = subparsers.add_parser("show", help="Print blocked dates, events and upcoming bookings.")
    show_parser.add_argument("--date", help="Only show events on this YYYY-MM-DD date.")
    show_parser.add_argument("--json", action="store_true", help="Print the raw availability document.")

    block_parser = subparsers.add_parser("block", help="Block a date or an inclusive date range.")
    block_parser.add_argument("start")
    block_parser.add_argument("end", nargs="?")
    block_parser.add_argument("--reason", default="")

    unblock_parser = subparsers.add_parser("unblock", help="Remove a blocked date.")
    unblock_parser.add_argument("date")

    book_parser = subparsers.add_parser("book", help="Book a client for an inclusive date range.")
    book_parser.add_argument("start")
    book_parser.add_argument("end")
    book_parser.add_argument("--client", required=True, dest="client_name")
    book_parser.add_argument("--project", default="")
    book_parser.add_argument("--location", default="")
    book_parser.add_argument("--notes", default="")
    book_parser.add_argument("--travel-days", type=int, default=0)
    book_parser.add_argument("--paid", action="store_true", help="Deposit already received.")

    cancel_parser = subparsers.add_parser("cancel", help="Cancel every date of a booking.")
    cancel_parser.add_argument("booking_set_id")

    paid_parser = subparsers.add_parser("paid", help="Mark a booking's deposit as paid.")
    paid_parser.add_argument("booking_set_id")
    paid_parser.add_argument("--unpaid", action="store_true", help="Clear the deposit flag instead.")

    event_parser = subparsers.add_parser("add-event", help="Create or update a single event.")
    event_parser.add_argument("date")
    event_parser.add_argument("--id", default=None)
    event_parser.add_argument("--title", default="")
    event_parser.add_argument("--description", default="")
    event_parser.add_argument("--type", choices=("regular", "booked", "blocked"), default="regular")
    event_parser.add_argument("--full-day", action="store_true")
    event_parser.add_argument("--start", dest="start_time")
    event_parser.add_argument("--end", dest="end_time")
    event_parser.add_argument("--client", dest="client_name", help="Client name for booked events.")

    delete_parser = subparsers.add_parser("delete-event", help="Delete an event by id.")
    delete_parser.add_argument("event_id")

    export_parser = subparsers.add_parser("export", help="Export the calendar as iCalendar or JSON.")
    export_parser.add_argument("--format", choices=("ics", "json"), default="ics")
    export_parser.add_argument("--output", type=Path, help="Write to this file instead of stdout.")

    subparsers.add_parser("sweep", help="Load, repair and re-save the stored calendar data.")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API.")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def _print(text: str) -> None:
    sys.stdout.write(text.rstrip("\n") + "\n")


def _event_line(event: Any) -> str:
    when = "all day" if event.full_day else f"{event.start_time}-{event.end_time}"
    return f"  {event.date} {when:<11} [{event.type.value}] {event.title} ({event.id})"


def _show(context: ServiceContext, args: argparse.Namespace) -> None:
    store = context.store
    if args.json:
        _print(orjson.dumps(store.to_payload(), option=orjson.OPT_INDENT_2).decode("utf-8"))
        return
    if args.date:
        for event in context.events.events_for_date(args.date):
            _print(_event_line(event))
        if store.is_blocked(args.date):
            _print(f"  {args.date} blocked: {store.blocked_dates[args.date]}")
        return
    _print("Blocked dates:")
    for key, reason in sorted(store.blocked_dates.items()):
        _print(f"  {key} {reason}")
    _print("Events:")
    for event in store.all_events():
        _print(_event_line(event))
    _print("Upcoming bookings:")
    for booking in context.bookings.upcoming_bookings():
        summary = booking.to_summary()
        status = "paid" if summary["depositPaid"] else "deposit due"
        _print(
            f"  {summary['startDate']}..{summary['endDate']} {summary['clientName']} - "
            f"{summary['projectName']} [{status}] ({summary['bookingSetId']})"
        )


async def _dispatch(context: ServiceContext, args: argparse.Namespace) -> int:
    if args.command == "sweep":
        report = await context.store.load()
        for repair in report.repairs:
            _print(f"repaired: {repair}")
        _print(f"{len(report.repairs)} repairs applied")
        return 0 if not context.store.unsaved else 1

    await context.ensure_loaded()
    bookings = context.bookings

    if args.command == "show":
        _show(context, args)
    elif args.command == "block":
        dates = await bookings.block_date_range(args.start, args.end or args.start, args.reason)
        _print(f"Blocked {', '.join(dates)}")
    elif args.command == "unblock":
        if not await bookings.unblock_date(args.date):
            _print(f"{args.date} was not blocked")
            return 1
        _print(f"Unblocked {args.date}")
    elif args.command == "book":
        client: Dict[str, Any] = {
            "clientName": args.client_name,
            "projectName": args.project,
            "projectLocation": args.location,
            "notes": args.notes,
            "travelDays": args.travel_days,
            "depositPaid": args.paid,
        }
        outcome = await bookings.book_date_range(args.start, args.end, client)
        _print(f"Booked {outcome.booking_set_id}: {', '.join(outcome.booking.dates)}")
        for key in outcome.skipped_travel_dates:
            _print(f"Skipped travel day {key} (unavailable)")
    elif args.command == "cancel":
        if not await bookings.cancel_booking_set(args.booking_set_id):
            _print(f"No booking {args.booking_set_id}")
            return 1
        _print(f"Cancelled {args.booking_set_id}")
    elif args.command == "paid":
        if not await bookings.set_booking_set_paid(args.booking_set_id, not args.unpaid):
            _print(f"No booking {args.booking_set_id}")
            return 1
        _print(f"Updated deposit for {args.booking_set_id}")
    elif args.command == "add-event":
        record: Dict[str, Any] = {
            "id": args.id,
            "date": args.date,
            "title": args.title,
            "description": args.description,
            "type": args.type,
            "fullDay": args.full_day,
            "startTime": args.start_time,
            "endTime": args.end_time,
        }
        if args.type == "booked":
            record["clientData"] = {"clientName": args.client_name or ""}
        result = await context.events.create_or_update(event_from_record(record))
        _print(f"Saved event {result.value.id}")
    elif args.command == "delete-event":
        if not await context.events.delete(args.event_id):
            _print(f"No event {args.event_id}")
            return 1
        _print(f"Deleted {args.event_id}")
    elif args.command == "export":
        calendar = context.settings.calendar
        if args.format == "ics":
            body = export_ics(
                context.store,
                calendar_name=calendar.calendar_name,
                tz_name=calendar.timezone,
            ).encode("utf-8")
        else:
            body = export_json(context.store)
        if args.output:
            args.output.write_bytes(body)
            _print(f"Exported {args.format} to {args.output}")
        else:
            sys.stdout.write(body.decode("utf-8"))

    if context.store.unsaved:
        logger.error("Changes could not be saved to any storage backend")
        return 1
    return 0


async def _run(args: argparse.Namespace) -> int:
    context = ServiceContext()
    try:
        return await _dispatch(context, args)
    finally:
        await context.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    logging.getLogger(__name__).info("Crew Calendar CLI starting")

    if args.command == "serve":
        run_local_server(host=args.host, port=args.port)
        return 0
    try:
        return asyncio.run(_run(args))
    except CalendarError as exc:
        logger.error("%s failed: %s", args.command, exc.reason)
        sys.stderr.write(f"error: {exc.reason}\n")
        return 2


if __name__ == "__main__":
    sys.exit(main())
