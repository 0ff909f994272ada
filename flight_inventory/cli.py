"""Command line interface for the flight inventory."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from tabulate import tabulate

from . import consistency, dataset, reporting, services
from .booking import BookingEngine
from .database import DEFAULT_DB_URL, init_db, session_scope
from .errors import InventoryError
from .models import PaymentMode

_LOG_LEVEL = os.environ.get("AIRLINE_LOG_LEVEL", "WARNING")


def _render_table(rows: Sequence[dict]) -> str:
    if not rows:
        return "(no rows)"
    return tabulate(rows, headers="keys", tablefmt="github")


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Book and cancel airline seats without overselling.")
    parser.add_argument(
        "--db-url",
        default=DEFAULT_DB_URL,
        help=f"SQLAlchemy database URL (default: {DEFAULT_DB_URL}).",
    )
    parser.add_argument(
        "--lock-timeout",
        type=float,
        default=None,
        help="Seconds to wait for a busy flight before giving up.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the schema.")

    seed = commands.add_parser("seed", help="Load reference airports, flights and customers.")
    seed.add_argument(
        "--bookings",
        type=int,
        default=0,
        help="Also place this many pseudo-random bookings.",
    )

    search = commands.add_parser("search", help="Search flights.")
    search.add_argument("--origin", help="Origin airport code or city.")
    search.add_argument("--destination", help="Destination airport code or city.")
    search.add_argument("--date", type=datetime.fromisoformat, help="Departure day (YYYY-MM-DD).")

    book = commands.add_parser("book", help="Book a seat.")
    book.add_argument("flight_id", type=int)
    book.add_argument("customer_id", type=int)
    book.add_argument("--seat", help="Requested seat label, e.g. 12C. Omit to auto-assign.")
    book.add_argument("--amount", required=True, help="Amount paid.")
    book.add_argument(
        "--mode",
        choices=[mode.value for mode in PaymentMode],
        default=PaymentMode.CARD.value,
        help="Payment mode (default: CARD).",
    )

    cancel = commands.add_parser("cancel", help="Cancel a booking.")
    cancel.add_argument("booking_id", type=int)

    report = commands.add_parser("report", help="Print a read-only report.")
    report.add_argument("name", choices=["load", "daily", "revenue", "manifest"])
    report.add_argument("--flight-id", type=int, help="Flight for the manifest report.")

    audit = commands.add_parser("audit", help="Check seat/counter/booking consistency.")
    audit.add_argument(
        "--repair",
        action="store_true",
        help="Rewrite drifted availability counters from seat occupancy.",
    )

    return parser.parse_args(list(argv))


def _audit(engine: BookingEngine, repair: bool) -> List[dict]:
    with engine.session_factory() as session:
        reports = consistency.audit_inventory(session)
    rows = []
    for item in reports:
        if repair and not item.is_consistent:
            with engine.locks.hold(item.flight_id, engine.lock_timeout):
                with session_scope(engine.session_factory, write_lock=True) as session:
                    consistency.repair_flight_counter(session, item.flight_id)
                    item = consistency.audit_flight(session, item.flight_id)
        rows.append(
            {
                "flight": item.flight_number,
                "capacity": item.total_seats,
                "available": item.available_seats,
                "occupied": item.occupied_seats,
                "confirmed": item.confirmed_bookings,
                "consistent": item.is_consistent,
            }
        )
    return rows


def run(args: argparse.Namespace) -> str:
    session_factory = init_db(args.db_url)
    engine = BookingEngine(session_factory, lock_timeout=args.lock_timeout)

    if args.command == "init-db":
        return f"Schema ready at {args.db_url}"

    if args.command == "seed":
        summary = dataset.seed_reference_data(session_factory)
        if args.bookings:
            summary.update(dataset.generate_sample_bookings(session_factory, bookings=args.bookings, engine=engine))
        return _render_table([summary])

    if args.command == "search":
        with session_factory() as session:
            flights = services.search_flights(
                session,
                origin=args.origin,
                destination=args.destination,
                departure_date=args.date,
            )
            rows = [
                {
                    "id": flight.id,
                    "flight": flight.flight_number,
                    "from": flight.origin.city,
                    "to": flight.destination.city,
                    "departs": flight.departure_time,
                    "arrives": flight.arrival_time,
                    "available": flight.available_seats,
                    "base_price": flight.base_price,
                }
                for flight in flights
            ]
        return _render_table(rows)

    if args.command == "book":
        confirmation = engine.make_booking(
            args.flight_id,
            args.customer_id,
            seat_number=args.seat,
            amount=args.amount,
            payment_mode=args.mode,
        )
        return (
            f"Booking {confirmation.booking_id} confirmed: seat {confirmation.seat_number}, "
            f"payment {confirmation.transaction_ref}, {confirmation.available_seats} seats left"
        )

    if args.command == "cancel":
        cancelled = engine.cancel_booking(args.booking_id)
        return f"{cancelled.message}: booking {cancelled.booking_id}, seat {cancelled.seat_number} released"

    if args.command == "report":
        with session_factory() as session:
            if args.name == "manifest":
                if args.flight_id is None:
                    raise ValueError("--flight-id is required for the manifest report")
                rows = reporting.flight_manifest(session, args.flight_id)
            else:
                rows = reporting.REPORTS[args.name](session)
        return _render_table(rows)

    if args.command == "audit":
        return _render_table(_audit(engine, args.repair))

    raise ValueError(f"Unsupported command '{args.command}'.")


def main(argv: Optional[Iterable[str]] = None) -> int:
    logging.basicConfig(level=_LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        output = run(args)
    except InventoryError as exc:
        print(f"Error [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
