"""Read-only reports over committed inventory state."""
from __future__ import annotations

from decimal import Decimal
from typing import Callable, Dict, List

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from .models import Airport, Booking, BookingStatus, Customer, Flight


def load_factor(total_seats: int, available_seats: int) -> float:
    """Share of capacity sold, ``(total - available) / total``."""

    if total_seats <= 0:
        return 0.0
    return (total_seats - available_seats) / total_seats


def flight_load(session: Session) -> List[dict]:
    rows = session.execute(
        select(
            Flight.id,
            Flight.flight_number,
            Flight.total_seats,
            Flight.available_seats,
        ).order_by(Flight.id)
    ).all()
    report = [
        {
            "flight_id": row.id,
            "flight": row.flight_number,
            "capacity": row.total_seats,
            "available": row.available_seats,
            "sold": row.total_seats - row.available_seats,
            "load_factor_percent": round(load_factor(row.total_seats, row.available_seats) * 100, 2),
        }
        for row in rows
    ]
    report.sort(key=lambda item: item["load_factor_percent"], reverse=True)
    return report


def daily_bookings(session: Session) -> List[dict]:
    """Confirmed bookings and revenue grouped by booking day."""

    day = func.date(Booking.booking_date).label("book_date")
    rows = session.execute(
        select(
            day,
            func.count(Booking.id).label("total_bookings"),
            func.coalesce(func.sum(Booking.price_paid), 0).label("total_revenue"),
        )
        .where(Booking.status == BookingStatus.CONFIRMED)
        .group_by(day)
        .order_by(day)
    ).all()
    return [
        {
            "date": str(row.book_date),
            "bookings": row.total_bookings,
            "revenue": Decimal(str(row.total_revenue)),
        }
        for row in rows
    ]


def route_revenue(session: Session, *, limit: int = 10) -> List[dict]:
    origin = aliased(Airport)
    destination = aliased(Airport)
    revenue = func.sum(Booking.price_paid).label("revenue")
    rows = session.execute(
        select(origin.city, destination.city, revenue)
        .select_from(Booking)
        .join(Flight, Booking.flight_id == Flight.id)
        .join(origin, Flight.origin_id == origin.id)
        .join(destination, Flight.destination_id == destination.id)
        .where(Booking.status == BookingStatus.CONFIRMED)
        .group_by(Flight.origin_id, Flight.destination_id, origin.city, destination.city)
        .order_by(revenue.desc())
        .limit(limit)
    ).all()
    return [
        {"origin": row[0], "destination": row[1], "revenue": Decimal(str(row[2]))}
        for row in rows
    ]


def flight_manifest(session: Session, flight_id: int) -> List[dict]:
    """Confirmed passengers on a flight in booking order."""

    rows = session.execute(
        select(
            Booking.id,
            Customer.full_name,
            Customer.email,
            Booking.seat_number,
            Booking.price_paid,
            Booking.booking_date,
        )
        .join(Customer, Booking.customer_id == Customer.id)
        .where(Booking.flight_id == flight_id, Booking.status == BookingStatus.CONFIRMED)
        .order_by(Booking.booking_date, Booking.id)
    ).all()
    return [
        {
            "booking_id": row.id,
            "passenger": row.full_name,
            "email": row.email,
            "seat": row.seat_number,
            "price_paid": row.price_paid,
            "booked_at": row.booking_date,
        }
        for row in rows
    ]


REPORTS: Dict[str, Callable[[Session], List[dict]]] = {
    "load": flight_load,
    "daily": daily_bookings,
    "revenue": route_revenue,
}


def as_dataframe(rows: List[dict]) -> pd.DataFrame:
    frame = pd.DataFrame(rows)
    for column in frame.columns:
        if frame[column].map(lambda value: isinstance(value, Decimal)).any():
            frame[column] = frame[column].astype(float)
    return frame


__all__ = [
    "REPORTS",
    "as_dataframe",
    "daily_bookings",
    "flight_load",
    "flight_manifest",
    "load_factor",
    "route_revenue",
]
