"""Utilities to populate the database with sample data for tests and demos."""
from __future__ import annotations

import random
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from .booking import BookingEngine
from .database import session_scope
from .errors import InventoryError
from .models import Airport, Customer, Flight, PaymentMode
from .services import add_airport, add_customer, add_flight

AIRPORTS: Sequence[Tuple[str, str, str, str]] = (
    ("DEL", "Indira Gandhi Intl", "New Delhi", "India"),
    ("BLR", "Kempegowda Intl", "Bengaluru", "India"),
    ("BOM", "Chhatrapati Shivaji Intl", "Mumbai", "India"),
    ("MAA", "Chennai Intl", "Chennai", "India"),
    ("DXB", "Dubai Intl", "Dubai", "UAE"),
    ("SIN", "Changi", "Singapore", "Singapore"),
)

FLIGHTS: Sequence[Tuple[str, str, str, str, str, int, str]] = (
    ("AI101", "DEL", "BLR", "2025-11-10 06:00:00", "2025-11-10 08:00:00", 180, "5000.00"),
    ("AI102", "BLR", "DEL", "2025-11-10 09:00:00", "2025-11-10 11:00:00", 180, "4800.00"),
    ("AI201", "DEL", "BOM", "2025-11-11 07:30:00", "2025-11-11 09:30:00", 150, "4500.00"),
    ("AI301", "BOM", "MAA", "2025-11-12 18:00:00", "2025-11-12 19:30:00", 120, "3200.00"),
    ("AI401", "DEL", "DXB", "2025-11-13 02:00:00", "2025-11-13 05:00:00", 250, "15000.00"),
    ("AI501", "MAA", "SIN", "2025-11-14 23:55:00", "2025-11-15 06:00:00", 200, "18000.00"),
)

CUSTOMERS: Sequence[Tuple[str, str, str, str]] = (
    ("Rahul Kumar", "rahul.kumar@example.com", "+919876543210", "India"),
    ("Priya Sharma", "priya.sharma@example.com", "+919812345678", "India"),
    ("John Doe", "john.doe@example.com", "+971501234567", "UAE"),
    ("Ling Tan", "ling.tan@example.com", "+6591234567", "Singapore"),
)

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def seed_reference_data(session_factory: sessionmaker[Session]) -> Dict[str, int]:
    """Insert the reference airports, flights and customers once.

    Does nothing if airports already exist.
    """

    with session_scope(session_factory, write_lock=True) as session:
        if session.scalar(select(func.count(Airport.id))):
            return {"airports": 0, "flights": 0, "customers": 0}
        for code, name, city, country in AIRPORTS:
            add_airport(session, code=code, name=name, city=city, country=country)
        for number, origin, destination, departs, arrives, seats, price in FLIGHTS:
            add_flight(
                session,
                flight_number=number,
                origin=origin,
                destination=destination,
                departure_time=datetime.strptime(departs, _TIME_FORMAT),
                arrival_time=datetime.strptime(arrives, _TIME_FORMAT),
                total_seats=seats,
                base_price=Decimal(price),
            )
        for full_name, email, phone, nationality in CUSTOMERS:
            add_customer(session, full_name=full_name, email=email, phone=phone, nationality=nationality)
    return {"airports": len(AIRPORTS), "flights": len(FLIGHTS), "customers": len(CUSTOMERS)}


def generate_sample_bookings(
    session_factory: sessionmaker[Session],
    *,
    bookings: int = 50,
    cancel_ratio: float = 0.1,
    engine: Optional[BookingEngine] = None,
) -> Dict[str, int]:
    """Drive the booking engine with deterministic pseudo-random demand."""

    engine = engine or BookingEngine(session_factory)
    rng = random.Random(42)
    with session_factory() as session:
        flights = [(flight.id, flight.base_price) for flight in session.scalars(select(Flight))]
        customer_ids = list(session.scalars(select(Customer.id)))
    if not flights or not customer_ids:
        return {"bookings": 0, "cancelled": 0, "rejected": 0}

    confirmed = []
    rejected = 0
    for _ in range(bookings):
        flight_id, base_price = rng.choice(flights)
        try:
            result = engine.make_booking(
                flight_id,
                rng.choice(customer_ids),
                amount=base_price,
                payment_mode=rng.choice(list(PaymentMode)),
            )
        except InventoryError:
            rejected += 1
            continue
        confirmed.append(result.booking_id)

    cancelled = 0
    for booking_id in confirmed:
        if rng.random() < cancel_ratio:
            engine.cancel_booking(booking_id)
            cancelled += 1
    return {"bookings": len(confirmed), "cancelled": cancelled, "rejected": rejected}
