"""Catalog operations: airports, flights with their seats, customers, search."""
from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session, aliased

from .models import Airport, Customer, Flight, FlightStatus, Seat, SeatClass
from .seating import generate_seat_labels, seat_sort_key


def add_airport(
    session: Session,
    *,
    code: str,
    name: str,
    city: Optional[str] = None,
    country: Optional[str] = None,
) -> Airport:
    airport = Airport(code=code.upper(), name=name, city=city, country=country)
    session.add(airport)
    session.flush()
    return airport


def get_airport_by_code(session: Session, code: str) -> Optional[Airport]:
    return session.scalars(select(Airport).where(Airport.code == code.upper())).one_or_none()


def add_flight(
    session: Session,
    *,
    flight_number: str,
    origin: Union[Airport, str],
    destination: Union[Airport, str],
    departure_time: datetime,
    arrival_time: datetime,
    total_seats: int,
    base_price: Union[Decimal, float, str] = Decimal("0.00"),
    seat_class: SeatClass = SeatClass.ECONOMY,
) -> Flight:
    """Create a flight together with its full seat inventory.

    ``origin``/``destination`` accept an :class:`Airport` or an airport code.
    Every seat starts free and ``available_seats`` starts at ``total_seats``.
    """

    if total_seats <= 0:
        raise ValueError("total_seats must be positive")
    if arrival_time <= departure_time:
        raise ValueError("arrival_time must be after departure_time")
    origin_airport = _resolve_airport(session, origin)
    destination_airport = _resolve_airport(session, destination)

    flight = Flight(
        flight_number=flight_number,
        origin=origin_airport,
        destination=destination_airport,
        departure_time=departure_time,
        arrival_time=arrival_time,
        total_seats=total_seats,
        available_seats=total_seats,
        base_price=Decimal(str(base_price)),
        status=FlightStatus.SCHEDULED,
    )
    flight.seats = [
        Seat(seat_number=label, seat_class=seat_class, is_booked=False)
        for label in generate_seat_labels(total_seats)
    ]
    session.add(flight)
    session.flush()
    return flight


def _resolve_airport(session: Session, airport: Union[Airport, str]) -> Airport:
    if isinstance(airport, Airport):
        return airport
    found = get_airport_by_code(session, airport)
    if found is None:
        raise ValueError(f"Unknown airport code '{airport}'")
    return found


def add_customer(
    session: Session,
    *,
    full_name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    nationality: Optional[str] = None,
) -> Customer:
    customer = Customer(full_name=full_name, email=email, phone=phone, nationality=nationality)
    session.add(customer)
    session.flush()
    return customer


def list_available_flights(session: Session) -> List[Flight]:
    return list(
        session.scalars(
            select(Flight)
            .where(Flight.available_seats > 0, Flight.status != FlightStatus.CANCELLED)
            .order_by(Flight.departure_time)
        )
    )


def list_free_seats(session: Session, flight_id: int) -> List[str]:
    labels = session.scalars(
        select(Seat.seat_number).where(Seat.flight_id == flight_id, Seat.is_booked.is_(False))
    )
    return sorted(labels, key=seat_sort_key)


def search_flights(
    session: Session,
    *,
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    departure_date: Optional[datetime] = None,
) -> List[Flight]:
    """Find flights by origin/destination (airport code or city) and day."""

    origin_airport = aliased(Airport)
    destination_airport = aliased(Airport)
    stmt: Select[tuple[Flight]] = (
        select(Flight)
        .join(origin_airport, Flight.origin_id == origin_airport.id)
        .join(destination_airport, Flight.destination_id == destination_airport.id)
    )
    if origin:
        stmt = stmt.where(
            or_(origin_airport.code == origin.upper(), origin_airport.city == origin)
        )
    if destination:
        stmt = stmt.where(
            or_(destination_airport.code == destination.upper(), destination_airport.city == destination)
        )
    if departure_date:
        start = departure_date.replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=1)
        stmt = stmt.where(Flight.departure_time >= start, Flight.departure_time < end)
    return list(session.scalars(stmt.order_by(Flight.departure_time)))
