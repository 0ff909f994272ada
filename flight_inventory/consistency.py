"""Keep seat occupancy, availability counters and booking status in lockstep.

Every booking status change goes through exactly one of ``confirm_seat`` or
``release_seat`` inside the same transaction. Nothing else (no ORM event
listener, no database trigger) writes ``Seat.is_booked`` or
``Flight.available_seats``, so each delta is applied once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .errors import FlightNotFoundError, InventoryCorruptedError
from .models import Booking, BookingStatus, Flight, Seat

logger = logging.getLogger(__name__)


def confirm_seat(flight: Flight, seat: Seat) -> None:
    """Occupy ``seat`` and take one seat off the flight's counter."""

    if seat.flight_id != flight.id:
        raise InventoryCorruptedError(f"Seat {seat.seat_number} does not belong to flight {flight.id}")
    if seat.is_booked:
        raise InventoryCorruptedError(f"Seat {seat.seat_number} on flight {flight.id} is already occupied")
    if flight.available_seats <= 0:
        raise InventoryCorruptedError(f"Flight {flight.id} availability counter would drop below zero")
    seat.is_booked = True
    flight.available_seats -= 1


def release_seat(flight: Flight, seat: Optional[Seat]) -> None:
    """Free ``seat`` and give one seat back to the flight's counter.

    ``seat`` may be ``None`` only if the seat row vanished, in which case the
    counter alone is restored.
    """

    if flight.available_seats >= flight.total_seats:
        raise InventoryCorruptedError(f"Flight {flight.id} availability counter would exceed capacity")
    if seat is not None:
        if not seat.is_booked:
            raise InventoryCorruptedError(f"Seat {seat.seat_number} on flight {flight.id} is not occupied")
        seat.is_booked = False
    flight.available_seats += 1


@dataclass
class ConsistencyReport:
    flight_id: int
    flight_number: str
    total_seats: int
    available_seats: int
    occupied_seats: int
    confirmed_bookings: int
    # Seats whose flag disagrees with the confirmed bookings.
    orphaned_seats: List[str] = field(default_factory=list)
    unoccupied_bookings: List[str] = field(default_factory=list)

    @property
    def expected_available(self) -> int:
        return self.total_seats - self.occupied_seats

    @property
    def is_consistent(self) -> bool:
        return (
            self.available_seats == self.expected_available
            and self.occupied_seats == self.confirmed_bookings
            and not self.orphaned_seats
            and not self.unoccupied_bookings
        )


def audit_flight(session: Session, flight_id: int) -> ConsistencyReport:
    """Recompute the derived facts for one flight and compare them."""

    flight = session.get(Flight, flight_id)
    if flight is None:
        raise FlightNotFoundError(flight_id)

    occupied = set(
        session.scalars(
            select(Seat.seat_number).where(Seat.flight_id == flight_id, Seat.is_booked.is_(True))
        )
    )
    confirmed = list(
        session.scalars(
            select(Booking.seat_number).where(
                Booking.flight_id == flight_id, Booking.status == BookingStatus.CONFIRMED
            )
        )
    )
    confirmed_set = set(confirmed)
    return ConsistencyReport(
        flight_id=flight.id,
        flight_number=flight.flight_number,
        total_seats=flight.total_seats,
        available_seats=flight.available_seats,
        occupied_seats=len(occupied),
        confirmed_bookings=len(confirmed),
        orphaned_seats=sorted(occupied - confirmed_set),
        unoccupied_bookings=sorted(confirmed_set - occupied),
    )


def audit_inventory(session: Session) -> List[ConsistencyReport]:
    flight_ids = session.scalars(select(Flight.id).order_by(Flight.id)).all()
    return [audit_flight(session, flight_id) for flight_id in flight_ids]


def repair_flight_counter(session: Session, flight_id: int) -> int:
    """Rewrite ``available_seats`` from seat occupancy and return the new value.

    Operator tool for drift left by writes that bypassed the booking engine.
    Callers should hold the flight lock.
    """

    flight = session.get(Flight, flight_id, with_for_update=True)
    if flight is None:
        raise FlightNotFoundError(flight_id)
    occupied = session.scalar(
        select(func.count(Seat.id)).where(Seat.flight_id == flight_id, Seat.is_booked.is_(True))
    ) or 0
    expected = flight.total_seats - occupied
    if flight.available_seats != expected:
        logger.warning(
            "Repairing flight %s availability counter: %s -> %s",
            flight.flight_number,
            flight.available_seats,
            expected,
        )
        flight.available_seats = expected
    return expected
