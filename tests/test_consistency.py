from __future__ import annotations

import pytest
from sqlalchemy import select

from flight_inventory.consistency import (
    audit_flight,
    audit_inventory,
    confirm_seat,
    release_seat,
    repair_flight_counter,
)
from flight_inventory.database import session_scope
from flight_inventory.errors import FlightNotFoundError, InventoryCorruptedError
from flight_inventory.models import Flight, Seat


def _load(session, flight_id, label):
    flight = session.get(Flight, flight_id)
    seat = session.scalars(
        select(Seat).where(Seat.flight_id == flight_id, Seat.seat_number == label)
    ).one()
    return flight, seat


def test_confirm_and_release_move_flag_and_counter_together(session_factory, make_flight):
    flight_id = make_flight(total_seats=2)
    with session_factory() as session:
        flight, seat = _load(session, flight_id, "1A")

        confirm_seat(flight, seat)
        assert (seat.is_booked, flight.available_seats) == (True, 1)

        release_seat(flight, seat)
        assert (seat.is_booked, flight.available_seats) == (False, 2)


def test_confirm_refuses_an_occupied_seat(session_factory, make_flight):
    flight_id = make_flight(total_seats=2)
    with session_factory() as session:
        flight, seat = _load(session, flight_id, "1A")
        confirm_seat(flight, seat)

        with pytest.raises(InventoryCorruptedError):
            confirm_seat(flight, seat)
        assert flight.available_seats == 1


def test_release_refuses_to_exceed_capacity(session_factory, make_flight):
    flight_id = make_flight(total_seats=2)
    with session_factory() as session:
        flight, seat = _load(session, flight_id, "1A")

        with pytest.raises(InventoryCorruptedError):
            release_seat(flight, seat)


def test_audit_reports_consistent_inventory(session_factory, booking_engine, make_flight, make_customer):
    flight_id = make_flight(total_seats=6)
    customer_id = make_customer()
    booking_engine.make_booking(flight_id, customer_id, amount=1)
    cancelled = booking_engine.make_booking(flight_id, customer_id, amount=1)
    booking_engine.cancel_booking(cancelled.booking_id)

    with session_factory() as session:
        report = audit_flight(session, flight_id)

    assert report.is_consistent
    assert report.occupied_seats == report.confirmed_bookings == 1
    assert report.available_seats == report.expected_available == 5


def test_audit_detects_and_repair_fixes_counter_drift(session_factory, booking_engine, make_flight, make_customer):
    flight_id = make_flight(total_seats=4)
    booking_engine.make_booking(flight_id, make_customer(), amount=1)
    with session_scope(session_factory) as session:
        # Simulates a second writer applying the same delta again.
        session.get(Flight, flight_id).available_seats -= 1

    with session_factory() as session:
        drifted = audit_flight(session, flight_id)
    assert not drifted.is_consistent
    assert drifted.available_seats == 2

    with session_scope(session_factory) as session:
        assert repair_flight_counter(session, flight_id) == 3

    with session_factory() as session:
        assert audit_flight(session, flight_id).is_consistent


def test_audit_flags_seat_without_booking(session_factory, make_flight):
    flight_id = make_flight(total_seats=3)
    with session_scope(session_factory) as session:
        flight, seat = _load(session, flight_id, "1C")
        seat.is_booked = True
        flight.available_seats -= 1

    with session_factory() as session:
        report = audit_flight(session, flight_id)

    assert report.orphaned_seats == ["1C"]
    assert not report.is_consistent


def test_audit_inventory_covers_every_flight(session_factory, make_flight):
    first, second = make_flight(total_seats=2), make_flight(total_seats=3)

    with session_factory() as session:
        reports = audit_inventory(session)

    assert [report.flight_id for report in reports] == [first, second]
    assert all(report.is_consistent for report in reports)


def test_audit_unknown_flight(session_factory):
    with session_factory() as session:
        with pytest.raises(FlightNotFoundError):
            audit_flight(session, 77)
