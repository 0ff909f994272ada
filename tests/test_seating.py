from __future__ import annotations

import pytest

from flight_inventory.errors import NoSeatsAvailableError, SeatUnavailableError
from flight_inventory.seating import SeatAllocator, generate_seat_labels, seat_sort_key


def test_generate_seat_labels_fills_rows_of_six():
    assert generate_seat_labels(8) == ["1A", "1B", "1C", "1D", "1E", "1F", "2A", "2B"]


def test_generate_seat_labels_is_deterministic():
    assert generate_seat_labels(180) == generate_seat_labels(180)
    assert len(generate_seat_labels(180)) == 180
    assert generate_seat_labels(180)[-1] == "30F"
    assert len(set(generate_seat_labels(250))) == 250


@pytest.mark.parametrize("total", [0, -3])
def test_generate_seat_labels_without_capacity(total):
    assert generate_seat_labels(total) == []


def test_seat_sort_key_orders_by_row_then_letter():
    labels = ["10A", "2A", "1B", "1A", "2B"]
    assert sorted(labels, key=seat_sort_key) == ["1A", "1B", "2A", "2B", "10A"]


def test_seat_sort_key_puts_malformed_labels_last():
    assert sorted(["X1", "3C"], key=seat_sort_key) == ["3C", "X1"]


def test_allocator_prefers_lowest_free_seat(session_factory, booking_engine, make_flight, make_customer):
    flight_id = make_flight(total_seats=6)
    booking_engine.make_booking(flight_id, make_customer(), seat_number="1A", amount=1)

    with session_factory() as session:
        seat = SeatAllocator.allocate(session, flight_id)

    assert seat.seat_number == "1B"
    assert not seat.is_booked


def test_allocator_does_not_substitute_requested_seat(session_factory, booking_engine, make_flight, make_customer):
    flight_id = make_flight(total_seats=6)
    booking_engine.make_booking(flight_id, make_customer(), seat_number="1A", amount=1)

    with session_factory() as session:
        with pytest.raises(SeatUnavailableError):
            SeatAllocator.allocate(session, flight_id, "1A")


def test_allocator_reports_when_no_seat_is_free(session_factory, booking_engine, make_flight, make_customer):
    flight_id = make_flight(total_seats=1)
    booking_engine.make_booking(flight_id, make_customer(), amount=1)

    with session_factory() as session:
        with pytest.raises(NoSeatsAvailableError):
            SeatAllocator.allocate(session, flight_id)
