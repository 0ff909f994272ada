"""Seat labelling and seat allocation."""
from __future__ import annotations

import math
import re
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import NoSeatsAvailableError, SeatUnavailableError
from .models import Seat

SEAT_LETTERS: Sequence[str] = tuple("ABCDEF")

_LABEL_PATTERN = re.compile(r"^(\d+)([A-Z]+)$")


def generate_seat_labels(total_seats: int, letters: Sequence[str] = SEAT_LETTERS) -> List[str]:
    """Return ``total_seats`` labels laid out row by row ("1A" ... "1F", "2A", ...).

    The last row is truncated when capacity is not a multiple of the row width.
    """

    if total_seats <= 0:
        return []
    width = len(letters)
    labels: List[str] = []
    for row in range(1, math.ceil(total_seats / width) + 1):
        for letter in letters:
            if len(labels) == total_seats:
                return labels
            labels.append(f"{row}{letter}")
    return labels


def normalize_seat_label(label: str) -> str:
    return label.strip().upper()


def seat_sort_key(label: str) -> Tuple[float, str]:
    """Order seats by row number, then letter, so "2A" sorts before "10A"."""

    match = _LABEL_PATTERN.match(normalize_seat_label(label))
    if not match:
        # Unparseable labels go after every well-formed one.
        return (math.inf, label)
    return (int(match.group(1)), match.group(2))


class SeatAllocator:
    """Pick the seat a booking will claim.

    Must be called inside the booking transaction while the flight lock is
    held; it only reads, the occupancy flip is applied by the caller.
    """

    @staticmethod
    def allocate(session: Session, flight_id: int, requested_seat: Optional[str] = None) -> Seat:
        if requested_seat is not None and requested_seat.strip():
            return SeatAllocator._claim_requested(session, flight_id, normalize_seat_label(requested_seat))
        return SeatAllocator._lowest_available(session, flight_id)

    @staticmethod
    def _claim_requested(session: Session, flight_id: int, seat_number: str) -> Seat:
        seat = session.scalars(
            select(Seat).where(Seat.flight_id == flight_id, Seat.seat_number == seat_number)
        ).one_or_none()
        if seat is None or seat.is_booked:
            raise SeatUnavailableError(flight_id, seat_number)
        return seat

    @staticmethod
    def _lowest_available(session: Session, flight_id: int) -> Seat:
        free_seats = session.scalars(
            select(Seat).where(Seat.flight_id == flight_id, Seat.is_booked.is_(False))
        ).all()
        if not free_seats:
            raise NoSeatsAvailableError(flight_id)
        return min(free_seats, key=lambda seat: seat_sort_key(seat.seat_number))
