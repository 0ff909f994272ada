"""Error taxonomy for booking and cancellation."""
from __future__ import annotations

from typing import Optional


class InventoryError(RuntimeError):
    """Base class for every error the booking engine reports."""

    code = "INVENTORY_ERROR"
    retryable = False


class FlightNotFoundError(InventoryError):
    code = "FLIGHT_NOT_FOUND"

    def __init__(self, flight_id: int):
        self.flight_id = flight_id
        super().__init__(f"Flight {flight_id} not found")


class CustomerNotFoundError(InventoryError):
    code = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: int):
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} not found")


class NoSeatsAvailableError(InventoryError):
    """Raised when a flight has no remaining capacity."""

    code = "NO_SEATS_AVAILABLE"

    def __init__(self, flight_id: int):
        self.flight_id = flight_id
        super().__init__(f"No seats available on flight {flight_id}")


class SeatUnavailableError(InventoryError):
    """Raised when a specifically requested seat is taken or does not exist."""

    code = "SEAT_UNAVAILABLE"

    def __init__(self, flight_id: int, seat_number: str):
        self.flight_id = flight_id
        self.seat_number = seat_number
        super().__init__(f"Requested seat {seat_number} not available on flight {flight_id}")


class BookingNotFoundError(InventoryError):
    code = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class AlreadyCancelledError(InventoryError):
    code = "ALREADY_CANCELLED"

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} already cancelled")


class InvalidBookingRequestError(InventoryError, ValueError):
    code = "INVALID_REQUEST"


class FlightBusyError(InventoryError):
    """Raised when the flight lock could not be obtained in time.

    The caller may retry; the engine itself never does.
    """

    code = "BUSY"
    retryable = True

    def __init__(self, flight_id: Optional[int], message: Optional[str] = None):
        self.flight_id = flight_id
        super().__init__(message or f"Flight {flight_id} is busy, retry later")


class InventoryCorruptedError(InventoryError):
    """Raised when a write would break the seat/counter invariant."""

    code = "INVENTORY_CORRUPTED"


class StorageError(InventoryError):
    """Unexpected database failure (connectivity, constraint violations)."""

    code = "STORAGE_ERROR"


__all__ = [
    "InventoryError",
    "FlightNotFoundError",
    "CustomerNotFoundError",
    "NoSeatsAvailableError",
    "SeatUnavailableError",
    "BookingNotFoundError",
    "AlreadyCancelledError",
    "InvalidBookingRequestError",
    "FlightBusyError",
    "InventoryCorruptedError",
    "StorageError",
]
