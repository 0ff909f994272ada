"""Airline seat inventory with oversell-proof booking and cancellation."""
from typing import Any

from .booking import BookingConfirmation, BookingEngine, CancellationConfirmation
from .consistency import ConsistencyReport, audit_flight, audit_inventory, repair_flight_counter
from .database import create_session_factory, init_db, session_scope
from .dataset import generate_sample_bookings, seed_reference_data
from .errors import (
    AlreadyCancelledError,
    BookingNotFoundError,
    CustomerNotFoundError,
    FlightBusyError,
    FlightNotFoundError,
    InvalidBookingRequestError,
    InventoryCorruptedError,
    InventoryError,
    NoSeatsAvailableError,
    SeatUnavailableError,
    StorageError,
)
from .seating import SeatAllocator, generate_seat_labels, seat_sort_key
from .services import (
    add_airport,
    add_customer,
    add_flight,
    list_available_flights,
    list_free_seats,
    search_flights,
)


def create_app(*args: Any, **kwargs: Any):  # pragma: no cover - thin wrapper
    from .web import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "AlreadyCancelledError",
    "BookingConfirmation",
    "BookingEngine",
    "BookingNotFoundError",
    "CancellationConfirmation",
    "ConsistencyReport",
    "CustomerNotFoundError",
    "FlightBusyError",
    "FlightNotFoundError",
    "InvalidBookingRequestError",
    "InventoryCorruptedError",
    "InventoryError",
    "NoSeatsAvailableError",
    "SeatAllocator",
    "SeatUnavailableError",
    "StorageError",
    "add_airport",
    "add_customer",
    "add_flight",
    "audit_flight",
    "audit_inventory",
    "create_app",
    "create_session_factory",
    "generate_sample_bookings",
    "generate_seat_labels",
    "init_db",
    "list_available_flights",
    "list_free_seats",
    "repair_flight_counter",
    "search_flights",
    "seat_sort_key",
    "seed_reference_data",
    "session_scope",
]
