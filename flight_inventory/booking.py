"""Booking engine: seat allocation, booking, payment and cancellation as one unit."""
from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterator, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .consistency import confirm_seat, release_seat
from .database import session_scope
from .errors import (
    AlreadyCancelledError,
    BookingNotFoundError,
    CustomerNotFoundError,
    FlightBusyError,
    FlightNotFoundError,
    InvalidBookingRequestError,
    InventoryError,
    NoSeatsAvailableError,
    SeatUnavailableError,
    StorageError,
)
from .locking import FlightLockRegistry
from .models import Booking, BookingStatus, Customer, Flight, Payment, PaymentMode, Seat
from .seating import SeatAllocator

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = float(os.environ.get("AIRLINE_LOCK_TIMEOUT", 10))

# Driver messages that mean "someone else holds the lock", per backend.
_LOCK_CONTENTION_MARKERS = (
    "database is locked",
    "lock wait timeout",
    "could not obtain lock",
    "lock timeout",
    "deadlock",
)

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class BookingConfirmation:
    booking_id: int
    flight_id: int
    customer_id: int
    seat_number: str
    price_paid: Decimal
    payment_id: int
    transaction_ref: str
    available_seats: int


@dataclass(frozen=True)
class CancellationConfirmation:
    booking_id: int
    flight_id: int
    seat_number: str
    available_seats: int
    message: str = "Cancelled successfully"


def _coerce_amount(amount: Union[Decimal, float, int, str]) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidBookingRequestError(f"Invalid payment amount {amount!r}") from exc
    if not value.is_finite() or value < 0:
        raise InvalidBookingRequestError(f"Invalid payment amount {amount!r}")
    return value.quantize(_CENTS)


def _coerce_payment_mode(mode: Union[PaymentMode, str]) -> PaymentMode:
    if isinstance(mode, PaymentMode):
        return mode
    try:
        return PaymentMode(str(mode).strip().upper())
    except ValueError as exc:
        choices = ", ".join(m.value for m in PaymentMode)
        raise InvalidBookingRequestError(f"Unknown payment mode {mode!r}; expected one of {choices}") from exc


def translate_storage_error(exc: SQLAlchemyError, flight_id: Optional[int] = None) -> InventoryError:
    """Map a SQLAlchemy failure onto the retryable busy kind or the fatal kind."""

    detail = str(getattr(exc, "orig", None) or exc).lower()
    if isinstance(exc, OperationalError) and any(marker in detail for marker in _LOCK_CONTENTION_MARKERS):
        return FlightBusyError(flight_id, f"Flight {flight_id} is locked by another transaction, retry later")
    return StorageError(f"Storage failure: {detail}")


class BookingEngine:
    """Sole writer of seat occupancy, availability counters and booking status.

    Each call runs under the flight's lock in its own write-locked
    transaction, which is committed before the lock is released. Failures roll the whole unit back
    and surface as an :class:`~flight_inventory.errors.InventoryError`.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        lock_timeout: Optional[float] = None,
        locks: Optional[FlightLockRegistry] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.session_factory = session_factory
        self.lock_timeout = DEFAULT_LOCK_TIMEOUT if lock_timeout is None else lock_timeout
        self.locks = locks or FlightLockRegistry()
        self._clock = clock

    @contextmanager
    def _storage_errors(self, flight_id: Optional[int]) -> Iterator[None]:
        try:
            yield
        except InventoryError:
            raise
        except SQLAlchemyError as exc:
            error = translate_storage_error(exc, flight_id)
            if isinstance(error, FlightBusyError):
                logger.warning("Lock contention on flight %s: %s", flight_id, exc)
            else:
                logger.exception("Storage failure while updating flight %s", flight_id)
            raise error from exc
        except Exception as exc:
            logger.exception("Unexpected failure while updating flight %s", flight_id)
            raise StorageError(f"Unexpected failure: {exc}") from exc

    @contextmanager
    def _flight_transaction(self, flight_id: int) -> Iterator[Session]:
        with self.locks.hold(flight_id, self.lock_timeout):
            with self._storage_errors(flight_id):
                with session_scope(self.session_factory, write_lock=True) as session:
                    yield session

    def make_booking(
        self,
        flight_id: int,
        customer_id: int,
        *,
        seat_number: Optional[str] = None,
        amount: Union[Decimal, float, int, str],
        payment_mode: Union[PaymentMode, str] = PaymentMode.CARD,
    ) -> BookingConfirmation:
        """Book a seat on ``flight_id`` for ``customer_id`` and record its payment.

        ``seat_number`` requests a specific seat; without it the lowest free
        seat is assigned.
        """

        price = _coerce_amount(amount)
        mode = _coerce_payment_mode(payment_mode)

        with self._flight_transaction(flight_id) as session:
            flight = session.get(Flight, flight_id, with_for_update=True)
            if flight is None:
                raise FlightNotFoundError(flight_id)
            if flight.available_seats <= 0:
                raise NoSeatsAvailableError(flight_id)
            if session.get(Customer, customer_id) is None:
                raise CustomerNotFoundError(customer_id)

            seat = SeatAllocator.allocate(session, flight_id, seat_number)
            label = seat.seat_number
            confirm_seat(flight, seat)
            booking = Booking(
                flight=flight,
                customer_id=customer_id,
                seat_number=label,
                price_paid=price,
                status=BookingStatus.CONFIRMED,
            )
            session.add(booking)
            try:
                session.flush()
            except IntegrityError as exc:
                # The failed flush expires every loaded instance.
                raise SeatUnavailableError(flight_id, label) from exc

            payment = Payment(
                booking=booking,
                amount=price,
                payment_mode=mode,
                transaction_ref=f"TXN{int(self._clock())}-{booking.id}",
            )
            session.add(payment)
            booking.payment = payment
            session.flush()

            confirmation = BookingConfirmation(
                booking_id=booking.id,
                flight_id=flight.id,
                customer_id=customer_id,
                seat_number=label,
                price_paid=price,
                payment_id=payment.id,
                transaction_ref=payment.transaction_ref,
                available_seats=flight.available_seats,
            )

        logger.info(
            "Booking %s confirmed: flight %s seat %s, %s seats left",
            confirmation.booking_id,
            flight_id,
            confirmation.seat_number,
            confirmation.available_seats,
        )
        return confirmation

    def _flight_of(self, booking_id: int) -> int:
        # A booking never moves between flights, so reading this outside
        # the lock is safe.
        with self._storage_errors(None):
            with self.session_factory() as session:
                flight_id = session.scalar(select(Booking.flight_id).where(Booking.id == booking_id))
        if flight_id is None:
            raise BookingNotFoundError(booking_id)
        return flight_id

    def cancel_booking(self, booking_id: int) -> CancellationConfirmation:
        """Cancel a confirmed booking, releasing its seat.

        The payment row is left as it is.
        """

        flight_id = self._flight_of(booking_id)

        with self._flight_transaction(flight_id) as session:
            flight = session.get(Flight, flight_id, with_for_update=True)
            booking = session.get(Booking, booking_id, with_for_update=True)
            if flight is None or booking is None:
                raise BookingNotFoundError(booking_id)
            if booking.status != BookingStatus.CONFIRMED:
                raise AlreadyCancelledError(booking_id)

            seat = session.scalars(
                select(Seat).where(Seat.flight_id == flight_id, Seat.seat_number == booking.seat_number)
            ).one_or_none()
            booking.status = BookingStatus.CANCELLED
            release_seat(flight, seat)

            confirmation = CancellationConfirmation(
                booking_id=booking.id,
                flight_id=flight_id,
                seat_number=booking.seat_number,
                available_seats=flight.available_seats,
            )

        logger.info(
            "Booking %s cancelled: flight %s seat %s released",
            booking_id,
            flight_id,
            confirmation.seat_number,
        )
        return confirmation


__all__ = [
    "BookingEngine",
    "BookingConfirmation",
    "CancellationConfirmation",
    "DEFAULT_LOCK_TIMEOUT",
    "translate_storage_error",
]
