"""SQLAlchemy models for the flight seat inventory."""
from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class FlightStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    DELAYED = "DELAYED"
    CANCELLED = "CANCELLED"


class SeatClass(str, enum.Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class PaymentMode(str, enum.Enum):
    UPI = "UPI"
    CARD = "CARD"
    NETBANKING = "NETBANKING"
    CASH = "CASH"


class Base(DeclarativeBase):
    pass


class Airport(Base):
    __tablename__ = "airports"
    __table_args__ = (UniqueConstraint("code", name="uq_airport_code"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    city: Mapped[Optional[str]] = mapped_column(String(80))
    country: Mapped[Optional[str]] = mapped_column(String(80))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Flight(Base):
    __tablename__ = "flights"
    __table_args__ = (
        UniqueConstraint("flight_number", name="uq_flight_number"),
        CheckConstraint("total_seats > 0", name="ck_total_seats_positive"),
        CheckConstraint("available_seats >= 0", name="ck_available_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="ck_available_within_capacity"),
        Index("ix_flight_times", "departure_time", "arrival_time"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    flight_number: Mapped[str] = mapped_column(String(12), nullable=False)
    origin_id: Mapped[int] = mapped_column(ForeignKey("airports.id", ondelete="RESTRICT"), nullable=False)
    destination_id: Mapped[int] = mapped_column(ForeignKey("airports.id", ondelete="RESTRICT"), nullable=False)
    departure_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    arrival_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    status: Mapped[FlightStatus] = mapped_column(
        Enum(FlightStatus, name="flight_status"), default=FlightStatus.SCHEDULED, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    origin: Mapped[Airport] = relationship(foreign_keys=[origin_id])
    destination: Mapped[Airport] = relationship(foreign_keys=[destination_id])
    seats: Mapped[List["Seat"]] = relationship(back_populates="flight", cascade="all, delete-orphan")
    bookings: Mapped[List["Booking"]] = relationship(back_populates="flight", cascade="all, delete-orphan")


class Seat(Base):
    __tablename__ = "seats"
    __table_args__ = (UniqueConstraint("flight_id", "seat_number", name="uq_flight_seat"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    flight_id: Mapped[int] = mapped_column(ForeignKey("flights.id", ondelete="CASCADE"), index=True)
    seat_number: Mapped[str] = mapped_column(String(6), nullable=False)
    seat_class: Mapped[SeatClass] = mapped_column(
        Enum(SeatClass, name="seat_class"), default=SeatClass.ECONOMY, nullable=False
    )
    is_booked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    flight: Mapped[Flight] = relationship(back_populates="seats")


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("email", name="uq_customer_email"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(120))
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    nationality: Mapped[Optional[str]] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    # The database refuses to delete a customer who still has bookings.
    bookings: Mapped[List["Booking"]] = relationship(back_populates="customer", passive_deletes="all")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # A seat may be re-sold after a cancellation, so uniqueness only
        # covers live bookings.
        Index(
            "ux_bookings_confirmed_seat",
            "flight_id",
            "seat_number",
            unique=True,
            sqlite_where=text("status = 'CONFIRMED'"),
            postgresql_where=text("status = 'CONFIRMED'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    flight_id: Mapped[int] = mapped_column(ForeignKey("flights.id", ondelete="CASCADE"), index=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id", ondelete="RESTRICT"))
    booking_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    seat_number: Mapped[str] = mapped_column(String(6), nullable=False)
    price_paid: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status"), default=BookingStatus.CONFIRMED, nullable=False
    )
    payment_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("payments.id", use_alter=True, name="fk_bookings_payment_id")
    )

    flight: Mapped[Flight] = relationship(back_populates="bookings")
    customer: Mapped[Customer] = relationship(back_populates="bookings")
    payment: Mapped[Optional["Payment"]] = relationship(foreign_keys=[payment_id], post_update=True)


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    payment_mode: Mapped[PaymentMode] = mapped_column(
        Enum(PaymentMode, name="payment_mode"), default=PaymentMode.CARD, nullable=False
    )
    transaction_ref: Mapped[Optional[str]] = mapped_column(String(100))

    booking: Mapped[Booking] = relationship(foreign_keys=[booking_id])
