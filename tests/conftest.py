from __future__ import annotations

import itertools
from datetime import datetime, timedelta

import pytest

from flight_inventory.booking import BookingEngine
from flight_inventory.database import create_session_factory, session_scope
from flight_inventory.models import Base
from flight_inventory.services import add_airport, add_customer, add_flight, get_airport_by_code


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+pysqlite:///{tmp_path / 'airline-test.db'}"


@pytest.fixture
def session_factory(db_url):
    engine, factory = create_session_factory(db_url)
    Base.metadata.create_all(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def booking_engine(session_factory):
    return BookingEngine(session_factory, lock_timeout=10)


@pytest.fixture
def make_flight(session_factory):
    numbers = itertools.count(100)

    def _make(total_seats: int = 6, base_price: str = "5000.00") -> int:
        departure = datetime(2025, 11, 10, 6, 0)
        with session_scope(session_factory) as session:
            if get_airport_by_code(session, "DEL") is None:
                add_airport(session, code="DEL", name="Indira Gandhi Intl", city="New Delhi", country="India")
                add_airport(session, code="BLR", name="Kempegowda Intl", city="Bengaluru", country="India")
            flight = add_flight(
                session,
                flight_number=f"AI{next(numbers)}",
                origin="DEL",
                destination="BLR",
                departure_time=departure,
                arrival_time=departure + timedelta(hours=2),
                total_seats=total_seats,
                base_price=base_price,
            )
            return flight.id

    return _make


@pytest.fixture
def make_customer(session_factory):
    emails = itertools.count(1)

    def _make(full_name: str = "Test Traveller") -> int:
        with session_scope(session_factory) as session:
            customer = add_customer(
                session,
                full_name=full_name,
                email=f"traveller{next(emails)}@example.com",
                phone="+919800000000",
                nationality="India",
            )
            return customer.id

    return _make
