"""FastAPI application exposing booking, cancellation and reports."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from io import BytesIO, StringIO
from typing import Dict, Literal, Optional, Type

import pandas as pd
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, sessionmaker

from . import reporting, services
from .booking import BookingEngine
from .database import init_db
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
)
from .models import Flight, PaymentMode

ReportName = Literal["load", "daily", "revenue"]

_STATUS_CODES: Dict[Type[InventoryError], int] = {
    FlightNotFoundError: 404,
    BookingNotFoundError: 404,
    CustomerNotFoundError: 404,
    NoSeatsAvailableError: 409,
    SeatUnavailableError: 409,
    AlreadyCancelledError: 409,
    InvalidBookingRequestError: 422,
    FlightBusyError: 503,
}

_BUSY_RETRY_AFTER_SECONDS = "1"


class BookingRequest(BaseModel):
    customer_id: int = Field(..., gt=0, description="Customer making the booking")
    seat_number: Optional[str] = Field(
        default=None,
        max_length=6,
        description="Requested seat label; omit for automatic assignment",
        examples=["12C"],
    )
    amount: Decimal = Field(..., ge=0, description="Amount paid", examples=[5000])
    payment_mode: PaymentMode = Field(default=PaymentMode.CARD, description="Payment mode")


def _status_for(exc: InventoryError) -> int:
    for error_type, status in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status
    return 500


def _flight_payload(flight: Flight) -> dict:
    return {
        "id": flight.id,
        "flight_number": flight.flight_number,
        "origin": flight.origin.code,
        "destination": flight.destination.code,
        "departure_time": flight.departure_time.isoformat(),
        "arrival_time": flight.arrival_time.isoformat(),
        "total_seats": flight.total_seats,
        "available_seats": flight.available_seats,
        "base_price": str(flight.base_price),
        "status": flight.status.value,
    }


def _jsonable(rows: list[dict]) -> list[dict]:
    def convert(value):
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    return [{key: convert(value) for key, value in row.items()} for row in rows]


def create_app(
    session_factory: Optional[sessionmaker[Session]] = None,
    *,
    engine: Optional[BookingEngine] = None,
) -> FastAPI:
    """Return an application bound to ``session_factory`` (default database if omitted)."""

    if engine is None:
        engine = BookingEngine(session_factory or init_db())
    session_factory = engine.session_factory

    app = FastAPI(title="Flight Inventory", description="Seat booking without overselling")
    app.state.engine = engine

    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
        headers = {"Retry-After": _BUSY_RETRY_AFTER_SECONDS} if exc.retryable else None
        return JSONResponse(
            status_code=_status_for(exc),
            content={"error": exc.code, "detail": str(exc), "retryable": exc.retryable},
            headers=headers,
        )

    @app.get("/flights")
    def list_flights(
        origin: Optional[str] = Query(None, description="Origin airport code or city"),
        destination: Optional[str] = Query(None, description="Destination airport code or city"),
        departure_date: Optional[date] = Query(None, alias="date", description="Departure day"),
    ) -> list[dict]:
        day = datetime.combine(departure_date, datetime.min.time()) if departure_date else None
        with session_factory() as session:
            flights = services.search_flights(
                session, origin=origin, destination=destination, departure_date=day
            )
            return [_flight_payload(flight) for flight in flights]

    @app.get("/flights/{flight_id}")
    def get_flight(flight_id: int) -> dict:
        with session_factory() as session:
            flight = session.get(Flight, flight_id)
            if flight is None:
                raise FlightNotFoundError(flight_id)
            payload = _flight_payload(flight)
            payload["free_seats"] = services.list_free_seats(session, flight_id)
            return payload

    @app.post("/flights/{flight_id}/bookings", status_code=201)
    def create_booking(flight_id: int, body: BookingRequest) -> dict:
        confirmation = engine.make_booking(
            flight_id,
            body.customer_id,
            seat_number=body.seat_number,
            amount=body.amount,
            payment_mode=body.payment_mode,
        )
        return {
            "booking_id": confirmation.booking_id,
            "flight_id": confirmation.flight_id,
            "seat_number": confirmation.seat_number,
            "price_paid": str(confirmation.price_paid),
            "payment_id": confirmation.payment_id,
            "transaction_ref": confirmation.transaction_ref,
            "available_seats": confirmation.available_seats,
        }

    @app.post("/bookings/{booking_id}/cancel")
    def cancel_booking(booking_id: int) -> dict:
        cancelled = engine.cancel_booking(booking_id)
        return {
            "booking_id": cancelled.booking_id,
            "flight_id": cancelled.flight_id,
            "seat_number": cancelled.seat_number,
            "available_seats": cancelled.available_seats,
            "message": cancelled.message,
        }

    @app.get("/reports/{name}")
    def report(name: ReportName) -> list[dict]:
        with session_factory() as session:
            return _jsonable(reporting.REPORTS[name](session))

    @app.get("/reports/{name}/download/{file_format}")
    def download(name: ReportName, file_format: Literal["csv", "xlsx"]) -> StreamingResponse:
        with session_factory() as session:
            dataframe = reporting.as_dataframe(reporting.REPORTS[name](session))

        filename = f"{name}_report.{file_format}"
        headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}

        if file_format == "csv":
            buffer = StringIO()
            dataframe.to_csv(buffer, index=False)
            buffer.seek(0)
            return StreamingResponse(iter([buffer.getvalue()]), media_type="text/csv", headers=headers)

        if file_format == "xlsx":
            buffer = BytesIO()
            with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
                dataframe.to_excel(writer, index=False, sheet_name=name.title())
            buffer.seek(0)
            return StreamingResponse(
                buffer,
                media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                headers=headers,
            )

        raise HTTPException(status_code=404, detail="Unsupported format")

    return app


__all__ = ["BookingRequest", "create_app"]
