from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.bookings.schemas import (
    BookingLookupResponse,
    BookingResponse,
    BookingStatusResponse,
    CreateBookingRequest,
    CreateBookingResponse,
    HandoverResponse,
    InspectionRequest,
    QuoteRequest,
    QuoteResponse,
    SettlementResponse,
)
from app.api.v1.bookings.service import BookingService
from app.core.deps import get_db
from app.core.exceptions import BadStateOrNotFound, BookingNotFound, InvalidStateTransition
from app.models.enums import InspectionType

router = APIRouter()


@router.post(
    "/quote",
    response_model=QuoteResponse,
    summary="Quote a rental",
    description="Price a rental window with a rate plan: day count, base price and deposit. No side effects.",
)
async def quote_booking(data: QuoteRequest, db: AsyncSession = Depends(get_db)):
    quote = await BookingService(db).quote(data)
    return QuoteResponse(
        vehicle_id=data.vehicle_id,
        rate_plan_id=data.rate_plan_id,
        start_ts=quote.start_ts,
        end_ts=quote.end_ts,
        days=quote.days,
        base=quote.base,
        deposit=quote.deposit,
        currency=quote.currency,
    )


@router.post(
    "/",
    response_model=CreateBookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a booking hold",
    description="Record the customer and place the vehicle on hold for the window. 409 vehicle_unavailable when the window overlaps an active booking.",
)
async def create_booking(data: CreateBookingRequest, db: AsyncSession = Depends(get_db)):
    booking = await BookingService(db).create_booking(data)
    return CreateBookingResponse(id=booking.id, code=booking.code, status=booking.status)


@router.get(
    "/by-code/{code}",
    response_model=BookingLookupResponse,
    summary="Find a booking by code",
    description="Case-insensitive lookup by the booking code given to the customer, with customer and vehicle details.",
)
async def get_booking_by_code(code: str, db: AsyncSession = Depends(get_db)):
    booking = await BookingService(db).lookup_by_code(code)
    return BookingLookupResponse.model_validate(booking)


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get booking by ID")
async def get_booking(booking_id: UUID, db: AsyncSession = Depends(get_db)):
    booking = await BookingService(db).get_booking(booking_id)
    return BookingResponse.model_validate(booking)


@router.post(
    "/{booking_id}/confirm",
    response_model=BookingStatusResponse,
    summary="Confirm a booking",
    description="Manually confirm a booking on hold (normally done by a successful deposit).",
)
async def confirm_booking(booking_id: UUID, db: AsyncSession = Depends(get_db)):
    try:
        booking = await BookingService(db).confirm(booking_id)
    except (BookingNotFound, InvalidStateTransition) as e:
        raise BadStateOrNotFound(e.message) from e
    return BookingStatusResponse(id=booking.id, status=booking.status)


@router.post("/{booking_id}/cancel", response_model=BookingStatusResponse, summary="Cancel a booking on hold")
async def cancel_booking(booking_id: UUID, db: AsyncSession = Depends(get_db)):
    try:
        booking = await BookingService(db).cancel(booking_id)
    except (BookingNotFound, InvalidStateTransition) as e:
        raise BadStateOrNotFound(e.message) from e
    return BookingStatusResponse(id=booking.id, status=booking.status)


@router.post(
    "/{booking_id}/check-out",
    response_model=HandoverResponse,
    summary="Hand the vehicle to the customer",
    description="Record the checkout inspection; the booking must be confirmed.",
)
async def check_out(booking_id: UUID, data: InspectionRequest, db: AsyncSession = Depends(get_db)):
    booking, inspection = await BookingService(db).record_handover(booking_id, InspectionType.checkout, data)
    return HandoverResponse(id=booking.id, status=booking.status, inspection_id=inspection.id)


@router.post(
    "/{booking_id}/check-in",
    response_model=HandoverResponse,
    summary="Take the vehicle back",
    description="Record the checkin inspection; the booking must be checked out.",
)
async def check_in(booking_id: UUID, data: InspectionRequest, db: AsyncSession = Depends(get_db)):
    booking, inspection = await BookingService(db).record_handover(booking_id, InspectionType.checkin, data)
    return HandoverResponse(id=booking.id, status=booking.status, inspection_id=inspection.id)


@router.post(
    "/{booking_id}/close",
    response_model=SettlementResponse,
    summary="Close a returned booking",
    description="Final settlement: rental price and excess mileage from the handover odometer readings.",
)
async def close_booking(booking_id: UUID, db: AsyncSession = Depends(get_db)):
    return SettlementResponse(**await BookingService(db).close(booking_id))
