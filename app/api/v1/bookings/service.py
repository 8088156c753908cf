import logging
import uuid
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.v1.bookings.availability import is_vehicle_free
from app.api.v1.bookings.schemas import CreateBookingRequest, InspectionRequest, QuoteRequest
from app.core.config import settings
from app.core.exceptions import (
    BookingNotFound,
    InternalError,
    InvalidInspection,
    InvalidStateTransition,
    InvalidVehicle,
    VehicleUnavailable,
)
from app.core.pricing import (
    Quote,
    compute_excess_mileage,
    compute_quote,
    count_rental_days,
    ensure_quotable,
    price_for_days,
)
from app.core.utils import new_booking_code, normalize_booking_code
from app.models.booking import Booking
from app.models.customer import Customer
from app.models.enums import BookingStatus, InspectionType, VehicleStatus
from app.models.inspection import Inspection
from app.models.rate_plan import RatePlan
from app.models.vehicle import Vehicle

logger = logging.getLogger(__name__)

# Name of the PostgreSQL exclusion constraint added by migration 0002
OVERLAP_CONSTRAINT = "ex_bookings_vehicle_no_overlap"
CODE_ATTEMPTS = 10

# phase -> (required current status, status after the handover)
HANDOVER_TRANSITIONS = {
    InspectionType.checkout: (BookingStatus.confirmed.value, BookingStatus.checked_out.value),
    InspectionType.checkin: (BookingStatus.checked_out.value, BookingStatus.returned.value),
}


def _is_overlap_violation(exc: IntegrityError) -> bool:
    return OVERLAP_CONSTRAINT in str(exc.orig)


class BookingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Quote ---
    async def quote(self, data: QuoteRequest) -> Quote:
        rate_plan = await self.db.get(RatePlan, data.rate_plan_id)
        return compute_quote(rate_plan, data.start_ts, data.end_ts)

    # --- Create ---
    async def _lock_vehicle(self, vehicle_id: UUID) -> Vehicle | None:
        """Row lock on the vehicle; concurrent creations for the same vehicle queue here."""
        result = await self.db.execute(select(Vehicle).where(Vehicle.id == vehicle_id).with_for_update())
        return result.scalar_one_or_none()

    async def _generate_unique_code(self) -> str:
        for _ in range(CODE_ATTEMPTS):
            code = new_booking_code(settings.BOOKING_CODE_LENGTH)
            taken = await self.db.scalar(select(Booking.id).where(Booking.code == code))
            if taken is None:
                return code
        raise InternalError("Could not allocate a unique booking code")

    async def create_booking(self, data: CreateBookingRequest) -> Booking:
        """
        Place a hold: validate vehicle and rate plan, check availability and insert
        customer + booking, all in one transaction holding the vehicle row lock.
        """
        try:
            vehicle = await self._lock_vehicle(data.vehicle_id)
            if vehicle is None:
                raise InvalidVehicle()
            ensure_quotable(await self.db.get(RatePlan, data.rate_plan_id))
            count_rental_days(data.start_ts, data.end_ts)

            if not await is_vehicle_free(self.db, vehicle.id, data.start_ts, data.end_ts):
                raise VehicleUnavailable()

            customer = Customer(
                id=uuid.uuid4(),
                full_name=data.customer.full_name,
                phone_e164=data.customer.phone_e164,
                email=data.customer.email,
            )
            self.db.add(customer)
            booking = Booking(
                id=uuid.uuid4(),
                code=await self._generate_unique_code(),
                customer_id=customer.id,
                vehicle_id=vehicle.id,
                rate_plan_id=data.rate_plan_id,
                start_ts=data.start_ts,
                end_ts=data.end_ts,
                status=BookingStatus.hold.value,
                notes=data.notes,
            )
            self.db.add(booking)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_overlap_violation(e):
                raise VehicleUnavailable() from e
            raise
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Booking %s created on hold: code=%s vehicle=%s", booking.id, booking.code, booking.vehicle_id)
        return booking

    # --- State transitions ---
    async def _transition(self, booking_id: UUID, expected: str, target: str, *, commit: bool = True) -> Booking:
        """Compare-and-set the booking status; nothing is written when the current status differs."""
        result = await self.db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected)
            .values(status=target)
        )
        if result.rowcount != 1:
            current = await self.db.scalar(select(Booking.status).where(Booking.id == booking_id))
            if commit:
                await self.db.rollback()
            if current is None:
                raise BookingNotFound()
            raise InvalidStateTransition(f"Booking is {current}; {target} requires {expected}")
        if commit:
            await self.db.commit()
        booking = await self.db.get(Booking, booking_id)
        logger.info("Booking %s: %s -> %s", booking_id, expected, target)
        return booking

    async def confirm(self, booking_id: UUID, *, commit: bool = True) -> Booking:
        """hold -> confirmed. Confirming an already confirmed booking is an error, not a no-op."""
        return await self._transition(booking_id, BookingStatus.hold.value, BookingStatus.confirmed.value, commit=commit)

    async def cancel(self, booking_id: UUID) -> Booking:
        return await self._transition(booking_id, BookingStatus.hold.value, BookingStatus.canceled.value)

    # --- Handover ---
    async def record_handover(
        self,
        booking_id: UUID,
        phase: InspectionType,
        inspection: InspectionRequest | dict,
    ) -> tuple[Booking, Inspection]:
        """
        Record the checkout or checkin inspection and advance the booking
        (confirmed -> checked_out, checked_out -> returned) in one transaction.
        """
        if not isinstance(inspection, InspectionRequest):
            try:
                inspection = InspectionRequest.model_validate(inspection)
            except PydanticValidationError as e:
                raise InvalidInspection(str(e)) from e
        phase = InspectionType(phase)
        required, target = HANDOVER_TRANSITIONS[phase]

        try:
            result = await self.db.execute(select(Booking).where(Booking.id == booking_id).with_for_update())
            booking = result.scalar_one_or_none()
            if booking is None:
                raise BookingNotFound()
            if booking.status != required:
                raise InvalidStateTransition(f"{phase.value} requires a {required} booking; booking is {booking.status}")

            record = Inspection(
                id=uuid.uuid4(),
                booking_id=booking.id,
                type=phase.value,
                odo_km=inspection.odo_km,
                fuel_level=inspection.fuel_level,
                photos=list(inspection.photos),
                checklist=dict(inspection.checklist),
                notes=inspection.notes,
            )
            self.db.add(record)
            await self.db.flush()

            moved = await self.db.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.status == required)
                .values(status=target)
            )
            if moved.rowcount != 1:
                raise InvalidStateTransition()

            vehicle = await self.db.get(Vehicle, booking.vehicle_id)
            if vehicle is not None:
                vehicle.odo_km = max(vehicle.odo_km or 0, inspection.odo_km)
                if phase == InspectionType.checkout:
                    vehicle.status = VehicleStatus.out.value
                elif vehicle.status == VehicleStatus.out.value:
                    vehicle.status = VehicleStatus.available.value
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise InvalidStateTransition(f"{phase.value} inspection already recorded") from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Booking %s %s recorded: inspection=%s status=%s", booking_id, phase.value, record.id, target)
        return booking, record

    # --- Final settlement ---
    async def close(self, booking_id: UUID) -> dict:
        """returned -> closed, with the rental price and any excess mileage charge."""
        try:
            booking = await self._transition(
                booking_id, BookingStatus.returned.value, BookingStatus.closed.value, commit=False
            )
            rate_plan = await self.db.get(RatePlan, booking.rate_plan_id)
            result = await self.db.execute(select(Inspection).where(Inspection.booking_id == booking.id))
            readings = {i.type: i.odo_km for i in result.scalars().all()}
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        days = count_rental_days(booking.start_ts, booking.end_ts)
        out_km = readings.get(InspectionType.checkout.value)
        in_km = readings.get(InspectionType.checkin.value)
        km_driven = max(0, in_km - out_km) if out_km is not None and in_km is not None else 0
        return {
            "id": booking.id,
            "status": booking.status,
            "days": days,
            "base": price_for_days(days, rate_plan.daily_rate, rate_plan.weekly_rate),
            "km_driven": km_driven,
            "excess_km_charge": compute_excess_mileage(rate_plan, days, km_driven),
            "currency": settings.CURRENCY,
        }

    # --- Lookup ---
    async def get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.db.get(Booking, booking_id)
        if booking is None:
            raise BookingNotFound()
        return booking

    async def lookup_by_code(self, code: str) -> Booking:
        """Case-insensitive lookup; codes are stored upper-case."""
        result = await self.db.execute(
            select(Booking)
            .options(selectinload(Booking.customer), selectinload(Booking.vehicle))
            .where(Booking.code == normalize_booking_code(code))
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFound()
        return booking
