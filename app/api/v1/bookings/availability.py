"""Vehicle availability over half-open windows.

A window [start, end) overlaps an existing booking when
start < existing.end_ts and end > existing.start_ts, so back-to-back
bookings that merely touch do not conflict.
"""
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking
from app.models.enums import BLOCKING_BOOKING_STATUSES


def overlapping_bookings_query(vehicle_id: UUID, start: datetime, end: datetime):
    return select(Booking.id).where(
        Booking.vehicle_id == vehicle_id,
        Booking.status.in_(BLOCKING_BOOKING_STATUSES),
        and_(Booking.start_ts < end, Booking.end_ts > start),
    )


async def is_vehicle_free(db: AsyncSession, vehicle_id: UUID, start: datetime, end: datetime) -> bool:
    """
    True when no hold/confirmed/checked_out booking of the vehicle overlaps [start, end).
    Runs on the caller's session so it shares the transaction that inserts the booking.
    """
    result = await db.execute(overlapping_bookings_query(vehicle_id, start, end).limit(1))
    return result.first() is None


async def list_blocking_windows(
    db: AsyncSession,
    vehicle_id: UUID,
    from_ts: datetime | None = None,
    to_ts: datetime | None = None,
) -> list[Booking]:
    query = select(Booking).where(
        Booking.vehicle_id == vehicle_id,
        Booking.status.in_(BLOCKING_BOOKING_STATUSES),
    )
    if from_ts:
        query = query.where(Booking.end_ts > from_ts)
    if to_ts:
        query = query.where(Booking.start_ts < to_ts)
    result = await db.execute(query.order_by(Booking.start_ts.asc()))
    return list(result.scalars().all())
