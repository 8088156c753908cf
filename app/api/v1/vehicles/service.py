from datetime import datetime
from typing import List, Optional
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.api.v1.bookings.availability import is_vehicle_free, list_blocking_windows
from app.api.v1.vehicles.schemas import CreateVehicleRequest
from app.core.exceptions import DuplicatePlate, ValidationError, VehicleNotFound
from app.core.utils import to_naive_local
from app.models.vehicle import Vehicle
from app.models.enums import VehicleStatus


def _normalize_plate(plate: str) -> str:
    return "".join(plate.split()).upper()


class VehicleService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_vehicle(self, vehicle_data: CreateVehicleRequest) -> Vehicle:
        plate = _normalize_plate(vehicle_data.plate)
        existing_vehicle = await self.db.execute(select(Vehicle).where(Vehicle.plate == plate))
        if existing_vehicle.scalar_one_or_none():
            raise DuplicatePlate(f"Vehicle with plate {plate} already exists")

        if vehicle_data.status and vehicle_data.status not in [s.value for s in VehicleStatus]:
            raise ValidationError(f"Invalid status. Must be one of: {[s.value for s in VehicleStatus]}")

        new_vehicle = Vehicle(
            id=uuid.uuid4(),
            plate=plate,
            make=vehicle_data.make,
            model=vehicle_data.model,
            year=vehicle_data.year,
            color=vehicle_data.color,
            odo_km=vehicle_data.odo_km,
            status=vehicle_data.status or VehicleStatus.available.value,
        )
        self.db.add(new_vehicle)
        await self.db.commit()
        await self.db.refresh(new_vehicle)
        return new_vehicle

    async def get_vehicle(self, vehicle_id: uuid.UUID) -> Vehicle:
        vehicle = await self.db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise VehicleNotFound(f"Vehicle with id {vehicle_id} not found")
        return vehicle

    async def get_all_vehicles(self, skip: int = 0, limit: int = 100, status: Optional[str] = None) -> List[Vehicle]:
        query = select(Vehicle)
        if status:
            query = query.where(Vehicle.status == status)
        query = query.order_by(Vehicle.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_availability(
        self,
        vehicle_id: uuid.UUID,
        from_ts: Optional[datetime] = None,
        to_ts: Optional[datetime] = None,
    ) -> dict:
        vehicle = await self.get_vehicle(vehicle_id)
        from_ts = to_naive_local(from_ts) if from_ts else None
        to_ts = to_naive_local(to_ts) if to_ts else None
        if from_ts and to_ts and to_ts <= from_ts:
            raise ValidationError("to_ts must be after from_ts")
        booked = await list_blocking_windows(self.db, vehicle.id, from_ts, to_ts)
        free = None
        if from_ts and to_ts:
            free = await is_vehicle_free(self.db, vehicle.id, from_ts, to_ts)
        return {
            "vehicle_id": vehicle.id,
            "free": free,
            "booked": [
                {"booking_id": b.id, "start_ts": b.start_ts, "end_ts": b.end_ts, "status": b.status}
                for b in booked
            ],
        }
