from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.vehicles.schemas import (
    CreateVehicleRequest,
    VehicleAvailabilityResponse,
    VehicleResponse,
)
from app.api.v1.vehicles.service import VehicleService
from app.core.deps import get_db

router = APIRouter()


@router.post(
    "/",
    response_model=VehicleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a vehicle",
    description="Add a vehicle to the rental fleet. Plates are unique.",
)
async def create_vehicle(vehicle_data: CreateVehicleRequest, db: AsyncSession = Depends(get_db)):
    vehicle = await VehicleService(db).create_vehicle(vehicle_data)
    return VehicleResponse.model_validate(vehicle)


@router.get(
    "/",
    response_model=List[VehicleResponse],
    summary="Get all vehicles",
    description="Retrieve the fleet with optional filtering by status.",
)
async def get_all_vehicles(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
    status: Optional[str] = Query(None, description="Filter by vehicle status (available/booked/out/service)"),
    db: AsyncSession = Depends(get_db),
):
    vehicles = await VehicleService(db).get_all_vehicles(skip=skip, limit=limit, status=status)
    return [VehicleResponse.model_validate(vehicle) for vehicle in vehicles]


@router.get("/{vehicle_id}", response_model=VehicleResponse, summary="Get vehicle by ID")
async def get_vehicle_by_id(vehicle_id: UUID, db: AsyncSession = Depends(get_db)):
    vehicle = await VehicleService(db).get_vehicle(vehicle_id)
    return VehicleResponse.model_validate(vehicle)


@router.get(
    "/{vehicle_id}/availability",
    response_model=VehicleAvailabilityResponse,
    summary="Vehicle availability",
    description="Active bookings (hold/confirmed/checked_out) of the vehicle, and whether [from_ts, to_ts) is free.",
)
async def get_vehicle_availability(
    vehicle_id: UUID,
    from_ts: Optional[datetime] = Query(None, description="Window start (inclusive)"),
    to_ts: Optional[datetime] = Query(None, description="Window end (exclusive)"),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleService(db).get_availability(vehicle_id, from_ts, to_ts)
