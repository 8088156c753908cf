from typing import List, Optional
from uuid import UUID
from datetime import datetime

from pydantic import BaseModel, Field


class CreateVehicleRequest(BaseModel):
    plate: str = Field(..., min_length=2, max_length=16, description="Registration plate (unique)")
    make: Optional[str] = Field(None, max_length=40, description="Vehicle manufacturer")
    model: Optional[str] = Field(None, max_length=40, description="Vehicle model")
    year: Optional[int] = Field(None, ge=1900, description="Vehicle year")
    color: Optional[str] = Field(None, max_length=30, description="Vehicle color")
    odo_km: int = Field(0, ge=0, description="Odometer reading in km")
    status: Optional[str] = Field("available", description="Vehicle status (available/booked/out/service)")


class VehicleResponse(BaseModel):
    id: UUID
    plate: str
    make: Optional[str]
    model: Optional[str]
    year: Optional[int]
    color: Optional[str]
    odo_km: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class BookedWindow(BaseModel):
    booking_id: UUID
    start_ts: datetime
    end_ts: datetime
    status: str


class VehicleAvailabilityResponse(BaseModel):
    vehicle_id: UUID
    free: Optional[bool] = Field(None, description="Whether [from_ts, to_ts) is free; set when both bounds are given")
    booked: List[BookedWindow]
