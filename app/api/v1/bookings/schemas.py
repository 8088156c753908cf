from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, StrictBool, field_validator, model_validator

from app.core.utils import to_naive_local

MAX_INSPECTION_PHOTOS = 12
MAX_NOTES_LENGTH = 1000


# --- Quote ---
class QuoteRequest(BaseModel):
    vehicle_id: UUID = Field(..., description="Vehicle to quote for")
    rate_plan_id: UUID = Field(..., description="Rate plan to price with")
    start_ts: datetime = Field(..., description="Window start (inclusive)")
    end_ts: datetime = Field(..., description="Window end (exclusive)")

    @field_validator("start_ts", "end_ts")
    @classmethod
    def strip_offset(cls, value: datetime) -> datetime:
        return to_naive_local(value)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_ts <= self.start_ts:
            raise ValueError("end_ts must be after start_ts")
        return self


class QuoteResponse(BaseModel):
    vehicle_id: UUID
    rate_plan_id: UUID
    start_ts: datetime
    end_ts: datetime
    days: int
    base: int = Field(..., description="Rental price in minor units")
    deposit: int = Field(..., description="Deposit in minor units (not prorated)")
    currency: str


# --- Create ---
class CustomerInfo(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=120)
    phone_e164: str = Field(..., pattern=r"^\+\d{7,15}$", description="E.164 phone, e.g. +254712345678")
    email: Optional[EmailStr] = None


class CreateBookingRequest(QuoteRequest):
    customer: CustomerInfo
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class CreateBookingResponse(BaseModel):
    id: UUID
    code: str
    status: str


class BookingStatusResponse(BaseModel):
    id: UUID
    status: str


class BookingResponse(BaseModel):
    id: UUID
    code: str
    customer_id: UUID
    vehicle_id: UUID
    rate_plan_id: UUID
    start_ts: datetime
    end_ts: datetime
    status: str
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# --- Lookup by code ---
class CustomerSummary(BaseModel):
    id: UUID
    full_name: str
    phone_e164: str
    email: Optional[str] = None

    class Config:
        from_attributes = True


class VehicleSummary(BaseModel):
    id: UUID
    plate: str
    make: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None

    class Config:
        from_attributes = True


class BookingLookupResponse(BookingResponse):
    customer: CustomerSummary
    vehicle: VehicleSummary


# --- Handover ---
class InspectionRequest(BaseModel):
    """Odometer/fuel/photo record taken at check-out or check-in."""
    odo_km: int = Field(..., ge=0, description="Odometer reading in km")
    fuel_level: str = Field(..., pattern=r"^[0-8]/8$", description="Fuel in eighths, e.g. '7/8'")
    photos: List[str] = Field(default_factory=list, max_length=MAX_INSPECTION_PHOTOS, description="Photo URLs or storage keys")
    checklist: Dict[str, StrictBool] = Field(default_factory=dict, description="Named yes/no checks, e.g. {'spare_tyre': true}")
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class HandoverResponse(BaseModel):
    id: UUID
    status: str
    inspection_id: UUID


# --- Settlement ---
class SettlementResponse(BaseModel):
    id: UUID
    status: str
    days: int
    base: int
    km_driven: int
    excess_km_charge: int
    currency: str
