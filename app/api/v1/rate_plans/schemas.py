from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CreateRatePlanRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=60)
    daily_rate: int = Field(..., gt=0, description="Daily rate in minor units")
    weekly_rate: Optional[int] = Field(None, gt=0, description="Price of a full 7-day week in minor units")
    deposit_amount: int = Field(..., ge=0, description="Deposit in minor units")
    km_included_per_day: int = Field(150, gt=0)
    extra_km_rate: int = Field(0, ge=0, description="Charge per km beyond the daily allowance")
    weekend_multiplier: Decimal = Field(Decimal("1.00"), ge=Decimal("0.5"), le=Decimal("5"), decimal_places=2)
    active: bool = True


class UpdateRatePlanRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=60)
    daily_rate: Optional[int] = Field(None, gt=0)
    weekly_rate: Optional[int] = Field(None, gt=0)
    deposit_amount: Optional[int] = Field(None, ge=0)
    km_included_per_day: Optional[int] = Field(None, gt=0)
    extra_km_rate: Optional[int] = Field(None, ge=0)
    weekend_multiplier: Optional[Decimal] = Field(None, ge=Decimal("0.5"), le=Decimal("5"), decimal_places=2)
    active: Optional[bool] = None


class RatePlanResponse(BaseModel):
    id: UUID
    name: str
    daily_rate: int
    weekly_rate: Optional[int]
    deposit_amount: int
    km_included_per_day: int
    extra_km_rate: int
    weekend_multiplier: Decimal
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True
