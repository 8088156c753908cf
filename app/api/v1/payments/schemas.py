from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class InitiateDepositRequest(BaseModel):
    """Start an M-Pesa STK push for a booking deposit."""
    booking_id: UUID = Field(..., description="Booking the deposit is for")
    phone_e164: Optional[str] = Field(
        None,
        pattern=r"^\+?\d{7,15}$",
        description="Phone to prompt; defaults to the booking customer's phone",
    )
    amount_override: Optional[int] = Field(
        None,
        description="Amount in minor units; defaults to the rate plan deposit. Must be positive.",
    )


class InitiateDepositResponse(BaseModel):
    payment_id: UUID
    booking_id: UUID
    amount: int
    currency: str
    status: str = Field(..., description="pending until the provider callback settles it")
    provider: Dict[str, Any] = Field(..., description="Provider acknowledgment (MerchantRequestID, CheckoutRequestID, ...)")
    message: str


class PaymentResponse(BaseModel):
    id: UUID
    booking_id: UUID
    channel: str
    ref: Optional[str] = None
    provider_request_id: Optional[str] = None
    amount: int
    currency: str
    type: str
    status: str
    paid_ts: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CallbackAck(BaseModel):
    ok: bool = True
