import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.payments.schemas import (
    CallbackAck,
    InitiateDepositRequest,
    InitiateDepositResponse,
    PaymentResponse,
)
from app.api.v1.payments.service import CallbackOutcome, PaymentService
from app.core.database import Database
from app.core.deps import get_database, get_db, get_payment_provider
from app.core.mpesa_client import MpesaClient

logger = logging.getLogger(__name__)

router = APIRouter()


async def process_provider_callback(database: Database, payload: Any) -> CallbackOutcome:
    """Runs after the acknowledgment is sent, on its own session."""
    async with database.session_maker() as session:
        return await PaymentService(session).handle_provider_callback(payload)


@router.post(
    "/deposit/initiate",
    response_model=InitiateDepositResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initiate deposit payment",
    description="Create a pending deposit payment for a booking and send an M-Pesa STK push to the payer. 502 when the provider rejects or times out; the pending payment is kept.",
    tags=["payments"],
)
async def initiate_deposit(
    data: InitiateDepositRequest,
    db: AsyncSession = Depends(get_db),
    provider: MpesaClient = Depends(get_payment_provider),
):
    logger.info("POST /payments/deposit/initiate: booking_id=%s amount_override=%s", data.booking_id, data.amount_override)
    service = PaymentService(db, provider)
    result = await service.initiate_deposit(
        booking_id=data.booking_id,
        phone_override=data.phone_e164,
        amount_override=data.amount_override,
    )
    return InitiateDepositResponse(**result)


@router.post(
    "/provider/callback",
    response_model=CallbackAck,
    summary="Payment provider webhook",
    description="M-Pesa result callback. Always acknowledged with {ok: true}; reconciliation runs after the response and never reports errors to the provider.",
    tags=["payments"],
)
async def provider_callback(
    request: Request,
    background_tasks: BackgroundTasks,
    database: Database = Depends(get_database),
):
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    background_tasks.add_task(process_provider_callback, database, payload)
    return CallbackAck(ok=True)


@router.get("/{payment_id}", response_model=PaymentResponse, summary="Get payment by ID", tags=["payments"])
async def get_payment(payment_id: UUID, db: AsyncSession = Depends(get_db)):
    payment = await PaymentService(db).get_payment(payment_id)
    return PaymentResponse.model_validate(payment)
