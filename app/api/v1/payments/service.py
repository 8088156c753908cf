import logging
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.bookings.service import BookingService
from app.api.v1.payments.callbacks import (
    PaybillConfirmation,
    ProviderNotification,
    StkResult,
    UnrecognizedPayload,
    parse_provider_callback,
)
from app.core.config import settings
from app.core.exceptions import (
    BookingNotFound,
    InvalidAmount,
    InvalidStateTransition,
    NotFound,
    UpstreamError,
    ValidationError,
)
from app.core.mpesa_client import MpesaClient, MpesaError
from app.core.utils import local_now, normalize_booking_code
from app.models.booking import Booking
from app.models.customer import Customer
from app.models.enums import PaymentChannel, PaymentStatus, PaymentType
from app.models.payment import Payment
from app.models.rate_plan import RatePlan

logger = logging.getLogger(__name__)

# ref written by the pending payment sweep; such payments still accept a provider result
EXPIRED_REF = "expired"


def _awaiting_result():
    """Payments a provider result may still be applied to: pending, or failed only by the sweep."""
    return or_(
        Payment.status == PaymentStatus.pending.value,
        and_(Payment.status == PaymentStatus.failed.value, Payment.ref == EXPIRED_REF),
    )


class CallbackOutcome(str, Enum):
    confirmed = "confirmed"  # payment succeeded and the booking moved hold -> confirmed
    paid = "paid"  # payment succeeded; booking was not on hold
    failed = "failed"
    duplicate = "duplicate"
    late_success = "late_success"  # provider reports success for a payment already settled as failed
    unmatched = "unmatched"
    unrecognized = "unrecognized"
    error = "error"


class PaymentService:
    def __init__(self, db: AsyncSession, provider: MpesaClient | None = None):
        self.db = db
        self.provider = provider

    # --- Initiation ---
    async def initiate_deposit(
        self,
        booking_id: UUID,
        phone_override: str | None = None,
        amount_override: int | None = None,
    ) -> dict:
        """
        Record a pending deposit payment, then ask the provider to prompt the payer.
        The pending row is committed before the provider call, so a provider outage leaves
        it pending for the callback or the sweep to settle.
        """
        booking = await self.db.get(Booking, booking_id)
        if not booking:
            raise BookingNotFound()
        rate_plan = await self.db.get(RatePlan, booking.rate_plan_id)
        if not rate_plan:
            raise ValidationError("Rate plan missing for booking")
        customer = await self.db.get(Customer, booking.customer_id)
        if not customer:
            raise ValidationError("Customer missing for booking")

        amount = rate_plan.deposit_amount if amount_override is None else amount_override
        if amount is None or amount <= 0:
            raise InvalidAmount()

        payment = Payment(
            id=uuid.uuid4(),
            booking_id=booking.id,
            channel=PaymentChannel.mpesa.value,
            ref=None,
            amount=amount,
            currency=settings.CURRENCY,
            type=PaymentType.deposit.value,
            status=PaymentStatus.pending.value,
            paid_ts=None,
        )
        self.db.add(payment)
        await self.db.commit()

        phone = phone_override or customer.phone_e164
        provider = self.provider or MpesaClient()
        try:
            ack = await provider.stk_push(
                phone_e164=phone,
                amount=amount,
                account_ref=booking.code,
                description=f"Booking {booking.code}",
            )
        except MpesaError as e:
            logger.warning("Deposit request failed: payment=%s booking=%s error=%s", payment.id, booking.id, e)
            raise UpstreamError(f"Payment provider request failed: {e}") from e

        request_id = ack.get("CheckoutRequestID")
        if request_id:
            payment.provider_request_id = str(request_id)
            payment.merchant_request_id = ack.get("MerchantRequestID")
            await self.db.commit()
        else:
            logger.warning("Provider ack without CheckoutRequestID: payment=%s ack=%s", payment.id, ack)

        return {
            "payment_id": payment.id,
            "booking_id": booking.id,
            "amount": amount,
            "currency": payment.currency,
            "status": payment.status,
            "provider": ack,
            "message": "STK push initiated. Prompt will appear on phone.",
        }

    async def get_payment(self, payment_id: UUID) -> Payment:
        payment = await self.db.get(Payment, payment_id)
        if not payment:
            raise NotFound("Payment not found")
        return payment

    # --- Callback reconciliation ---
    async def _already_settled(self, receipt: str | None) -> bool:
        if not receipt:
            return False
        found = await self.db.scalar(
            select(Payment.id).where(Payment.ref == receipt, Payment.status == PaymentStatus.success.value).limit(1)
        )
        return found is not None

    async def _find_payment(self, notification: StkResult | PaybillConfirmation) -> Payment | None:
        """
        Correlate a notification with a payment:
        provider request id first, then the PayBill account reference (booking code),
        then the newest pending payment of the same amount that has no request id yet.
        Payments expired by the sweep are still candidates.
        """
        if notification.request_id:
            payment = await self.db.scalar(
                select(Payment).where(Payment.provider_request_id == notification.request_id)
            )
            if payment is not None:
                return payment

        if isinstance(notification, PaybillConfirmation) and notification.account_ref:
            query = (
                select(Payment)
                .join(Booking, Booking.id == Payment.booking_id)
                .where(
                    Booking.code == normalize_booking_code(notification.account_ref),
                    _awaiting_result(),
                    Payment.type == PaymentType.deposit.value,
                )
            )
            if notification.amount is not None:
                query = query.where(Payment.amount == notification.amount)
            payment = await self.db.scalar(query.order_by(Payment.created_at.desc()).limit(1))
            if payment is not None:
                return payment

        if notification.amount is None:
            return None
        result = await self.db.execute(
            select(Payment)
            .where(
                _awaiting_result(),
                Payment.amount == notification.amount,
                Payment.provider_request_id.is_(None),
            )
            .order_by(
                (Payment.status == PaymentStatus.pending.value).desc(),
                Payment.paid_ts.desc().nulls_first(),
                Payment.created_at.desc(),
            )
            .limit(settings.CALLBACK_MATCH_LIMIT)
        )
        candidates = list(result.scalars().all())
        if len(candidates) > 1:
            logger.warning(
                "Callback matched %d pending payments by amount=%s; using most recent %s",
                len(candidates),
                notification.amount,
                candidates[0].id,
            )
        return candidates[0] if candidates else None

    async def _settle(self, payment: Payment, notification: StkResult | PaybillConfirmation) -> CallbackOutcome:
        """
        Apply the result to a payment still awaiting one; a second delivery updates zero rows
        and is a no-op. A success that can no longer be applied is logged for manual follow-up.
        """
        values: dict[str, Any] = {"paid_ts": local_now()}
        if notification.request_id and not payment.provider_request_id:
            values["provider_request_id"] = notification.request_id
        if notification.succeeded:
            values.update(status=PaymentStatus.success.value, ref=notification.receipt or notification.phone)
        else:
            values.update(
                status=PaymentStatus.failed.value,
                ref=notification.receipt or notification.phone or f"code_{notification.result_code}",
            )

        result = await self.db.execute(
            update(Payment)
            .where(Payment.id == payment.id, _awaiting_result())
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            payment_id, booking_id = payment.id, payment.booking_id
            stored = (
                await self.db.execute(select(Payment.status, Payment.ref).where(Payment.id == payment_id))
            ).one()
            await self.db.rollback()
            if notification.succeeded and stored.status == PaymentStatus.failed.value:
                logger.warning(
                    "Late success for failed payment needs manual follow-up: payment=%s booking=%s receipt=%s ref=%s",
                    payment_id,
                    booking_id,
                    notification.receipt,
                    stored.ref,
                )
                return CallbackOutcome.late_success
            logger.info(
                "Duplicate callback ignored: payment=%s already %s receipt=%s",
                payment_id,
                stored.status,
                notification.receipt,
            )
            return CallbackOutcome.duplicate

        if not notification.succeeded:
            await self.db.commit()
            logger.warning("Payment failed: payment=%s result_code=%s", payment.id, notification.result_code)
            return CallbackOutcome.failed

        outcome = CallbackOutcome.paid
        if payment.type == PaymentType.deposit.value:
            try:
                await BookingService(self.db).confirm(payment.booking_id, commit=False)
                outcome = CallbackOutcome.confirmed
            except InvalidStateTransition as e:
                logger.info("Deposit paid for booking %s not on hold: %s", payment.booking_id, e.message)
        await self.db.commit()
        logger.info(
            "Payment success: payment=%s booking=%s receipt=%s outcome=%s",
            payment.id,
            payment.booking_id,
            notification.receipt,
            outcome.value,
        )
        return outcome

    async def handle_provider_callback(self, payload: Any) -> CallbackOutcome:
        """
        Reconcile one provider notification. Never raises: the provider has already been
        acknowledged, so every failure here is logged and discarded.
        """
        try:
            notification: ProviderNotification = parse_provider_callback(payload)
            if isinstance(notification, UnrecognizedPayload):
                logger.warning("Unrecognized provider callback discarded: %s", notification.reason)
                return CallbackOutcome.unrecognized

            if notification.succeeded and await self._already_settled(notification.receipt):
                logger.info("Duplicate callback ignored: receipt %s already recorded", notification.receipt)
                return CallbackOutcome.duplicate

            payment = await self._find_payment(notification)
            if payment is None:
                logger.warning(
                    "No pending payment for callback: request_id=%s amount=%s receipt=%s",
                    notification.request_id,
                    notification.amount,
                    notification.receipt,
                )
                return CallbackOutcome.unmatched
            return await self._settle(payment, notification)
        except Exception:
            logger.exception("Provider callback processing error")
            await self.db.rollback()
            return CallbackOutcome.error

    # --- Sweep ---
    async def expire_stale_pending_payments(self, ttl_minutes: int | None = None) -> int:
        """Fail pending payments older than the TTL; returns how many were expired."""
        ttl = ttl_minutes or settings.PENDING_PAYMENT_TTL_MINUTES
        cutoff = datetime.utcnow() - timedelta(minutes=ttl)
        result = await self.db.execute(
            update(Payment)
            .where(Payment.status == PaymentStatus.pending.value, Payment.created_at < cutoff)
            .values(status=PaymentStatus.failed.value, ref=EXPIRED_REF, paid_ts=local_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0
