import logging
import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from app.api.v1.bookings.service import BookingService
from app.api.v1.payments.service import CallbackOutcome, PaymentService
from app.core.exceptions import BookingNotFound, InvalidAmount, UpstreamError
from app.models.booking import Booking
from app.models.payment import Payment
from conftest import DEPOSIT, START, FakeProvider, booking_request, stk_callback


@pytest.fixture
async def booking(session, vehicle, rate_plan):
    return await BookingService(session).create_booking(booking_request(vehicle.id, rate_plan.id))


async def _initiate(session, booking_id, provider=None, **kwargs):
    return await PaymentService(session, provider or FakeProvider()).initiate_deposit(booking_id, **kwargs)


async def _status(session, model, obj_id):
    return await session.scalar(select(model.status).where(model.id == obj_id))


async def test_initiate_deposit_records_pending_payment(session, booking, provider):
    result = await _initiate(session, booking.id, provider)

    assert result["amount"] == DEPOSIT
    assert result["currency"] == "KES"
    assert result["status"] == "pending"
    assert provider.calls == [
        {
            "phone_e164": "+254712345678",
            "amount": DEPOSIT,
            "account_ref": booking.code,
            "description": f"Booking {booking.code}",
        }
    ]
    payment = await session.get(Payment, result["payment_id"])
    assert payment.type == "deposit"
    assert payment.provider_request_id == result["provider"]["CheckoutRequestID"]
    assert payment.merchant_request_id == result["provider"]["MerchantRequestID"]


async def test_initiate_deposit_with_overrides(session, booking, provider):
    result = await _initiate(session, booking.id, provider, phone_override="+254700000001", amount_override=2500)
    assert result["amount"] == 2500
    assert provider.calls[0]["phone_e164"] == "+254700000001"


@pytest.mark.parametrize("amount", [0, -100])
async def test_initiate_deposit_rejects_non_positive_amount(session, booking, provider, amount):
    with pytest.raises(InvalidAmount):
        await _initiate(session, booking.id, provider, amount_override=amount)
    assert provider.calls == []
    assert await session.scalar(select(func.count(Payment.id))) == 0


async def test_initiate_deposit_unknown_booking(session, provider):
    with pytest.raises(BookingNotFound):
        await _initiate(session, uuid.uuid4(), provider)


async def test_provider_failure_keeps_pending_payment(session, booking):
    with pytest.raises(UpstreamError):
        await _initiate(session, booking.id, FakeProvider(fail=True))
    payment = await session.scalar(select(Payment))
    assert payment.status == "pending"
    assert payment.provider_request_id is None


async def test_successful_callback_confirms_booking(session, booking):
    result = await _initiate(session, booking.id)
    request_id = result["provider"]["CheckoutRequestID"]

    outcome = await PaymentService(session).handle_provider_callback(stk_callback(request_id, receipt="NLJ7RT61SV"))

    assert outcome == CallbackOutcome.confirmed
    payment = await session.get(Payment, result["payment_id"])
    await session.refresh(payment)
    assert payment.status == "success"
    assert payment.ref == "NLJ7RT61SV"
    assert payment.paid_ts is not None
    assert await _status(session, Booking, booking.id) == "confirmed"


async def test_duplicate_callback_is_a_no_op(session, booking):
    result = await _initiate(session, booking.id)
    payload = stk_callback(result["provider"]["CheckoutRequestID"])
    service = PaymentService(session)

    assert await service.handle_provider_callback(payload) == CallbackOutcome.confirmed
    assert await service.handle_provider_callback(payload) == CallbackOutcome.duplicate
    assert await _status(session, Booking, booking.id) == "confirmed"
    assert await session.scalar(select(func.count(Payment.id)).where(Payment.status == "success")) == 1


async def test_failed_callback_leaves_booking_on_hold(session, booking, caplog):
    booking_id = booking.id
    result = await _initiate(session, booking_id)
    request_id = result["provider"]["CheckoutRequestID"]
    service = PaymentService(session)

    assert await service.handle_provider_callback(stk_callback(request_id, result_code=1032)) == CallbackOutcome.failed
    assert await _status(session, Payment, result["payment_id"]) == "failed"
    assert await _status(session, Booking, booking_id) == "hold"
    # A late success cannot resurrect a payment the provider failed; it is flagged instead
    with caplog.at_level(logging.WARNING, logger="app.api.v1.payments.service"):
        outcome = await service.handle_provider_callback(stk_callback(request_id, receipt="NLJ7RT61SV"))
    assert outcome == CallbackOutcome.late_success
    assert await _status(session, Payment, result["payment_id"]) == "failed"
    assert any(r.levelno == logging.WARNING and "NLJ7RT61SV" in r.getMessage() for r in caplog.records)
    assert await _status(session, Booking, booking_id) == "hold"


async def test_deposit_for_already_confirmed_booking_is_recorded(session, booking):
    result = await _initiate(session, booking.id)
    await BookingService(session).confirm(booking.id)

    outcome = await PaymentService(session).handle_provider_callback(stk_callback(result["provider"]["CheckoutRequestID"]))

    assert outcome == CallbackOutcome.paid
    assert await _status(session, Payment, result["payment_id"]) == "success"
    assert await _status(session, Booking, booking.id) == "confirmed"


async def test_callback_without_request_id_matches_by_amount(session, booking):
    result = await _initiate(session, booking.id, FakeProvider(with_request_id=False))

    outcome = await PaymentService(session).handle_provider_callback(stk_callback("ws_CO_unknown", amount=DEPOSIT))

    assert outcome == CallbackOutcome.confirmed
    payment = await session.get(Payment, result["payment_id"])
    await session.refresh(payment)
    assert payment.status == "success"
    assert payment.provider_request_id == "ws_CO_unknown"


async def test_amount_fallback_skips_payments_with_request_id(session, booking):
    await _initiate(session, booking.id)
    outcome = await PaymentService(session).handle_provider_callback(stk_callback("ws_CO_other", amount=DEPOSIT))
    assert outcome == CallbackOutcome.unmatched


async def test_unmatched_callback_changes_nothing(session, booking):
    result = await _initiate(session, booking.id)
    outcome = await PaymentService(session).handle_provider_callback(stk_callback("ws_CO_nope", amount=999))
    assert outcome == CallbackOutcome.unmatched
    assert await _status(session, Payment, result["payment_id"]) == "pending"
    assert await _status(session, Booking, booking.id) == "hold"


@pytest.mark.parametrize("payload", [None, {"hello": "world"}, {"Body": {"stkCallback": {"ResultCode": "x"}}}])
async def test_unrecognized_callback_is_discarded(session, payload):
    assert await PaymentService(session).handle_provider_callback(payload) == CallbackOutcome.unrecognized


async def test_paybill_confirmation_matches_booking_code(session, booking, vehicle, rate_plan):
    other = await BookingService(session).create_booking(
        booking_request(vehicle.id, rate_plan.id, start=START + timedelta(days=5))
    )
    await _initiate(session, booking.id, FakeProvider(with_request_id=False))
    target = await _initiate(session, other.id, FakeProvider(with_request_id=False))

    outcome = await PaymentService(session).handle_provider_callback(
        {
            "TransactionType": "Pay Bill",
            "TransID": "RKTQDM7W6S",
            "TransAmount": f"{DEPOSIT}.00",
            "BillRefNumber": other.code.lower(),
            "MSISDN": "254712345678",
        }
    )

    assert outcome == CallbackOutcome.confirmed
    assert await _status(session, Payment, target["payment_id"]) == "success"
    assert await _status(session, Booking, other.id) == "confirmed"
    assert await _status(session, Booking, booking.id) == "hold"


async def test_expire_stale_pending_payments(session, booking):
    stale = await _initiate(session, booking.id)
    fresh = await _initiate(session, booking.id)
    payment = await session.get(Payment, stale["payment_id"])
    payment.created_at = datetime.utcnow() - timedelta(days=2)
    await session.commit()

    expired = await PaymentService(session).expire_stale_pending_payments(ttl_minutes=60)

    assert expired == 1
    assert await _status(session, Payment, stale["payment_id"]) == "failed"
    assert await _status(session, Payment, fresh["payment_id"]) == "pending"


async def test_success_after_sweep_expiry_still_confirms_booking(session, booking):
    booking_id = booking.id
    result = await _initiate(session, booking_id)
    payment = await session.get(Payment, result["payment_id"])
    payment.created_at = datetime.utcnow() - timedelta(days=2)
    await session.commit()
    service = PaymentService(session)
    assert await service.expire_stale_pending_payments(ttl_minutes=60) == 1
    assert await _status(session, Payment, result["payment_id"]) == "failed"

    outcome = await service.handle_provider_callback(
        stk_callback(result["provider"]["CheckoutRequestID"], receipt="QKX9LATE01")
    )

    assert outcome == CallbackOutcome.confirmed
    row = (await session.execute(select(Payment.status, Payment.ref).where(Payment.id == result["payment_id"]))).one()
    assert (row.status, row.ref) == ("success", "QKX9LATE01")
    assert await _status(session, Booking, booking_id) == "confirmed"


async def test_expired_payment_without_request_id_matches_by_amount(session, booking):
    booking_id = booking.id
    result = await _initiate(session, booking_id, FakeProvider(with_request_id=False))
    payment = await session.get(Payment, result["payment_id"])
    payment.created_at = datetime.utcnow() - timedelta(days=2)
    await session.commit()
    await PaymentService(session).expire_stale_pending_payments(ttl_minutes=60)

    outcome = await PaymentService(session).handle_provider_callback(stk_callback("ws_CO_late", amount=DEPOSIT))

    assert outcome == CallbackOutcome.confirmed
    assert await _status(session, Payment, result["payment_id"]) == "success"


async def test_duplicate_log_reports_stored_status(session, booking, caplog):
    booking_id = booking.id
    result = await _initiate(session, booking_id)
    request_id = result["provider"]["CheckoutRequestID"]
    service = PaymentService(session)
    assert await service.handle_provider_callback(stk_callback(request_id, result_code=1032)) == CallbackOutcome.failed

    with caplog.at_level(logging.INFO, logger="app.api.v1.payments.service"):
        outcome = await service.handle_provider_callback(stk_callback(request_id, result_code=1037))

    assert outcome == CallbackOutcome.duplicate
    messages = [r.getMessage() for r in caplog.records if "Duplicate callback ignored" in r.getMessage()]
    assert len(messages) == 1
    assert "already failed" in messages[0]
    assert await _status(session, Booking, booking_id) == "hold"
