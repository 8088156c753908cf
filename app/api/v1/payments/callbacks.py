"""
Parsing of M-Pesa callback bodies into one of the recognized notification shapes.

Two shapes are understood:
  * STK push result: {"Body": {"stkCallback": {"ResultCode": 0, "CheckoutRequestID": ...,
    "CallbackMetadata": {"Item": [{"Name": "Amount", "Value": 5000}, ...]}}}}
  * C2B PayBill confirmation: {"TransID": ..., "TransAmount": "5000.00", "MSISDN": ..., "BillRefNumber": ...}
Anything else becomes UnrecognizedPayload and is discarded by the caller.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ValidationError

STK_SUCCESS_CODE = 0


# --- Wire shapes ---
class CallbackItem(BaseModel):
    Name: str
    Value: Any = None


class StkCallbackMetadata(BaseModel):
    Item: List[CallbackItem] = []


class StkCallback(BaseModel):
    MerchantRequestID: Optional[str] = None
    CheckoutRequestID: Optional[str] = None
    ResultCode: int
    ResultDesc: Optional[str] = None
    CallbackMetadata: Optional[StkCallbackMetadata] = None


class StkCallbackBody(BaseModel):
    stkCallback: StkCallback


class StkCallbackEnvelope(BaseModel):
    Body: StkCallbackBody


class PaybillConfirmationEnvelope(BaseModel):
    TransID: str
    TransAmount: Any = None
    TransTime: Optional[str] = None
    MSISDN: Optional[str] = None
    BillRefNumber: Optional[str] = None


# --- Normalized notifications ---
@dataclass(frozen=True)
class StkResult:
    result_code: int
    request_id: str | None
    merchant_request_id: str | None
    receipt: str | None
    amount: int | None
    phone: str | None
    transaction_ts: str | None
    result_desc: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.result_code == STK_SUCCESS_CODE


@dataclass(frozen=True)
class PaybillConfirmation:
    receipt: str
    amount: int | None
    phone: str | None
    account_ref: str | None
    transaction_ts: str | None

    result_code = STK_SUCCESS_CODE
    request_id = None
    succeeded = True


@dataclass(frozen=True)
class UnrecognizedPayload:
    reason: str


ProviderNotification = Union[StkResult, PaybillConfirmation, UnrecognizedPayload]


def _to_amount(value: Any) -> int | None:
    """Amounts arrive as ints, floats or strings like "5000.00"; stored amounts are whole units."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_stk(payload: dict) -> ProviderNotification:
    try:
        callback = StkCallbackEnvelope.model_validate(payload).Body.stkCallback
    except ValidationError as e:
        return UnrecognizedPayload(f"malformed stkCallback: {e.error_count()} error(s)")
    items = {item.Name: item.Value for item in (callback.CallbackMetadata.Item if callback.CallbackMetadata else [])}
    return StkResult(
        result_code=callback.ResultCode,
        request_id=_to_text(callback.CheckoutRequestID),
        merchant_request_id=_to_text(callback.MerchantRequestID),
        receipt=_to_text(items.get("MpesaReceiptNumber") or items.get("ReceiptNumber")),
        amount=_to_amount(items.get("Amount")),
        phone=_to_text(items.get("PhoneNumber") or items.get("MSISDN")),
        transaction_ts=_to_text(items.get("TransactionDate")),
        result_desc=callback.ResultDesc,
    )


def _parse_paybill(payload: dict) -> ProviderNotification:
    try:
        confirmation = PaybillConfirmationEnvelope.model_validate(payload)
    except ValidationError as e:
        return UnrecognizedPayload(f"malformed C2B confirmation: {e.error_count()} error(s)")
    return PaybillConfirmation(
        receipt=confirmation.TransID,
        amount=_to_amount(confirmation.TransAmount),
        phone=_to_text(confirmation.MSISDN),
        account_ref=_to_text(confirmation.BillRefNumber),
        transaction_ts=_to_text(confirmation.TransTime),
    )


def parse_provider_callback(payload: Any) -> ProviderNotification:
    if not isinstance(payload, dict):
        return UnrecognizedPayload("payload is not a JSON object")
    if isinstance(payload.get("Body"), dict) and "stkCallback" in payload["Body"]:
        return _parse_stk(payload)
    if "TransID" in payload:
        return _parse_paybill(payload)
    return UnrecognizedPayload("unknown payload shape")
