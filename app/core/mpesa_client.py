"""
M-Pesa Daraja helpers for deposit collection via STK push (Lipa na M-Pesa Online).
Requires MPESA_CONSUMER_KEY, MPESA_CONSUMER_SECRET, MPESA_SHORTCODE, MPESA_PASSKEY
and MPESA_CALLBACK_URL in config.
"""
import base64
import logging
import re
from datetime import datetime

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

OAUTH_PATH = "/oauth/v1/generate?grant_type=client_credentials"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"


class MpesaError(Exception):
    """Daraja rejected the request or could not be reached."""


def phone_to_msisdn(phone: str) -> str:
    """Daraja expects digits with the 254 country prefix (e.g. +254712345678 -> 254712345678)."""
    digits = re.sub(r"\D", "", phone)
    if digits.startswith("254"):
        return digits
    if digits.startswith("0"):
        return f"254{digits[1:]}"
    if digits.startswith("7") or digits.startswith("1"):
        return f"254{digits}"
    return digits


def stk_timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d%H%M%S")


def stk_password(shortcode: str, passkey: str, timestamp: str) -> str:
    return base64.b64encode(f"{shortcode}{passkey}{timestamp}".encode()).decode()


class MpesaClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        consumer_key: str | None = None,
        consumer_secret: str | None = None,
        shortcode: str | None = None,
        passkey: str | None = None,
        callback_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.MPESA_BASE_URL).rstrip("/")
        self.consumer_key = consumer_key if consumer_key is not None else settings.MPESA_CONSUMER_KEY
        self.consumer_secret = consumer_secret if consumer_secret is not None else settings.MPESA_CONSUMER_SECRET
        self.shortcode = shortcode if shortcode is not None else settings.MPESA_SHORTCODE
        self.passkey = passkey if passkey is not None else settings.MPESA_PASSKEY
        self.callback_url = callback_url if callback_url is not None else settings.MPESA_CALLBACK_URL
        self.timeout = timeout or settings.MPESA_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def configured(self) -> bool:
        return all((self.consumer_key, self.consumer_secret, self.shortcode, self.passkey, self.callback_url))

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        r = await client.get(OAUTH_PATH, auth=(self.consumer_key, self.consumer_secret))
        if r.status_code >= 400:
            raise MpesaError(f"OAuth failed: {r.status_code} {r.text}")
        token = r.json().get("access_token")
        if not token:
            raise MpesaError("OAuth response missing access_token")
        return token

    async def stk_push(self, *, phone_e164: str, amount: int, account_ref: str, description: str) -> dict:
        """
        Send an STK push prompt to the payer's phone.
        Returns the Daraja acknowledgment (MerchantRequestID, CheckoutRequestID, ResponseCode, ...).
        Raises MpesaError on transport errors, timeouts and non-zero ResponseCode.
        """
        if not self.configured:
            raise MpesaError("M-Pesa is not configured")
        timestamp = stk_timestamp()
        msisdn = phone_to_msisdn(phone_e164)
        payload = {
            "BusinessShortCode": self.shortcode,
            "Password": stk_password(self.shortcode, self.passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": amount,
            "PartyA": msisdn,
            "PartyB": self.shortcode,
            "PhoneNumber": msisdn,
            "CallBackURL": self.callback_url,
            "AccountReference": account_ref[: settings.MPESA_ACCOUNT_REF_MAX_LENGTH],
            "TransactionDesc": description,
        }
        try:
            async with self._client() as client:
                token = await self._get_access_token(client)
                r = await client.post(STK_PUSH_PATH, json=payload, headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as e:
            raise MpesaError(f"STK push request failed: {e!r}") from e

        try:
            data = r.json()
        except ValueError:
            data = {"raw": r.text}
        if r.status_code >= 400:
            raise MpesaError(f"STK push error: {r.status_code} {data}")
        if str(data.get("ResponseCode", "0")) != "0":
            raise MpesaError(f"STK push rejected: {data.get('ResponseDescription') or data}")
        logger.info(
            "STK push accepted: checkout_request_id=%s account_ref=%s",
            data.get("CheckoutRequestID"),
            payload["AccountReference"],
        )
        return data
