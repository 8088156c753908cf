import os
import uuid
from datetime import datetime, timedelta

import pytest

# Point settings at SQLite BEFORE importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./carhire_test.db")
os.environ["AUTO_CREATE_SCHEMA"] = "true"
os.environ["PENDING_PAYMENT_SWEEP_INTERVAL_MINUTES"] = "0"
os.environ.setdefault("CURRENCY", "KES")

from app.api.v1.bookings.schemas import CreateBookingRequest  # noqa: E402
from app.core.database import create_database  # noqa: E402
from app.core.mpesa_client import MpesaError  # noqa: E402
from app.models.rate_plan import RatePlan  # noqa: E402
from app.models.vehicle import Vehicle  # noqa: E402

START = datetime(2026, 11, 2, 10, 0)

DAILY_RATE = 3000
WEEKLY_RATE = 18000
DEPOSIT = 5000


class FakeProvider:
    """Stands in for MpesaClient: records STK pushes and hands out CheckoutRequestIDs."""

    def __init__(self, fail: bool = False, with_request_id: bool = True):
        self.fail = fail
        self.with_request_id = with_request_id
        self.calls = []

    async def stk_push(self, *, phone_e164, amount, account_ref, description):
        self.calls.append(
            {"phone_e164": phone_e164, "amount": amount, "account_ref": account_ref, "description": description}
        )
        if self.fail:
            raise MpesaError("STK push request failed: ReadTimeout")
        n = len(self.calls)
        ack = {
            "MerchantRequestID": f"29115-34620561-{n}",
            "ResponseCode": "0",
            "ResponseDescription": "Success. Request accepted for processing",
            "CustomerMessage": "Success. Request accepted for processing",
        }
        if self.with_request_id:
            ack["CheckoutRequestID"] = f"ws_CO_191220191020363925{n}"
        return ack


def stk_callback(request_id, result_code=0, amount=DEPOSIT, receipt="NLJ7RT61SV", phone=254712345678):
    callback = {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": request_id,
        "ResultCode": result_code,
        "ResultDesc": "The service request is processed successfully." if result_code == 0 else "Request cancelled by user",
    }
    if result_code == 0:
        callback["CallbackMetadata"] = {
            "Item": [
                {"Name": "Amount", "Value": amount},
                {"Name": "MpesaReceiptNumber", "Value": receipt},
                {"Name": "Balance"},
                {"Name": "TransactionDate", "Value": 20261102101530},
                {"Name": "PhoneNumber", "Value": phone},
            ]
        }
    return {"Body": {"stkCallback": callback}}


def booking_request(vehicle_id, rate_plan_id, start=START, end=None, **extra) -> CreateBookingRequest:
    data = {
        "vehicle_id": str(vehicle_id),
        "rate_plan_id": str(rate_plan_id),
        "start_ts": start.isoformat(),
        "end_ts": (end or start + timedelta(days=2)).isoformat(),
        "customer": {"full_name": "Wanjiku Kamau", "phone_e164": "+254712345678", "email": "wanjiku@example.com"},
    }
    data.update(extra)
    return CreateBookingRequest.model_validate(data)


@pytest.fixture
async def database(tmp_path):
    database = create_database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
async def session(database):
    async with database.session_maker() as session:
        yield session


@pytest.fixture
async def vehicle(session):
    vehicle = Vehicle(id=uuid.uuid4(), plate="KDA123A", make="Toyota", model="Axio", year=2018, odo_km=42000)
    session.add(vehicle)
    await session.commit()
    return vehicle


@pytest.fixture
async def rate_plan(session):
    rate_plan = RatePlan(
        id=uuid.uuid4(),
        name="Economy",
        daily_rate=DAILY_RATE,
        weekly_rate=WEEKLY_RATE,
        deposit_amount=DEPOSIT,
        km_included_per_day=150,
        extra_km_rate=20,
        active=True,
    )
    session.add(rate_plan)
    await session.commit()
    return rate_plan


@pytest.fixture
def provider():
    return FakeProvider()
