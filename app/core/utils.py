"""Shared utilities used across the app."""
import secrets
from datetime import datetime

# Crockford base32: no I, L, O or U, so codes survive being read out over the phone
BOOKING_CODE_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"


def new_booking_code(length: int = 6) -> str:
    return "".join(secrets.choice(BOOKING_CODE_ALPHABET) for _ in range(length))


def normalize_booking_code(code: str) -> str:
    return code.strip().upper()


def local_now() -> datetime:
    """Booking and settlement timestamps are naive local time."""
    return datetime.now()


def to_naive_local(value: datetime) -> datetime:
    """Aware timestamps are converted to local time and stored without offset."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value
