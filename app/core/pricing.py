"""Rental pricing: day counting, base price and excess mileage for a rate plan.

Pure functions over a rate plan and a half-open window [start, end); no I/O.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.core.config import settings
from app.core.exceptions import InvalidRatePlan, ValidationError
from app.models.rate_plan import RatePlan

ONE_DAY = timedelta(days=1)
DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class Quote:
    start_ts: datetime
    end_ts: datetime
    days: int
    base: int
    deposit: int
    currency: str


def count_rental_days(start: datetime, end: datetime) -> int:
    """Whole days in [start, end), rounded up, at least 1."""
    if end <= start:
        raise ValidationError("end_ts must be after start_ts")
    return max(1, math.ceil((end - start) / ONE_DAY))


def price_for_days(days: int, daily_rate: int, weekly_rate: int | None = None) -> int:
    """
    Base price in minor units.
    Full weeks are charged at the weekly rate when the rental is at least a week long
    and the plan has one; the remaining days at the daily rate.
    """
    if days >= DAYS_PER_WEEK and weekly_rate:
        weeks, rest = divmod(days, DAYS_PER_WEEK)
        return weeks * weekly_rate + rest * daily_rate
    return days * daily_rate


def ensure_quotable(rate_plan: RatePlan | None) -> RatePlan:
    if rate_plan is None or not rate_plan.active:
        raise InvalidRatePlan()
    return rate_plan


def compute_quote(rate_plan: RatePlan | None, start: datetime, end: datetime) -> Quote:
    plan = ensure_quotable(rate_plan)
    days = count_rental_days(start, end)
    return Quote(
        start_ts=start,
        end_ts=end,
        days=days,
        base=price_for_days(days, plan.daily_rate, plan.weekly_rate),
        deposit=plan.deposit_amount,
        currency=settings.CURRENCY,
    )


def compute_excess_mileage(rate_plan: RatePlan, days: int, km_driven: int) -> int:
    """Charge for kilometres beyond the plan allowance (km_included_per_day * days)."""
    allowance = rate_plan.km_included_per_day * days
    return max(0, km_driven - allowance) * rate_plan.extra_km_rate
