from datetime import datetime, timedelta

import pytest

from app.core.exceptions import InvalidRatePlan, ValidationError
from app.core.pricing import (
    compute_excess_mileage,
    compute_quote,
    count_rental_days,
    price_for_days,
)
from app.models.rate_plan import RatePlan

START = datetime(2026, 11, 2, 10, 0)


def _plan(**overrides) -> RatePlan:
    values = dict(
        name="Economy",
        daily_rate=3000,
        weekly_rate=18000,
        deposit_amount=5000,
        km_included_per_day=150,
        extra_km_rate=20,
        active=True,
    )
    values.update(overrides)
    return RatePlan(**values)


@pytest.mark.parametrize(
    "duration, expected",
    [
        (timedelta(minutes=30), 1),
        (timedelta(hours=24), 1),
        (timedelta(hours=25), 2),
        (timedelta(days=3), 3),
        (timedelta(days=3, seconds=1), 4),
    ],
)
def test_count_rental_days_rounds_partial_days_up(duration, expected):
    assert count_rental_days(START, START + duration) == expected


@pytest.mark.parametrize("end", [START, START - timedelta(hours=1)])
def test_count_rental_days_rejects_empty_window(end):
    with pytest.raises(ValidationError):
        count_rental_days(START, end)


def test_short_rental_uses_daily_rate():
    assert price_for_days(6, 3000, 18000) == 18000
    assert price_for_days(2, 3000, 18000) == 6000


def test_full_week_uses_weekly_rate():
    assert price_for_days(7, 3000, 18000) == 18000


def test_remaining_days_charged_daily_after_full_weeks():
    assert price_for_days(9, 3000, 18000) == 18000 + 2 * 3000
    assert price_for_days(14, 3000, 18000) == 2 * 18000


def test_plan_without_weekly_rate_charges_every_day():
    assert price_for_days(10, 3000, None) == 30000


def test_compute_quote():
    quote = compute_quote(_plan(), START, START + timedelta(days=2, hours=1))
    assert quote.days == 3
    assert quote.base == 9000
    assert quote.deposit == 5000
    assert quote.currency == "KES"
    assert quote.start_ts == START


def test_deposit_is_not_prorated():
    one_hour = compute_quote(_plan(), START, START + timedelta(hours=1))
    ten_days = compute_quote(_plan(), START, START + timedelta(days=10))
    assert one_hour.deposit == ten_days.deposit == 5000


@pytest.mark.parametrize("plan", [None, _plan(active=False)])
def test_quote_requires_active_plan(plan):
    with pytest.raises(InvalidRatePlan):
        compute_quote(plan, START, START + timedelta(days=1))


def test_excess_mileage_beyond_allowance():
    # 2 days * 150 km included; 400 km driven -> 100 km at 20
    assert compute_excess_mileage(_plan(), 2, 400) == 2000


def test_no_excess_within_allowance():
    assert compute_excess_mileage(_plan(), 2, 300) == 0
    assert compute_excess_mileage(_plan(extra_km_rate=0), 1, 1000) == 0


def test_nine_day_rental_example():
    quote = compute_quote(
        _plan(daily_rate=2000, weekly_rate=12000, deposit_amount=5000),
        START,
        START + timedelta(days=9),
    )
    assert (quote.days, quote.base, quote.deposit) == (9, 16000, 5000)


def test_price_is_non_decreasing_and_whole_weeks_cost_weekly_rate():
    prices = [price_for_days(d, 2000, 12000) for d in range(1, 36)]
    assert prices == sorted(prices)
    for weeks in range(1, 5):
        assert price_for_days(7 * weeks, 2000, 12000) == 12000 * weeks
