import math
from datetime import date, timedelta

import pytest

from drugstock.config import ReorderPointConfig
from drugstock.domain.formulas import (
    calculate_reorder_point,
    calculate_reorder_quantity,
    days_until_expiry,
    estimate_daily_usage,
    stock_on_hand,
)
from drugstock.domain.models import Batch

AS_OF = date(2025, 6, 1)


def _batch(beginning=0, received=0, dispensed=0, received_days_ago=10, expires_in=365):
    return Batch(
        id="b1",
        drug_name="Paracetamol",
        beginning_inventory=beginning,
        quantity_received=received,
        quantity_dispensed=dispensed,
        date_received=AS_OF - timedelta(days=received_days_ago) if received_days_ago is not None else None,
        expiration_date=AS_OF + timedelta(days=expires_in) if expires_in is not None else None,
    )


def test_stock_on_hand_is_not_clamped():
    assert stock_on_hand(_batch(beginning=10, received=5, dispensed=3)) == 12
    assert stock_on_hand(_batch(beginning=0, received=10, dispensed=15)) == -5


def test_usage_zero_without_dispensing():
    assert estimate_daily_usage(_batch(received=100), AS_OF) == 0


@pytest.mark.parametrize("days_ago", [0, -3])
def test_usage_zero_for_same_day_or_future_receipt(days_ago):
    b = _batch(received=100, dispensed=30, received_days_ago=days_ago)
    assert estimate_daily_usage(b, AS_OF) == 0


def test_usage_zero_when_receipt_date_unknown():
    b = _batch(received=100, dispensed=30, received_days_ago=None)
    assert estimate_daily_usage(b, AS_OF) == 0


def test_usage_is_not_rounded():
    b = _batch(received=100, dispensed=10, received_days_ago=3)
    assert math.isclose(estimate_daily_usage(b, AS_OF), 10 / 3)


def test_reorder_point_without_history_is_threshold():
    assert calculate_reorder_point(_batch(beginning=5), as_of=AS_OF) == 20
    cfg = ReorderPointConfig(minimum_threshold=35)
    assert calculate_reorder_point(_batch(beginning=5), cfg, AS_OF) == 35


def test_reorder_point_lead_time_plus_safety():
    # 100 units in 10 days -> 10/day; 10*14 = 140; +30% = 182
    b = _batch(received=200, dispensed=100, received_days_ago=10)
    assert calculate_reorder_point(b, as_of=AS_OF) == 182


def test_reorder_point_small_usage_hits_floor():
    # 1/day -> ceil(14 + 4.2) = 19 < 20
    b = _batch(received=100, dispensed=10, received_days_ago=10)
    assert calculate_reorder_point(b, as_of=AS_OF) == 20


@pytest.mark.parametrize("dispensed", [0, 1, 5, 50, 400])
@pytest.mark.parametrize("lead", [0, 7, 14, 30])
@pytest.mark.parametrize("safety", [0.0, 0.3, 1.0])
def test_reorder_point_never_below_threshold(dispensed, lead, safety):
    cfg = ReorderPointConfig(lead_time_days=lead, safety_stock_percentage=safety, minimum_threshold=20)
    b = _batch(received=500, dispensed=dispensed, received_days_ago=7)
    assert calculate_reorder_point(b, cfg, AS_OF) >= cfg.minimum_threshold


def test_reorder_point_monotonic_in_lead_time_and_safety():
    b = _batch(received=500, dispensed=90, received_days_ago=9)
    previous = 0
    for lead in range(0, 60, 3):
        rop = calculate_reorder_point(b, ReorderPointConfig(lead_time_days=lead), AS_OF)
        assert rop >= previous
        previous = rop

    previous = 0
    for pct in [i / 20 for i in range(0, 21)]:
        rop = calculate_reorder_point(b, ReorderPointConfig(safety_stock_percentage=pct), AS_OF)
        assert rop >= previous
        previous = rop


def test_reorder_point_monotonic_in_usage():
    previous = 0
    for dispensed in range(0, 400, 17):
        b = _batch(received=1000, dispensed=dispensed, received_days_ago=10)
        rop = calculate_reorder_point(b, as_of=AS_OF)
        assert rop >= previous
        previous = rop


def test_reorder_quantity_zero_when_stock_is_fine():
    assert calculate_reorder_quantity(_batch(received=1000), as_of=AS_OF) == 0


def test_reorder_quantity_for_low_stock_with_history():
    # 10/day, stock 100 <= rop 182: ceil(10*14*2 + 10*14*0.3) = 322
    b = _batch(received=200, dispensed=100, received_days_ago=10)
    assert calculate_reorder_quantity(b, as_of=AS_OF) == 322


def test_reorder_quantity_assumes_one_per_day_without_history():
    # ceil(1*14*2 + 1*14*0.3) = 33
    assert calculate_reorder_quantity(_batch(beginning=5), as_of=AS_OF) == 33


def test_reorder_quantity_for_out_of_stock():
    # 50 dispensed over 25 days -> 2/day: ceil(56 + 8.4) = 65
    b = _batch(received=50, dispensed=50, received_days_ago=25)
    assert calculate_reorder_quantity(b, as_of=AS_OF) == 65


def test_reorder_quantity_respects_threshold():
    cfg = ReorderPointConfig(lead_time_days=1, minimum_threshold=40)
    assert calculate_reorder_quantity(_batch(beginning=5), cfg, AS_OF) == 40


def test_reorder_quantity_zero_for_negative_stock():
    b = _batch(received=10, dispensed=15, received_days_ago=5)
    assert calculate_reorder_quantity(b, as_of=AS_OF) == 0


def test_days_until_expiry():
    assert days_until_expiry(_batch(expires_in=-5), AS_OF) == -5
    assert days_until_expiry(_batch(expires_in=0), AS_OF) == 0
    assert math.isnan(days_until_expiry(_batch(expires_in=None), AS_OF))
