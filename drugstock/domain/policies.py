"""
Classification policies for batches.

This module holds the business rules that turn the numbers produced by
`drugstock.domain.formulas` into the stock and expiry buckets the alert
feed, the dashboards and the reports are built on.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Optional, Union

from drugstock.config import (
    CRITICAL_EXPIRY_DAYS,
    DEFAULT_REORDER_CONFIG,
    LOW_STOCK_HIGH_RATIO,
    NEAR_EXPIRY_DAYS,
    NO_USAGE_DAYS_REMAINING,
    ReorderPointConfig,
)
from drugstock.domain.formulas import (
    estimate_daily_usage,
    reorder_point_from_usage,
    stock_on_hand,
)
from drugstock.domain.models import (
    ALERT_CRITICAL,
    ALERT_EXPIRED,
    ALERT_LOW_STOCK,
    ALERT_NEAR_EXPIRY,
    EXPIRY_NORMAL,
    SEVERITY_HIGH,
    SEVERITY_MEDIUM,
    STOCK_NORMAL,
    STOCK_OUT,
    Batch,
    StockStatus,
)


def get_stock_status(
    batch: Batch,
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> StockStatus:
    """Build the stock status of a batch.

    Rules:
        - ``is_out_of_stock`` only at exactly zero stock.
        - ``is_low_stock`` requires positive stock at or below the reorder
          point, so the two flags are never both true.
        - Negative stock (bad upstream data) is neither low nor out of stock.
        - ``days_of_stock_remaining`` is ``floor(stock / usage)``; without
          usage it is ``999`` when there is stock and ``0`` otherwise.

    Args:
        batch: Batch to classify.
        config: Reorder configuration, the default one when omitted.
        as_of: Reference date, today when omitted.

    Returns:
        A `StockStatus`.
    """
    config = config or DEFAULT_REORDER_CONFIG
    current = stock_on_hand(batch)
    usage = estimate_daily_usage(batch, as_of)
    rop = reorder_point_from_usage(usage, config)

    if usage > 0:
        remaining = math.floor(current / usage)
    else:
        remaining = NO_USAGE_DAYS_REMAINING if current > 0 else 0

    return StockStatus(
        current_stock=current,
        reorder_point=rop,
        is_low_stock=0 < current <= rop,
        is_out_of_stock=current == 0,
        avg_daily_usage=usage,
        days_of_stock_remaining=remaining,
    )


def is_low_stock(
    batch: Batch,
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> bool:
    """True when the batch has positive stock at or below its reorder point."""
    return get_stock_status(batch, config, as_of).is_low_stock


def expiry_bucket(days: Union[int, float]) -> str:
    """Classify a number of days until expiry.

    ``< 0`` is expired, ``0..30`` critical, ``31..180`` near expiry and
    anything else (including ``nan``) normal.
    """
    if days < 0:
        return ALERT_EXPIRED
    if 0 <= days <= CRITICAL_EXPIRY_DAYS:
        return ALERT_CRITICAL
    if CRITICAL_EXPIRY_DAYS < days <= NEAR_EXPIRY_DAYS:
        return ALERT_NEAR_EXPIRY
    return EXPIRY_NORMAL


def expiry_severity(bucket: str) -> Optional[str]:
    if bucket in (ALERT_EXPIRED, ALERT_CRITICAL):
        return SEVERITY_HIGH
    if bucket == ALERT_NEAR_EXPIRY:
        return SEVERITY_MEDIUM
    return None


def stock_bucket(status: StockStatus) -> str:
    if status.is_out_of_stock:
        return STOCK_OUT
    if status.is_low_stock:
        return ALERT_LOW_STOCK
    return STOCK_NORMAL


def low_stock_severity(current_stock: int, reorder_point: int) -> str:
    """``high`` below half the reorder point, ``medium`` otherwise."""
    if current_stock < reorder_point * LOW_STOCK_HIGH_RATIO:
        return SEVERITY_HIGH
    return SEVERITY_MEDIUM
