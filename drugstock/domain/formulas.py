"""
Usage and reorder formulas for pharmacy batches.

Reorder point = (average daily usage x lead time) + safety stock, where the
safety stock is a fixed percentage of the lead-time demand. The reorder
quantity covers two lead-time cycles plus one safety increment. Lead time,
safety percentage and the minimum threshold come from a
`ReorderPointConfig`; see `drugstock.config` for the defaults.

All functions are pure: they depend solely on their inputs and do not
modify any external state. The reference date is an argument (`as_of`,
defaulting to today) so results are reproducible in tests.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Optional, Union

from drugstock.config import DEFAULT_REORDER_CONFIG, ReorderPointConfig
from drugstock.domain.models import Batch


def _today(as_of: Optional[date]) -> date:
    return as_of if as_of is not None else date.today()


def stock_on_hand(batch: Batch) -> int:
    """Return beginning inventory + received - dispensed (may be negative)."""
    return batch.stock_on_hand


def days_until_expiry(batch: Batch, as_of: Optional[date] = None) -> Union[int, float]:
    """Whole days from `as_of` to the expiration date.

    Negative once the batch has expired. Returns ``math.nan`` when the
    expiration date could not be parsed, so that every bucket comparison
    against it is false.
    """
    if batch.expiration_date is None:
        return math.nan
    return (batch.expiration_date - _today(as_of)).days


def estimate_daily_usage(batch: Batch, as_of: Optional[date] = None) -> float:
    """Average units dispensed per day since the batch was received.

    Parameters
    ----------
    batch: Batch
        Batch with its cumulative dispensed quantity.
    as_of: date, optional
        Reference date, today when omitted.

    Returns
    -------
    float
        ``quantity_dispensed / days_elapsed``, or ``0.0`` when there is no
        dispensing history, the receipt date is unknown, or the receipt is
        dated today or in the future.
    """
    dispensed = batch.quantity_dispensed or 0
    if dispensed == 0:
        return 0.0
    if batch.date_received is None:
        return 0.0
    days_elapsed = (_today(as_of) - batch.date_received).days
    if days_elapsed <= 0:
        return 0.0
    return dispensed / days_elapsed


def reorder_point_from_usage(usage: float, config: ReorderPointConfig) -> int:
    """Reorder point for a known daily usage."""
    if usage == 0:
        return config.minimum_threshold
    base = usage * config.lead_time_days
    safety = base * config.safety_stock_percentage
    return max(math.ceil(base + safety), config.minimum_threshold)


def calculate_reorder_point(
    batch: Batch,
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> int:
    """Compute the reorder point (ROP) of a batch.

    Never below ``config.minimum_threshold``; a batch without usage history
    gets exactly the threshold.
    """
    config = config or DEFAULT_REORDER_CONFIG
    return reorder_point_from_usage(estimate_daily_usage(batch, as_of), config)


def reorder_quantity_from_usage(usage: float, config: ReorderPointConfig) -> int:
    """Quantity covering two lead-time cycles plus one safety increment."""
    # at least one unit per day when nothing was dispensed yet
    usage = usage if usage > 0 else 1
    lead_demand = usage * config.lead_time_days
    quantity = math.ceil(lead_demand * 2 + lead_demand * config.safety_stock_percentage)
    return max(quantity, config.minimum_threshold)


def calculate_reorder_quantity(
    batch: Batch,
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> int:
    """Suggested order size, ``0`` when the batch is neither low nor out of stock."""
    config = config or DEFAULT_REORDER_CONFIG
    usage = estimate_daily_usage(batch, as_of)
    current = stock_on_hand(batch)
    low = 0 < current <= reorder_point_from_usage(usage, config)
    if not low and current != 0:
        return 0
    return reorder_quantity_from_usage(usage, config)
