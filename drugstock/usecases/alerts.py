# drugstock/usecases/alerts.py
"""
Use case: alert feed across branches.

Flow:
1) For every account (`BranchData`), classify each batch by expiry and by
   stock and emit the matching alerts (`generate_alerts`).
2) Concatenate the per-branch lists and sort them by severity, then by
   alert type, keeping input order for ties (`aggregate_and_sort`).
3) Group accounts by `branch_name` (the physical location) and count the
   alerts of each group (`summarize_locations`).

Notes:
- Everything here is a pure function of its arguments. Nothing is cached
  between calls, so concurrent refreshes over different snapshots cannot
  leak into each other.
- Batches with unreadable expiration dates produce no expiry alert;
  `find_data_quality_issues` lists them separately.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from drugstock.config import ReorderPointConfig
from drugstock.domain.formulas import days_until_expiry
from drugstock.domain.models import (
    ALERT_CRITICAL,
    ALERT_EXPIRED,
    ALERT_LOW_STOCK,
    ALERT_NEAR_EXPIRY,
    ALERT_TYPES,
    EXPIRY_NORMAL,
    ISSUE_MALFORMED_DATE,
    ISSUE_NEGATIVE_STOCK,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    Alert,
    Batch,
    BranchAlertSummary,
    BranchData,
    DataQualityIssue,
    LocationSummary,
)
from drugstock.domain.policies import (
    expiry_bucket,
    expiry_severity,
    get_stock_status,
    low_stock_severity,
)


SEVERITY_RANK = {SEVERITY_HIGH: 0, SEVERITY_MEDIUM: 1, SEVERITY_LOW: 2}
TYPE_RANK = {ALERT_EXPIRED: 0, ALERT_CRITICAL: 1, ALERT_LOW_STOCK: 2, ALERT_NEAR_EXPIRY: 3}


# ----------------------
# generation
# ----------------------

def generate_alerts(
    batches: Iterable[Batch],
    branch: BranchData,
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> List[Alert]:
    """Alerts of one account's batches, in batch order.

    A batch yields at most one expiry alert (expired / critical /
    nearExpiry) and, independently, a lowStock alert when it has positive
    stock at or below its reorder point.
    """
    out: List[Alert] = []
    for batch in batches:
        status = get_stock_status(batch, config, as_of)
        days = days_until_expiry(batch, as_of)

        bucket = expiry_bucket(days)
        if bucket != EXPIRY_NORMAL:
            out.append(
                Alert(
                    branch_id=branch.user_id,
                    branch_name=branch.branch_name,
                    user_name=branch.user_name,
                    batch=batch,
                    alert_type=bucket,
                    severity=expiry_severity(bucket),
                    days_until_expiry=int(days),
                    stock_level=status.current_stock,
                )
            )

        if status.current_stock > 0 and status.is_low_stock:
            out.append(
                Alert(
                    branch_id=branch.user_id,
                    branch_name=branch.branch_name,
                    user_name=branch.user_name,
                    batch=batch,
                    alert_type=ALERT_LOW_STOCK,
                    severity=low_stock_severity(status.current_stock, status.reorder_point),
                    stock_level=status.current_stock,
                )
            )
    return out


def _sort_key(alert: Alert) -> Tuple[int, int]:
    return (SEVERITY_RANK.get(alert.severity, 9), TYPE_RANK.get(alert.alert_type, 9))


def aggregate_and_sort(branch_alert_lists: Iterable[Sequence[Alert]]) -> List[Alert]:
    """Merge per-branch alert lists into one feed.

    Ordered by severity (high, medium, low) then type (expired, critical,
    lowStock, nearExpiry). `sorted` is stable, so ties keep input order.
    """
    merged: List[Alert] = []
    for alerts in branch_alert_lists:
        merged.extend(alerts)
    return sorted(merged, key=_sort_key)


def generate_branch_alerts(
    branches: Iterable[BranchData],
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> List[Alert]:
    """Full feed: generate per account, then aggregate and sort."""
    return aggregate_and_sort(
        generate_alerts(b.inventory, b, config, as_of) for b in branches
    )


# ----------------------
# filtering / counting
# ----------------------

def filter_alerts(
    alerts: Iterable[Alert],
    alert_type: Optional[str] = None,
    branch_ids: Optional[Iterable[str]] = None,
) -> List[Alert]:
    """Alerts of a type and/or of a set of accounts, order preserved."""
    ids = set(branch_ids) if branch_ids is not None else None
    return [
        a for a in alerts
        if (alert_type is None or a.alert_type == alert_type)
        and (ids is None or a.branch_id in ids)
    ]


def count_by_type(alerts: Iterable[Alert]) -> Dict[str, int]:
    counts = {t: 0 for t in ALERT_TYPES}
    for a in alerts:
        if a.alert_type in counts:
            counts[a.alert_type] += 1
    return counts


# ----------------------
# locations
# ----------------------

def group_by_location(branches: Iterable[BranchData]) -> List[Tuple[str, List[BranchData]]]:
    """Group accounts by `branch_name`, locations sorted by name."""
    groups: Dict[str, List[BranchData]] = {}
    for b in branches:
        groups.setdefault(b.branch_name, []).append(b)
    return sorted(groups.items(), key=lambda kv: (kv[0].casefold(), kv[0]))


def summarize_locations(
    branches: Iterable[BranchData],
    alerts: Sequence[Alert],
) -> List[LocationSummary]:
    """Alert counts per location and per account.

    Counts come from filtering `alerts` by account membership, so each
    figure equals the number of alerts of that type whose ``branch_id``
    belongs to the group.
    """
    out: List[LocationSummary] = []
    for location, accounts in group_by_location(branches):
        summary = LocationSummary(location=location)
        for acc in accounts:
            counts = count_by_type(filter_alerts(alerts, branch_ids=[acc.user_id]))
            summary.accounts.append(
                BranchAlertSummary(
                    branch_id=acc.user_id,
                    user_name=acc.user_name,
                    expired=counts[ALERT_EXPIRED],
                    critical=counts[ALERT_CRITICAL],
                    near_expiry=counts[ALERT_NEAR_EXPIRY],
                    low_stock=counts[ALERT_LOW_STOCK],
                )
            )
        # two accounts may share a user_id; count the group once
        totals = count_by_type(filter_alerts(alerts, branch_ids={a.user_id for a in accounts}))
        summary.expired = totals[ALERT_EXPIRED]
        summary.critical = totals[ALERT_CRITICAL]
        summary.near_expiry = totals[ALERT_NEAR_EXPIRY]
        summary.low_stock = totals[ALERT_LOW_STOCK]
        out.append(summary)
    return out


# ----------------------
# data quality
# ----------------------

def find_data_quality_issues(
    branches: Iterable[BranchData],
    as_of: Optional[date] = None,
) -> List[DataQualityIssue]:
    """Batches the alert feed degrades silently.

    - ``malformedDate``: expiration date (no expiry alert possible) or
      receipt date (usage treated as zero) could not be read.
    - ``negativeStock``: dispensed more than was ever on hand; such a batch
      is neither low nor out of stock.
    """
    out: List[DataQualityIssue] = []
    for b in branches:
        for batch in b.inventory:
            if math.isnan(days_until_expiry(batch, as_of)):
                out.append(DataQualityIssue(b.user_id, b.branch_name, batch,
                                            ISSUE_MALFORMED_DATE, "expirationDate"))
            if batch.date_received is None:
                out.append(DataQualityIssue(b.user_id, b.branch_name, batch,
                                            ISSUE_MALFORMED_DATE, "dateReceived"))
            stock = batch.stock_on_hand
            if stock < 0:
                out.append(DataQualityIssue(b.user_id, b.branch_name, batch,
                                            ISSUE_NEGATIVE_STOCK, f"stockOnHand={stock}"))
    return out
