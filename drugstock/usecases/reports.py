# drugstock/usecases/reports.py
"""
Inventory reports:
- stock on hand per drug (one account)
- stock overview per account (all branches)
- drug locator across branches
- most utilized drugs across branches
- dashboard counters (one account)
- alert summary for staff (expired, discrepancies, near expiry, low stock)
- inventory check variance
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from drugstock.config import (
    CRITICAL_EXPIRY_DAYS,
    NEAR_EXPIRY_DAYS,
    SUMMARY_LOW_STOCK_UNITS,
    ReorderPointConfig,
)
from drugstock.domain.formulas import days_until_expiry
from drugstock.domain.models import Batch, BranchData
from drugstock.domain.policies import is_low_stock


# ----------------------
# util
# ----------------------

def _utilization(dispensed: int, supplied: int) -> float:
    """Dispensed as a percentage of supplied, capped at 100."""
    if supplied <= 0:
        return 0.0
    return min(dispensed / supplied * 100.0, 100.0)


def _days(d: Optional[date], as_of: date) -> float:
    if d is None:
        return math.nan
    return (d - as_of).days


def _summary_low_stock(stock: int) -> bool:
    return 0 < stock < SUMMARY_LOW_STOCK_UNITS


# ----------------------
# 1) Stock on hand per drug
# ----------------------

@dataclass
class DrugSummary:
    drug_name: str
    program: str
    total_stock: int = 0
    earliest_expiry: Optional[date] = None
    utilization: float = 0.0
    batches: List[Batch] = field(default_factory=list)

    @property
    def total_batches(self) -> int:
        return len(self.batches)


def summarize_drugs(batches: Iterable[Batch], as_of: Optional[date] = None) -> List[DrugSummary]:
    """Group one account's batches by drug name.

    Ordered by priority: expired drugs first, then those expiring within
    180 days, then low stock (under 50 units), then by total stock,
    largest first. Expiry and utilization use the whole drug (earliest
    expiry, sum over batches).
    """
    as_of = as_of or date.today()
    by_name: Dict[str, DrugSummary] = {}
    for b in batches:
        s = by_name.get(b.drug_name)
        if s is None:
            s = by_name[b.drug_name] = DrugSummary(
                drug_name=b.drug_name,
                program=b.program,
                earliest_expiry=b.expiration_date,
            )
        else:
            if b.expiration_date is not None and (
                s.earliest_expiry is None or b.expiration_date < s.earliest_expiry
            ):
                s.earliest_expiry = b.expiration_date
        s.total_stock += b.stock_on_hand
        s.batches.append(b)

    for s in by_name.values():
        supplied = sum(b.beginning_inventory + b.quantity_received for b in s.batches)
        dispensed = sum(b.quantity_dispensed for b in s.batches)
        s.utilization = _utilization(dispensed, supplied)

    def priority(s: DrugSummary):
        days = _days(s.earliest_expiry, as_of)
        expired = days < 0
        near = 0 <= days <= NEAR_EXPIRY_DAYS
        return (not expired, not near, not _summary_low_stock(s.total_stock), -s.total_stock)

    return sorted(by_name.values(), key=priority)


# ----------------------
# 2) Stock overview per account
# ----------------------

@dataclass
class BranchStockSummary:
    branch_id: str
    branch_name: str
    user_name: str
    total_items: int = 0
    total_stock: int = 0
    low_stock_items: int = 0
    expired_items: int = 0
    critical_expiry_items: int = 0
    top_drugs: List[tuple] = field(default_factory=list)  # (drug_name, stock)


def summarize_branch_stock(
    branches: Iterable[BranchData],
    as_of: Optional[date] = None,
    top_n: int = 5,
) -> List[BranchStockSummary]:
    as_of = as_of or date.today()
    out: List[BranchStockSummary] = []
    for br in branches:
        summary = BranchStockSummary(
            branch_id=br.user_id,
            branch_name=br.branch_name,
            user_name=br.user_name,
            total_items=len(br.inventory),
        )
        stock_by_drug: Dict[str, int] = {}
        for b in br.inventory:
            stock = b.stock_on_hand
            summary.total_stock += stock
            stock_by_drug[b.drug_name] = stock_by_drug.get(b.drug_name, 0) + stock
            days = days_until_expiry(b, as_of)
            if _summary_low_stock(stock):
                summary.low_stock_items += 1
            if days < 0:
                summary.expired_items += 1
            if 0 <= days <= NEAR_EXPIRY_DAYS:
                summary.critical_expiry_items += 1
        summary.top_drugs = sorted(stock_by_drug.items(), key=lambda kv: -kv[1])[:top_n]
        out.append(summary)
    return out


# ----------------------
# 3) Drug locator
# ----------------------

@dataclass
class DrugLocation:
    drug_name: str
    branch_id: str
    branch_name: str
    user_name: str
    stock: int
    batch_number: str
    dosage: str
    program: str
    expiration_date: Optional[date]
    days_until_expiry: float

    @property
    def expiry_label(self) -> str:
        d = self.days_until_expiry
        if math.isnan(d):
            return "unknown"
        if d < 0:
            return f"{abs(int(d))} days overdue"
        return f"{int(d)} days left"


def locate_drug(
    branches: Iterable[BranchData],
    query: str = "",
    as_of: Optional[date] = None,
) -> List[DrugLocation]:
    """Batches in stock anywhere whose drug name contains `query`.

    Matching is case-insensitive; an empty query lists everything.
    Sorted by drug name, then location.
    """
    as_of = as_of or date.today()
    q = (query or "").strip().lower()
    out: List[DrugLocation] = []
    for br in branches:
        for b in br.inventory:
            stock = b.stock_on_hand
            if stock <= 0:
                continue
            if q and q not in b.drug_name.lower():
                continue
            out.append(
                DrugLocation(
                    drug_name=b.drug_name,
                    branch_id=br.user_id,
                    branch_name=br.branch_name,
                    user_name=br.user_name,
                    stock=stock,
                    batch_number=b.batch_number,
                    dosage=b.dosage,
                    program=b.program,
                    expiration_date=b.expiration_date,
                    days_until_expiry=days_until_expiry(b, as_of),
                )
            )
    out.sort(key=lambda loc: (loc.drug_name.casefold(), loc.branch_name.casefold()))
    return out


def group_locations_by_drug(locations: Iterable[DrugLocation]) -> Dict[str, List[DrugLocation]]:
    grouped: Dict[str, List[DrugLocation]] = {}
    for loc in locations:
        grouped.setdefault(loc.drug_name, []).append(loc)
    return grouped


# ----------------------
# 4) Most utilized drugs
# ----------------------

@dataclass
class BranchUtilization:
    branch_name: str
    dispensed: int = 0
    received: int = 0

    @property
    def utilization_rate(self) -> float:
        return _utilization(self.dispensed, self.received)


@dataclass
class DrugUtilization:
    drug_name: str
    total_dispensed: int = 0
    total_received: int = 0
    branches: List[BranchUtilization] = field(default_factory=list)

    @property
    def utilization_rate(self) -> float:
        return _utilization(self.total_dispensed, self.total_received)

    @property
    def branch_count(self) -> int:
        return len(self.branches)


def top_utilized_drugs(branches: Iterable[BranchData], limit: int = 10) -> List[DrugUtilization]:
    """Drugs ranked by units dispensed across all branches.

    Only drugs with some dispensing are listed; each carries a
    per-location breakdown, also ranked by dispensed units.
    """
    drugs: Dict[str, DrugUtilization] = {}
    per_branch: Dict[str, Dict[str, BranchUtilization]] = {}
    for br in branches:
        for b in br.inventory:
            d = drugs.setdefault(b.drug_name, DrugUtilization(drug_name=b.drug_name))
            d.total_dispensed += b.quantity_dispensed
            d.total_received += b.quantity_received
            locs = per_branch.setdefault(b.drug_name, {})
            bu = locs.setdefault(br.branch_name, BranchUtilization(branch_name=br.branch_name))
            bu.dispensed += b.quantity_dispensed
            bu.received += b.quantity_received

    out = []
    for name, d in drugs.items():
        if d.total_dispensed <= 0:
            continue
        d.branches = sorted(per_branch[name].values(), key=lambda x: -x.dispensed)
        out.append(d)
    out.sort(key=lambda x: -x.total_dispensed)
    return out[:limit]


# ----------------------
# 5) Dashboard counters
# ----------------------

@dataclass
class DashboardStats:
    total_stock: int
    low_stock: int
    near_expiry: int
    expired: int
    utilization_rate: int


def dashboard_stats(
    batches: Sequence[Batch],
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> DashboardStats:
    """Counters of the staff home screen.

    Low stock uses the reorder point (same rule as the alert feed); near
    expiry counts batches with 1 to 180 days left, zero-stock batches
    included.
    """
    as_of = as_of or date.today()
    total_dispensed = sum(b.quantity_dispensed for b in batches)
    total_received = sum(b.quantity_received for b in batches)
    days = [days_until_expiry(b, as_of) for b in batches]
    return DashboardStats(
        total_stock=sum(b.stock_on_hand for b in batches),
        low_stock=sum(1 for b in batches if is_low_stock(b, config, as_of)),
        near_expiry=sum(1 for d in days if 0 < d <= NEAR_EXPIRY_DAYS),
        expired=sum(1 for d in days if d < 0),
        utilization_rate=round(total_dispensed / total_received * 100) if total_received > 0 else 0,
    )


# ----------------------
# 6) Alert summary (staff)
# ----------------------

@dataclass
class AlertSummaryReport:
    as_of: date
    expired: List[Batch] = field(default_factory=list)
    discrepancies: List[Batch] = field(default_factory=list)
    near_expiry: List[Batch] = field(default_factory=list)
    low_stock: List[Batch] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.expired) + len(self.discrepancies) + len(self.near_expiry) + len(self.low_stock)

    def days_until_expiry(self, batch: Batch) -> float:
        return days_until_expiry(batch, self.as_of)


def alert_summary_report(
    batches: Sequence[Batch],
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> AlertSummaryReport:
    """Staff alert summary of one account.

    - expired: sorted by days until expiry (most overdue first)
    - discrepancies: batches carrying remarks (manual adjustments)
    - near expiry: 31 to 180 days left, soonest first
    - low stock: reorder-point rule, lowest stock first
    """
    as_of = as_of or date.today()

    def days(b: Batch) -> float:
        return days_until_expiry(b, as_of)

    expired = sorted((b for b in batches if days(b) < 0), key=days)
    discrepancies = [b for b in batches if b.remarks.strip()]
    near = sorted(
        (b for b in batches if CRITICAL_EXPIRY_DAYS < days(b) <= NEAR_EXPIRY_DAYS),
        key=days,
    )
    low = sorted((b for b in batches if is_low_stock(b, config, as_of)), key=lambda b: b.stock_on_hand)
    return AlertSummaryReport(
        as_of=as_of,
        expired=expired,
        discrepancies=discrepancies,
        near_expiry=near,
        low_stock=low,
    )


# ----------------------
# 7) Inventory check
# ----------------------

def stock_variance(batch: Batch, physical_count: Optional[int]) -> int:
    """Physical count minus system stock; no count means no variance."""
    system = batch.stock_on_hand
    if physical_count is None:
        return 0
    return physical_count - system


def find_discrepancies(
    batches: Iterable[Batch],
    physical_counts: Dict[str, int],
) -> List[tuple]:
    """(batch, system stock, physical count, variance) for every mismatch."""
    out = []
    for b in batches:
        count = physical_counts.get(b.id)
        variance = stock_variance(b, count)
        if variance != 0:
            out.append((b, b.stock_on_hand, count, variance))
    return out
