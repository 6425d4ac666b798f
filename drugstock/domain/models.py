# drugstock/domain/models.py
"""
Domain models (dataclasses).

Batches arrive from the persistence collaborator as camelCase dictionaries;
`drugstock.adapters.parsers` turns them into the dataclasses below. The
dataclasses are never persisted by the engine: everything derived from them
(stock status, alerts, summaries) is recomputed on every refresh.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


# Alert types, in the order the feed ranks them
ALERT_EXPIRED = "expired"
ALERT_CRITICAL = "critical"
ALERT_LOW_STOCK = "lowStock"
ALERT_NEAR_EXPIRY = "nearExpiry"

ALERT_TYPES = (ALERT_EXPIRED, ALERT_CRITICAL, ALERT_LOW_STOCK, ALERT_NEAR_EXPIRY)

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"

# Buckets that produce no alert
EXPIRY_NORMAL = "normal"
STOCK_NORMAL = "normal"
STOCK_OUT = "outOfStock"


def _iso(d: Optional[date]) -> str:
    return d.isoformat() if d is not None else ""


@dataclass
class Batch:
    """One recorded delivery (lot) of a drug."""
    id: str
    drug_name: str = ""
    program: str = ""
    dosage: str = ""
    unit: str = ""
    batch_number: str = ""
    beginning_inventory: int = 0
    quantity_received: int = 0
    date_received: Optional[date] = None     # None = missing or unparseable
    unit_cost: float = 0.0
    quantity_dispensed: int = 0
    expiration_date: Optional[date] = None   # None = missing or unparseable
    remarks: str = ""
    branch_id: Optional[str] = None

    @property
    def stock_on_hand(self) -> int:
        """Beginning inventory plus receipts minus dispensing. Not clamped."""
        return self.beginning_inventory + self.quantity_received - self.quantity_dispensed

    def to_record(self) -> Dict[str, Any]:
        rec = {
            "id": self.id,
            "drugName": self.drug_name,
            "program": self.program,
            "dosage": self.dosage,
            "unit": self.unit,
            "batchNumber": self.batch_number,
            "beginningInventory": self.beginning_inventory,
            "quantityReceived": self.quantity_received,
            "dateReceived": _iso(self.date_received),
            "unitCost": self.unit_cost,
            "quantityDispensed": self.quantity_dispensed,
            "expirationDate": _iso(self.expiration_date),
            "remarks": self.remarks,
        }
        if self.branch_id is not None:
            rec["branchId"] = self.branch_id
        return rec


@dataclass
class BranchData:
    """One staff account and the batches it manages.

    Several accounts may share the same `branch_name`; the aggregator treats
    that name as the physical location.
    """
    user_id: str
    user_name: str = "Unknown User"
    branch_name: str = "Unknown Branch"
    user_role: str = "User"
    inventory: List[Batch] = field(default_factory=list)


@dataclass
class StockStatus:
    current_stock: int
    reorder_point: int
    is_low_stock: bool
    is_out_of_stock: bool
    avg_daily_usage: float
    days_of_stock_remaining: int

    def to_record(self) -> Dict[str, Any]:
        return {
            "currentStock": self.current_stock,
            "reorderPoint": self.reorder_point,
            "isLowStock": self.is_low_stock,
            "isOutOfStock": self.is_out_of_stock,
            "avgDailyUsage": self.avg_daily_usage,
            "daysOfStockRemaining": self.days_of_stock_remaining,
        }


@dataclass
class Alert:
    """A transient alert about one batch of one branch account."""
    branch_id: str
    branch_name: str
    user_name: str
    batch: Batch
    alert_type: str                          # expired | critical | nearExpiry | lowStock
    severity: str                            # high | medium | low
    days_until_expiry: Optional[int] = None  # expiry alerts only
    stock_level: Optional[int] = None

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "branchId": self.branch_id,
            "branchName": self.branch_name,
            "userName": self.user_name,
            "item": self.batch.to_record(),
            "alertType": self.alert_type,
            "severity": self.severity,
        }
        if self.days_until_expiry is not None:
            rec["daysUntilExpiry"] = self.days_until_expiry
        if self.stock_level is not None:
            rec["stockLevel"] = self.stock_level
        return rec


@dataclass
class BranchAlertSummary:
    """Alert counts of one account inside a location."""
    branch_id: str
    user_name: str
    expired: int = 0
    critical: int = 0
    near_expiry: int = 0
    low_stock: int = 0

    @property
    def total(self) -> int:
        return self.expired + self.critical + self.near_expiry + self.low_stock


@dataclass
class LocationSummary:
    """Alert counts of every account sharing one `branch_name`."""
    location: str
    accounts: List[BranchAlertSummary] = field(default_factory=list)
    expired: int = 0
    critical: int = 0
    near_expiry: int = 0
    low_stock: int = 0

    @property
    def total(self) -> int:
        return self.expired + self.critical + self.near_expiry + self.low_stock

    def to_record(self) -> Dict[str, Any]:
        return {
            "location": self.location,
            "accounts": [
                {
                    "branchId": a.branch_id,
                    "userName": a.user_name,
                    "expired": a.expired,
                    "critical": a.critical,
                    "nearExpiry": a.near_expiry,
                    "lowStock": a.low_stock,
                }
                for a in self.accounts
            ],
            "expired": self.expired,
            "critical": self.critical,
            "nearExpiry": self.near_expiry,
            "lowStock": self.low_stock,
        }


# Data-quality issue kinds
ISSUE_MALFORMED_DATE = "malformedDate"
ISSUE_NEGATIVE_STOCK = "negativeStock"


@dataclass
class DataQualityIssue:
    """A batch the engine degraded silently, reported on the side."""
    branch_id: str
    branch_name: str
    batch: Batch
    issue: str      # malformedDate | negativeStock
    detail: str = ""

    def to_record(self) -> Dict[str, Any]:
        return {
            "branchId": self.branch_id,
            "branchName": self.branch_name,
            "batchId": self.batch.id,
            "drugName": self.batch.drug_name,
            "batchNumber": self.batch.batch_number,
            "issue": self.issue,
            "detail": self.detail,
        }
