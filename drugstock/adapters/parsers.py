"""
Parsing utilities for batch and branch records.

The persistence collaborator hands over camelCase dictionaries whose
values are not always clean: quantities typed as text, blank dates,
timestamps where a plain date was expected. The functions here coerce
those values without ever raising, so one bad batch cannot take down a
whole refresh. Dates that cannot be read come back as ``None``; the
engine then treats the batch as having no known expiry (or no usage
history) and the data-quality report lists it.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from drugstock.domain.models import Batch, BranchData

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
# integer with optional thousands separators: 1,000 / 1 000 / 1_000
_QTY_RE = re.compile(r"[-+]?\d{1,3}(?:[,_ ]\d{3})+(?!\d)|[-+]?\d+")


def _is_missing(val: Any) -> bool:
    if val is None:
        return True
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        # lists and other containers
        return False


def parse_date(val: Any) -> Optional[date]:
    """Interpret a calendar date.

    Accepts ``date``/``datetime``/``pandas.Timestamp`` objects, ISO dates
    (``2025-03-01``) and ISO timestamps (``2025-03-01T00:00:00.000Z``).
    The time of day is discarded.

    Args:
        val: Value to interpret.

    Returns:
        The date, or ``None`` if it cannot be determined.
    """
    if _is_missing(val):
        return None
    if isinstance(val, pd.Timestamp):
        return val.date()
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    if not s:
        return None
    # ISO date prefix first, so timezones never shift the calendar day
    try:
        return datetime.strptime(s[:10], "%Y-%m-%d").date()
    except ValueError:
        pass
    d = pd.to_datetime(s, errors="coerce")
    if pd.isna(d):
        return None
    return d.date()


def parse_quantity(val: Any) -> int:
    """Interpret a quantity as an integer, ``0`` when it cannot be read.

    Examples:
        12 → 12
        "30" → 30
        "1,000" → 1000
        "12.9" → 12
        "abc" → 0
    """
    if _is_missing(val) or isinstance(val, bool):
        return 0
    if isinstance(val, (int, float)):
        return int(val) if math.isfinite(val) else 0
    m = _QTY_RE.search(str(val))
    if not m:
        return 0
    return int(re.sub(r"[,_ ]", "", m.group(0)))


def parse_amount(val: Any) -> float:
    """Decimal amount (unit costs), ``0.0`` when it cannot be read. A comma is a decimal point."""
    if _is_missing(val) or isinstance(val, bool):
        return 0.0
    if isinstance(val, (int, float)):
        return float(val) if math.isfinite(val) else 0.0
    m = _NUM_RE.search(str(val))
    if not m:
        return 0.0
    return float(m.group(0).replace(",", "."))


def _text(val: Any) -> str:
    if _is_missing(val):
        return ""
    return str(val).strip()


def _optional_text(val: Any) -> Optional[str]:
    s = _text(val)
    return s or None


def batch_from_record(rec: Dict[str, Any]) -> Batch:
    """Build a `Batch` from the camelCase input contract."""
    return Batch(
        id=_text(rec.get("id")),
        drug_name=_text(rec.get("drugName")),
        program=_text(rec.get("program")),
        dosage=_text(rec.get("dosage")),
        unit=_text(rec.get("unit")),
        batch_number=_text(rec.get("batchNumber")),
        beginning_inventory=parse_quantity(rec.get("beginningInventory")),
        quantity_received=parse_quantity(rec.get("quantityReceived")),
        date_received=parse_date(rec.get("dateReceived")),
        unit_cost=parse_amount(rec.get("unitCost")),
        quantity_dispensed=parse_quantity(rec.get("quantityDispensed")),
        expiration_date=parse_date(rec.get("expirationDate")),
        remarks=_text(rec.get("remarks")),
        branch_id=_optional_text(rec.get("branchId")),
    )


def batches_from_records(records: Iterable[Dict[str, Any]]) -> List[Batch]:
    return [batch_from_record(r) for r in records or [] if isinstance(r, dict)]


def branch_from_record(rec: Dict[str, Any]) -> BranchData:
    """Build a `BranchData` from one entry of the all-branches feed.

    The feed stores the batch list under ``value``; ``inventory`` is also
    accepted. Missing names fall back to the same placeholders the
    dashboards show.
    """
    items = rec.get("value")
    if items is None:
        items = rec.get("inventory")
    return BranchData(
        user_id=_text(rec.get("userId")),
        user_name=_text(rec.get("userName")) or "Unknown User",
        branch_name=_text(rec.get("branchName")) or "Unknown Branch",
        user_role=_text(rec.get("userRole")) or "User",
        inventory=batches_from_records(items if isinstance(items, list) else []),
    )
