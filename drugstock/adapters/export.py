# drugstock/adapters/export.py
"""
Spreadsheet exports (XLSX, via pandas + openpyxl).

- `export_alert_summary`: the staff summary workbook (Summary, Expired,
  Discrepancies, Near Expiry, Low Stock sheets).
- `export_branch_alerts`: the multi-branch feed (Summary, Alerts,
  Locations sheets).
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Sequence

import pandas as pd

from drugstock.domain.models import ALERT_TYPES, Alert, LocationSummary
from drugstock.infra.logger import log_file_operation
from drugstock.usecases.reports import AlertSummaryReport


def _iso(d) -> str:
    return d.isoformat() if d is not None else ""


def _write(path: str, sheets: List[tuple]) -> str:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        for name, df in sheets:
            df.to_excel(writer, sheet_name=name, index=False)
    return str(out)


def export_alert_summary(report: AlertSummaryReport, path: str) -> str:
    """Write the staff alert summary workbook and return its path."""
    summary = pd.DataFrame(
        [
            ("Generated on", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
            ("As of", report.as_of.isoformat()),
            ("Expired Items", len(report.expired)),
            ("Discrepancies", len(report.discrepancies)),
            ("Near Expiry (<=180 days)", len(report.near_expiry)),
            ("Low Stock", len(report.low_stock)),
            ("Total Alerts", report.total),
        ],
        columns=["Alert Type", "Count"],
    )
    expired = pd.DataFrame(
        [
            {
                "Drug Name": b.drug_name,
                "Dosage": b.dosage,
                "Batch Number": b.batch_number,
                "Unit": b.unit,
                "Stock on Hand": b.stock_on_hand,
                "Expiry Date": _iso(b.expiration_date),
                "Days Overdue": abs(int(report.days_until_expiry(b))),
            }
            for b in report.expired
        ],
        columns=["Drug Name", "Dosage", "Batch Number", "Unit", "Stock on Hand", "Expiry Date", "Days Overdue"],
    )
    discrepancies = pd.DataFrame(
        [
            {
                "Drug Name": b.drug_name,
                "Dosage": b.dosage,
                "Batch Number": b.batch_number,
                "Stock on Hand": b.stock_on_hand,
                "Remarks": b.remarks or "-",
            }
            for b in report.discrepancies
        ],
        columns=["Drug Name", "Dosage", "Batch Number", "Stock on Hand", "Remarks"],
    )
    near = pd.DataFrame(
        [
            {
                "Drug Name": b.drug_name,
                "Dosage": b.dosage,
                "Batch Number": b.batch_number,
                "Unit": b.unit,
                "Stock on Hand": b.stock_on_hand,
                "Expiry Date": _iso(b.expiration_date),
                "Days Until Expiry": int(report.days_until_expiry(b)),
            }
            for b in report.near_expiry
        ],
        columns=["Drug Name", "Dosage", "Batch Number", "Unit", "Stock on Hand", "Expiry Date", "Days Until Expiry"],
    )
    low = pd.DataFrame(
        [
            {
                "Drug Name": b.drug_name,
                "Dosage": b.dosage,
                "Batch Number": b.batch_number,
                "Unit": b.unit,
                "Stock on Hand": b.stock_on_hand,
                "Program": b.program,
            }
            for b in report.low_stock
        ],
        columns=["Drug Name", "Dosage", "Batch Number", "Unit", "Stock on Hand", "Program"],
    )
    written = _write(path, [
        ("Summary", summary),
        ("Expired", expired),
        ("Discrepancies", discrepancies),
        ("Near Expiry", near),
        ("Low Stock", low),
    ])
    log_file_operation("export", written, rows_processed=report.total, kind="alert_summary")
    return written


def export_branch_alerts(
    alerts: Sequence[Alert],
    locations: Sequence[LocationSummary],
    path: str,
) -> str:
    """Write the multi-branch alert feed workbook and return its path."""
    counts = {t: 0 for t in ALERT_TYPES}
    for a in alerts:
        counts[a.alert_type] = counts.get(a.alert_type, 0) + 1
    summary = pd.DataFrame(
        [(t, counts[t]) for t in ALERT_TYPES] + [("total", len(alerts))],
        columns=["Alert Type", "Count"],
    )
    feed = pd.DataFrame(
        [
            {
                "Severity": a.severity,
                "Alert Type": a.alert_type,
                "Location": a.branch_name,
                "User": a.user_name,
                "Drug Name": a.batch.drug_name,
                "Dosage": a.batch.dosage,
                "Batch Number": a.batch.batch_number,
                "Expiry Date": _iso(a.batch.expiration_date),
                "Days Until Expiry": a.days_until_expiry,
                "Stock Level": a.stock_level,
            }
            for a in alerts
        ],
        columns=["Severity", "Alert Type", "Location", "User", "Drug Name", "Dosage",
                 "Batch Number", "Expiry Date", "Days Until Expiry", "Stock Level"],
    )
    loc_rows = []
    for loc in locations:
        for acc in loc.accounts:
            loc_rows.append({
                "Location": loc.location,
                "User": acc.user_name,
                "Expired": acc.expired,
                "Critical": acc.critical,
                "Near Expiry": acc.near_expiry,
                "Low Stock": acc.low_stock,
            })
    loc_df = pd.DataFrame(
        loc_rows,
        columns=["Location", "User", "Expired", "Critical", "Near Expiry", "Low Stock"],
    )
    written = _write(path, [("Summary", summary), ("Alerts", feed), ("Locations", loc_df)])
    log_file_operation("export", written, rows_processed=len(alerts), kind="branch_alerts")
    return written
