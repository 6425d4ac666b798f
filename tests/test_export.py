from datetime import date, timedelta
from pathlib import Path

import pandas as pd

from drugstock.adapters.export import export_alert_summary, export_branch_alerts
from drugstock.domain.models import Batch, BranchData
from drugstock.usecases.alerts import generate_branch_alerts, summarize_locations
from drugstock.usecases.reports import alert_summary_report

AS_OF = date(2025, 6, 1)


def _batches():
    return [
        Batch(id="1", drug_name="Paracetamol", dosage="500mg", batch_number="L1", unit="tab",
              beginning_inventory=40, date_received=AS_OF - timedelta(days=30),
              expiration_date=AS_OF - timedelta(days=5)),
        Batch(id="2", drug_name="ORS", batch_number="L2", beginning_inventory=6,
              date_received=AS_OF - timedelta(days=30),
              expiration_date=AS_OF + timedelta(days=90), remarks="recounted"),
    ]


def test_export_alert_summary(tmp_path: Path):
    report = alert_summary_report(_batches(), as_of=AS_OF)
    out = tmp_path / "reports" / "summary.xlsx"
    written = export_alert_summary(report, str(out))
    assert Path(written).exists()

    sheets = pd.read_excel(written, sheet_name=None)
    assert list(sheets) == ["Summary", "Expired", "Discrepancies", "Near Expiry", "Low Stock"]

    summary = dict(zip(sheets["Summary"]["Alert Type"], sheets["Summary"]["Count"]))
    assert summary["Total Alerts"] == report.total == 4
    assert summary["As of"] == "2025-06-01"

    expired = sheets["Expired"]
    assert expired["Batch Number"].tolist() == ["L1"]
    assert expired["Days Overdue"].tolist() == [5]
    assert sheets["Near Expiry"]["Days Until Expiry"].tolist() == [90]
    assert sheets["Discrepancies"]["Remarks"].tolist() == ["recounted"]
    assert sheets["Low Stock"]["Stock on Hand"].tolist() == [6]


def test_export_branch_alerts(tmp_path: Path):
    branches = [
        BranchData(user_id="u1", user_name="Ana", branch_name="Baguio", inventory=_batches()),
        BranchData(user_id="u2", user_name="Ben", branch_name="Tuba", inventory=[]),
    ]
    alerts = generate_branch_alerts(branches, as_of=AS_OF)
    locations = summarize_locations(branches, alerts)
    written = export_branch_alerts(alerts, locations, str(tmp_path / "feed.xlsx"))

    sheets = pd.read_excel(written, sheet_name=None)
    assert list(sheets) == ["Summary", "Alerts", "Locations"]

    feed = sheets["Alerts"]
    assert feed["Alert Type"].tolist() == ["expired", "lowStock", "nearExpiry"]
    assert feed["Severity"].tolist() == ["high", "high", "medium"]

    counts = dict(zip(sheets["Summary"]["Alert Type"], sheets["Summary"]["Count"]))
    assert counts == {"expired": 1, "critical": 0, "lowStock": 1, "nearExpiry": 1, "total": 3}

    locs = sheets["Locations"]
    assert locs["Location"].tolist() == ["Baguio", "Tuba"]
    assert locs["Expired"].tolist() == [1, 0]


def test_export_empty_feed(tmp_path: Path):
    written = export_branch_alerts([], [], str(tmp_path / "empty.xlsx"))
    sheets = pd.read_excel(written, sheet_name=None)
    assert sheets["Alerts"].empty
    assert "Stock Level" in sheets["Alerts"].columns
