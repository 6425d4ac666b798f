import json
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from drugstock.adapters.cli import app

runner = CliRunner()


def _feed(tmp_path: Path) -> Path:
    feed = [
        {
            "userId": "u1",
            "userName": "Ana",
            "branchName": "Baguio",
            "userRole": "Staff",
            "value": [
                {"id": "a", "drugName": "Paracetamol", "batchNumber": "L1", "beginningInventory": 40,
                 "dateReceived": "2025-05-01", "expirationDate": "2025-05-27"},
                {"id": "b", "drugName": "ORS", "batchNumber": "L2", "beginningInventory": 5,
                 "dateReceived": "2025-05-01", "expirationDate": "2026-05-27"},
            ],
        },
        {
            "userId": "u2",
            "userName": "Ben",
            "branchName": "Tuba",
            "value": [
                {"id": "c", "drugName": "Amoxicillin", "batchNumber": "L3", "quantityReceived": 200,
                 "quantityDispensed": 100, "dateReceived": "2025-05-22", "expirationDate": "2025-08-30"},
                {"id": "d", "drugName": "Zinc", "batchNumber": "L4", "beginningInventory": 90,
                 "dateReceived": "2025-05-01", "expirationDate": "someday"},
            ],
        },
    ]
    p = tmp_path / "feed.json"
    p.write_text(json.dumps(feed), encoding="utf-8")
    return p


def test_cli_alerts_json(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["alerts", str(p), "--as-of", "2025-06-01", "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [(a["item"]["id"], a["alertType"], a["severity"]) for a in data["alerts"]] == [
        ("a", "expired", "high"),
        ("b", "lowStock", "high"),
        ("c", "lowStock", "medium"),
        ("c", "nearExpiry", "medium"),
    ]
    assert data["counts"] == {"expired": 1, "critical": 0, "lowStock": 2, "nearExpiry": 1}
    assert [i["batchId"] for i in data["issues"]] == ["d"]


def test_cli_alerts_filtered(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["alerts", str(p), "--as-of", "2025-06-01", "--type", "lowStock",
                                 "--location", "tuba", "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [(a["branchName"], a["alertType"]) for a in data["alerts"]] == [("Tuba", "lowStock")]


def test_cli_alerts_table(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["alerts", str(p), "--as-of", "2025-06-01"])
    assert result.exit_code == 0, result.output
    assert "Alert Feed" in result.stdout


def test_cli_locations_json(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["locations", str(p), "--as-of", "2025-06-01", "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [(loc["location"], loc["expired"], loc["lowStock"]) for loc in data] == [
        ("Baguio", 1, 1),
        ("Tuba", 0, 1),
    ]


def test_cli_reorder_json(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["reorder", str(p), "--as-of", "2025-06-01", "--json"])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    # ORS: no history -> 1/day; Amoxicillin: 100 over 10 days -> 10/day
    assert [(r["drug"], r["stock"], r["reorderPoint"], r["suggestedQuantity"]) for r in rows] == [
        ("ORS", 5, 20, 33),
        ("Amoxicillin", 100, 182, 322),
    ]


def test_cli_reorder_uses_config_options(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["reorder", str(p), "--as-of", "2025-06-01", "--json",
                                 "--minimum-threshold", "50", "--lead-time-days", "1"])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert [(r["drug"], r["suggestedQuantity"]) for r in rows] == [("ORS", 50), ("Paracetamol", 50)]


def test_cli_status_json(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["status", str(p), "--as-of", "2025-06-01", "--json"])
    assert result.exit_code == 0, result.output
    rows = {r["drug"]: r for r in json.loads(result.stdout)}
    assert rows["ORS"]["stockStatus"] == "lowStock"
    assert rows["ORS"]["daysOfStockRemaining"] == 999
    assert rows["Paracetamol"]["expiryStatus"] == "expired"
    assert rows["Zinc"]["expiryStatus"] == "normal"


def test_cli_quality_and_locate(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["quality", str(p), "--as-of", "2025-06-01", "--json"])
    assert result.exit_code == 0, result.output
    assert [(i["drugName"], i["issue"]) for i in json.loads(result.stdout)] == [("Zinc", "malformedDate")]

    result = runner.invoke(app, ["locate", "amox", "--data", str(p), "--as-of", "2025-06-01", "--json"])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert [(r["location"], r["stock"], r["status"]) for r in rows] == [("Tuba", 100, "90 days left")]


def test_cli_export_feed(tmp_path: Path):
    p = _feed(tmp_path)
    out = tmp_path / "feed.xlsx"
    result = runner.invoke(app, ["export", str(p), "--out", str(out), "--as-of", "2025-06-01"])
    assert result.exit_code == 0, result.output
    assert "Report written to" in result.stdout
    sheets = pd.read_excel(out, sheet_name=None)
    assert len(sheets["Alerts"]) == 4


def test_cli_watch_single_cycle(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["watch", str(p), "--cycles", "1", "--interval", "0", "--json"])
    assert result.exit_code == 0, result.output
    assert "alerts" in json.loads(result.stdout)


def test_cli_missing_file(tmp_path: Path):
    result = runner.invoke(app, ["alerts", str(tmp_path / "missing.json")])
    assert result.exit_code == 1
    assert "File not found" in result.stdout


def test_cli_bad_alert_type(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["alerts", str(p), "--type", "soon"])
    assert result.exit_code == 2


def test_cli_bad_as_of(tmp_path: Path):
    p = _feed(tmp_path)
    result = runner.invoke(app, ["alerts", str(p), "--as-of", "not-a-date"])
    assert result.exit_code == 2


def test_cli_logs_when_disabled(monkeypatch):
    from drugstock.infra import logger as log
    monkeypatch.setattr(log, "ENABLE_LOGGING", False)
    monkeypatch.setattr(log, "ENABLE_OUTPUT", False)
    result = runner.invoke(app, ["logs", "system"])
    assert result.exit_code == 1
    assert "Logging is disabled" in result.stdout
