# drugstock/adapters/cli.py
"""
Drug inventory alert CLI (Typer).

Commands:
- alerts          -> prioritized alert feed across all branches
- status          -> stock status and reorder point of every batch
- reorder         -> batches that need replenishment and how much to order
- locations       -> alert counts per location and account
- locate <query>  -> where a drug is in stock
- summary         -> stock on hand per drug for each account
- top-utilized    -> most dispensed drugs across branches
- quality         -> batches with unreadable dates or negative stock
- export          -> write the alert feed or the staff summary to XLSX
- watch           -> re-run the alert cycle every N seconds
- logs            -> tail of the alerts, files or system log
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from drugstock.adapters.export import export_alert_summary, export_branch_alerts
from drugstock.adapters.loader import LoaderError, load_branches
from drugstock.adapters.parsers import parse_date
from drugstock.config import (
    DATA_PATH,
    DEFAULT_REORDER_CONFIG,
    REFRESH_INTERVAL_SECONDS,
    ReorderPointConfig,
)
from drugstock.domain.formulas import calculate_reorder_quantity, days_until_expiry
from drugstock.domain.models import ALERT_TYPES, BranchData
from drugstock.domain.policies import expiry_bucket, get_stock_status, stock_bucket
from drugstock.infra.logger import get_log_summary
from drugstock.usecases.alerts import filter_alerts
from drugstock.usecases.monitor import AlertCycle, run_alert_cycle, watch
from drugstock.usecases.reports import (
    alert_summary_report,
    locate_drug,
    summarize_drugs,
    top_utilized_drugs,
)


app = typer.Typer(help="Pharmacy drug inventory: alerts and reorder CLI")
console = Console()


# -----------------------
# shared options
# -----------------------

PathArg = typer.Argument(DATA_PATH, help="Branch snapshot (.json feed, .xlsx or .csv batch sheet)")
LeadTimeOpt = typer.Option(DEFAULT_REORDER_CONFIG.lead_time_days, "--lead-time-days", help="Replenishment lead time in days")
SafetyOpt = typer.Option(DEFAULT_REORDER_CONFIG.safety_stock_percentage, "--safety-stock", help="Safety stock share of lead-time demand (0-1)")
MinimumOpt = typer.Option(DEFAULT_REORDER_CONFIG.minimum_threshold, "--minimum-threshold", help="Reorder point floor in units")
AsOfOpt = typer.Option(None, "--as-of", help="Reference date YYYY-MM-DD (default: today)")
JsonOpt = typer.Option(False, "--json", help="Print JSON instead of tables")


# -----------------------
# util
# -----------------------

def _config(lead_time_days: int, safety_stock: float, minimum_threshold: int) -> ReorderPointConfig:
    return ReorderPointConfig(
        lead_time_days=lead_time_days,
        safety_stock_percentage=safety_stock,
        minimum_threshold=minimum_threshold,
    )


def _as_of(value: Optional[str]) -> date:
    if not value:
        return date.today()
    d = parse_date(value)
    if d is None:
        raise typer.BadParameter(f"invalid date: {value!r}", param_hint="--as-of")
    return d


def _load(path: str) -> List[BranchData]:
    try:
        return load_branches(path)
    except FileNotFoundError:
        console.print(f"[bold red]File not found:[/] {path}")
        raise typer.Exit(code=1)
    except LoaderError as e:
        console.print(f"[bold red]Cannot read snapshot:[/] {e}")
        raise typer.Exit(code=1)


def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


_SEVERITY_STYLE = {"high": "bold red", "medium": "bold yellow", "low": "green"}


def _fmt(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, float):
        return f"{val:,.2f}"
    if isinstance(val, date):
        return val.isoformat()
    return str(val)


def _display_table(rows: List[Dict[str, Any]], title: str, right: tuple = ()) -> None:
    """Render a list of dicts as a Rich table (columns from the first row)."""
    if not rows:
        console.print(Panel("No data found", title=title, border_style="yellow"))
        return
    table = Table(title=title, box=box.ROUNDED)
    columns = list(rows[0].keys())
    for col in columns:
        table.add_column(col, justify="right" if col in right else "left")
    for row in rows:
        values = []
        for col in columns:
            val = _fmt(row.get(col))
            if col == "severity" and val in _SEVERITY_STYLE:
                val = f"[{_SEVERITY_STYLE[val]}]{val}[/]"
            values.append(val)
        table.add_row(*values)
    console.print(table)


def _show_cycle(cycle: AlertCycle, as_json: bool) -> None:
    if as_json:
        _print_json(cycle.to_record())
        return
    counts = ", ".join(f"{t}: {cycle.counts.get(t, 0)}" for t in ALERT_TYPES)
    console.print(Panel(counts, title=f"Alerts as of {cycle.as_of.isoformat()}"))
    _display_table(_alert_rows(cycle.alerts), title="Alert Feed", right=("days", "stock"))
    console.print(f"[dim]Generated at: {cycle.generated_at.isoformat(timespec='seconds')}[/dim]")


def _alert_rows(alerts) -> List[Dict[str, Any]]:
    return [
        {
            "severity": a.severity,
            "type": a.alert_type,
            "location": a.branch_name,
            "user": a.user_name,
            "drug": a.batch.drug_name,
            "batch": a.batch.batch_number,
            "expiry": a.batch.expiration_date,
            "days": a.days_until_expiry,
            "stock": a.stock_level,
        }
        for a in alerts
    ]


# -----------------------
# alert commands
# -----------------------

@app.command("alerts")
def cmd_alerts(
    path: str = PathArg,
    alert_type: Optional[str] = typer.Option(None, "--type", help="expired | critical | nearExpiry | lowStock"),
    location: Optional[str] = typer.Option(None, "--location", help="Only this branch name"),
    lead_time_days: int = LeadTimeOpt,
    safety_stock: float = SafetyOpt,
    minimum_threshold: int = MinimumOpt,
    as_of: Optional[str] = AsOfOpt,
    as_json: bool = JsonOpt,
):
    """Prioritized alert feed across all branches."""
    if alert_type is not None and alert_type not in ALERT_TYPES:
        raise typer.BadParameter(f"unknown alert type: {alert_type!r}", param_hint="--type")
    branches = _load(path)
    if location:
        branches = [b for b in branches if b.branch_name.casefold() == location.casefold()]
    cycle = run_alert_cycle(branches, _config(lead_time_days, safety_stock, minimum_threshold), _as_of(as_of))
    if alert_type:
        cycle.alerts = filter_alerts(cycle.alerts, alert_type=alert_type)
    _show_cycle(cycle, as_json)


@app.command("locations")
def cmd_locations(
    path: str = PathArg,
    lead_time_days: int = LeadTimeOpt,
    safety_stock: float = SafetyOpt,
    minimum_threshold: int = MinimumOpt,
    as_of: Optional[str] = AsOfOpt,
    as_json: bool = JsonOpt,
):
    """Alert counts per location (branch name) and per account."""
    branches = _load(path)
    cycle = run_alert_cycle(branches, _config(lead_time_days, safety_stock, minimum_threshold), _as_of(as_of))
    if as_json:
        _print_json([loc.to_record() for loc in cycle.locations])
        return
    rows = []
    for loc in cycle.locations:
        for acc in loc.accounts:
            rows.append({
                "location": loc.location,
                "user": acc.user_name,
                "expired": acc.expired,
                "critical": acc.critical,
                "nearExpiry": acc.near_expiry,
                "lowStock": acc.low_stock,
            })
    _display_table(rows, title="Alerts by Location", right=("expired", "critical", "nearExpiry", "lowStock"))


@app.command("quality")
def cmd_quality(
    path: str = PathArg,
    as_of: Optional[str] = AsOfOpt,
    as_json: bool = JsonOpt,
):
    """Batches with unreadable dates or negative stock."""
    cycle = run_alert_cycle(_load(path), as_of=_as_of(as_of))
    records = [i.to_record() for i in cycle.issues]
    if as_json:
        _print_json(records)
        return
    _display_table(records, title="Data Quality Issues")


# -----------------------
# stock commands
# -----------------------

@app.command("status")
def cmd_status(
    path: str = PathArg,
    lead_time_days: int = LeadTimeOpt,
    safety_stock: float = SafetyOpt,
    minimum_threshold: int = MinimumOpt,
    as_of: Optional[str] = AsOfOpt,
    as_json: bool = JsonOpt,
):
    """Stock status, reorder point and expiry bucket of every batch."""
    config = _config(lead_time_days, safety_stock, minimum_threshold)
    ref = _as_of(as_of)
    rows = []
    for br in _load(path):
        for b in br.inventory:
            st = get_stock_status(b, config, ref)
            rows.append({
                "location": br.branch_name,
                "drug": b.drug_name,
                "batch": b.batch_number,
                **st.to_record(),
                "stockStatus": stock_bucket(st),
                "expiryStatus": expiry_bucket(days_until_expiry(b, ref)),
            })
    if as_json:
        _print_json(rows)
        return
    _display_table(
        rows,
        title="Stock Status",
        right=("currentStock", "reorderPoint", "avgDailyUsage", "daysOfStockRemaining"),
    )


@app.command("reorder")
def cmd_reorder(
    path: str = PathArg,
    lead_time_days: int = LeadTimeOpt,
    safety_stock: float = SafetyOpt,
    minimum_threshold: int = MinimumOpt,
    as_of: Optional[str] = AsOfOpt,
    as_json: bool = JsonOpt,
):
    """Batches at or below their reorder point, with a suggested quantity."""
    config = _config(lead_time_days, safety_stock, minimum_threshold)
    ref = _as_of(as_of)
    rows = []
    for br in _load(path):
        for b in br.inventory:
            qty = calculate_reorder_quantity(b, config, ref)
            if qty <= 0:
                continue
            st = get_stock_status(b, config, ref)
            rows.append({
                "location": br.branch_name,
                "drug": b.drug_name,
                "batch": b.batch_number,
                "stock": st.current_stock,
                "reorderPoint": st.reorder_point,
                "suggestedQuantity": qty,
            })
    # lowest stock first
    rows.sort(key=lambda r: r["stock"])
    if as_json:
        _print_json(rows)
        return
    _display_table(rows, title="Reorder Suggestions", right=("stock", "reorderPoint", "suggestedQuantity"))


@app.command("locate")
def cmd_locate(
    query: str = typer.Argument(..., help="Part of the drug name"),
    path: str = typer.Option(DATA_PATH, "--data", help="Branch snapshot"),
    as_of: Optional[str] = AsOfOpt,
    as_json: bool = JsonOpt,
):
    """Where a drug is in stock across branches."""
    locations = locate_drug(_load(path), query, _as_of(as_of))
    rows = [
        {
            "drug": loc.drug_name,
            "location": loc.branch_name,
            "user": loc.user_name,
            "batch": loc.batch_number,
            "dosage": loc.dosage,
            "stock": loc.stock,
            "expiry": loc.expiration_date,
            "status": loc.expiry_label,
        }
        for loc in locations
    ]
    if as_json:
        _print_json(rows)
        return
    _display_table(rows, title=f"Stock Locator: {query}", right=("stock",))


@app.command("summary")
def cmd_summary(
    path: str = PathArg,
    as_of: Optional[str] = AsOfOpt,
    as_json: bool = JsonOpt,
):
    """Stock on hand per drug for each account."""
    ref = _as_of(as_of)
    out = []
    for br in _load(path):
        for s in summarize_drugs(br.inventory, ref):
            out.append({
                "location": br.branch_name,
                "user": br.user_name,
                "drug": s.drug_name,
                "program": s.program,
                "stock": s.total_stock,
                "batches": s.total_batches,
                "earliestExpiry": s.earliest_expiry,
                "utilization": s.utilization,
            })
    if as_json:
        _print_json(out)
        return
    _display_table(out, title="Stock on Hand", right=("stock", "batches", "utilization"))


@app.command("top-utilized")
def cmd_top_utilized(
    path: str = PathArg,
    limit: int = typer.Option(10, help="Top N drugs"),
    as_json: bool = JsonOpt,
):
    """Most dispensed drugs across branches."""
    rows = [
        {
            "drug": d.drug_name,
            "dispensed": d.total_dispensed,
            "received": d.total_received,
            "utilization": d.utilization_rate,
            "locations": d.branch_count,
        }
        for d in top_utilized_drugs(_load(path), limit=limit)
    ]
    if as_json:
        _print_json(rows)
        return
    _display_table(rows, title=f"Top {limit} Utilized Drugs", right=("dispensed", "received", "utilization", "locations"))


# -----------------------
# export / monitor
# -----------------------

@app.command("export")
def cmd_export(
    path: str = PathArg,
    out: str = typer.Option(..., "--out", help="Destination .xlsx"),
    kind: str = typer.Option("feed", "--kind", help="feed (all branches) | summary (staff summary)"),
    lead_time_days: int = LeadTimeOpt,
    safety_stock: float = SafetyOpt,
    minimum_threshold: int = MinimumOpt,
    as_of: Optional[str] = AsOfOpt,
):
    """Write the alert feed or the staff alert summary to an XLSX workbook."""
    config = _config(lead_time_days, safety_stock, minimum_threshold)
    ref = _as_of(as_of)
    branches = _load(path)
    if kind == "feed":
        cycle = run_alert_cycle(branches, config, ref)
        written = export_branch_alerts(cycle.alerts, cycle.locations, out)
    elif kind == "summary":
        batches = [b for br in branches for b in br.inventory]
        written = export_alert_summary(alert_summary_report(batches, config, ref), out)
    else:
        raise typer.BadParameter(f"unknown kind: {kind!r}", param_hint="--kind")
    typer.echo(f">> Report written to: {written}")


@app.command("watch")
def cmd_watch(
    path: str = PathArg,
    interval: float = typer.Option(REFRESH_INTERVAL_SECONDS, help="Seconds between refreshes"),
    cycles: Optional[int] = typer.Option(None, help="Stop after N refreshes"),
    lead_time_days: int = LeadTimeOpt,
    safety_stock: float = SafetyOpt,
    minimum_threshold: int = MinimumOpt,
    as_json: bool = JsonOpt,
):
    """Reload the snapshot and recompute the alert feed every INTERVAL seconds."""
    config = _config(lead_time_days, safety_stock, minimum_threshold)
    try:
        watch(
            lambda: _load(path),
            lambda cycle: _show_cycle(cycle, as_json),
            interval_seconds=interval,
            config=config,
            max_cycles=cycles,
        )
    except KeyboardInterrupt:
        typer.echo("\nStopped.")
        raise typer.Exit(0)


@app.command("logs")
def cmd_logs(
    log_type: str = typer.Argument("alerts", help="alerts | files | system"),
    lines: int = typer.Option(50, help="Number of lines"),
):
    """Show the most recent lines of a log."""
    text = get_log_summary(log_type, lines=lines)
    if text is None:
        console.print("[yellow]Logging is disabled (set DRUGSTOCK_ENABLE_LOGGING=1).[/]")
        raise typer.Exit(code=1)
    typer.echo(text)


def main():
    app()


if __name__ == "__main__":
    main()
