# drugstock/usecases/monitor.py
"""
Use case: refresh cycle of the multi-branch monitor.

Flow:
1) Generate and sort the alert feed for a snapshot of all accounts.
2) Build the per-location summaries and the per-type counters.
3) List the data-quality issues the feed degraded silently.

`watch` is the polling loop around it: reload a snapshot, run a cycle,
hand the result over, sleep. Each cycle starts from scratch; nothing is
carried from one cycle to the next.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

from drugstock.config import REFRESH_INTERVAL_SECONDS, ReorderPointConfig
from drugstock.domain.models import Alert, BranchData, DataQualityIssue, LocationSummary
from drugstock.infra.logger import log_alert_cycle, log_system_event, print_system, system_logger
from drugstock.usecases.alerts import (
    count_by_type,
    find_data_quality_issues,
    generate_branch_alerts,
    summarize_locations,
)


@dataclass
class AlertCycle:
    """Everything one refresh produces."""
    generated_at: datetime
    as_of: date
    alerts: List[Alert] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    locations: List[LocationSummary] = field(default_factory=list)
    issues: List[DataQualityIssue] = field(default_factory=list)

    def to_record(self) -> Dict:
        return {
            "generatedAt": self.generated_at.isoformat(timespec="seconds"),
            "asOf": self.as_of.isoformat(),
            "counts": dict(self.counts),
            "alerts": [a.to_record() for a in self.alerts],
            "locations": [loc.to_record() for loc in self.locations],
            "issues": [i.to_record() for i in self.issues],
        }


def run_alert_cycle(
    branches: Sequence[BranchData],
    config: Optional[ReorderPointConfig] = None,
    as_of: Optional[date] = None,
) -> AlertCycle:
    as_of = as_of or date.today()
    log_system_event("alert_cycle_start", {"branches": len(branches), "as_of": as_of.isoformat()})

    try:
        alerts = generate_branch_alerts(branches, config, as_of)
        counts = count_by_type(alerts)
        cycle = AlertCycle(
            generated_at=datetime.now(),
            as_of=as_of,
            alerts=alerts,
            counts=counts,
            locations=summarize_locations(branches, alerts),
            issues=find_data_quality_issues(branches, as_of),
        )
    except Exception as e:
        log_system_event("alert_cycle_error", {"error": str(e)}, level="error")
        system_logger.error(f"ALERT_CYCLE: Error - {e}")
        raise

    log_alert_cycle(len(alerts), counts, len(branches), issues=len(cycle.issues))
    if cycle.issues:
        log_system_event("alert_cycle_data_quality", {"issues": len(cycle.issues)}, level="warning")
    return cycle


def watch(
    load: Callable[[], Sequence[BranchData]],
    on_cycle: Callable[[AlertCycle], None],
    interval_seconds: float = REFRESH_INTERVAL_SECONDS,
    config: Optional[ReorderPointConfig] = None,
    max_cycles: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Poll `load` every `interval_seconds` and run a cycle on each snapshot.

    Runs until `max_cycles` cycles completed (forever when None). Errors
    from loading or computing are logged and propagated.

    Returns:
        Number of completed cycles.
    """
    done = 0
    while max_cycles is None or done < max_cycles:
        try:
            branches = load()
        except Exception as e:
            log_system_event("watch_load_error", {"error": str(e)}, level="error")
            raise
        on_cycle(run_alert_cycle(branches, config))
        done += 1
        print_system(f">> Refresh {done} done")
        if max_cycles is not None and done >= max_cycles:
            break
        sleep(interval_seconds)
    return done
