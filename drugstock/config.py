# drugstock/config.py
"""
Global settings and default values for the alert and reorder engine.
"""

import os
from dataclasses import dataclass


# Default branch snapshot read by the CLI
DATA_PATH = os.environ.get("DRUGSTOCK_DATA", os.path.join(os.getcwd(), "branches.json"))


@dataclass(frozen=True)
class ReorderPointConfig:
    """Lead time / safety stock model applied to every batch of a call."""
    lead_time_days: int = 14  # two weeks for government procurement
    safety_stock_percentage: float = 0.30  # buffer over lead-time demand
    minimum_threshold: int = 20  # floor for low-volume medicines


# Process-wide default
DEFAULT_REORDER_CONFIG = ReorderPointConfig()

# Expiry buckets (days until expiry, inclusive upper bounds)
CRITICAL_EXPIRY_DAYS = 30
NEAR_EXPIRY_DAYS = 180

# lowStock alerts below this share of the reorder point are high severity
LOW_STOCK_HIGH_RATIO = 0.5

# Days of stock reported when there is stock but no dispensing history
NO_USAGE_DAYS_REMAINING = 999

# Fixed unit threshold used by the stock-on-hand summaries
SUMMARY_LOW_STOCK_UNITS = 50

# Polling period of the monitoring loop
REFRESH_INTERVAL_SECONDS = 30
