# drugstock/infra/logger.py
"""
Logging for the alert engine's outer layers.

Configures and provides the loggers used by the refresh cycle, the file
loaders/exporters and the CLI. The pure engine (formulas, policies, alert
generation) never logs.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional


def _flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


# Global switch for file logging
ENABLE_LOGGING = _flag("DRUGSTOCK_ENABLE_LOGGING")
# Global switch for console output
ENABLE_OUTPUT = _flag("DRUGSTOCK_ENABLE_OUTPUT")


def print_system(*args, **kwargs):
    """Print gated by ENABLE_OUTPUT."""
    if ENABLE_OUTPUT:
        print(*args, **kwargs)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configure a logger writing to its own file.

    The file is opened on the first record, so importing this module does
    not touch the disk.

    Args:
        name: Logger name
        log_file: Log file path
        level: Logging level

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    file_handler = _LazyDirFileHandler(log_file, encoding='utf-8', delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


class _LazyDirFileHandler(logging.FileHandler):
    """FileHandler that creates the logs directory when it first opens."""

    def _open(self):
        Path(self.baseFilename).parent.mkdir(parents=True, exist_ok=True)
        return super()._open()


LOGS_DIR = Path(os.environ.get("DRUGSTOCK_LOG_DIR", Path.cwd() / "logs"))

alerts_logger = setup_logger('drugstock.alerts', str(LOGS_DIR / 'alerts.log'))

files_logger = setup_logger('drugstock.files', str(LOGS_DIR / 'files.log'))

system_logger = setup_logger('drugstock.system', str(LOGS_DIR / 'system.log'))


def log_alert_cycle(total_alerts: int, counts: Dict[str, int], branches: int, **kwargs) -> None:
    """
    Record the outcome of one refresh cycle.

    Args:
        total_alerts: Number of alerts in the feed
        counts: Alerts per type
        branches: Number of accounts evaluated
        **kwargs: Extra data
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "branches": branches,
        "total_alerts": total_alerts,
        "counts": counts,
        **kwargs
    }
    alerts_logger.info(f"ALERT_CYCLE: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Record a system event.

    Args:
        event: Event name
        details: Extra details (optional)
        level: Log level (info, warning, error)
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "event": event,
        "details": details or {}
    }
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Record a file import/export.

    Args:
        operation: import | export
        file_path: File path
        rows_processed: Rows (batches) processed
        **kwargs: Extra data
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return
    log_data = {
        "operation": operation,
        "file_path": file_path,
        "rows_processed": rows_processed,
        **kwargs
    }
    files_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "alerts", lines: int = 100) -> Optional[str]:
    """
    Return the most recent lines of a log.

    Args:
        log_type: alerts | files | system
        lines: Number of lines

    Returns:
        Log content, or None when logging is disabled
    """
    if not (ENABLE_LOGGING or ENABLE_OUTPUT):
        return None

    log_files = {
        "alerts": LOGS_DIR / "alerts.log",
        "files": LOGS_DIR / "files.log",
        "system": LOGS_DIR / "system.log",
    }

    log_file = log_files.get(log_type)
    if not log_file or not log_file.exists():
        return f"Log {log_type} not found."

    with open(log_file, 'r', encoding='utf-8') as f:
        all_lines = f.readlines()
    return ''.join(all_lines[-lines:])
