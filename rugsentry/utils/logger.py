"""
Logger Utility for RugSentry
Provides consistent logging configuration and the scan audit trail
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"


def setup_logger(verbosity: int = 1,
                 log_file: Optional[str] = None,
                 logger_name: str = "rugsentry",
                 logs_dir: Union[str, Path] = "logs",
                 console: Optional[Console] = None) -> logging.Logger:
    """Set up logger with console and file output."""

    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG if verbosity >= 2 else logging.INFO)
    logger.handlers.clear()

    # verbosity 0 keeps the console to warnings and errors
    console_level = logging.DEBUG if verbosity >= 2 else logging.INFO if verbosity == 1 else logging.WARNING
    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=(verbosity >= 2),
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
    else:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = Path(logs_dir) / f"rugsentry_{timestamp}.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(file_handler)
    logger.debug(f"Detailed logs saved to: {log_path}")

    for name in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING if verbosity < 2 else logging.INFO)

    return logger


class ScanAuditLogger:
    """Append-only audit trail of scans: start, adapter faults, completion."""

    def __init__(self, audit_log_file: Union[str, Path] = "logs/scan_audit.log"):
        self.audit_log_file = Path(audit_log_file)
        self.audit_log_file.parent.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger("rugsentry.audit")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        self.logger.handlers.clear()

        handler = logging.FileHandler(self.audit_log_file, encoding="utf-8")
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(asctime)s - AUDIT - %(levelname)s - %(message)s"))
        self.logger.addHandler(handler)

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)

    def log_scan_start(self, network: str, address: str, profile: str, adapter_count: int):
        self.logger.info(
            f"SCAN_START - Network: {network} - Address: {address} - "
            f"Profile: {profile} - Adapters: {adapter_count}"
        )

    def log_adapter_fault(self, adapter_id: str, status: str, error: Optional[str]):
        self.logger.warning(f"ADAPTER_{status.upper()} - Adapter: {adapter_id} - Error: {error or 'None'}")

    def log_scan_end(self, scan_id: str, risk_level: str, score: float,
                     coverage: float, duration: float):
        self.logger.info(
            f"SCAN_END - ID: {scan_id} - Risk: {risk_level} - Score: {score:.2f} - "
            f"Coverage: {coverage:.0%} - Duration: {duration:.2f}s"
        )

    def log_invalid_target(self, network: str, address: str, reason: str):
        self.logger.warning(f"INVALID_TARGET - Network: {network} - Address: {address} - Reason: {reason}")


def get_log_files(logs_dir: Union[str, Path] = "logs") -> dict:
    """Get paths to all log files."""
    logs_dir = Path(logs_dir)
    if not logs_dir.exists():
        return {}

    log_files = {
        "main_logs": sorted(logs_dir.glob("rugsentry_*.log")),
        "scan_audit": logs_dir / "scan_audit.log",
    }
    return {k: v for k, v in log_files.items() if
            (isinstance(v, Path) and v.exists()) or
            (isinstance(v, list) and v)}


def cleanup_old_logs(days: int = 30, logs_dir: Union[str, Path] = "logs") -> int:
    """Delete log files older than ``days``; returns how many were removed."""
    logs_dir = Path(logs_dir)
    if not logs_dir.exists():
        return 0

    cutoff_time = time.time() - (days * 24 * 60 * 60)
    removed = 0
    for log_file in logs_dir.glob("*.log"):
        if log_file.stat().st_mtime < cutoff_time:
            try:
                log_file.unlink()
                removed += 1
            except OSError as e:
                logging.getLogger(__name__).warning(f"Error deleting {log_file}: {e}")
    return removed
