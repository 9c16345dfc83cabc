"""
RugSentry Utility Modules
Logging and report export utilities
"""

from .logger import ScanAuditLogger, setup_logger
from .report import ReportGenerator

__all__ = [
    "ScanAuditLogger",
    "setup_logger",
    "ReportGenerator",
]
