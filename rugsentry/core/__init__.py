"""
RugSentry Core Engine Components
Orchestration, aggregation, caching and report building
"""

from .adapter import AdapterContext, AnalyzerAdapter
from .aggregator import RiskAggregator
from .cache import ScanCache
from .config import ScannerConfig, load_config
from .data_provider import DataProvider, HTTPDataProvider, StaticDataProvider
from .engine import ScanOrchestrator
from .errors import (
    AdapterError,
    AdapterTimeout,
    ConfigurationError,
    DataUnavailableError,
    InvalidTargetError,
    RugSentryError,
)
from .model import (
    AddressType,
    AnalysisResult,
    AnalyzerOutcome,
    OutcomeStatus,
    RiskLevel,
    SecurityReport,
    Target,
    ThreatCategory,
    ThreatFinding,
)
from .registry import AnalyzerRegistry
from .report_builder import ReportBuilder
from .result_manager import ResultManager

__all__ = [
    "AdapterContext",
    "AnalyzerAdapter",
    "RiskAggregator",
    "ScanCache",
    "ScannerConfig",
    "load_config",
    "DataProvider",
    "HTTPDataProvider",
    "StaticDataProvider",
    "ScanOrchestrator",
    "AdapterError",
    "AdapterTimeout",
    "ConfigurationError",
    "DataUnavailableError",
    "InvalidTargetError",
    "RugSentryError",
    "AddressType",
    "AnalysisResult",
    "AnalyzerOutcome",
    "OutcomeStatus",
    "RiskLevel",
    "SecurityReport",
    "Target",
    "ThreatCategory",
    "ThreatFinding",
    "AnalyzerRegistry",
    "ReportBuilder",
    "ResultManager",
]
