"""
Analyzer adapter contract for RugSentry

An adapter wraps one analysis capability. Built-in adapters are plain
modules exposing METADATA and an async ``analyze(target, context)``;
tests and embedders can wrap any coroutine function directly.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Optional

from .config import ScanProfile
from .data_provider import DataProvider
from .errors import AdapterError, ConfigurationError
from .model import AddressType, AnalysisResult, Target, ThreatCategory

AnalyzeFn = Callable[[Target, "AdapterContext"], Awaitable[Any]]

REQUIRED_METADATA = ("id", "name", "category", "networks", "address_types")


@dataclass
class AdapterContext:
    """Per-scan, per-adapter context handed to ``analyze``."""

    provider: DataProvider
    profile: ScanProfile
    logger: logging.Logger
    metadata: Dict[str, Any] = field(default_factory=dict)

    async def fetch(self, source: str, target: Target) -> Dict[str, Any]:
        return await self.provider.fetch(source, target)


class AnalyzerAdapter:
    """One independently replaceable, network-aware analysis capability."""

    def __init__(self,
                 adapter_id: str,
                 category: ThreatCategory,
                 analyze: AnalyzeFn,
                 name: Optional[str] = None,
                 networks: Optional[Iterable[str]] = None,
                 address_types: Optional[Iterable[AddressType]] = None,
                 timeout: Optional[float] = None,
                 weight: float = 1.0,
                 default_confidence: float = 80.0,
                 description: str = ""):
        if not inspect.iscoroutinefunction(analyze):
            raise ConfigurationError(f"Adapter {adapter_id} analyze function must be async")
        if weight <= 0:
            raise ConfigurationError(f"Adapter {adapter_id} weight must be positive")

        self.adapter_id = adapter_id
        self.name = name or adapter_id
        self.category = ThreatCategory(category)
        self._analyze = analyze
        # None means every network / address type
        self.networks: Optional[FrozenSet[str]] = frozenset(networks) if networks else None
        self.address_types: Optional[FrozenSet[AddressType]] = (
            frozenset(AddressType(t) for t in address_types) if address_types else None
        )
        self.timeout = timeout
        self.weight = float(weight)
        self.default_confidence = float(default_confidence)
        self.description = description

    def __repr__(self) -> str:
        return f"AnalyzerAdapter({self.adapter_id!r}, {self.category.value})"

    @classmethod
    def from_module(cls, module: Any) -> "AnalyzerAdapter":
        """Build an adapter from a module exposing METADATA and analyze."""
        metadata = getattr(module, "METADATA", None)
        if not isinstance(metadata, dict):
            raise ConfigurationError(f"Adapter module {module.__name__} missing METADATA")
        missing = [k for k in REQUIRED_METADATA if k not in metadata]
        if missing:
            raise ConfigurationError(f"Adapter {module.__name__} METADATA missing {', '.join(missing)}")
        analyze = getattr(module, "analyze", None)
        if analyze is None:
            raise ConfigurationError(f"Adapter {module.__name__} missing analyze function")

        networks = metadata["networks"]
        address_types = metadata["address_types"]
        return cls(
            adapter_id=metadata["id"],
            name=metadata["name"],
            category=ThreatCategory(metadata["category"]),
            analyze=analyze,
            networks=None if networks == "*" else networks,
            address_types=None if address_types == "*" else address_types,
            timeout=metadata.get("timeout"),
            weight=metadata.get("weight", 1.0),
            default_confidence=metadata.get("default_confidence", 80.0),
            description=metadata.get("description", ""),
        )

    def supports(self, target: Target) -> bool:
        if self.networks is not None and target.network not in self.networks:
            return False
        if self.address_types is not None and target.address_type not in self.address_types:
            return False
        return True

    async def analyze(self, target: Target, context: AdapterContext) -> AnalysisResult:
        """Run the wrapped analysis and normalise its result.

        Accepts an AnalysisResult or a ``(sub_score, findings)`` pair and
        stamps every finding with this adapter's id.
        """
        result = await self._analyze(target, context)
        if isinstance(result, tuple) and len(result) == 2:
            result = AnalysisResult(sub_score=result[0], findings=list(result[1]))
        if not isinstance(result, AnalysisResult):
            raise AdapterError(f"Adapter {self.adapter_id} returned {type(result).__name__}",
                               adapter_id=self.adapter_id)

        result.findings = [f.with_adapter(self.adapter_id) for f in result.findings]
        if result.confidence is None:
            result.confidence = self.default_confidence
        return result

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.adapter_id,
            "name": self.name,
            "category": self.category.value,
            "networks": sorted(self.networks) if self.networks else ["*"],
            "address_types": sorted(t.value for t in self.address_types) if self.address_types else ["*"],
            "timeout": self.timeout,
            "weight": self.weight,
            "description": self.description,
        }
