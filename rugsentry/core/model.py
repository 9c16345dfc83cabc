"""
Core models for RugSentry

Defines the records shared by the orchestrator, adapters, aggregator and
report builder. Records that are produced once and never mutated are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def _clamp(value: Any, low: float = 0.0, high: float = 100.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    if number != number:  # NaN
        return low
    return max(low, min(high, number))


class AddressType(str, Enum):
    """Kind of on-chain object an address points at."""

    WALLET = "wallet"
    TOKEN = "token"
    LIQUIDITY_POOL = "liquidity_pool"
    STAKING_CONTRACT = "staking_contract"
    PROXY = "proxy"
    PROGRAM = "program"
    UNKNOWN = "unknown"


class ThreatCategory(str, Enum):
    """Evidence classes used for weighted aggregation."""

    BEHAVIORAL = "behavioral"
    STRUCTURAL = "structural"
    MARKET = "market"
    CONTEXTUAL = "contextual"


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class RiskLevel(str, Enum):
    """Discrete verdict derived from the composite score."""

    UNKNOWN = "unknown"
    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def order(self) -> int:
        return _RISK_ORDER[self]


_RISK_ORDER = {
    RiskLevel.UNKNOWN: -1,
    RiskLevel.MINIMAL: 0,
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


@dataclass(frozen=True)
class Target:
    """Address under assessment. Immutable once a scan starts.

    Network aliases are always resolved to the canonical id. Use
    `Target.create` to also get the address type inferred.
    """

    network: str
    address: str
    address_type: AddressType = AddressType.TOKEN

    def __post_init__(self) -> None:
        from .networks import resolve_network_id

        object.__setattr__(self, "network", resolve_network_id(self.network))

    @classmethod
    def create(cls,
               network: str,
               address: str,
               address_type: Optional[Any] = None) -> "Target":
        from .networks import infer_address_type, resolve_network_id

        network_id = resolve_network_id(network)
        cleaned = (address or "").strip()
        if address_type is not None and not isinstance(address_type, AddressType):
            address_type = AddressType(str(address_type).lower())
        resolved_type = infer_address_type(network_id, cleaned, address_type)
        return cls(network=network_id, address=cleaned, address_type=resolved_type)

    def to_dict(self) -> Dict[str, str]:
        return {
            "network": self.network,
            "address": self.address,
            "address_type": self.address_type.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Target":
        return cls(
            network=data["network"],
            address=data["address"],
            address_type=AddressType(data.get("address_type", AddressType.TOKEN.value)),
        )


@dataclass(frozen=True)
class ThreatFinding:
    """One discrete piece of evidence produced by exactly one adapter."""

    category: ThreatCategory
    severity: float  # 0 - 100
    confidence: float  # 0 - 100
    description: str
    evidence: Tuple[str, ...] = ()
    mitigation: Optional[str] = None
    adapter_id: str = ""

    def __post_init__(self) -> None:
        # Frozen, so normalisation goes through object.__setattr__
        object.__setattr__(self, "category", ThreatCategory(self.category))
        object.__setattr__(self, "severity", _clamp(self.severity))
        object.__setattr__(self, "confidence", _clamp(self.confidence))
        object.__setattr__(self, "evidence", tuple(str(e) for e in (self.evidence or ())))

    @property
    def sort_key(self) -> Tuple:
        """Severity desc, confidence desc, then stable textual tie-breaks."""
        return (-self.severity, -self.confidence, self.category.value,
                self.description, self.adapter_id, self.evidence)

    def with_adapter(self, adapter_id: str) -> "ThreatFinding":
        if self.adapter_id == adapter_id:
            return self
        return ThreatFinding(
            category=self.category,
            severity=self.severity,
            confidence=self.confidence,
            description=self.description,
            evidence=self.evidence,
            mitigation=self.mitigation,
            adapter_id=adapter_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity,
            "confidence": self.confidence,
            "description": self.description,
            "evidence": list(self.evidence),
            "mitigation": self.mitigation,
            "adapter_id": self.adapter_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreatFinding":
        return cls(
            category=ThreatCategory(data["category"]),
            severity=data.get("severity", 0.0),
            confidence=data.get("confidence", 0.0),
            description=data.get("description", ""),
            evidence=tuple(data.get("evidence", ())),
            mitigation=data.get("mitigation"),
            adapter_id=data.get("adapter_id", ""),
        )


@dataclass
class AnalysisResult:
    """Value returned by an adapter's `analyze` coroutine.

    `confidence` is the adapter's confidence in its own sub-score; when left
    as None the adapter's declared default is used.
    """

    sub_score: float
    findings: List[ThreatFinding] = field(default_factory=list)
    confidence: Optional[float] = None

    def __post_init__(self) -> None:
        self.sub_score = _clamp(self.sub_score)
        if self.confidence is not None:
            self.confidence = _clamp(self.confidence)
        self.findings = list(self.findings or [])


@dataclass(frozen=True)
class AnalyzerOutcome:
    """Result of one adapter within one scan. Never retried within a scan."""

    adapter_id: str
    category: ThreatCategory
    status: OutcomeStatus
    sub_score: Optional[float] = None
    findings: Tuple[ThreatFinding, ...] = ()
    latency_ms: float = 0.0
    confidence: float = 0.0
    weight: float = 1.0
    error: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", OutcomeStatus(self.status))
        object.__setattr__(self, "category", ThreatCategory(self.category))
        object.__setattr__(self, "findings", tuple(self.findings or ()))
        if self.status is OutcomeStatus.SUCCEEDED:
            object.__setattr__(self, "sub_score", _clamp(self.sub_score))
        else:
            # sub_score is present iff the adapter succeeded
            object.__setattr__(self, "sub_score", None)
            object.__setattr__(self, "findings", ())
        object.__setattr__(self, "confidence", _clamp(self.confidence))

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "adapter_id": self.adapter_id,
            "category": self.category.value,
            "status": self.status.value,
            "sub_score": self.sub_score,
            "finding_count": len(self.findings),
            "latency_ms": round(self.latency_ms, 2),
            "confidence": self.confidence,
            "error": self.error,
        }


@dataclass(frozen=True)
class AggregateResult:
    composite_score: float
    risk_level: RiskLevel
    confidence: float
    findings: Tuple[ThreatFinding, ...]
    category_scores: Dict[str, float]
    coverage: float


@dataclass(frozen=True)
class KeyFinding:
    """Top finding of one category, surfaced in the report header."""

    category: ThreatCategory
    severity: float
    description: str
    finding_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity,
            "description": self.description,
            "finding_count": self.finding_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyFinding":
        return cls(
            category=ThreatCategory(data["category"]),
            severity=float(data["severity"]),
            description=data["description"],
            finding_count=int(data.get("finding_count", 1)),
        )


@dataclass(frozen=True)
class SecurityReport:
    """Final, immutable result of one scan and the unit of persistence.

    A re-scan creates a new report with a new scan_id; reports are never
    partially updated.
    """

    scan_id: str
    target: Target
    profile: str
    composite_score: float
    risk_level: RiskLevel
    confidence: float
    findings: Tuple[ThreatFinding, ...]
    key_findings: Tuple[KeyFinding, ...]
    recommendations: Tuple[str, ...]
    summary: str
    analyzed_at: str  # ISO8601, UTC
    analyzer_coverage: float
    category_scores: Dict[str, float] = field(default_factory=dict)
    adapters: Tuple[Dict[str, Any], ...] = ()
    engine_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan_id": self.scan_id,
            "target": self.target.to_dict(),
            "profile": self.profile,
            "composite_score": self.composite_score,
            "risk_level": self.risk_level.value,
            "confidence": self.confidence,
            "analyzer_coverage": self.analyzer_coverage,
            "analyzed_at": self.analyzed_at,
            "summary": self.summary,
            "category_scores": dict(self.category_scores),
            "key_findings": [k.to_dict() for k in self.key_findings],
            "findings": [f.to_dict() for f in self.findings],
            "recommendations": list(self.recommendations),
            "adapters": [dict(a) for a in self.adapters],
            "engine_version": self.engine_version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecurityReport":
        return cls(
            scan_id=data["scan_id"],
            target=Target.from_dict(data["target"]),
            profile=data.get("profile", "standard"),
            composite_score=float(data["composite_score"]),
            risk_level=RiskLevel(data["risk_level"]),
            confidence=float(data["confidence"]),
            findings=tuple(ThreatFinding.from_dict(f) for f in data.get("findings", [])),
            key_findings=tuple(KeyFinding.from_dict(k) for k in data.get("key_findings", [])),
            recommendations=tuple(data.get("recommendations", [])),
            summary=data.get("summary", ""),
            analyzed_at=data["analyzed_at"],
            analyzer_coverage=float(data.get("analyzer_coverage", 0.0)),
            category_scores=dict(data.get("category_scores", {})),
            adapters=tuple(data.get("adapters", [])),
            engine_version=data.get("engine_version", ""),
        )
