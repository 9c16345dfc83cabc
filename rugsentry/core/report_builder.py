"""
Report Builder for RugSentry
Assembles the immutable SecurityReport: key findings, recommendations and provenance
"""

import secrets
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from .. import __version__
from .model import (
    AggregateResult,
    AnalyzerOutcome,
    KeyFinding,
    RiskLevel,
    SecurityReport,
    Target,
    ThreatCategory,
    ThreatFinding,
)

KEY_FINDING_MIN_SEVERITY = 70.0
MAX_KEY_FINDINGS = 5
MITIGATION_MIN_SEVERITY = 50.0
MAX_RECOMMENDATIONS = 8

LEVEL_RECOMMENDATIONS: Dict[RiskLevel, List[str]] = {
    RiskLevel.CRITICAL: [
        "Do not buy or interact with this token; the evidence points to a likely scam",
        "If you already hold it, exit only through trusted routes and revoke token approvals",
    ],
    RiskLevel.HIGH: [
        "Avoid this token; multiple serious risk signals were detected",
        "Revoke any outstanding approvals granted to this contract",
    ],
    RiskLevel.MEDIUM: [
        "Proceed with caution and keep any position small enough to lose entirely",
        "Set a clear exit plan and verify you can sell with a small test transaction first",
    ],
    RiskLevel.LOW: [
        "No major red flags found; still do your own research before investing",
    ],
    RiskLevel.MINIMAL: [
        "No significant risks detected; follow general due diligence and never invest more than you can afford to lose",
    ],
    RiskLevel.UNKNOWN: [
        "The address could not be assessed; re-run the scan before making any decision",
    ],
}

CATEGORY_RECOMMENDATIONS: Dict[ThreatCategory, str] = {
    ThreatCategory.BEHAVIORAL: "Simulate a small sell before committing funds and watch for changing trade taxes",
    ThreatCategory.STRUCTURAL: "Monitor ownership and authority changes; prefer contracts with renounced or time-locked control",
    ThreatCategory.MARKET: "Monitor liquidity depth and lock expiry; large unlocked liquidity can be pulled at any time",
    ThreatCategory.CONTEXTUAL: "Verify the project's team, community and history through independent sources",
}

COVERAGE_WARNING = "Only {pct:.0f}% of analyzers completed; treat this verdict as provisional and re-scan"

EXPLANATIONS = {
    RiskLevel.CRITICAL: "shows critical scam indicators",
    RiskLevel.HIGH: "shows several high-risk indicators",
    RiskLevel.MEDIUM: "shows moderate risk",
    RiskLevel.LOW: "shows low risk",
    RiskLevel.MINIMAL: "shows minimal risk",
    RiskLevel.UNKNOWN: "could not be assessed",
}


def generate_scan_id(clock: Callable[[], float] = time.time) -> str:
    """Millisecond timestamp prefix plus 64 random bits, e.g. ``18f3a2b4c1d-9e8f...``."""
    return f"{int(clock() * 1000):x}-{secrets.token_hex(8)}"


class ReportBuilder:
    """Turns an AggregateResult plus outcomes into a SecurityReport."""

    def __init__(self,
                 engine_version: str = __version__,
                 now: Optional[Callable[[], datetime]] = None):
        self.engine_version = engine_version
        self._now = now or (lambda: datetime.now(timezone.utc))

    def key_findings(self, findings: Sequence[ThreatFinding]) -> List[KeyFinding]:
        by_category: Dict[ThreatCategory, List[ThreatFinding]] = {}
        for finding in findings:
            by_category.setdefault(finding.category, []).append(finding)

        key = []
        for category, group in by_category.items():
            top = min(group, key=lambda f: f.sort_key)
            if top.severity >= KEY_FINDING_MIN_SEVERITY:
                key.append(KeyFinding(
                    category=category,
                    severity=top.severity,
                    description=top.description,
                    finding_count=len(group),
                ))
        key.sort(key=lambda k: (-k.severity, k.category.value, k.description))
        return key[:MAX_KEY_FINDINGS]

    def recommendations(self, aggregate: AggregateResult) -> List[str]:
        ordered: List[str] = list(LEVEL_RECOMMENDATIONS[aggregate.risk_level])

        relevant = [f for f in aggregate.findings if f.severity >= MITIGATION_MIN_SEVERITY]
        for finding in relevant:
            if finding.mitigation:
                ordered.append(finding.mitigation)
        for category in ThreatCategory:
            if any(f.category is category for f in relevant):
                ordered.append(CATEGORY_RECOMMENDATIONS[category])

        if 0 < aggregate.coverage < 1:
            ordered.append(COVERAGE_WARNING.format(pct=aggregate.coverage * 100))

        unique: List[str] = []
        for text in ordered:
            if text not in unique:
                unique.append(text)
        return unique[:MAX_RECOMMENDATIONS]

    def summary(self, target: Target, aggregate: AggregateResult) -> str:
        level = aggregate.risk_level
        text = (
            f"{target.address_type.value.replace('_', ' ').capitalize()} {target.address} "
            f"on {target.network} {EXPLANATIONS[level]}"
        )
        if level is RiskLevel.UNKNOWN:
            return text + ": no analyzer completed."

        text += (
            f": composite risk score {aggregate.composite_score:.0f}/100, "
            f"risk level {level.value.upper()}, confidence {aggregate.confidence:.0f}%."
        )
        serious = [f for f in aggregate.findings if f.severity >= KEY_FINDING_MIN_SEVERITY]
        if serious:
            text += f" {len(serious)} serious finding(s); the most severe: {serious[0].description}."
        else:
            text += f" {len(aggregate.findings)} finding(s), none rated serious."
        if aggregate.coverage < 1:
            text += f" Analyzer coverage was {aggregate.coverage:.0%}."
        return text

    def build(self,
              target: Target,
              aggregate: AggregateResult,
              outcomes: Sequence[AnalyzerOutcome],
              profile: str = "standard") -> SecurityReport:
        """scan_id and analyzed_at are stamped here so cached replays keep them."""
        return SecurityReport(
            scan_id=generate_scan_id(),
            target=target,
            profile=profile,
            composite_score=aggregate.composite_score,
            risk_level=aggregate.risk_level,
            confidence=aggregate.confidence,
            findings=tuple(aggregate.findings),
            key_findings=tuple(self.key_findings(aggregate.findings)),
            recommendations=tuple(self.recommendations(aggregate)),
            summary=self.summary(target, aggregate),
            analyzed_at=self._now().isoformat(),
            analyzer_coverage=aggregate.coverage,
            category_scores=dict(aggregate.category_scores),
            adapters=tuple(o.to_dict() for o in outcomes),
            engine_version=self.engine_version,
        )
