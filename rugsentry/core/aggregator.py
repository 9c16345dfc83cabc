"""
Risk Aggregator for RugSentry
Merges analyzer outcomes into one composite score, risk level and confidence
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import RiskThresholds
from .model import (
    AggregateResult,
    AnalyzerOutcome,
    RiskLevel,
    ThreatCategory,
    ThreatFinding,
    _clamp,
)
from .registry import DEFAULT_WEIGHTS, validate_weights

UNAVAILABLE_DESCRIPTION = "No analyzer completed; the risk of this address could not be assessed"


def effective_score(outcome: AnalyzerOutcome) -> float:
    """Sub-score raised to the strongest confidence-weighted finding."""
    score = outcome.sub_score or 0.0
    for finding in outcome.findings:
        score = max(score, finding.severity * finding.confidence / 100.0)
    return score


def deduplicate_findings(findings: Iterable[ThreatFinding]) -> List[ThreatFinding]:
    """Keep one finding per (category, description), highest severity first, then confidence."""
    best: Dict[Tuple[ThreatCategory, str], ThreatFinding] = {}
    for finding in findings:
        key = (finding.category, finding.description)
        current = best.get(key)
        if current is None or finding.sort_key < current.sort_key:
            best[key] = finding
    return sorted(best.values(), key=lambda f: f.sort_key)


def unavailable_finding() -> ThreatFinding:
    return ThreatFinding(
        category=ThreatCategory.CONTEXTUAL,
        severity=50.0,
        confidence=100.0,
        description=UNAVAILABLE_DESCRIPTION,
        evidence=("analyzer coverage: 0%",),
        mitigation="Retry the scan later and treat this address as unverified until it completes",
        adapter_id="orchestrator",
    )


class RiskAggregator:
    """Pure, deterministic aggregation of a scan's AnalyzerOutcome multiset.

    Categories with no succeeded adapter are left out and their weight is
    redistributed proportionally over the categories that did report, so a
    missing analyzer never makes a target look safer.
    """

    def __init__(self,
                 weights: Optional[Mapping[ThreatCategory, float]] = None,
                 thresholds: Optional[RiskThresholds] = None):
        self.weights = validate_weights(weights if weights is not None else DEFAULT_WEIGHTS)
        self.thresholds = thresholds or RiskThresholds()

    def category_scores(self, outcomes: Sequence[AnalyzerOutcome]) -> Dict[ThreatCategory, float]:
        totals: Dict[ThreatCategory, float] = defaultdict(float)
        weight_sums: Dict[ThreatCategory, float] = defaultdict(float)
        for outcome in outcomes:
            if not outcome.succeeded:
                continue
            totals[outcome.category] += outcome.weight * effective_score(outcome)
            weight_sums[outcome.category] += outcome.weight
        return {
            category: totals[category] / weight_sums[category]
            for category in ThreatCategory
            if weight_sums.get(category, 0.0) > 0
        }

    def composite(self, scores: Mapping[ThreatCategory, float]) -> float:
        present_weight = sum(self.weights[c] for c in scores)
        if present_weight <= 0:
            # Every reporting category carries zero weight; fall back to a plain mean
            return _clamp(sum(scores.values()) / len(scores)) if scores else 0.0
        weighted = sum(self.weights[c] * s for c, s in scores.items())
        return _clamp(weighted / present_weight)

    def risk_level(self, score: float, severities: Iterable[float]) -> RiskLevel:
        """First matching rule wins; escalation rules override the score bands."""
        t = self.thresholds
        severities = list(severities)
        critical_hits = sum(1 for s in severities if s >= t.critical_severity)
        escalation_hits = sum(1 for s in severities if s >= t.escalation_severity)

        if score >= t.critical_score or critical_hits >= 1 or escalation_hits >= t.escalation_count:
            return RiskLevel.CRITICAL
        if score >= t.high_score or escalation_hits >= t.escalation_count:
            return RiskLevel.HIGH
        if score >= t.medium_score or escalation_hits >= 1:
            return RiskLevel.MEDIUM
        if score >= t.low_score:
            return RiskLevel.LOW
        return RiskLevel.MINIMAL

    def confidence(self, outcomes: Sequence[AnalyzerOutcome], coverage: float) -> float:
        """Coverage-weighted mean of adapter confidence, scaled by coverage.

        Every dispatched adapter keeps its share of the composite. Failed and
        timed-out adapters count as confidence 0.
        """
        category_weight = sum(self.weights[c] for c in {o.category for o in outcomes})
        adapter_weight: Dict[ThreatCategory, float] = defaultdict(float)
        for outcome in outcomes:
            adapter_weight[outcome.category] += outcome.weight

        total_share = 0.0
        weighted = 0.0
        for outcome in outcomes:
            if category_weight > 0:
                in_category = adapter_weight[outcome.category]
                share = (self.weights[outcome.category] / category_weight) * (
                    outcome.weight / in_category if in_category > 0 else 0.0)
            else:
                share = outcome.weight
            total_share += share
            if outcome.succeeded:
                weighted += share * outcome.confidence

        base = weighted / total_share if total_share > 0 else 0.0
        return round(_clamp(base * (0.5 + 0.5 * coverage)), 2)

    def aggregate(self, outcomes: Sequence[AnalyzerOutcome]) -> AggregateResult:
        # Canonical order so the result depends only on the multiset of outcomes
        outcomes = sorted(outcomes, key=lambda o: (o.category.value, o.adapter_id, o.status.value))
        succeeded = [o for o in outcomes if o.succeeded]
        coverage = len(succeeded) / len(outcomes) if outcomes else 0.0

        if not succeeded:
            return AggregateResult(
                composite_score=0.0,
                risk_level=RiskLevel.UNKNOWN,
                confidence=0.0,
                findings=(unavailable_finding(),),
                category_scores={},
                coverage=0.0,
            )

        scores = self.category_scores(succeeded)
        composite = round(self.composite(scores), 2)
        findings = deduplicate_findings(f for o in succeeded for f in o.findings)
        level = self.risk_level(composite, (f.severity for f in findings))

        return AggregateResult(
            composite_score=composite,
            risk_level=level,
            confidence=self.confidence(outcomes, coverage),
            findings=tuple(findings),
            category_scores={c.value: round(s, 2) for c, s in scores.items()},
            coverage=round(coverage, 4),
        )
