"""
Test suite for RugSentry core models
"""

import pytest

from rugsentry.core.model import (
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
from rugsentry.core.report_builder import ReportBuilder
from rugsentry.core.aggregator import RiskAggregator


class TestThreatFinding:
    def test_values_clamped(self):
        finding = ThreatFinding(category="market", severity=140, confidence=-3, description="x")
        assert finding.category is ThreatCategory.MARKET
        assert finding.severity == 100
        assert finding.confidence == 0

    def test_sort_key_orders_by_severity_then_confidence(self, make_finding):
        findings = [
            make_finding(severity=50, confidence=99, description="a"),
            make_finding(severity=80, confidence=10, description="b"),
            make_finding(severity=50, confidence=100, description="c"),
        ]
        ordered = sorted(findings, key=lambda f: f.sort_key)
        assert [f.description for f in ordered] == ["b", "c", "a"]

    def test_with_adapter(self, make_finding):
        finding = make_finding(adapter_id="")
        stamped = finding.with_adapter("liquidity_lock")
        assert stamped.adapter_id == "liquidity_lock"
        assert stamped.with_adapter("liquidity_lock") is stamped


class TestAnalyzerOutcome:
    def test_failed_outcome_drops_score_and_findings(self, make_finding):
        outcome = AnalyzerOutcome(
            adapter_id="a",
            category=ThreatCategory.BEHAVIORAL,
            status=OutcomeStatus.FAILED,
            sub_score=40,
            findings=(make_finding(),),
            error="boom",
        )
        assert outcome.sub_score is None
        assert outcome.findings == ()
        assert not outcome.succeeded

    def test_succeeded_outcome_clamps(self):
        outcome = AnalyzerOutcome("a", "structural", "succeeded", sub_score=250)
        assert outcome.succeeded
        assert outcome.sub_score == 100
        assert outcome.to_dict()["status"] == "succeeded"


class TestAnalysisResult:
    def test_non_numeric_score_clamps_to_zero(self):
        assert AnalysisResult(sub_score=float("nan")).sub_score == 0
        assert AnalysisResult(sub_score=-5).sub_score == 0


class TestTarget:
    def test_create_resolves_alias_and_type(self):
        target = Target.create("ETH", "  0x00000000219ab540356cBB839Cbe05303d7705Fa ")
        assert target.network == "ethereum"
        assert target.address == "0x00000000219ab540356cBB839Cbe05303d7705Fa"
        assert target.address_type is AddressType.STAKING_CONTRACT

    def test_explicit_type_wins(self):
        target = Target.create("solana", "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA", address_type="token")
        assert target.address_type is AddressType.TOKEN

    def test_constructor_resolves_alias(self):
        assert Target("ETH", "0x" + "ab" * 20).network == "ethereum"
        assert Target.from_dict({"network": "bsc", "address": "0x" + "ab" * 20}).network == "bnb"


class TestSecurityReport:
    def test_dict_round_trip(self, eth_target, make_outcome, make_finding):
        outcomes = [
            make_outcome("honeypot", ThreatCategory.BEHAVIORAL, sub_score=30,
                         findings=[make_finding(severity=80, mitigation="Test a small sell")]),
            make_outcome("social", ThreatCategory.CONTEXTUAL, status=OutcomeStatus.TIMED_OUT),
        ]
        aggregate = RiskAggregator().aggregate(outcomes)
        report = ReportBuilder().build(eth_target, aggregate, outcomes)

        restored = SecurityReport.from_dict(report.to_dict())

        assert restored == report
        assert restored.risk_level is RiskLevel.HIGH


class TestRiskLevel:
    def test_order(self):
        assert RiskLevel.UNKNOWN.order < RiskLevel.MINIMAL.order < RiskLevel.CRITICAL.order
