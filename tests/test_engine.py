"""
Test suite for the RugSentry scan orchestrator
"""

import asyncio
import logging
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from rugsentry.core.adapter import AnalyzerAdapter
from rugsentry.core.aggregator import UNAVAILABLE_DESCRIPTION
from rugsentry.core.cache import ScanCache
from rugsentry.core.errors import AdapterTimeout, ConfigurationError, InvalidTargetError
from rugsentry.core.model import (
    AnalysisResult,
    RiskLevel,
    Target,
    ThreatCategory,
)


def statuses(report):
    return {a["adapter_id"]: a["status"] for a in report.adapters}


def hanging_adapter(started, cancelled):
    async def analyze(target, context):
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return AnalysisResult(sub_score=0)

    return AnalyzerAdapter("hang", ThreatCategory.BEHAVIORAL, analyze, timeout=30)


class TestScanOrchestrator:
    """Test the concurrent fan-out, fault isolation and report assembly"""

    @pytest.mark.asyncio
    async def test_all_adapters_succeed(self, make_orchestrator, four_adapters, eth_target, calls):
        orchestrator = make_orchestrator(four_adapters)
        report = await orchestrator.scan(eth_target)

        assert sorted(calls) == ["honeypot", "liquidity", "ownership", "social"]
        assert report.analyzer_coverage == 1.0
        assert report.risk_level is RiskLevel.MINIMAL
        assert report.target == eth_target
        assert set(statuses(report).values()) == {"succeeded"}
        assert orchestrator.total_scans == 1
        assert orchestrator.total_dispatches == 4

    @pytest.mark.asyncio
    async def test_malformed_address_dispatches_nothing(self, make_orchestrator, four_adapters, calls):
        orchestrator = make_orchestrator(four_adapters)
        target = Target.create("ethereum", "0x12345")

        with pytest.raises(InvalidTargetError):
            await orchestrator.scan(target)
        assert calls == []
        assert orchestrator.total_dispatches == 0

    @pytest.mark.asyncio
    async def test_solana_address_on_evm_network_rejected(self, make_orchestrator, four_adapters, calls):
        orchestrator = make_orchestrator(four_adapters)
        target = Target.create("ethereum", "RugPu11Mint8xVq3kZt7YhWn2JcDfE5gHsLpQrTuV9")

        with pytest.raises(InvalidTargetError):
            await orchestrator.scan(target)
        assert calls == []

    @pytest.mark.asyncio
    async def test_unsupported_network_rejected(self, make_orchestrator, four_adapters, calls):
        orchestrator = make_orchestrator(four_adapters)
        with pytest.raises(InvalidTargetError):
            await orchestrator.scan(Target.create("dogechain", "0x" + "ab" * 20))
        assert calls == []

    @pytest.mark.asyncio
    async def test_invalid_target_is_audited(self, make_orchestrator, four_adapters):
        audit = MagicMock()
        orchestrator = make_orchestrator(four_adapters, audit_logger=audit)

        with pytest.raises(InvalidTargetError):
            await orchestrator.scan(Target.create("ethereum", "not-an-address"))
        audit.log_invalid_target.assert_called_once()
        audit.log_scan_start.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_profile_rejected(self, make_orchestrator, four_adapters, eth_target, calls):
        orchestrator = make_orchestrator(four_adapters)
        with pytest.raises(ConfigurationError):
            await orchestrator.scan(eth_target, profile="paranoid")
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_applicable_adapters(self, make_orchestrator, make_adapter, eth_target):
        orchestrator = make_orchestrator([
            make_adapter("sol_only", ThreatCategory.BEHAVIORAL, networks=["solana"]),
        ])
        with pytest.raises(ConfigurationError):
            await orchestrator.scan(eth_target)

    @pytest.mark.asyncio
    async def test_network_alias_reaches_network_bound_adapters(self, make_orchestrator, make_adapter,
                                                                eth_target):
        adapter = make_adapter("evm_only", ThreatCategory.BEHAVIORAL, networks=["ethereum"])
        report = await make_orchestrator([adapter]).scan(Target("eth", eth_target.address))

        assert report.target.network == "ethereum"
        assert statuses(report) == {"evm_only": "succeeded"}

    @pytest.mark.asyncio
    async def test_slow_adapter_times_out(self, make_orchestrator, make_adapter, four_adapters, eth_target):
        slow = make_adapter("slow", ThreatCategory.MARKET, delay=5.0, timeout=0.05)
        orchestrator = make_orchestrator(four_adapters + [slow])

        started = time.monotonic()
        report = await orchestrator.scan(eth_target)

        assert time.monotonic() - started < 2.0
        assert statuses(report)["slow"] == "timed_out"
        assert report.analyzer_coverage == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_failing_adapter_is_isolated(self, make_orchestrator, make_adapter, four_adapters, eth_target):
        broken = make_adapter("broken", ThreatCategory.STRUCTURAL, error=RuntimeError("rpc exploded"))
        audit = MagicMock()
        orchestrator = make_orchestrator(four_adapters + [broken], audit_logger=audit)

        report = await orchestrator.scan(eth_target)

        outcome = next(a for a in report.adapters if a["adapter_id"] == "broken")
        assert outcome["status"] == "failed"
        assert outcome["sub_score"] is None
        assert outcome["error"] == "RuntimeError: rpc exploded"
        audit.log_adapter_fault.assert_called_once_with("broken", "failed", "RuntimeError: rpc exploded")
        audit.log_scan_end.assert_called_once()

    @pytest.mark.asyncio
    async def test_adapter_timeout_error_counts_as_timeout(self, make_orchestrator, make_adapter,
                                                          four_adapters, eth_target):
        upstream = make_adapter("upstream", ThreatCategory.MARKET,
                                error=AdapterTimeout("provider timed out", adapter_id="upstream"))
        report = await make_orchestrator(four_adapters + [upstream]).scan(eth_target)
        assert statuses(report)["upstream"] == "timed_out"

    @pytest.mark.asyncio
    async def test_outer_deadline_bounds_scan(self, make_orchestrator, make_adapter, eth_target, caplog):
        adapters = [
            make_adapter("fast", ThreatCategory.BEHAVIORAL),
            make_adapter("stuck", ThreatCategory.MARKET, delay=30.0, timeout=60.0),
        ]
        orchestrator = make_orchestrator(adapters, scan_timeout=0.2)

        started = time.monotonic()
        with caplog.at_level(logging.INFO, logger="rugsentry.core.engine"):
            report = await orchestrator.scan(eth_target)

        assert time.monotonic() - started < 2.0
        assert statuses(report) == {"fast": "succeeded", "stuck": "timed_out"}
        assert report.analyzer_coverage == 0.5
        assert "Outer scan deadline hit; cancelling 1 analyzers" in caplog.text

    @pytest.mark.asyncio
    async def test_timeout_cancels_adapter_work(self, make_orchestrator, eth_target):
        cancelled = asyncio.Event()

        async def analyze(target, context):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return AnalysisResult(sub_score=0)

        adapter = AnalyzerAdapter("hang", ThreatCategory.BEHAVIORAL, analyze, timeout=0.05)
        report = await make_orchestrator([adapter]).scan(eth_target)

        assert cancelled.is_set()
        assert report.risk_level is RiskLevel.UNKNOWN

    @pytest.mark.asyncio
    async def test_cancelled_scan_cancels_adapters(self, make_orchestrator, eth_target, caplog):
        started, cancelled = asyncio.Event(), asyncio.Event()
        orchestrator = make_orchestrator([hanging_adapter(started, cancelled)])

        with caplog.at_level(logging.INFO, logger="rugsentry.core.engine"):
            scan = asyncio.ensure_future(orchestrator.scan(eth_target))
            await asyncio.wait_for(started.wait(), timeout=1)
            scan.cancel()
            with pytest.raises(asyncio.CancelledError):
                await scan

        assert cancelled.is_set()
        assert "Scan cancelled by caller; cancelling 1 analyzers" in caplog.text
        assert "deadline" not in caplog.text

    @pytest.mark.asyncio
    async def test_cancelled_cached_scan_cancels_adapters(self, make_orchestrator, eth_target):
        started, cancelled = asyncio.Event(), asyncio.Event()
        cache = ScanCache(ttl=60)
        orchestrator = make_orchestrator([hanging_adapter(started, cancelled)], cache=cache)

        scan = asyncio.ensure_future(orchestrator.scan(eth_target))
        await asyncio.wait_for(started.wait(), timeout=1)
        scan.cancel()
        with pytest.raises(asyncio.CancelledError):
            await scan
        await asyncio.wait_for(cancelled.wait(), timeout=1)

        assert cache.stats()["inflight"] == 0
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_outcomes_in_registry_order(self, make_orchestrator, make_adapter, eth_target):
        adapters = [
            make_adapter("first", ThreatCategory.BEHAVIORAL, delay=0.1),
            make_adapter("second", ThreatCategory.STRUCTURAL, delay=0.05),
            make_adapter("third", ThreatCategory.MARKET),
        ]
        report = await make_orchestrator(adapters).scan(eth_target)
        assert [a["adapter_id"] for a in report.adapters] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_adapters_run_concurrently(self, make_orchestrator, make_adapter, eth_target):
        adapters = [make_adapter(f"a{i}", ThreatCategory.BEHAVIORAL, delay=0.2) for i in range(5)]

        started = time.monotonic()
        await make_orchestrator(adapters).scan(eth_target)
        assert time.monotonic() - started < 0.9

    @pytest.mark.asyncio
    async def test_zero_coverage_yields_unknown(self, make_orchestrator, make_adapter, eth_target):
        adapters = [
            make_adapter("a", ThreatCategory.BEHAVIORAL, error=ValueError("bad data")),
            make_adapter("b", ThreatCategory.MARKET, error=KeyError("price")),
        ]
        report = await make_orchestrator(adapters).scan(eth_target)

        assert report.risk_level is RiskLevel.UNKNOWN
        assert report.composite_score == 0
        assert report.confidence == 0
        assert report.analyzer_coverage == 0
        assert report.findings[0].description == UNAVAILABLE_DESCRIPTION
        assert "re-run the scan" in report.recommendations[0]

    @pytest.mark.asyncio
    async def test_profile_filters_categories(self, make_orchestrator, four_adapters, eth_target, calls):
        report = await make_orchestrator(four_adapters).scan(eth_target, profile="quick")

        assert "social" not in calls
        assert report.profile == "quick"
        assert len(report.adapters) == 3

    @pytest.mark.asyncio
    async def test_profile_scales_timeouts(self, make_orchestrator, make_adapter, eth_target):
        adapter = make_adapter("measured", ThreatCategory.BEHAVIORAL, delay=0.15, timeout=0.2)
        orchestrator = make_orchestrator([adapter])

        quick = await orchestrator.scan(eth_target, profile="quick")
        deep = await orchestrator.scan(eth_target, profile="deep")

        assert statuses(quick)["measured"] == "timed_out"
        assert statuses(deep)["measured"] == "succeeded"

    @pytest.mark.asyncio
    async def test_unsupported_adapter_skipped(self, make_orchestrator, make_adapter, four_adapters,
                                               eth_target, calls):
        solana_only = make_adapter("sol", ThreatCategory.BEHAVIORAL, networks=["solana"])
        report = await make_orchestrator(four_adapters + [solana_only]).scan(eth_target)

        assert "sol" not in calls
        assert report.analyzer_coverage == 1.0

    @pytest.mark.asyncio
    async def test_cached_scan_returns_same_report(self, make_orchestrator, four_adapters, eth_target, calls):
        orchestrator = make_orchestrator(four_adapters, cache=ScanCache(ttl=60))

        first = await orchestrator.scan(eth_target)
        second = await orchestrator.scan(Target.create("eth", eth_target.address.upper().replace("0X", "0x")))

        assert first.scan_id == second.scan_id
        assert first == second
        assert len(calls) == 4

    @pytest.mark.asyncio
    async def test_concurrent_scans_share_execution(self, make_orchestrator, make_adapter, eth_target, calls):
        adapters = [make_adapter("slowish", ThreatCategory.BEHAVIORAL, delay=0.1)]
        cache = ScanCache(ttl=60)
        orchestrator = make_orchestrator(adapters, cache=cache)

        reports = await asyncio.gather(*(orchestrator.scan(eth_target) for _ in range(5)))

        assert calls == ["slowish"]
        assert len({r.scan_id for r in reports}) == 1
        assert cache.stats()["joins"] == 4

    @pytest.mark.asyncio
    async def test_profiles_cached_separately(self, make_orchestrator, four_adapters, eth_target):
        orchestrator = make_orchestrator(four_adapters, cache=ScanCache(ttl=60))

        standard = await orchestrator.scan(eth_target, profile="standard")
        deep = await orchestrator.scan(eth_target, profile="deep")
        assert standard.scan_id != deep.scan_id

    @pytest.mark.asyncio
    async def test_close_closes_provider(self, make_orchestrator, four_adapters):
        provider = AsyncMock()
        orchestrator = make_orchestrator(four_adapters, provider=provider)

        await orchestrator.close()
        provider.close.assert_awaited_once()

    def test_scan_sync(self, make_orchestrator, four_adapters, eth_target):
        report = make_orchestrator(four_adapters).scan_sync(eth_target)
        assert report.analyzer_coverage == 1.0
