"""
RugSentry Scan Engine
Orchestrates the concurrent analyzer fan-out for one target
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from .adapter import AdapterContext, AnalyzerAdapter
from .aggregator import RiskAggregator
from .cache import ScanCache, make_key
from .config import ScannerConfig, ScanProfile, load_config
from .data_provider import DataProvider
from .errors import AdapterTimeout, ConfigurationError, InvalidTargetError
from .model import AnalyzerOutcome, OutcomeStatus, SecurityReport, Target
from .networks import validate_target
from .registry import AnalyzerRegistry
from .report_builder import ReportBuilder


class ScanOrchestrator:
    """Validates a target, fans out to its adapters and builds the report.

    ``scan`` only ever raises InvalidTargetError or ConfigurationError.
    Adapter failures and timeouts are recorded as outcomes and show up as
    reduced coverage and confidence inside a valid report.
    """

    def __init__(self,
                 registry: AnalyzerRegistry,
                 provider: DataProvider,
                 config: Optional[ScannerConfig] = None,
                 cache: Optional[ScanCache] = None,
                 aggregator: Optional[RiskAggregator] = None,
                 report_builder: Optional[ReportBuilder] = None,
                 audit_logger=None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or load_config()
        self.registry = registry
        self.provider = provider
        self.cache = cache
        self.aggregator = aggregator or RiskAggregator(registry.weights, self.config.thresholds)
        self.report_builder = report_builder or ReportBuilder()
        self.audit_logger = audit_logger
        self.logger = logger or logging.getLogger(__name__)

        self.scan_timeout = self.config.scan_timeout
        self.total_scans = 0
        self.total_dispatches = 0

    def resolve_profile(self, profile: str) -> ScanProfile:
        return self.config.get_profile(profile)

    async def scan(self, target: Target, profile: str = "standard") -> SecurityReport:
        """Scan one target; served from the cache when one is configured."""
        try:
            validate_target(target)
        except InvalidTargetError as e:
            if self.audit_logger:
                self.audit_logger.log_invalid_target(target.network, target.address, str(e))
            raise
        scan_profile = self.resolve_profile(profile)
        adapters = self.registry.applicable(target, scan_profile)
        if not adapters:
            raise ConfigurationError(
                f"No analyzers apply to {target.address_type.value} on {target.network} "
                f"with profile {scan_profile.name!r}"
            )

        if self.cache is None:
            return await self._execute(target, scan_profile, adapters)
        return await self.cache.get_or_run(
            make_key(target, scan_profile.name),
            lambda: self._execute(target, scan_profile, adapters),
        )

    async def _execute(self,
                       target: Target,
                       profile: ScanProfile,
                       adapters: Sequence[AnalyzerAdapter]) -> SecurityReport:
        start_time = time.monotonic()
        self.total_scans += 1
        self.logger.info(
            f"Scanning {target.address} on {target.network} "
            f"({profile.name} profile, {len(adapters)} analyzers)"
        )
        if self.audit_logger:
            self.audit_logger.log_scan_start(target.network, target.address, profile.name, len(adapters))

        outcomes = await self.run_adapters(target, profile, adapters)
        aggregate = self.aggregator.aggregate(outcomes)
        report = self.report_builder.build(target, aggregate, outcomes, profile.name)

        duration = time.monotonic() - start_time
        self.logger.info(
            f"Scan {report.scan_id} completed in {duration:.2f}s: "
            f"{report.risk_level.value} ({report.composite_score:.1f}), "
            f"coverage {report.analyzer_coverage:.0%}"
        )
        if self.audit_logger:
            self.audit_logger.log_scan_end(report.scan_id, report.risk_level.value,
                                           report.composite_score, report.analyzer_coverage, duration)
        return report

    async def run_adapters(self,
                           target: Target,
                           profile: ScanProfile,
                           adapters: Sequence[AnalyzerAdapter]) -> List[AnalyzerOutcome]:
        """Settle-all fan-out bounded by the outer scan deadline.

        Outcomes come back in registry order, never in completion order.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.scan_timeout
        tasks = [
            asyncio.ensure_future(self.run_adapter(adapter, target, profile, deadline))
            for adapter in adapters
        ]
        self.total_dispatches += len(tasks)

        try:
            _, pending = await asyncio.wait(tasks, timeout=self.scan_timeout)
        except asyncio.CancelledError:
            pending = [t for t in tasks if not t.done()]
            self.logger.info(f"Scan cancelled by caller; cancelling {len(pending)} analyzers")
            await _cancel_all(pending)
            raise
        if pending:
            self.logger.warning(f"Outer scan deadline hit; cancelling {len(pending)} analyzers")
            await _cancel_all(pending)

        outcomes = []
        for adapter, task in zip(adapters, tasks):
            if task.cancelled():
                outcome = AnalyzerOutcome(
                    adapter_id=adapter.adapter_id,
                    category=adapter.category,
                    status=OutcomeStatus.TIMED_OUT,
                    latency_ms=self.scan_timeout * 1000,
                    weight=adapter.weight,
                    error="outer scan deadline exceeded",
                )
                self._record_fault(outcome)
            else:
                outcome = task.result()
            outcomes.append(outcome)
        return outcomes

    async def run_adapter(self,
                          adapter: AnalyzerAdapter,
                          target: Target,
                          profile: ScanProfile,
                          deadline: float) -> AnalyzerOutcome:
        """Run a single adapter under min(own timeout, remaining outer deadline)."""
        loop = asyncio.get_running_loop()
        timeout = min(self.registry.timeout_for(adapter) * profile.timeout_multiplier,
                      max(0.0, deadline - loop.time()))
        context = AdapterContext(
            provider=self.provider,
            profile=profile,
            logger=logging.getLogger(f"rugsentry.adapters.{adapter.adapter_id}"),
        )
        start_time = time.monotonic()

        try:
            # wait_for cancels the adapter coroutine, and its I/O, on expiry
            result = await asyncio.wait_for(adapter.analyze(target, context), timeout=timeout)
        except (asyncio.TimeoutError, AdapterTimeout) as e:
            outcome = AnalyzerOutcome(
                adapter_id=adapter.adapter_id,
                category=adapter.category,
                status=OutcomeStatus.TIMED_OUT,
                latency_ms=(time.monotonic() - start_time) * 1000,
                weight=adapter.weight,
                error=str(e) or f"timed out after {timeout:.1f}s",
            )
            self._record_fault(outcome)
            return outcome
        except Exception as e:
            outcome = AnalyzerOutcome(
                adapter_id=adapter.adapter_id,
                category=adapter.category,
                status=OutcomeStatus.FAILED,
                latency_ms=(time.monotonic() - start_time) * 1000,
                weight=adapter.weight,
                error=f"{type(e).__name__}: {e}",
            )
            self._record_fault(outcome)
            return outcome

        latency_ms = (time.monotonic() - start_time) * 1000
        self.logger.debug(
            f"Analyzer {adapter.adapter_id} scored {result.sub_score:.1f} "
            f"with {len(result.findings)} findings in {latency_ms:.0f}ms"
        )
        return AnalyzerOutcome(
            adapter_id=adapter.adapter_id,
            category=adapter.category,
            status=OutcomeStatus.SUCCEEDED,
            sub_score=result.sub_score,
            findings=tuple(result.findings),
            latency_ms=latency_ms,
            confidence=result.confidence,
            weight=adapter.weight,
        )

    def _record_fault(self, outcome: AnalyzerOutcome) -> None:
        self.logger.warning(f"Analyzer {outcome.adapter_id} {outcome.status.value}: {outcome.error}")
        if self.audit_logger:
            self.audit_logger.log_adapter_fault(outcome.adapter_id, outcome.status.value, outcome.error)

    def scan_sync(self, target: Target, profile: str = "standard") -> SecurityReport:
        """Blocking wrapper around ``scan`` for scripts and the CLI."""
        return asyncio.run(self.scan(target, profile))

    async def close(self) -> None:
        await self.provider.close()


async def _cancel_all(tasks) -> None:
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
