"""
Shared fixtures for the RugSentry test suite
"""

import asyncio
import dataclasses
from typing import List, Optional

import pytest

from rugsentry.core.adapter import AnalyzerAdapter
from rugsentry.core.config import load_config
from rugsentry.core.data_provider import StaticDataProvider
from rugsentry.core.engine import ScanOrchestrator
from rugsentry.core.model import (
    AnalysisResult,
    AnalyzerOutcome,
    OutcomeStatus,
    Target,
    ThreatCategory,
    ThreatFinding,
)
from rugsentry.core.registry import AnalyzerRegistry

EVM_ADDRESS = "0x" + "ab" * 20
SOLANA_ADDRESS = "RugPu11Mint8xVq3kZt7YhWn2JcDfE5gHsLpQrTuV9"


@pytest.fixture
def config():
    """Bundled defaults, isolated from the caller's environment."""
    return load_config(env={})


@pytest.fixture
def eth_target():
    return Target.create("ethereum", EVM_ADDRESS)


@pytest.fixture
def sol_target():
    return Target.create("solana", SOLANA_ADDRESS)


@pytest.fixture
def make_finding():
    def _make(category=ThreatCategory.BEHAVIORAL, severity=50.0, confidence=90.0,
              description="test finding", mitigation=None, adapter_id="test"):
        return ThreatFinding(
            category=category,
            severity=severity,
            confidence=confidence,
            description=description,
            evidence=("evidence",),
            mitigation=mitigation,
            adapter_id=adapter_id,
        )
    return _make


@pytest.fixture
def make_outcome():
    def _make(adapter_id, category, sub_score=10.0, findings=(), confidence=90.0,
              status=OutcomeStatus.SUCCEEDED, weight=1.0):
        return AnalyzerOutcome(
            adapter_id=adapter_id,
            category=category,
            status=status,
            sub_score=sub_score,
            findings=tuple(findings),
            latency_ms=5.0,
            confidence=confidence,
            weight=weight,
            error=None if status is OutcomeStatus.SUCCEEDED else "boom",
        )
    return _make


@pytest.fixture
def calls() -> List[str]:
    """Adapter ids in the order their analyze coroutine was entered."""
    return []


@pytest.fixture
def make_adapter(calls):
    def _make(adapter_id, category, sub_score=10.0, findings=(), confidence=90.0,
              delay=0.0, error: Optional[BaseException] = None, timeout=None,
              networks=None, address_types=None, weight=1.0):
        async def analyze(target, context):
            calls.append(adapter_id)
            if delay:
                await asyncio.sleep(delay)
            if error is not None:
                raise error
            return AnalysisResult(sub_score=sub_score, findings=list(findings), confidence=confidence)

        return AnalyzerAdapter(
            adapter_id=adapter_id,
            category=category,
            analyze=analyze,
            networks=networks,
            address_types=address_types,
            timeout=timeout,
            weight=weight,
        )
    return _make


@pytest.fixture
def four_adapters(make_adapter):
    return [
        make_adapter("honeypot", ThreatCategory.BEHAVIORAL),
        make_adapter("ownership", ThreatCategory.STRUCTURAL),
        make_adapter("liquidity", ThreatCategory.MARKET),
        make_adapter("social", ThreatCategory.CONTEXTUAL),
    ]


@pytest.fixture
def make_orchestrator(config):
    def _make(adapters, scan_timeout=None, cache=None, audit_logger=None, provider=None):
        scan_config = config
        if scan_timeout is not None:
            scan_config = dataclasses.replace(config, scan_timeout=scan_timeout)
        registry = AnalyzerRegistry(
            weights=scan_config.weights,
            adapters=adapters,
            default_timeout=scan_config.default_timeout,
        )
        return ScanOrchestrator(
            registry,
            provider or StaticDataProvider(),
            config=scan_config,
            cache=cache,
            audit_logger=audit_logger,
        )
    return _make
