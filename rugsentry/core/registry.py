"""
Analyzer Registry for RugSentry
Holds the configured adapters, category weights and per-adapter deadlines
"""

import importlib
import logging
import math
import pkgutil
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .adapter import AnalyzerAdapter
from .config import ScanProfile, ScannerConfig
from .errors import ConfigurationError
from .model import Target, ThreatCategory

ADAPTERS_PACKAGE = "rugsentry.adapters"
WEIGHT_TOLERANCE = 1e-6

DEFAULT_WEIGHTS = {
    ThreatCategory.BEHAVIORAL: 0.40,
    ThreatCategory.STRUCTURAL: 0.25,
    ThreatCategory.MARKET: 0.20,
    ThreatCategory.CONTEXTUAL: 0.15,
}


def validate_weights(weights: Mapping[ThreatCategory, float]) -> Dict[ThreatCategory, float]:
    """Category weights must cover every category, be >= 0 and sum to 1.0."""
    normalized = {ThreatCategory(k): float(v) for k, v in weights.items()}
    missing = set(ThreatCategory) - set(normalized)
    if missing:
        raise ConfigurationError(f"Missing weights for: {', '.join(sorted(c.value for c in missing))}")
    negative = [c.value for c, w in normalized.items() if w < 0 or math.isnan(w)]
    if negative:
        raise ConfigurationError(f"Weights must be non-negative: {', '.join(sorted(negative))}")
    total = sum(normalized.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigurationError(f"Category weights must sum to 1.0, got {total:.6f}")
    return normalized


class AnalyzerRegistry:
    """Configured set of adapters plus the weights used to aggregate them.

    All validation happens here, at construction and registration time, so
    a misconfigured registry fails at startup and never during a scan.
    """

    def __init__(self,
                 weights: Optional[Mapping[ThreatCategory, float]] = None,
                 adapters: Optional[Iterable[AnalyzerAdapter]] = None,
                 adapter_timeouts: Optional[Mapping[str, float]] = None,
                 default_timeout: float = 10.0):
        self.weights = validate_weights(weights if weights is not None else DEFAULT_WEIGHTS)
        if default_timeout <= 0:
            raise ConfigurationError("default_timeout must be positive")
        self.default_timeout = float(default_timeout)
        self.adapter_timeouts = dict(adapter_timeouts or {})
        self._adapters: Dict[str, AnalyzerAdapter] = {}
        self.logger = logging.getLogger(__name__)

        for adapter in adapters or []:
            self.register(adapter)
        self.validate()

    @classmethod
    def from_config(cls, config: ScannerConfig, load_builtin: bool = True) -> "AnalyzerRegistry":
        registry = cls(
            weights=config.weights,
            adapter_timeouts=config.adapter_timeouts,
            default_timeout=config.default_timeout,
        )
        if load_builtin:
            loaded = registry.load_builtin_adapters()
            if loaded == 0:
                raise ConfigurationError("No analyzer adapters could be loaded")
            registry.validate()
        return registry

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, adapter_id: str) -> bool:
        return adapter_id in self._adapters

    @property
    def adapters(self) -> List[AnalyzerAdapter]:
        """Adapters in registration order."""
        return list(self._adapters.values())

    def register(self, adapter: AnalyzerAdapter) -> None:
        if adapter.adapter_id in self._adapters:
            raise ConfigurationError(f"Duplicate adapter id: {adapter.adapter_id}")
        if self.timeout_for(adapter) <= 0:
            raise ConfigurationError(f"Adapter {adapter.adapter_id} timeout must be positive")
        self._adapters[adapter.adapter_id] = adapter
        self.logger.debug(f"Registered adapter {adapter.adapter_id} ({adapter.category.value})")

    def validate(self) -> None:
        """Re-check weights and every effective timeout; raises ConfigurationError."""
        validate_weights(self.weights)
        for adapter_id, timeout in self.adapter_timeouts.items():
            if float(timeout) <= 0:
                raise ConfigurationError(f"Timeout override for {adapter_id} must be positive")
        for adapter in self._adapters.values():
            if self.timeout_for(adapter) <= 0:
                raise ConfigurationError(f"Adapter {adapter.adapter_id} timeout must be positive")

    def get_adapter(self, adapter_id: str) -> Optional[AnalyzerAdapter]:
        return self._adapters.get(adapter_id)

    def discover_adapters(self) -> List[str]:
        """Discover adapter modules shipped in the adapters package."""
        package = importlib.import_module(ADAPTERS_PACKAGE)
        names = sorted(
            info.name for info in pkgutil.iter_modules(package.__path__)
            if not info.name.startswith("_")
        )
        self.logger.debug(f"Discovered {len(names)} adapter modules: {names}")
        return names

    def load_adapter(self, module_name: str) -> bool:
        """Load a single adapter module by name."""
        try:
            module = importlib.import_module(f"{ADAPTERS_PACKAGE}.{module_name}")
        except ImportError as e:
            self.logger.error(f"Could not import adapter {module_name}: {e}")
            return False

        adapter = AnalyzerAdapter.from_module(module)
        self.register(adapter)
        self.logger.debug(f"Successfully loaded adapter: {adapter.adapter_id}")
        return True

    def load_builtin_adapters(self) -> int:
        names = self.discover_adapters()
        loaded_count = sum(1 for name in names if self.load_adapter(name))
        self.logger.info(f"Loaded {loaded_count}/{len(names)} analyzer adapters")
        return loaded_count

    def timeout_for(self, adapter: AnalyzerAdapter) -> float:
        """Configured override, else the adapter's declared timeout, else the default."""
        if adapter.adapter_id in self.adapter_timeouts:
            return float(self.adapter_timeouts[adapter.adapter_id])
        if adapter.timeout is not None:
            return float(adapter.timeout)
        return self.default_timeout

    def weight_of(self, category: ThreatCategory) -> float:
        return self.weights[ThreatCategory(category)]

    def applicable(self, target: Target, profile: Optional[ScanProfile] = None) -> List[AnalyzerAdapter]:
        """Adapters that accept the target, restricted to the profile's categories."""
        selected = []
        for adapter in self._adapters.values():
            if profile is not None and adapter.category not in profile.categories:
                continue
            if adapter.supports(target):
                selected.append(adapter)
        return selected

    def get_adapter_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "total_adapters": len(self._adapters),
            "by_category": {},
            "by_network": {},
        }
        for adapter in self._adapters.values():
            category = adapter.category.value
            stats["by_category"][category] = stats["by_category"].get(category, 0) + 1
            for network in sorted(adapter.networks) if adapter.networks else ["*"]:
                stats["by_network"][network] = stats["by_network"].get(network, 0) + 1
        return stats
