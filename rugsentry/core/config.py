"""
Configuration for RugSentry
Loads YAML settings, overlays user files and RUGSENTRY_* environment variables
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional

import yaml

from .errors import ConfigurationError
from .model import ThreatCategory

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "data" / "default_config.yaml"

ENV_OVERRIDES = {
    "RUGSENTRY_CACHE_TTL": ("cache_ttl",),
    "RUGSENTRY_SCAN_TIMEOUT": ("scan_timeout",),
    "RUGSENTRY_DEFAULT_TIMEOUT": ("timeouts", "default"),
    "RUGSENTRY_API_URL": ("http", "base_url"),
}


@dataclass(frozen=True)
class RiskThresholds:
    """Score cut-offs and escalation rules for the risk level mapping."""

    critical_score: float = 85.0
    high_score: float = 70.0
    medium_score: float = 50.0
    low_score: float = 25.0
    critical_severity: float = 90.0
    escalation_severity: float = 75.0
    escalation_count: int = 3


@dataclass(frozen=True)
class ScanProfile:
    name: str
    categories: FrozenSet[ThreatCategory]
    timeout_multiplier: float = 1.0
    description: str = ""


@dataclass(frozen=True)
class HTTPSettings:
    base_url: Optional[str] = None
    user_agent: str = "RugSentry/1.0"
    timeout: float = 15.0
    max_retries: int = 2
    retry_delay: float = 0.5
    endpoints: Dict[str, str] = field(default_factory=dict)


@dataclass
class ScannerConfig:
    weights: Dict[ThreatCategory, float]
    thresholds: RiskThresholds
    default_timeout: float
    adapter_timeouts: Dict[str, float]
    scan_timeout: float
    cache_ttl: float
    profiles: Dict[str, ScanProfile]
    http: HTTPSettings

    def timeout_for(self, adapter_id: str, fallback: Optional[float] = None) -> float:
        if adapter_id in self.adapter_timeouts:
            return self.adapter_timeouts[adapter_id]
        return fallback if fallback is not None else self.default_timeout

    def get_profile(self, name: str) -> ScanProfile:
        profile = self.profiles.get(name)
        if profile is None:
            raise ConfigurationError(
                f"Unknown scan profile {name!r}; available: {', '.join(sorted(self.profiles))}"
            )
        return profile


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _apply_env(raw: Dict[str, Any], env: Mapping[str, str]) -> None:
    for var, path in ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        node = raw
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = value
        logger.debug(f"Config override from {var}")


def _positive(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
    if number <= 0:
        raise ConfigurationError(f"{name} must be positive, got {number}")
    return number


def _parse_category(name: Any) -> ThreatCategory:
    if isinstance(name, ThreatCategory):
        return name
    try:
        return ThreatCategory(str(name).lower())
    except ValueError as e:
        raise ConfigurationError(f"Unknown threat category: {name!r}") from e


def build_config(raw: Mapping[str, Any]) -> ScannerConfig:
    """Turn a raw mapping (merged YAML) into a validated ScannerConfig."""
    weights = {}
    for name, value in (raw.get("weights") or {}).items():
        try:
            weights[_parse_category(name)] = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Weight for {name} must be a number") from e

    thresholds_raw = raw.get("thresholds") or {}
    try:
        thresholds = RiskThresholds(
            critical_score=float(thresholds_raw.get("critical_score", 85)),
            high_score=float(thresholds_raw.get("high_score", 70)),
            medium_score=float(thresholds_raw.get("medium_score", 50)),
            low_score=float(thresholds_raw.get("low_score", 25)),
            critical_severity=float(thresholds_raw.get("critical_severity", 90)),
            escalation_severity=float(thresholds_raw.get("escalation_severity", 75)),
            escalation_count=int(thresholds_raw.get("escalation_count", 3)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid thresholds: {e}") from e
    if not (thresholds.critical_score >= thresholds.high_score
            >= thresholds.medium_score >= thresholds.low_score >= 0):
        raise ConfigurationError("Score thresholds must be ordered critical >= high >= medium >= low >= 0")

    timeouts_raw = raw.get("timeouts") or {}
    default_timeout = _positive(timeouts_raw.get("default", 10.0), "timeouts.default")
    adapter_timeouts = {
        str(adapter_id): _positive(value, f"timeouts.adapters.{adapter_id}")
        for adapter_id, value in (timeouts_raw.get("adapters") or {}).items()
    }

    profiles = {}
    for name, settings in (raw.get("profiles") or {}).items():
        settings = settings or {}
        categories = frozenset(_parse_category(c) for c in settings.get("categories", [c.value for c in ThreatCategory]))
        if not categories:
            raise ConfigurationError(f"Profile {name!r} selects no categories")
        profiles[str(name)] = ScanProfile(
            name=str(name),
            categories=categories,
            timeout_multiplier=_positive(settings.get("timeout_multiplier", 1.0),
                                         f"profiles.{name}.timeout_multiplier"),
            description=settings.get("description", ""),
        )
    if not profiles:
        raise ConfigurationError("At least one scan profile must be configured")

    http_raw = raw.get("http") or {}
    http = HTTPSettings(
        base_url=http_raw.get("base_url") or None,
        user_agent=http_raw.get("user_agent", "RugSentry/1.0"),
        timeout=_positive(http_raw.get("timeout", 15.0), "http.timeout"),
        max_retries=int(http_raw.get("max_retries", 2)),
        retry_delay=float(http_raw.get("retry_delay", 0.5)),
        endpoints=dict(http_raw.get("endpoints") or {}),
    )

    return ScannerConfig(
        weights=weights,
        thresholds=thresholds,
        default_timeout=default_timeout,
        adapter_timeouts=adapter_timeouts,
        scan_timeout=_positive(raw.get("scan_timeout", 45.0), "scan_timeout"),
        cache_ttl=_positive(raw.get("cache_ttl", 300), "cache_ttl"),
        profiles=profiles,
        http=http,
    )


def load_config(path: Optional[str] = None,
                env: Optional[Mapping[str, str]] = None) -> ScannerConfig:
    """Load the bundled defaults, then a user file, then environment overrides."""
    raw = _read_yaml(DEFAULT_CONFIG_PATH)
    if path:
        raw = _deep_merge(raw, _read_yaml(Path(path)))
        logger.info(f"Loaded configuration overrides from {path}")
    _apply_env(raw, os.environ if env is None else env)
    return build_config(raw)
