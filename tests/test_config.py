"""
Test suite for RugSentry configuration loading
"""

import pytest

from rugsentry.core.config import load_config
from rugsentry.core.errors import ConfigurationError
from rugsentry.core.model import ThreatCategory


class TestLoadConfig:
    """Test bundled defaults, user overrides and environment overrides"""

    def test_defaults(self, config):
        assert config.weights[ThreatCategory.BEHAVIORAL] == pytest.approx(0.40)
        assert sum(config.weights.values()) == pytest.approx(1.0)
        assert config.thresholds.critical_score == 85
        assert config.scan_timeout == 45
        assert config.cache_ttl == 300
        assert config.http.base_url is None
        assert set(config.profiles) == {"quick", "standard", "deep"}

    def test_profiles(self, config):
        quick = config.get_profile("quick")
        assert ThreatCategory.CONTEXTUAL not in quick.categories
        assert quick.timeout_multiplier == 0.5
        assert config.get_profile("deep").timeout_multiplier == 2.0

    def test_unknown_profile(self, config):
        with pytest.raises(ConfigurationError, match="Unknown scan profile"):
            config.get_profile("paranoid")

    def test_timeout_lookup(self, config):
        assert config.timeout_for("bytecode_vulnerability") == 20
        assert config.timeout_for("liquidity_lock") == 10
        assert config.timeout_for("liquidity_lock", fallback=4) == 4

    def test_user_file_merges(self, tmp_path):
        user = tmp_path / "rugsentry.yaml"
        user.write_text("scan_timeout: 12\nweights:\n  behavioral: 0.5\n  contextual: 0.05\n")

        config = load_config(str(user), env={})

        assert config.scan_timeout == 12
        assert config.weights[ThreatCategory.BEHAVIORAL] == 0.5
        assert config.weights[ThreatCategory.STRUCTURAL] == 0.25
        assert config.cache_ttl == 300

    def test_environment_overrides(self):
        config = load_config(env={
            "RUGSENTRY_CACHE_TTL": "30",
            "RUGSENTRY_SCAN_TIMEOUT": "8.5",
            "RUGSENTRY_API_URL": "https://intel.example.com",
        })

        assert config.cache_ttl == 30
        assert config.scan_timeout == 8.5
        assert config.http.base_url == "https://intel.example.com"

    def test_invalid_environment_value(self):
        with pytest.raises(ConfigurationError):
            load_config(env={"RUGSENTRY_SCAN_TIMEOUT": "soon"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(str(tmp_path / "missing.yaml"), env={})

    def test_invalid_yaml(self, tmp_path):
        broken = tmp_path / "broken.yaml"
        broken.write_text("weights: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(str(broken), env={})

    def test_unordered_thresholds_rejected(self, tmp_path):
        user = tmp_path / "rugsentry.yaml"
        user.write_text("thresholds:\n  high_score: 90\n")
        with pytest.raises(ConfigurationError):
            load_config(str(user), env={})

    def test_unknown_category_rejected(self, tmp_path):
        user = tmp_path / "rugsentry.yaml"
        user.write_text("profiles:\n  odd:\n    categories: [vibes]\n")
        with pytest.raises(ConfigurationError, match="Unknown threat category"):
            load_config(str(user), env={})
