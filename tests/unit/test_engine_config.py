"""
Unit tests for configuration management.
"""

import pytest
import yaml
from pydantic import ValidationError

from cost_analytics.services.config import (
    AggregatorConfig,
    ConfigManager,
    EngineConfig,
    ScopeConfig,
    SeverityThresholds,
)
from cost_analytics.services.exceptions import ConfigurationError

ENV_VARS = [
    "AZURE_SUBSCRIPTION_ID",
    "AZURE_SCOPE",
    "COST_HISTORICAL_DAYS",
    "COST_FORECAST_DAYS",
    "COST_ANOMALY_THRESHOLD_PERCENT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfigModels:
    def test_defaults(self):
        config = EngineConfig()

        assert config.historical_days == 90
        assert config.aggregator.api_delay_seconds == 3.0
        assert config.aggregator.max_retries == 3
        assert config.aggregator.retry_base_delay_seconds == 10.0
        assert config.aggregator.backoff == "linear"
        assert config.trend.stability_threshold_percent == 5.0
        assert config.anomaly.threshold_percent == 20.0
        assert config.anomaly.min_points == 7
        assert config.forecast.horizon_days == 30
        assert config.forecast.variance_percent == 5.0
        assert config.forecast.confidence_band_percent == 10.0

    def test_scope_from_subscription(self):
        assert ScopeConfig(subscription_id="abc").scope == "/subscriptions/abc"
        assert ScopeConfig(subscription_id="abc", scope="/custom").scope == "/custom"
        assert ScopeConfig().scope is None

    def test_severity_thresholds_must_be_ordered(self):
        with pytest.raises(ValidationError):
            SeverityThresholds(critical=40.0, high=50.0, medium=30.0)

    def test_unknown_backoff_rejected(self):
        with pytest.raises(ValidationError):
            AggregatorConfig(backoff="fibonacci")


class TestConfigManager:
    def test_writes_default_file(self, temp_dir):
        manager = ConfigManager(str(temp_dir), load_env=False)

        assert manager.config_file.exists()
        data = yaml.safe_load(manager.config_file.read_text())
        assert data["historical_days"] == 90
        assert manager.engine_config == EngineConfig()

    def test_loads_yaml(self, temp_dir):
        (temp_dir / "analysis.yaml").write_text(
            yaml.dump(
                {
                    "scope": {"subscription_id": "sub-from-file"},
                    "historical_days": 30,
                    "anomaly": {"threshold_percent": 25.0},
                }
            )
        )

        config = ConfigManager(str(temp_dir), load_env=False).engine_config

        assert config.scope.scope == "/subscriptions/sub-from-file"
        assert config.historical_days == 30
        assert config.anomaly.threshold_percent == 25.0
        assert config.anomaly.min_points == 7

    def test_environment_overrides_file(self, temp_dir, monkeypatch):
        (temp_dir / "analysis.yaml").write_text(
            yaml.dump({"scope": {"subscription_id": "sub-from-file"}, "historical_days": 30})
        )
        monkeypatch.setenv("AZURE_SUBSCRIPTION_ID", "sub-from-env")
        monkeypatch.setenv("COST_HISTORICAL_DAYS", "45")
        monkeypatch.setenv("COST_FORECAST_DAYS", "14")
        monkeypatch.setenv("COST_ANOMALY_THRESHOLD_PERCENT", "35")

        config = ConfigManager(str(temp_dir), load_env=False).engine_config

        assert config.scope.subscription_id == "sub-from-env"
        assert config.historical_days == 45
        assert config.forecast.horizon_days == 14
        assert config.anomaly.threshold_percent == 35.0

    def test_invalid_yaml(self, temp_dir):
        (temp_dir / "analysis.yaml").write_text("historical_days: [unclosed")

        with pytest.raises(ConfigurationError):
            ConfigManager(str(temp_dir), load_env=False)

    def test_invalid_values(self, temp_dir):
        (temp_dir / "analysis.yaml").write_text(yaml.dump({"historical_days": 0}))

        with pytest.raises(ConfigurationError):
            ConfigManager(str(temp_dir), load_env=False)

    def test_non_mapping_file(self, temp_dir):
        (temp_dir / "analysis.yaml").write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            ConfigManager(str(temp_dir), load_env=False)

    def test_validate_required(self, temp_dir, monkeypatch):
        manager = ConfigManager(str(temp_dir), load_env=False)
        with pytest.raises(ConfigurationError, match="AZURE_SUBSCRIPTION_ID"):
            manager.validate_required()

        monkeypatch.setenv("AZURE_SCOPE", "/providers/Microsoft.Billing/billingAccounts/1")
        ConfigManager(str(temp_dir), load_env=False).validate_required()
