"""
Configuration management for the cost analytics engine.
"""

import os
import yaml
from typing import Dict, List, Literal, Optional
from pathlib import Path
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from .exceptions import ConfigurationError
from ..utils.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILE_NAME = "analysis.yaml"


class ScopeConfig(BaseModel):
    """Billing scope the engine analyzes"""

    subscription_id: str = ""
    scope: Optional[str] = None

    @model_validator(mode="after")
    def default_scope(self):
        if not self.scope and self.subscription_id:
            self.scope = f"/subscriptions/{self.subscription_id}"
        return self


class AggregatorConfig(BaseModel):
    """Rate limiting, retry and caching around the billing client"""

    # 3 s between calls keeps us near 20 requests/minute, under the 30/minute quota
    api_delay_seconds: float = Field(default=3.0, ge=0)
    max_retries: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = Field(default=10.0, ge=0)
    backoff: Literal["linear", "exponential"] = "linear"
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    use_fallback_data: bool = True
    default_currency: str = "USD"
    vm_meter_category: str = "Virtual Machines"


class TrendConfig(BaseModel):
    stability_threshold_percent: float = Field(default=5.0, ge=0)
    projection_window: int = Field(default=30, ge=2)
    min_projection_points: int = Field(default=5, ge=2)
    week_length_days: int = 7
    # Months with fewer observed days are left out of the monthly trend
    complete_month_min_days: int = Field(default=25, ge=1)


class SeverityThresholds(BaseModel):
    """Lower bounds (exclusive) on |deviation percent| for each severity"""

    critical: float = 100.0
    high: float = 50.0
    medium: float = 30.0

    @model_validator(mode="after")
    def check_order(self):
        if not self.critical > self.high > self.medium:
            raise ValueError("severity thresholds must satisfy critical > high > medium")
        return self


class AnomalyConfig(BaseModel):
    threshold_percent: float = Field(default=20.0, ge=0)
    min_points: int = Field(default=7, ge=1)
    concentration_threshold_percent: float = Field(default=50.0, ge=0, le=100)
    spike_window_days: int = Field(default=7, ge=1)
    severity: SeverityThresholds = Field(default_factory=SeverityThresholds)


class ForecastConfig(BaseModel):
    horizon_days: int = Field(default=30, ge=1)
    variance_percent: float = Field(default=5.0, ge=0, lt=100)
    confidence_band_percent: float = Field(default=10.0, ge=0, lt=100)
    seed: int = 0


class ScorerConfig(BaseModel):
    """Business heuristics for savings recommendations"""

    # Reserved capacity
    reserved_min_utilization: float = 70.0
    reserved_high_confidence_utilization: float = 90.0
    reserved_savings_rate: float = 0.40

    # Flexible commitment
    savings_plan_min_utilization: float = 50.0
    savings_plan_min_monthly_cost: float = 50.0
    savings_plan_savings_rate: float = 0.25

    # Scheduled shutdown
    shutdown_min_utilization: float = 20.0
    shutdown_max_utilization: float = 50.0
    shutdown_idle_savings_rate: float = 0.50

    # Interruptible capacity
    spot_max_utilization: float = 40.0
    spot_savings_rate: float = 0.60
    general_purpose_size_indicators: List[str] = Field(
        default_factory=lambda: ["Standard_D"]
    )

    # Deletion candidates
    delete_max_utilization: float = 10.0
    delete_max_active_days: int = 5

    # Rightsizing
    rightsize_max_utilization: float = 60.0
    rightsize_savings_rate: float = 0.30
    rightsize_min_vcpus: int = 8
    large_size_families: List[str] = Field(default_factory=lambda: ["E", "M", "L"])

    # Stopped VMs keep paying for their disks
    stopped_vm_residual_fraction: float = 0.10
    stopped_vm_medium_priority_cost: float = 50.0

    # Unattached disks
    disk_high_priority_cost: float = 50.0
    disk_medium_priority_cost: float = 20.0

    # VM monthly trend
    complete_month_min_days: int = 25
    trend_threshold_percent: float = 10.0

    # Price estimates
    disk_price_per_gb: Dict[str, float] = Field(
        default_factory=lambda: {
            "Standard_LRS": 0.05,
            "StandardSSD_LRS": 0.10,
            "Premium_LRS": 0.15,
            "UltraSSD_LRS": 0.20,
        }
    )
    default_disk_price_per_gb: float = 0.05
    vm_monthly_estimates: Dict[str, float] = Field(
        default_factory=lambda: {
            "Standard_B1s": 10,
            "Standard_B2s": 40,
            "Standard_D2s_v3": 100,
            "Standard_D4s_v3": 200,
            "Standard_D8s_v3": 400,
            "Standard_E2s_v3": 120,
            "Standard_E4s_v3": 240,
        }
    )
    default_vm_monthly_cost: float = 100.0

    top_recommendations: int = 10
    top_vms: int = 15


class EngineConfig(BaseModel):
    """Complete engine configuration"""

    scope: ScopeConfig = Field(default_factory=ScopeConfig)
    historical_days: int = Field(default=90, ge=1)
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    trend: TrendConfig = Field(default_factory=TrendConfig)
    anomaly: AnomalyConfig = Field(default_factory=AnomalyConfig)
    forecast: ForecastConfig = Field(default_factory=ForecastConfig)
    scorer: ScorerConfig = Field(default_factory=ScorerConfig)


class ConfigManager:
    """Loads engine configuration from YAML and environment variables"""

    def __init__(self, config_dir: str = "config", load_env: bool = True):
        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        if load_env:
            load_dotenv()

        self.engine_config = self._load_engine_config()

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE_NAME

    def _load_engine_config(self) -> EngineConfig:
        """Load configuration, writing defaults when no file exists"""
        if not self.config_file.exists():
            config_data = EngineConfig().model_dump(mode="json")
            with open(self.config_file, "w") as f:
                yaml.dump(config_data, f, default_flow_style=False)
            logger.info("Default configuration written", file=str(self.config_file))
        else:
            try:
                with open(self.config_file, "r") as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Invalid YAML in {self.config_file}: {e}"
                ) from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"{self.config_file} must contain a mapping")

        config_data = self._apply_env_overrides(config_data)

        try:
            return EngineConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _apply_env_overrides(self, data: Dict) -> Dict:
        """Environment variables win over values from the YAML file"""
        scope = dict(data.get("scope") or {})
        if os.getenv("AZURE_SUBSCRIPTION_ID"):
            scope["subscription_id"] = os.getenv("AZURE_SUBSCRIPTION_ID")
        if os.getenv("AZURE_SCOPE"):
            scope["scope"] = os.getenv("AZURE_SCOPE")
        data["scope"] = scope

        if os.getenv("COST_HISTORICAL_DAYS"):
            data["historical_days"] = os.getenv("COST_HISTORICAL_DAYS")

        if os.getenv("COST_FORECAST_DAYS"):
            forecast = dict(data.get("forecast") or {})
            forecast["horizon_days"] = os.getenv("COST_FORECAST_DAYS")
            data["forecast"] = forecast

        if os.getenv("COST_ANOMALY_THRESHOLD_PERCENT"):
            anomaly = dict(data.get("anomaly") or {})
            anomaly["threshold_percent"] = os.getenv("COST_ANOMALY_THRESHOLD_PERCENT")
            data["anomaly"] = anomaly

        return data

    def validate_required(self) -> None:
        """Fail when the settings needed to query the billing API are missing"""
        errors = []
        if not self.engine_config.scope.subscription_id and not self.engine_config.scope.scope:
            errors.append("AZURE_SUBSCRIPTION_ID or AZURE_SCOPE is required")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            )
