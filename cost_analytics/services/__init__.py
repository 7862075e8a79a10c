"""
Services: configuration, external client boundary, caching and data collection.
"""

from .aggregator import CostDataAggregator, roll_up_monthly
from .cache import QueryCache
from .clients import BillingQueryClient, ResourceInventoryClient
from .config import (
    AggregatorConfig,
    AnomalyConfig,
    ConfigManager,
    EngineConfig,
    ForecastConfig,
    ScopeConfig,
    ScorerConfig,
    SeverityThresholds,
    TrendConfig,
)
from .exceptions import (
    ConfigurationError,
    CostAnalyticsError,
    InsufficientHistoryError,
    RateLimitError,
    UpstreamQueryError,
    is_rate_limit_error,
)
from .inventory import ResourceInventoryService, estimate_disk_cost, estimate_vm_cost
from .normalization import categorize_service, normalize_usage_date
from .throttle import RequestThrottle

__all__ = [
    "CostDataAggregator",
    "roll_up_monthly",
    "QueryCache",
    "BillingQueryClient",
    "ResourceInventoryClient",
    "AggregatorConfig",
    "AnomalyConfig",
    "ConfigManager",
    "EngineConfig",
    "ForecastConfig",
    "ScopeConfig",
    "ScorerConfig",
    "SeverityThresholds",
    "TrendConfig",
    "ConfigurationError",
    "CostAnalyticsError",
    "InsufficientHistoryError",
    "RateLimitError",
    "UpstreamQueryError",
    "is_rate_limit_error",
    "ResourceInventoryService",
    "estimate_disk_cost",
    "estimate_vm_cost",
    "categorize_service",
    "normalize_usage_date",
    "RequestThrottle",
]
