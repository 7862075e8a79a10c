"""
Cost Analytics Engine

Turns a subscription's billing time series and resource inventory into
trends, anomalies, forecasts and prioritized savings recommendations.
"""

from .services.config import ConfigManager, EngineConfig
from .services.aggregator import CostDataAggregator
from .services.inventory import ResourceInventoryService
from .analyzers.pipeline import CostAnalysisPipeline

__version__ = "1.0.0"
__author__ = "Cloud Cost Analytics Team"

__all__ = [
    "ConfigManager",
    "EngineConfig",
    "CostDataAggregator",
    "ResourceInventoryService",
    "CostAnalysisPipeline",
]
