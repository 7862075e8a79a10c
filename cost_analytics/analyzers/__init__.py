"""
Analyzers: trends, anomalies, forecasts, recommendations and the pipeline
that composes them into one report.
"""

from .anomaly import AnomalyDetector
from .forecast import ForecastGenerator
from .pipeline import CostAnalysisPipeline
from .recommendations import RecommendationScorer, suggest_smaller_size
from .summary import SummaryComposer
from .trend import TrendAnalyzer

__all__ = [
    "AnomalyDetector",
    "ForecastGenerator",
    "CostAnalysisPipeline",
    "RecommendationScorer",
    "suggest_smaller_size",
    "SummaryComposer",
    "TrendAnalyzer",
]
