"""
Core data models for the cost analytics engine.

The models are organized into separate modules:

- types: Core enums
- billing: Billing client query/row models
- costs: Cost series and dimension breakdowns
- analysis: Trends, anomalies and forecasts
- resources: Resource facts and VM cost profiles
- recommendations: Recommendations and their rollup
- report: The composed analysis report
"""

# Core types and enums
from .types import (
    GroupingDimension,
    QueryType,
    Granularity,
    DataProvenance,
    ServiceCategory,
    TrendPeriod,
    TrendDirection,
    Severity,
    AnomalyKind,
    RecommendationType,
    RecommendationPriority,
    RecommendationStatus,
    Effort,
    Confidence,
    PowerState,
    DiskState,
    StepStatus,
)

# Billing boundary
from .billing import BillingQuery, BillingRow

# Cost series
from .costs import (
    CostPoint,
    CostSeries,
    BreakdownEntry,
    DimensionBreakdown,
    CostQueryResult,
    CostHistory,
    PeriodChange,
    MonthTotal,
    MonthlyComparison,
    CurrentPeriodCosts,
)

# Analysis results
from .analysis import (
    MovingAverages,
    WeekOverWeekChange,
    Trend,
    CostStatistics,
    Anomaly,
    ForecastPoint,
    Forecast,
)

# Recommendations
from .recommendations import Recommendation, RecommendationSummary, SummaryBucket

# Resources
from .resources import (
    InventoryResource,
    DiskInfo,
    VMInfo,
    ResourceFacts,
    DailyCostEntry,
    MonthlyVMCost,
    VMCostProfile,
    VMCostSummary,
)

# Report
from .report import StepResult, CostSummary, CostAnalysisReport

__all__ = [
    # Types
    "GroupingDimension",
    "QueryType",
    "Granularity",
    "DataProvenance",
    "ServiceCategory",
    "TrendPeriod",
    "TrendDirection",
    "Severity",
    "AnomalyKind",
    "RecommendationType",
    "RecommendationPriority",
    "RecommendationStatus",
    "Effort",
    "Confidence",
    "PowerState",
    "DiskState",
    "StepStatus",

    # Billing
    "BillingQuery",
    "BillingRow",

    # Costs
    "CostPoint",
    "CostSeries",
    "BreakdownEntry",
    "DimensionBreakdown",
    "CostQueryResult",
    "CostHistory",
    "PeriodChange",
    "MonthTotal",
    "MonthlyComparison",
    "CurrentPeriodCosts",

    # Analysis
    "MovingAverages",
    "WeekOverWeekChange",
    "Trend",
    "CostStatistics",
    "Anomaly",
    "ForecastPoint",
    "Forecast",

    # Recommendations
    "Recommendation",
    "RecommendationSummary",
    "SummaryBucket",

    # Resources
    "InventoryResource",
    "DiskInfo",
    "VMInfo",
    "ResourceFacts",
    "DailyCostEntry",
    "MonthlyVMCost",
    "VMCostProfile",
    "VMCostSummary",

    # Report
    "StepResult",
    "CostSummary",
    "CostAnalysisReport",
]
