"""
Top-level analysis report models.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from .analysis import Anomaly, Forecast, Trend
from .costs import CostHistory, CurrentPeriodCosts
from .recommendations import Recommendation, RecommendationSummary
from .resources import VMCostSummary
from .types import StepStatus


class StepResult(BaseModel):
    """Outcome of one pipeline step"""

    name: str
    status: StepStatus
    message: Optional[str] = None
    error_type: Optional[str] = None


class CostSummary(BaseModel):
    """Headline figures folded from history, current period and forecast"""

    total_historical_cost: float = 0.0
    current_month_to_date: Optional[float] = None
    forecasted_month_end: Optional[float] = None
    forecasted_next_period: Optional[float] = None
    currency: str = "USD"
    avg_daily_spend: float = 0.0
    peak_daily_spend: float = 0.0
    lowest_daily_spend: float = 0.0
    observed_days: int = 0
    uses_synthetic_data: bool = False


class CostAnalysisReport(BaseModel):
    """Complete analysis report handed to the reporting layer"""

    id: str
    scope: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    history: Optional[CostHistory] = None
    current: Optional[CurrentPeriodCosts] = None
    trends: List[Trend] = Field(default_factory=list)
    anomalies: List[Anomaly] = Field(default_factory=list)
    forecast: Optional[Forecast] = None
    recommendations: List[Recommendation] = Field(default_factory=list)
    recommendation_summary: Optional[RecommendationSummary] = None
    vm_cost_summary: Optional[VMCostSummary] = None
    summary: CostSummary = Field(default_factory=CostSummary)
    insights: List[str] = Field(default_factory=list)

    steps: Dict[str, StepResult] = Field(default_factory=dict)

    @property
    def succeeded_steps(self) -> List[str]:
        return [n for n, s in self.steps.items() if s.status == StepStatus.SUCCEEDED]

    @property
    def failed_steps(self) -> List[str]:
        return [n for n, s in self.steps.items() if s.status == StepStatus.FAILED]
