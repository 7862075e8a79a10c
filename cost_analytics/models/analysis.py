"""
Trend, anomaly and forecast models.
"""

import datetime as dt
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .types import AnomalyKind, Severity, TrendDirection, TrendPeriod


class MovingAverages(BaseModel):
    """Simple moving averages; a window is None when the series is too short"""

    model_config = ConfigDict(frozen=True)

    seven_day: Optional[float] = None
    thirty_day: Optional[float] = None


class WeekOverWeekChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_week_total: float
    previous_week_total: float
    change_amount: float
    change_percent: float
    direction: TrendDirection


class Trend(BaseModel):
    """Directional trend for one period"""

    model_config = ConfigDict(frozen=True)

    period: TrendPeriod
    direction: TrendDirection
    change_percent: float
    change_amount: float
    first_cost: float
    last_cost: float
    point_count: int
    moving_averages: MovingAverages = Field(default_factory=MovingAverages)
    week_over_week: Optional[WeekOverWeekChange] = None
    projected_next_period: Optional[float] = None


class CostStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    average: float
    highest: float
    lowest: float
    median: float
    std_deviation: float


class Anomaly(BaseModel):
    """A detected cost outlier"""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: AnomalyKind = AnomalyKind.DAILY
    detected_date: dt.date
    expected_cost: float
    actual_cost: float
    deviation_percent: float
    severity: Severity
    description: str
    service: Optional[str] = None
    resource_id: Optional[str] = None
    resource_type: Optional[str] = None


class ForecastPoint(BaseModel):
    """Forecast for one day (or month)"""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    predicted_cost: float = Field(ge=0)
    confidence_lower: float = Field(ge=0)
    confidence_upper: float = Field(ge=0)
    currency: str = "USD"

    @model_validator(mode="after")
    def check_bounds(self):
        if not self.confidence_lower <= self.predicted_cost <= self.confidence_upper:
            raise ValueError("Forecast bounds must contain the predicted cost")
        return self


class Forecast(BaseModel):
    """Forward-looking cost series with confidence bounds"""

    model_config = ConfigDict(frozen=True)

    start_date: dt.date
    end_date: dt.date
    total_forecasted_cost: float
    currency: str = "USD"
    daily: Tuple[ForecastPoint, ...] = ()
    monthly: Tuple[ForecastPoint, ...] = ()
    method: str
    confidence_level: float = Field(ge=0.0, le=1.0)
    seed: Optional[int] = None
    average_daily_cost: float
    assumptions: List[str] = Field(default_factory=list)
