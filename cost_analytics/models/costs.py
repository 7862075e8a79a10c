"""
Cost series and breakdown models produced by the aggregator.
"""

import datetime as dt
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .types import DataProvenance, Granularity, GroupingDimension, ServiceCategory


class CostPoint(BaseModel):
    """Cost observed for one calendar day (or month)"""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    cost: float = Field(ge=0, description="Cost must be non-negative")
    currency: str = "USD"


class CostSeries(BaseModel):
    """Ordered, immutable cost series"""

    model_config = ConfigDict(frozen=True)

    points: Tuple[CostPoint, ...] = ()
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    total: float = 0.0
    currency: str = "USD"
    granularity: Granularity = Granularity.DAILY
    provenance: DataProvenance = DataProvenance.UPSTREAM

    @model_validator(mode="after")
    def check_ordering(self):
        for previous, current in zip(self.points, self.points[1:]):
            if current.date <= previous.date:
                raise ValueError(
                    f"Series dates must be strictly increasing: {previous.date} >= {current.date}"
                )
        return self

    @classmethod
    def from_points(
        cls,
        points: List[CostPoint],
        currency: str = "USD",
        granularity: Granularity = Granularity.DAILY,
        provenance: DataProvenance = DataProvenance.UPSTREAM,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
    ) -> "CostSeries":
        points = tuple(points)
        return cls(
            points=points,
            start_date=start_date or (points[0].date if points else None),
            end_date=end_date or (points[-1].date if points else None),
            total=sum(p.cost for p in points),
            currency=currency,
            granularity=granularity,
            provenance=provenance,
        )

    @property
    def costs(self) -> List[float]:
        return [p.cost for p in self.points]

    @property
    def is_synthetic(self) -> bool:
        return self.provenance == DataProvenance.SYNTHETIC

    def __len__(self) -> int:
        return len(self.points)


class BreakdownEntry(BaseModel):
    """Cost attributed to one key of a dimension"""

    model_config = ConfigDict(frozen=True)

    key: str
    cost: float = Field(ge=0)
    percentage_of_total: float = Field(ge=0, le=100)
    category: Optional[ServiceCategory] = None
    resource_group: Optional[str] = None


class DimensionBreakdown(BaseModel):
    """Cost total partitioned by service, resource or resource group"""

    model_config = ConfigDict(frozen=True)

    dimension: GroupingDimension
    entries: Tuple[BreakdownEntry, ...] = ()
    total: float = 0.0
    currency: str = "USD"
    provenance: DataProvenance = DataProvenance.UPSTREAM

    def top(self, count: int = 10) -> List[BreakdownEntry]:
        return list(self.entries[:count])


class CostQueryResult(BaseModel):
    """Daily series plus the optional breakdown for the requested grouping"""

    model_config = ConfigDict(frozen=True)

    series: CostSeries
    breakdown: Optional[DimensionBreakdown] = None

    @property
    def is_synthetic(self) -> bool:
        return self.series.is_synthetic or (
            self.breakdown is not None
            and self.breakdown.provenance == DataProvenance.SYNTHETIC
        )


class CostHistory(BaseModel):
    """Historical window: daily and monthly series plus breakdowns"""

    model_config = ConfigDict(frozen=True)

    daily: CostSeries
    monthly: CostSeries
    breakdowns: Dict[GroupingDimension, DimensionBreakdown] = Field(default_factory=dict)

    @property
    def is_synthetic(self) -> bool:
        return self.daily.is_synthetic or any(
            b.provenance == DataProvenance.SYNTHETIC for b in self.breakdowns.values()
        )

    @property
    def by_service(self) -> Optional[DimensionBreakdown]:
        return self.breakdowns.get(GroupingDimension.SERVICE)


class PeriodChange(BaseModel):
    """Change between two totals"""

    model_config = ConfigDict(frozen=True)

    amount: float
    percent: float


class MonthTotal(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    total: float


class MonthlyComparison(BaseModel):
    """Three-month comparison: two complete months and the projected current one"""

    model_config = ConfigDict(frozen=True)

    two_months_ago: MonthTotal
    last_month: MonthTotal
    current_month: MonthTotal
    current_month_to_date: float
    last_two_months_change: PeriodChange
    projected_change: PeriodChange


class CurrentPeriodCosts(BaseModel):
    """Month-to-date costs with comparisons against previous months"""

    model_config = ConfigDict(frozen=True)

    billing_period_start: dt.date
    billing_period_end: dt.date
    current_date: dt.date
    month_to_date_cost: float
    estimated_month_end_cost: float
    currency: str = "USD"
    daily: CostSeries
    top_services: Tuple[BreakdownEntry, ...] = ()
    service_breakdown: Optional[DimensionBreakdown] = None
    comparison_to_previous_month: PeriodChange
    previous_month_total: float
    monthly_comparison: MonthlyComparison

    @property
    def is_synthetic(self) -> bool:
        return self.daily.is_synthetic or (
            self.service_breakdown is not None
            and self.service_breakdown.provenance == DataProvenance.SYNTHETIC
        )
