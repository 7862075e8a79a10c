"""
Summary Composer - folds history, current period and forecast into headline figures.
"""

from typing import List, Optional

from ..models import CostHistory, CostPoint, CostSummary, CurrentPeriodCosts, Forecast
from ..utils.logging import get_logger

logger = get_logger(__name__)


class SummaryComposer:
    """Builds the report's CostSummary."""

    @staticmethod
    def _combined_points(
        history: Optional[CostHistory], current: Optional[CurrentPeriodCosts]
    ) -> List[CostPoint]:
        points = list(history.daily.points) if history else []
        if current is not None:
            # Current-month days already covered by the history window are not counted twice
            last_date = points[-1].date if points else None
            points.extend(p for p in current.daily.points if last_date is None or p.date > last_date)
        return points

    def compose(
        self,
        history: Optional[CostHistory] = None,
        current: Optional[CurrentPeriodCosts] = None,
        forecast: Optional[Forecast] = None,
    ) -> CostSummary:
        points = self._combined_points(history, current)
        costs = [p.cost for p in points]

        currency = "USD"
        for source in (history.daily if history else None, current, forecast):
            if source is not None:
                currency = source.currency
                break

        summary = CostSummary(
            total_historical_cost=history.daily.total if history else 0.0,
            current_month_to_date=current.month_to_date_cost if current else None,
            forecasted_month_end=current.estimated_month_end_cost if current else None,
            forecasted_next_period=forecast.total_forecasted_cost if forecast else None,
            currency=currency,
            avg_daily_spend=sum(costs) / len(costs) if costs else 0.0,
            peak_daily_spend=max(costs) if costs else 0.0,
            lowest_daily_spend=min(costs) if costs else 0.0,
            observed_days=len(costs),
            uses_synthetic_data=bool(
                (history and history.is_synthetic) or (current and current.is_synthetic)
            ),
        )

        logger.debug(
            "Cost summary composed",
            observed_days=summary.observed_days,
            avg_daily_spend=round(summary.avg_daily_spend, 2),
        )
        return summary
