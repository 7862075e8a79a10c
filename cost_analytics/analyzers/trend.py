"""
Trend Analyzer - directional trends, moving averages, week-over-week
deltas and a short linear projection over a cost series.
"""

from typing import List, Optional

import pandas as pd

from ..models import (
    CostHistory,
    CostPoint,
    CostSeries,
    CostStatistics,
    CurrentPeriodCosts,
    Granularity,
    MovingAverages,
    Trend,
    TrendDirection,
    TrendPeriod,
    WeekOverWeekChange,
)
from ..services.config import TrendConfig
from ..utils.logging import get_logger

logger = get_logger(__name__)

DAYS_PER_MONTH = 30


class TrendAnalyzer:
    """Computes trends from already-fetched cost series."""

    def __init__(self, config: Optional[TrendConfig] = None):
        self.config = config or TrendConfig()

    def classify(self, change_percent: float) -> TrendDirection:
        """Direction is stable inside the deadband, otherwise the sign of the change."""
        if abs(change_percent) < self.config.stability_threshold_percent:
            return TrendDirection.STABLE
        return TrendDirection.INCREASING if change_percent > 0 else TrendDirection.DECREASING

    @staticmethod
    def moving_average(costs: List[float], window: int) -> Optional[float]:
        """Mean of the last `window` costs, or None when there are fewer."""
        if window <= 0 or len(costs) < window:
            return None
        return sum(costs[-window:]) / window

    def week_over_week(self, costs: List[float]) -> Optional[WeekOverWeekChange]:
        """Compare the last week's total with the week before it."""
        week = self.config.week_length_days
        if len(costs) < 2 * week:
            return None

        current_total = sum(costs[-week:])
        previous_total = sum(costs[-2 * week:-week])
        change_amount = current_total - previous_total
        change_percent = change_amount / previous_total * 100 if previous_total > 0 else 0.0

        return WeekOverWeekChange(
            current_week_total=current_total,
            previous_week_total=previous_total,
            change_amount=change_amount,
            change_percent=change_percent,
            direction=self.classify(change_percent),
        )

    def project_next(self, costs: List[float]) -> Optional[float]:
        """
        Ordinary least-squares fit of cost against index over the most
        recent window, evaluated one step past the end and clamped at zero.
        """
        window = costs[-self.config.projection_window:]
        n = len(window)
        if n < self.config.min_projection_points:
            return None

        x = pd.Series(range(n), dtype=float)
        y = pd.Series(window, dtype=float)
        x_mean = x.mean()
        slope = ((x - x_mean) * (y - y.mean())).sum() / ((x - x_mean) ** 2).sum()
        intercept = y.mean() - slope * x_mean

        return max(float(intercept + slope * n), 0.0)

    def analyze_trend(self, series: CostSeries, period: TrendPeriod) -> Optional[Trend]:
        """Trend for one series, or None when it has fewer than two points."""
        costs = series.costs
        if len(costs) < 2:
            logger.debug("Not enough points for a trend", period=period.value, points=len(costs))
            return None

        first_cost = costs[0]
        last_cost = costs[-1]
        change_amount = last_cost - first_cost
        change_percent = change_amount / first_cost * 100 if first_cost > 0 else 0.0

        trend = Trend(
            period=period,
            direction=self.classify(change_percent),
            change_percent=change_percent,
            change_amount=change_amount,
            first_cost=first_cost,
            last_cost=last_cost,
            point_count=len(costs),
            moving_averages=MovingAverages(
                seven_day=self.moving_average(costs, 7),
                thirty_day=self.moving_average(costs, 30),
            ),
            week_over_week=self.week_over_week(costs) if period == TrendPeriod.DAILY else None,
            projected_next_period=self.project_next(costs),
        )

        logger.debug(
            "Trend analyzed",
            period=period.value,
            direction=trend.direction.value,
            change_percent=round(change_percent, 2),
        )
        return trend

    def monthly_run_rate(self, daily: CostSeries) -> CostSeries:
        """
        Complete months of a daily series, each as its average daily cost
        scaled to a 30-day month, so month length does not read as a trend.
        """
        points = []
        if daily.points:
            costs = pd.Series(daily.costs, index=pd.to_datetime([p.date for p in daily.points]))
            months = costs.resample("MS").agg(["mean", "count"])
            points = [
                CostPoint(date=ts.date(), cost=float(row["mean"]) * DAYS_PER_MONTH, currency=daily.currency)
                for ts, row in months.iterrows()
                if row["count"] >= self.config.complete_month_min_days
            ]
        return CostSeries.from_points(
            points, currency=daily.currency, granularity=Granularity.MONTHLY,
            provenance=daily.provenance,
        )

    def analyze_trends(self, history: CostHistory) -> List[Trend]:
        """
        Daily trend over the window and monthly trend over its complete
        months; periods without enough data are omitted.
        """
        logger.info("Analyzing cost trends")

        trends = []
        for series, period in (
            (history.daily, TrendPeriod.DAILY),
            (self.monthly_run_rate(history.daily), TrendPeriod.MONTHLY),
        ):
            trend = self.analyze_trend(series, period)
            if trend:
                trends.append(trend)

        logger.info("Cost trends identified", count=len(trends))
        return trends

    def calculate_statistics(self, series: CostSeries) -> Optional[CostStatistics]:
        """Summary statistics; the median is the upper median, the deviation is population."""
        if not series.points:
            return None

        costs = pd.Series(series.costs, dtype=float)
        ordered = sorted(series.costs)
        return CostStatistics(
            average=float(costs.mean()),
            highest=float(costs.max()),
            lowest=float(costs.min()),
            median=ordered[len(ordered) // 2],
            std_deviation=float(costs.std(ddof=0)),
        )

    def generate_insights(
        self, trends: List[Trend], current: Optional[CurrentPeriodCosts] = None
    ) -> List[str]:
        """Human-readable statements about trends and the monthly comparison."""
        insights = []

        for trend in trends:
            label = trend.period.value.capitalize()
            if trend.direction == TrendDirection.STABLE:
                insights.append(
                    f"{label} costs are stable ({trend.change_percent:+.1f}% over {trend.point_count} periods)"
                )
            else:
                insights.append(
                    f"{label} costs are {trend.direction.value} by {abs(trend.change_percent):.1f}% "
                    f"({trend.change_amount:+.2f} over {trend.point_count} periods)"
                )

            wow = trend.week_over_week
            if wow and wow.direction != TrendDirection.STABLE:
                insights.append(
                    f"Spend this week is {wow.direction.value} {abs(wow.change_percent):.1f}% "
                    f"versus the previous week ({wow.current_week_total:.2f} vs {wow.previous_week_total:.2f})"
                )

            if trend.period == TrendPeriod.DAILY and trend.projected_next_period is not None:
                insights.append(
                    f"Linear projection for the next day is {trend.projected_next_period:.2f}"
                )

        if current is not None:
            comparison = current.monthly_comparison
            insights.append(
                f"{comparison.last_month.name} cost {comparison.last_month.total:.2f} "
                f"({comparison.last_two_months_change.percent:+.1f}% vs {comparison.two_months_ago.name})"
            )
            insights.append(
                f"{comparison.current_month.name} is projected at {comparison.current_month.total:.2f} "
                f"({comparison.projected_change.percent:+.1f}% vs {comparison.last_month.name})"
            )

        return insights
