"""
Forecast Generator - naive persistence forecast with bounded, seeded variance.
"""

import datetime as dt
import random
from typing import List, Optional

import pandas as pd

from ..models import CostSeries, Forecast, ForecastPoint
from ..services.config import ForecastConfig
from ..services.exceptions import InsufficientHistoryError
from ..utils.logging import get_logger

logger = get_logger(__name__)

FORECAST_METHOD = "historical-average-with-bounded-variance"


class ForecastGenerator:
    """
    Projects the historical average daily cost forward.

    Each predicted day is the average scaled by a uniform draw within
    +/- variance_percent from a generator seeded per call, so the same
    seed and history always give the same forecast.
    """

    def __init__(self, config: Optional[ForecastConfig] = None):
        self.config = config or ForecastConfig()

    def _monthly_points(self, daily: List[ForecastPoint], currency: str) -> List[ForecastPoint]:
        frame = pd.DataFrame(
            {
                "predicted": [p.predicted_cost for p in daily],
                "lower": [p.confidence_lower for p in daily],
                "upper": [p.confidence_upper for p in daily],
            },
            index=pd.to_datetime([p.date for p in daily]),
        )
        monthly = frame.resample("MS").sum()
        return [
            ForecastPoint(
                date=month.date(),
                predicted_cost=float(row["predicted"]),
                confidence_lower=float(row["lower"]),
                confidence_upper=float(row["upper"]),
                currency=currency,
            )
            for month, row in monthly.iterrows()
        ]

    def forecast(
        self,
        horizon_days: Optional[int],
        history: CostSeries,
        start_date: Optional[dt.date] = None,
        seed: Optional[int] = None,
    ) -> Forecast:
        """
        Forecast `horizon_days` days starting the day after the history ends.

        Raises:
            InsufficientHistoryError: the history has no points.
        """
        if horizon_days is None:
            horizon_days = self.config.horizon_days
        if horizon_days < 1:
            raise ValueError("horizon_days must be at least 1")
        if not history.points:
            raise InsufficientHistoryError("Cannot forecast without historical cost data")

        seed = self.config.seed if seed is None else seed
        rng = random.Random(seed)
        start_date = start_date or (history.points[-1].date + dt.timedelta(days=1))

        avg_daily_cost = history.total / len(history)
        variance = self.config.variance_percent / 100
        band = self.config.confidence_band_percent / 100

        logger.info(
            "Generating cost forecast",
            horizon_days=horizon_days,
            average_daily_cost=round(avg_daily_cost, 2),
            seed=seed,
        )

        daily = []
        for offset in range(horizon_days):
            predicted = avg_daily_cost * (1 + rng.uniform(-variance, variance))
            daily.append(
                ForecastPoint(
                    date=start_date + dt.timedelta(days=offset),
                    predicted_cost=predicted,
                    confidence_lower=predicted * (1 - band),
                    confidence_upper=predicted * (1 + band),
                    currency=history.currency,
                )
            )

        forecast = Forecast(
            start_date=start_date,
            end_date=daily[-1].date,
            total_forecasted_cost=sum(p.predicted_cost for p in daily),
            currency=history.currency,
            daily=tuple(daily),
            monthly=tuple(self._monthly_points(daily, history.currency)),
            method=FORECAST_METHOD,
            confidence_level=1 - band,
            seed=seed,
            average_daily_cost=avg_daily_cost,
            assumptions=[
                f"Based on the {len(history)}-day historical average",
                f"Daily variance bounded to +/-{self.config.variance_percent:g}%",
                "Assumes similar usage patterns",
                "Does not account for planned changes or seasonality",
            ],
        )

        logger.info(
            "Cost forecast generated",
            total_forecasted_cost=round(forecast.total_forecasted_cost, 2),
            currency=forecast.currency,
        )
        return forecast
