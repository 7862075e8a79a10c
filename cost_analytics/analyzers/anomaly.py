"""
Anomaly Detector - flags statistically unusual daily costs, single-service
cost concentration and sudden recent spikes.
"""

import datetime as dt
import itertools
from typing import Iterator, List, Optional

import pandas as pd

from ..models import (
    Anomaly,
    AnomalyKind,
    CostHistory,
    CostSeries,
    CurrentPeriodCosts,
    DimensionBreakdown,
    Severity,
)
from ..services.config import AnomalyConfig
from ..utils.logging import get_logger

logger = get_logger(__name__)


class AnomalyDetector:
    """Detects cost anomalies using deviation from the series mean."""

    def __init__(self, config: Optional[AnomalyConfig] = None):
        self.config = config or AnomalyConfig()

    @staticmethod
    def _anomaly_id(kind: AnomalyKind, sequence: Iterator[int], date: dt.date) -> str:
        return f"anomaly-{kind.value}-{next(sequence)}-{date.isoformat()}"

    def calculate_severity(self, deviation_percent: float) -> Severity:
        """Severity from |deviation percent|; each cutoff is exclusive."""
        deviation = abs(deviation_percent)
        thresholds = self.config.severity
        if deviation > thresholds.critical:
            return Severity.CRITICAL
        if deviation > thresholds.high:
            return Severity.HIGH
        if deviation > thresholds.medium:
            return Severity.MEDIUM
        return Severity.LOW

    def detect_anomalies(
        self, series: CostSeries, sequence: Optional[Iterator[int]] = None
    ) -> List[Anomaly]:
        """
        Flag every point whose deviation from the population mean exceeds
        the threshold. Fewer than `min_points` points yields no anomalies.
        """
        if len(series) < self.config.min_points:
            logger.info(
                "Insufficient data for anomaly detection",
                points=len(series),
                required=self.config.min_points,
            )
            return []

        sequence = sequence or itertools.count(1)
        costs = pd.Series(series.costs, dtype=float)
        mean = float(costs.mean())
        std_dev = float(costs.std(ddof=0))
        if mean <= 0:
            logger.debug("Series mean is zero, skipping daily anomaly detection")
            return []

        anomalies = []
        for point in series.points:
            deviation_percent = (point.cost - mean) / mean * 100
            if abs(deviation_percent) <= self.config.threshold_percent:
                continue

            z_score = (point.cost - mean) / std_dev if std_dev > 0 else 0.0
            anomalies.append(
                Anomaly(
                    id=self._anomaly_id(AnomalyKind.DAILY, sequence, point.date),
                    kind=AnomalyKind.DAILY,
                    detected_date=point.date,
                    expected_cost=mean,
                    actual_cost=point.cost,
                    deviation_percent=deviation_percent,
                    severity=self.calculate_severity(deviation_percent),
                    description=(
                        f"Daily cost {'spike' if deviation_percent > 0 else 'drop'} detected: "
                        f"{abs(deviation_percent):.1f}% deviation from average "
                        f"(z-score {z_score:.2f})"
                    ),
                )
            )

        logger.debug("Daily anomalies detected", count=len(anomalies), mean=round(mean, 2))
        return anomalies

    def detect_service_concentration(
        self,
        breakdown: Optional[DimensionBreakdown],
        detected_date: dt.date,
        sequence: Optional[Iterator[int]] = None,
    ) -> List[Anomaly]:
        """Flag any single service holding more than the concentration threshold."""
        if breakdown is None or not breakdown.entries:
            return []

        sequence = sequence or itertools.count(1)
        limit = self.config.concentration_threshold_percent
        anomalies = []
        for entry in breakdown.entries:
            if entry.percentage_of_total <= limit:
                continue
            anomalies.append(
                Anomaly(
                    id=self._anomaly_id(AnomalyKind.SERVICE_CONCENTRATION, sequence, detected_date),
                    kind=AnomalyKind.SERVICE_CONCENTRATION,
                    detected_date=detected_date,
                    expected_cost=breakdown.total * limit / 100,
                    actual_cost=entry.cost,
                    deviation_percent=entry.percentage_of_total,
                    severity=Severity.MEDIUM,
                    description=(
                        f"Service {entry.key} represents {entry.percentage_of_total:.1f}% "
                        f"of total costs - consider investigation"
                    ),
                    service=entry.key,
                )
            )
        return anomalies

    def detect_recent_spikes(
        self,
        series: CostSeries,
        days: Optional[int] = None,
        sequence: Optional[Iterator[int]] = None,
    ) -> List[Anomaly]:
        """Compare the mean of the last `days` points with the `days` before them."""
        days = days or self.config.spike_window_days
        if len(series) < 2 * days:
            logger.debug("Not enough points for spike detection", points=len(series), required=2 * days)
            return []

        costs = series.costs
        recent_avg = sum(costs[-days:]) / days
        previous_avg = sum(costs[-2 * days:-days]) / days
        if previous_avg <= 0:
            return []

        change_percent = (recent_avg - previous_avg) / previous_avg * 100
        if change_percent <= self.config.threshold_percent:
            return []

        sequence = sequence or itertools.count(1)
        detected_date = series.points[-1].date
        return [
            Anomaly(
                id=self._anomaly_id(AnomalyKind.RECENT_SPIKE, sequence, detected_date),
                kind=AnomalyKind.RECENT_SPIKE,
                detected_date=detected_date,
                expected_cost=previous_avg,
                actual_cost=recent_avg,
                deviation_percent=change_percent,
                severity=self.calculate_severity(change_percent),
                description=(
                    f"Recent {days}-day cost spike: {change_percent:.1f}% increase "
                    f"compared to previous period"
                ),
            )
        ]

    def detect_all(
        self, history: CostHistory, current: Optional[CurrentPeriodCosts] = None
    ) -> List[Anomaly]:
        """Daily, concentration and recent-spike anomalies with IDs unique to this run."""
        logger.info("Detecting cost anomalies")
        sequence = itertools.count(1)

        anomalies = self.detect_anomalies(history.daily, sequence)

        if current is not None:
            breakdown = current.service_breakdown
            detected_date = current.current_date
        else:
            breakdown = history.by_service
            detected_date = history.daily.end_date or dt.date.today()
        anomalies.extend(self.detect_service_concentration(breakdown, detected_date, sequence))
        anomalies.extend(self.detect_recent_spikes(history.daily, sequence=sequence))

        logger.info(
            "Cost anomalies detected",
            count=len(anomalies),
            critical=sum(1 for a in anomalies if a.severity == Severity.CRITICAL),
        )
        return anomalies
