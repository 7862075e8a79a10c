"""
Cost Analysis Pipeline - runs every analysis step over one billing scope
and composes the report. A failed step never discards completed ones.
"""

import asyncio
import datetime as dt
import uuid
from typing import Awaitable, Callable, Dict, Optional

from ..models import (
    CostAnalysisReport,
    ResourceFacts,
    StepResult,
    StepStatus,
)
from ..services.aggregator import CostDataAggregator
from ..services.cache import QueryCache
from ..services.clients import BillingQueryClient, ResourceInventoryClient
from ..services.config import EngineConfig
from ..services.inventory import ResourceInventoryService
from ..services.throttle import RequestThrottle
from ..utils.logging import get_logger
from .anomaly import AnomalyDetector
from .forecast import ForecastGenerator
from .recommendations import RecommendationScorer
from .summary import SummaryComposer
from .trend import TrendAnalyzer

logger = get_logger(__name__)

STEPS = ("history", "current", "trends", "anomalies", "forecast", "recommendations", "summary")


class CostAnalysisPipeline:
    """Orchestrates aggregation, analysis and scoring for one scope."""

    def __init__(
        self,
        config: EngineConfig,
        billing_client: BillingQueryClient,
        inventory_client: Optional[ResourceInventoryClient] = None,
        cache: Optional[QueryCache] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.scope = config.scope.scope or ""

        # Billing and inventory calls share one upstream quota
        self.throttle = RequestThrottle(config.aggregator.api_delay_seconds, sleep=sleep)
        self.aggregator = CostDataAggregator(
            billing_client, self.scope, config.aggregator, cache=cache, sleep=sleep,
            throttle=self.throttle,
        )
        self.inventory = (
            ResourceInventoryService(
                inventory_client, config.scorer, config.aggregator, throttle=self.throttle
            )
            if inventory_client is not None
            else None
        )
        self.trend_analyzer = TrendAnalyzer(config.trend)
        self.anomaly_detector = AnomalyDetector(config.anomaly)
        self.forecast_generator = ForecastGenerator(config.forecast)
        self.scorer = RecommendationScorer(config.scorer)
        self.summary_composer = SummaryComposer()

        logger.info(
            "Cost analysis pipeline initialized",
            scope=self.scope,
            historical_days=config.historical_days,
            inventory_enabled=self.inventory is not None,
        )

    @staticmethod
    def _record(
        steps: Dict[str, StepResult],
        name: str,
        status: StepStatus,
        message: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        steps[name] = StepResult(
            name=name,
            status=status,
            message=message or (str(error) if error else None),
            error_type=type(error).__name__ if error else None,
        )
        if status == StepStatus.FAILED:
            logger.error("Analysis step failed", step=name, error=str(error))
        else:
            logger.info("Analysis step finished", step=name, status=status.value)

    @staticmethod
    def _data_status(synthetic: bool) -> StepStatus:
        return StepStatus.PARTIAL if synthetic else StepStatus.SUCCEEDED

    async def _score_resources(self, today: dt.date, steps: Dict[str, StepResult]):
        """Collect inventory facts and VM costs, then score them"""
        start_date = today - dt.timedelta(days=self.config.historical_days)
        period_days = (today - start_date).days + 1
        errors = []

        facts = ResourceFacts()
        if self.inventory is not None:
            try:
                facts = await self.inventory.collect_facts()
            except Exception as e:
                errors.append(e)

        vm_costs = {}
        try:
            vm_costs = await self.aggregator.fetch_vm_daily_costs(start_date, today)
        except Exception as e:
            errors.append(e)

        attempted = 2 if self.inventory is not None else 1
        if len(errors) == attempted:
            self._record(steps, "recommendations", StepStatus.FAILED, error=errors[0])
            return [], []

        recommendations, profiles = self.scorer.score_resources(facts, vm_costs, period_days)
        if errors:
            self._record(steps, "recommendations", StepStatus.PARTIAL, error=errors[0])
        else:
            self._record(steps, "recommendations", StepStatus.SUCCEEDED)
        return recommendations, profiles

    async def run(self, today: Optional[dt.date] = None) -> CostAnalysisReport:
        """
        Run every step in order, awaiting upstream calls one at a time.

        Each step records a StepResult: succeeded, partial (built on
        substituted data or with some inputs missing), failed, or skipped
        when the data it needs is unavailable.
        """
        today = today or dt.date.today()
        steps: Dict[str, StepResult] = {}
        report_id = f"cost-analysis-{today.isoformat()}-{uuid.uuid4().hex[:8]}"
        logger.info("Starting cost analysis", report_id=report_id, scope=self.scope)

        history = None
        try:
            history = await self.aggregator.fetch_history(self.config.historical_days, today=today)
            self._record(steps, "history", self._data_status(history.is_synthetic))
        except Exception as e:
            self._record(steps, "history", StepStatus.FAILED, error=e)

        current = None
        try:
            current = await self.aggregator.fetch_current_period(today=today)
            self._record(steps, "current", self._data_status(current.is_synthetic))
        except Exception as e:
            self._record(steps, "current", StepStatus.FAILED, error=e)

        trends, insights = [], []
        if history is None:
            self._record(steps, "trends", StepStatus.SKIPPED, "No historical cost data")
        else:
            try:
                trends = self.trend_analyzer.analyze_trends(history)
                insights = self.trend_analyzer.generate_insights(trends, current)
                self._record(steps, "trends", self._data_status(history.is_synthetic))
            except Exception as e:
                self._record(steps, "trends", StepStatus.FAILED, error=e)

        anomalies = []
        if history is None:
            self._record(steps, "anomalies", StepStatus.SKIPPED, "No historical cost data")
        else:
            try:
                anomalies = self.anomaly_detector.detect_all(history, current)
                self._record(steps, "anomalies", self._data_status(history.is_synthetic))
            except Exception as e:
                self._record(steps, "anomalies", StepStatus.FAILED, error=e)

        forecast = None
        if history is None:
            self._record(steps, "forecast", StepStatus.SKIPPED, "No historical cost data")
        else:
            try:
                forecast = self.forecast_generator.forecast(
                    self.config.forecast.horizon_days,
                    history.daily,
                    start_date=today + dt.timedelta(days=1),
                )
                self._record(steps, "forecast", self._data_status(history.daily.is_synthetic))
            except Exception as e:
                self._record(steps, "forecast", StepStatus.FAILED, error=e)

        recommendations, profiles = await self._score_resources(today, steps)
        currency = history.daily.currency if history else self.config.aggregator.default_currency

        summary = self.summary_composer.compose(history, current, forecast)
        self._record(steps, "summary", self._data_status(summary.uses_synthetic_data))

        report = CostAnalysisReport(
            id=report_id,
            scope=self.scope,
            history=history,
            current=current,
            trends=trends,
            anomalies=anomalies,
            forecast=forecast,
            recommendations=recommendations,
            recommendation_summary=self.scorer.summarize(recommendations, currency),
            vm_cost_summary=self.scorer.summarize_vms(profiles),
            summary=summary,
            insights=insights,
            steps=steps,
        )

        logger.info(
            "Cost analysis completed",
            report_id=report.id,
            succeeded=len(report.succeeded_steps),
            failed=report.failed_steps,
            anomalies=len(anomalies),
            recommendations=len(recommendations),
            upstream_queries=self.aggregator.query_count,
        )
        return report
