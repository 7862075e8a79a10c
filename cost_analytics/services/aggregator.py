"""
Cost data aggregator: turns raw billing rows into canonical cost series and
dimension breakdowns, with throttling, retry and caching around the
billing client.
"""

import asyncio
import calendar
import datetime as dt
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional

import pandas as pd
import tenacity
from tenacity.wait import wait_base
from pydantic import ValidationError

from ..models import (
    BillingQuery,
    BillingRow,
    BreakdownEntry,
    CostHistory,
    CostPoint,
    CostQueryResult,
    CostSeries,
    CurrentPeriodCosts,
    DailyCostEntry,
    DataProvenance,
    DimensionBreakdown,
    Granularity,
    GroupingDimension,
    MonthlyComparison,
    MonthTotal,
    PeriodChange,
    QueryType,
)
from ..utils.logging import get_logger
from .cache import QueryCache
from .clients import BillingQueryClient
from .config import AggregatorConfig
from .exceptions import UpstreamQueryError, is_rate_limit_error
from .throttle import RequestThrottle
from .normalization import categorize_service, extract_resource_group, normalize_usage_date

logger = get_logger(__name__)

# Share of total cost per service in substituted data
SYNTHETIC_SERVICE_DISTRIBUTION = [
    ("Virtual Machines", 35.0),
    ("Azure Kubernetes Service", 20.0),
    ("Azure SQL Database", 15.0),
    ("Storage Accounts", 8.0),
    ("Application Gateway", 7.0),
    ("Azure Cosmos DB", 5.0),
    ("Log Analytics", 4.0),
    ("Azure Functions", 3.0),
    ("Azure Cache for Redis", 2.0),
    ("Azure Monitor", 1.0),
]
SYNTHETIC_BASE_DAILY_COST = 100.0
SYNTHETIC_WEEKLY_SWING = 50.0


def percent_change(current: float, previous: float) -> float:
    """Percentage change from previous to current, 0 when previous is 0"""
    return (current - previous) / previous * 100 if previous > 0 else 0.0


class wait_retry_after(wait_base):
    """Backoff wait that never undercuts the upstream's own retry-after hint"""

    def __init__(self, backoff: wait_base):
        self.backoff = backoff

    def __call__(self, retry_state: tenacity.RetryCallState) -> float:
        wait = self.backoff(retry_state)
        error = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            return max(float(retry_after), wait)
        return wait


def roll_up_monthly(series: CostSeries) -> CostSeries:
    """Sum a daily series per calendar month, dated on the first of the month"""
    if not series.points:
        return CostSeries.from_points(
            [], currency=series.currency, granularity=Granularity.MONTHLY,
            provenance=series.provenance,
        )

    daily = pd.Series(
        series.costs, index=pd.to_datetime([p.date for p in series.points])
    )
    monthly = daily.resample("MS").sum()
    points = [
        CostPoint(date=ts.date(), cost=float(cost), currency=series.currency)
        for ts, cost in monthly.items()
    ]
    return CostSeries.from_points(
        points,
        currency=series.currency,
        granularity=Granularity.MONTHLY,
        provenance=series.provenance,
        start_date=series.start_date,
        end_date=series.end_date,
    )


class CostDataAggregator:
    """Sequential, throttled, cached access to the billing client"""

    def __init__(
        self,
        client: BillingQueryClient,
        scope: str,
        config: Optional[AggregatorConfig] = None,
        cache: Optional[QueryCache] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        throttle: Optional[RequestThrottle] = None,
    ):
        self.client = client
        self.scope = scope
        self.config = config or AggregatorConfig()
        self.cache = cache or QueryCache(ttl_seconds=self.config.cache_ttl_seconds)
        self._sleep = sleep
        self.throttle = throttle or RequestThrottle(self.config.api_delay_seconds, sleep=sleep)
        self.query_count = 0

        logger.debug(
            "Cost data aggregator initialized",
            scope=scope,
            api_delay_seconds=self.config.api_delay_seconds,
            max_retries=self.config.max_retries,
            backoff=self.config.backoff,
        )

    # ------------------------------------------------------------------
    # Upstream access
    # ------------------------------------------------------------------

    def _build_wait(self):
        base = self.config.retry_base_delay_seconds
        if self.config.backoff == "exponential":
            return wait_retry_after(tenacity.wait_exponential(multiplier=base))
        return wait_retry_after(tenacity.wait_incrementing(start=base, increment=base))

    async def _execute_query(self, query_type: QueryType, query: BillingQuery) -> List[BillingRow]:
        """Run one query through the cache, throttle and retry loop"""
        cache_key = QueryCache.make_key(query.start_date, query.end_date, query_type)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        attempts = 0

        async def attempt_query():
            nonlocal attempts
            attempts += 1
            await self.throttle.wait()
            self.query_count += 1
            return await self.client.query(self.scope, query)

        def log_retry(retry_state):
            logger.warning(
                "Rate limit hit, retrying",
                query_type=query_type.value,
                attempt=retry_state.attempt_number,
                max_retries=self.config.max_retries,
                wait_seconds=retry_state.next_action.sleep,
            )

        retrying = tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception(is_rate_limit_error),
            wait=self._build_wait(),
            stop=tenacity.stop_after_attempt(self.config.max_retries),
            sleep=self._sleep,
            before_sleep=log_retry,
            reraise=True,
        )

        logger.info(
            "Querying costs",
            query_type=query_type.value,
            start_date=query.start_date.isoformat(),
            end_date=query.end_date.isoformat(),
        )
        try:
            raw_rows = await retrying(attempt_query)
        except Exception as e:
            logger.error(
                "Cost query failed",
                query_type=query_type.value,
                attempts=attempts,
                rate_limited=is_rate_limit_error(e),
                error=str(e),
            )
            raise UpstreamQueryError(query_type.value, str(e), attempts=attempts) from e

        try:
            rows = [
                row if isinstance(row, BillingRow) else BillingRow(**row)
                for row in (raw_rows or [])
            ]
        except (TypeError, ValidationError) as e:
            logger.error("Malformed cost rows", query_type=query_type.value, error=str(e))
            raise UpstreamQueryError(
                query_type.value, f"malformed rows: {e}", attempts=attempts
            ) from e

        self.cache.set(cache_key, rows)
        return rows

    def _build_query(
        self,
        start_date: dt.date,
        end_date: dt.date,
        granularity: str = "Daily",
        grouping: GroupingDimension = GroupingDimension.NONE,
        filter: Optional[Dict] = None,
    ) -> BillingQuery:
        return BillingQuery(
            start_date=start_date,
            end_date=end_date,
            granularity=granularity,
            grouping_dimension=grouping.upstream_name,
            filter=filter or {},
        )

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def _build_daily_series(
        self, rows: List[BillingRow], start_date: dt.date, end_date: dt.date
    ) -> CostSeries:
        """Sum rows per calendar day and fill every missing day with zero"""
        totals: Dict[dt.date, float] = defaultdict(float)
        currency = None
        skipped = 0
        outside_window = 0

        for row in rows:
            try:
                day = normalize_usage_date(row.date)
            except ValueError as e:
                skipped += 1
                logger.warning("Skipping billing row with unusable date", date=row.date, error=str(e))
                continue
            if day < start_date or day > end_date:
                outside_window += 1
                continue
            totals[day] += row.cost
            currency = currency or row.currency

        currency = currency or self.config.default_currency
        points = []
        for ts in pd.date_range(start_date, end_date, freq="D"):
            day = ts.date()
            cost = totals.get(day, 0.0)
            if cost < 0:
                logger.debug("Clamping negative daily cost", date=day.isoformat(), cost=cost)
                cost = 0.0
            points.append(CostPoint(date=day, cost=cost, currency=currency))

        if skipped or outside_window:
            logger.debug(
                "Daily rows discarded",
                unusable_dates=skipped,
                outside_window=outside_window,
            )

        return CostSeries.from_points(
            points, currency=currency, start_date=start_date, end_date=end_date
        )

    def _build_breakdown(
        self, rows: List[BillingRow], dimension: GroupingDimension
    ) -> DimensionBreakdown:
        """Aggregate rows per group key with percentage of total"""
        costs: Dict[str, float] = defaultdict(float)
        currency = None
        for row in rows:
            if row.cost <= 0:
                continue
            costs[row.group_key or "Unknown"] += row.cost
            currency = currency or row.currency

        total = sum(costs.values())
        entries = []
        for key, cost in sorted(costs.items(), key=lambda item: item[1], reverse=True):
            entries.append(
                BreakdownEntry(
                    key=key,
                    cost=cost,
                    percentage_of_total=min(cost / total * 100, 100.0) if total > 0 else 0.0,
                    category=categorize_service(key) if dimension == GroupingDimension.SERVICE else None,
                    resource_group=extract_resource_group(key) if dimension == GroupingDimension.RESOURCE else None,
                )
            )

        return DimensionBreakdown(
            dimension=dimension,
            entries=tuple(entries),
            total=total,
            currency=currency or self.config.default_currency,
        )

    # ------------------------------------------------------------------
    # Synthetic fallback
    # ------------------------------------------------------------------

    def _synthetic_result(
        self, start_date: dt.date, end_date: dt.date, grouping: GroupingDimension
    ) -> CostQueryResult:
        """Deterministic substitute data, flagged as synthetic"""
        currency = self.config.default_currency
        points = []
        for index, ts in enumerate(pd.date_range(start_date, end_date, freq="D")):
            cost = SYNTHETIC_BASE_DAILY_COST + SYNTHETIC_WEEKLY_SWING * (index % 7) / 6
            points.append(CostPoint(date=ts.date(), cost=cost, currency=currency))

        series = CostSeries.from_points(
            points,
            currency=currency,
            provenance=DataProvenance.SYNTHETIC,
            start_date=start_date,
            end_date=end_date,
        )

        breakdown = None
        if grouping != GroupingDimension.NONE:
            if grouping == GroupingDimension.SERVICE:
                distribution = SYNTHETIC_SERVICE_DISTRIBUTION
            else:
                distribution = [("synthetic", 100.0)]
            entries = tuple(
                BreakdownEntry(
                    key=name,
                    cost=series.total * share / 100,
                    percentage_of_total=share,
                    category=categorize_service(name) if grouping == GroupingDimension.SERVICE else None,
                )
                for name, share in distribution
            )
            breakdown = DimensionBreakdown(
                dimension=grouping,
                entries=entries,
                total=series.total,
                currency=currency,
                provenance=DataProvenance.SYNTHETIC,
            )

        return CostQueryResult(series=series, breakdown=breakdown)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_breakdown(
        self, start_date: dt.date, end_date: dt.date, grouping: GroupingDimension
    ) -> DimensionBreakdown:
        """Cost breakdown for one dimension over the window"""
        grouping = GroupingDimension(grouping)
        if grouping == GroupingDimension.NONE:
            raise ValueError("A breakdown needs a grouping dimension")

        rows = await self._execute_query(
            QueryType.for_dimension(grouping),
            self._build_query(start_date, end_date, granularity="None", grouping=grouping),
        )
        return self._build_breakdown(rows, grouping)

    async def fetch_series(
        self,
        start_date: dt.date,
        end_date: dt.date,
        grouping: GroupingDimension = GroupingDimension.NONE,
        allow_fallback: Optional[bool] = None,
    ) -> CostQueryResult:
        """
        Fetch the contiguous daily cost series for [start_date, end_date].

        With a grouping dimension the matching breakdown is fetched too.
        When the billing client fails and fallback is allowed, a synthetic
        series flagged with DataProvenance.SYNTHETIC is returned instead.

        Raises:
            ValueError: start_date is after end_date.
            UpstreamQueryError: the billing client failed and fallback is off.
        """
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after end_date {end_date}")
        grouping = GroupingDimension(grouping)
        if allow_fallback is None:
            allow_fallback = self.config.use_fallback_data

        try:
            rows = await self._execute_query(
                QueryType.DAILY, self._build_query(start_date, end_date)
            )
            series = self._build_daily_series(rows, start_date, end_date)

            breakdown = None
            if grouping != GroupingDimension.NONE:
                breakdown = await self.fetch_breakdown(start_date, end_date, grouping)
        except UpstreamQueryError as e:
            if not allow_fallback:
                raise
            logger.warning(
                "Falling back to synthetic cost data",
                query_type=e.query_type,
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
                error=str(e),
            )
            return self._synthetic_result(start_date, end_date, grouping)

        logger.info(
            "Cost series fetched",
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
            days=len(series),
            total_cost=round(series.total, 2),
            breakdown_entries=len(breakdown.entries) if breakdown else 0,
        )
        return CostQueryResult(series=series, breakdown=breakdown)

    async def fetch_history(
        self, days: int = 90, today: Optional[dt.date] = None
    ) -> CostHistory:
        """Daily and monthly series plus service and resource-group breakdowns"""
        today = today or dt.date.today()
        start_date = today - dt.timedelta(days=days)
        logger.info("Fetching historical cost data", days=days)

        result = await self.fetch_series(start_date, today, GroupingDimension.SERVICE)
        breakdowns = {GroupingDimension.SERVICE: result.breakdown}

        if result.is_synthetic:
            breakdowns[GroupingDimension.RESOURCE_GROUP] = self._synthetic_result(
                start_date, today, GroupingDimension.RESOURCE_GROUP
            ).breakdown
        else:
            try:
                breakdowns[GroupingDimension.RESOURCE_GROUP] = await self.fetch_breakdown(
                    start_date, today, GroupingDimension.RESOURCE_GROUP
                )
            except UpstreamQueryError as e:
                # The daily series is real; only this breakdown is missing
                logger.warning("Resource group breakdown unavailable", error=str(e))

        history = CostHistory(
            daily=result.series,
            monthly=roll_up_monthly(result.series),
            breakdowns=breakdowns,
        )
        logger.info(
            "Historical cost data fetched",
            total_cost=round(history.daily.total, 2),
            currency=history.daily.currency,
            synthetic=history.is_synthetic,
        )
        return history

    async def fetch_current_period(self, today: Optional[dt.date] = None) -> CurrentPeriodCosts:
        """Month-to-date costs, projected month end and three-month comparison"""
        today = today or dt.date.today()
        month_start = today.replace(day=1)
        days_in_month = calendar.monthrange(today.year, today.month)[1]
        month_end = today.replace(day=days_in_month)

        prev_end = month_start - dt.timedelta(days=1)
        prev_start = prev_end.replace(day=1)
        two_ago_end = prev_start - dt.timedelta(days=1)
        two_ago_start = two_ago_end.replace(day=1)

        logger.info("Fetching current month cost data", month=month_start.strftime("%Y-%m"))
        current = await self.fetch_series(month_start, today, GroupingDimension.SERVICE)
        previous = await self.fetch_series(prev_start, prev_end)
        two_ago = await self.fetch_series(two_ago_start, two_ago_end)

        month_to_date = current.series.total
        days_elapsed = (today - month_start).days + 1
        estimated_month_end = month_to_date / days_elapsed * days_in_month

        previous_total = previous.series.total
        two_ago_total = two_ago.series.total

        comparison = MonthlyComparison(
            two_months_ago=MonthTotal(name=two_ago_start.strftime("%B %Y"), total=two_ago_total),
            last_month=MonthTotal(name=prev_start.strftime("%B %Y"), total=previous_total),
            current_month=MonthTotal(name=month_start.strftime("%B %Y"), total=estimated_month_end),
            current_month_to_date=month_to_date,
            last_two_months_change=PeriodChange(
                amount=previous_total - two_ago_total,
                percent=percent_change(previous_total, two_ago_total),
            ),
            projected_change=PeriodChange(
                amount=estimated_month_end - previous_total,
                percent=percent_change(estimated_month_end, previous_total),
            ),
        )

        # Synthetic comparison months taint the whole period
        daily = current.series
        if not daily.is_synthetic and (previous.is_synthetic or two_ago.is_synthetic):
            daily = daily.model_copy(update={"provenance": DataProvenance.SYNTHETIC})

        period = CurrentPeriodCosts(
            billing_period_start=month_start,
            billing_period_end=month_end,
            current_date=today,
            month_to_date_cost=month_to_date,
            estimated_month_end_cost=estimated_month_end,
            currency=current.series.currency,
            daily=daily,
            top_services=tuple(current.breakdown.top(10)) if current.breakdown else (),
            service_breakdown=current.breakdown,
            comparison_to_previous_month=PeriodChange(
                amount=month_to_date - previous_total,
                percent=percent_change(month_to_date, previous_total),
            ),
            previous_month_total=previous_total,
            monthly_comparison=comparison,
        )
        logger.info(
            "Current month cost data fetched",
            month_to_date=round(month_to_date, 2),
            estimated_month_end=round(estimated_month_end, 2),
            currency=period.currency,
        )
        return period

    async def fetch_vm_daily_costs(
        self, start_date: dt.date, end_date: dt.date
    ) -> Dict[str, List[DailyCostEntry]]:
        """
        Daily cost entries per virtual machine, keyed by lowercased resource ID.

        Never substitutes synthetic data: recommendations are only made
        from real costs.
        """
        query = self._build_query(
            start_date,
            end_date,
            granularity="Daily",
            grouping=GroupingDimension.RESOURCE,
            filter={
                "dimensions": {
                    "name": "MeterCategory",
                    "operator": "In",
                    "values": [self.config.vm_meter_category],
                }
            },
        )
        rows = await self._execute_query(QueryType.VM_DAILY, query)

        per_vm: Dict[str, Dict[dt.date, float]] = defaultdict(lambda: defaultdict(float))
        for row in rows:
            resource_id = (row.group_key or "").lower()
            if "/virtualmachines/" not in resource_id:
                continue
            try:
                day = normalize_usage_date(row.date)
            except ValueError as e:
                logger.warning("Skipping VM cost row with unusable date", date=row.date, error=str(e))
                continue
            per_vm[resource_id][day] += row.cost

        vm_costs = {}
        for resource_id, daily in per_vm.items():
            resource_group = extract_resource_group(resource_id)
            vm_costs[resource_id] = [
                DailyCostEntry(date=day, cost=max(cost, 0.0), resource_group=resource_group)
                for day, cost in sorted(daily.items())
            ]

        logger.info("Parsed VM daily costs", vms=len(vm_costs))
        return vm_costs

    def get_stats(self) -> Dict:
        return {
            "scope": self.scope,
            "upstream_queries": self.query_count,
            "cache": self.cache.get_stats(),
        }
