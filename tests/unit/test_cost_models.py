"""
Unit tests for models and data structures.
Tests validation rules and enum parsing of the value objects.
"""

import pytest
from datetime import date
from pydantic import ValidationError

from cost_analytics.models import (
    BillingQuery,
    BillingRow,
    CostPoint,
    CostSeries,
    DataProvenance,
    DiskInfo,
    DiskState,
    ForecastPoint,
    GroupingDimension,
    PowerState,
    QueryType,
    Recommendation,
    RecommendationPriority,
    RecommendationType,
    VMInfo,
)


class TestCostSeries:
    """Test CostSeries invariants."""

    def test_from_points_sets_metadata(self, make_series):
        series = make_series([10.0, 20.0, 30.0])

        assert series.start_date == date(2024, 1, 1)
        assert series.end_date == date(2024, 1, 3)
        assert series.total == 60.0
        assert len(series) == 3
        assert series.costs == [10.0, 20.0, 30.0]
        assert not series.is_synthetic

    def test_dates_must_strictly_increase(self):
        points = [
            CostPoint(date=date(2024, 1, 2), cost=1.0),
            CostPoint(date=date(2024, 1, 1), cost=1.0),
        ]
        with pytest.raises(ValidationError):
            CostSeries.from_points(points)

    def test_duplicate_dates_rejected(self):
        points = [
            CostPoint(date=date(2024, 1, 1), cost=1.0),
            CostPoint(date=date(2024, 1, 1), cost=2.0),
        ]
        with pytest.raises(ValidationError):
            CostSeries.from_points(points)

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError):
            CostPoint(date=date(2024, 1, 1), cost=-1.0)

    def test_series_is_immutable(self, make_series):
        series = make_series([1.0])
        with pytest.raises(ValidationError):
            series.total = 5.0

    def test_synthetic_provenance(self, make_series):
        series = make_series([1.0], provenance=DataProvenance.SYNTHETIC)
        assert series.is_synthetic


class TestBillingModels:
    def test_query_window_validated(self):
        with pytest.raises(ValidationError):
            BillingQuery(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))

    def test_row_cost_coercion(self):
        assert BillingRow(cost=None).cost == 0.0
        assert BillingRow(cost="").cost == 0.0
        assert BillingRow(cost="12.5").cost == 12.5

    def test_grouping_upstream_names(self):
        assert GroupingDimension.NONE.upstream_name is None
        assert GroupingDimension.SERVICE.upstream_name == "ServiceName"
        assert GroupingDimension.RESOURCE_GROUP.upstream_name == "ResourceGroupName"
        assert QueryType.for_dimension(GroupingDimension.RESOURCE) == QueryType.RESOURCE


class TestForecastPoint:
    def test_bounds_must_contain_prediction(self):
        with pytest.raises(ValidationError):
            ForecastPoint(
                date=date(2024, 1, 1),
                predicted_cost=100.0,
                confidence_lower=110.0,
                confidence_upper=120.0,
            )

    def test_valid_point(self):
        point = ForecastPoint(
            date=date(2024, 1, 1),
            predicted_cost=100.0,
            confidence_lower=90.0,
            confidence_upper=110.0,
        )
        assert point.currency == "USD"


class TestRecommendation:
    """Test Recommendation validation."""

    def _recommendation(self, **overrides):
        data = dict(
            id="rec-1",
            type=RecommendationType.DELETE_UNUSED,
            priority=RecommendationPriority.HIGH,
            resource_id="disk-1",
            resource_name="disk-1",
            resource_type="Microsoft.Compute/disks",
            title="Delete disk",
            rationale="Unused",
            current_monthly_cost=15.0,
            projected_monthly_cost=0.0,
            potential_monthly_savings=15.0,
            potential_annual_savings=180.0,
            savings_percent=100.0,
        )
        data.update(overrides)
        return Recommendation(**data)

    def test_valid_recommendation(self):
        rec = self._recommendation()
        assert rec.status.value == "pending"
        assert rec.detected_by == "recommendation-scorer"

    def test_annual_savings_must_match_monthly(self):
        with pytest.raises(ValidationError):
            self._recommendation(potential_annual_savings=179.0)

    def test_negative_savings_rejected(self):
        with pytest.raises(ValidationError):
            self._recommendation(potential_monthly_savings=-1.0, potential_annual_savings=-12.0)

    def test_savings_percent_bounded(self):
        with pytest.raises(ValidationError):
            self._recommendation(savings_percent=120.0)

    def test_priority_rank_roundtrip(self):
        for priority in RecommendationPriority:
            assert RecommendationPriority.from_rank(priority.rank) == priority
        with pytest.raises(ValueError):
            RecommendationPriority.from_rank(9)


class TestResourceStates:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("PowerState/running", PowerState.RUNNING),
            ("PowerState/deallocated", PowerState.DEALLOCATED),
            ("Stopped", PowerState.STOPPED),
            (None, PowerState.UNKNOWN),
            ("PowerState/hibernated", PowerState.UNKNOWN),
        ],
    )
    def test_power_state_parse(self, raw, expected):
        assert PowerState.parse(raw) == expected

    def test_stopped_states(self):
        assert PowerState.STOPPED.is_stopped
        assert PowerState.DEALLOCATED.is_stopped
        assert not PowerState.RUNNING.is_stopped
        assert not PowerState.UNKNOWN.is_stopped

    def test_vm_info_parses_power_code(self):
        vm = VMInfo(id="vm-1", name="vm-1", power_state="PowerState/stopped")
        assert vm.power_state == PowerState.STOPPED

    def test_disk_state_parse(self):
        assert DiskInfo(id="d", name="d", state="Unattached").state == DiskState.UNATTACHED
        assert DiskInfo(id="d", name="d", state="Reserved").state == DiskState.ATTACHED
        assert DiskInfo(id="d", name="d", state=None).state == DiskState.ATTACHED
