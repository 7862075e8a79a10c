"""
Unit tests for the Recommendation Scorer.
"""

import pytest

from cost_analytics.analyzers import RecommendationScorer, suggest_smaller_size
from cost_analytics.models import (
    DiskInfo,
    PowerState,
    RecommendationPriority,
    RecommendationType,
    ResourceFacts,
    TrendDirection,
    VMCostProfile,
    VMInfo,
)
from cost_analytics.services.config import ScorerConfig
from cost_analytics.services.inventory import estimate_disk_cost

VM_ID = "/subscriptions/sub-123/resourceGroups/rg-app/providers/Microsoft.Compute/virtualMachines/vm-app"


@pytest.fixture
def scorer():
    return RecommendationScorer()


def make_profile(utilization, projected, trend=TrendDirection.STABLE, vm_size="Standard_B2s", **kwargs):
    data = dict(
        vm_name="vm-app",
        resource_id=VM_ID,
        resource_group="rg-app",
        vm_size=vm_size,
        utilization_percentage=utilization,
        projected_monthly_cost=projected,
        average_daily_cost=projected / 30 / (utilization / 100) if utilization else 0.0,
        days_active=int(utilization * 0.9),
        days_in_period=90,
        cost_trend=trend,
    )
    data.update(kwargs)
    return VMCostProfile(**data)


def assert_savings_invariants(recommendations):
    for rec in recommendations:
        assert rec.potential_monthly_savings >= 0
        assert rec.potential_annual_savings == rec.potential_monthly_savings * 12
        assert 0 <= rec.savings_percent <= 100
        assert rec.projected_monthly_cost >= 0


class TestVMRules:
    def test_high_utilization_reserved_only(self, scorer):
        recs = scorer.score_vm(make_profile(75.0, 200.0))

        assert len(recs) == 1
        rec = recs[0]
        assert rec.type == RecommendationType.RESERVED_INSTANCE
        assert rec.potential_monthly_savings == pytest.approx(80.0)
        assert rec.potential_annual_savings == rec.potential_monthly_savings * 12
        assert rec.priority == RecommendationPriority.HIGH
        assert rec.savings_percent == pytest.approx(40.0)
        assert rec.projected_monthly_cost == pytest.approx(120.0)
        assert rec.confidence.value == "medium"

    def test_reserved_high_confidence(self, scorer):
        rec = scorer.score_vm(make_profile(95.0, 200.0))[0]
        assert rec.confidence.value == "high"

    def test_reserved_skipped_when_decreasing(self, scorer):
        assert scorer.score_vm(make_profile(80.0, 200.0, trend=TrendDirection.DECREASING)) == []

    def test_savings_plan(self, scorer):
        recs = scorer.score_vm(make_profile(60.0, 100.0))

        assert [r.type for r in recs] == [RecommendationType.SAVINGS_PLAN]
        assert recs[0].potential_monthly_savings == pytest.approx(25.0)
        assert recs[0].priority == RecommendationPriority.MEDIUM

    def test_savings_plan_needs_minimum_cost(self, scorer):
        assert scorer.score_vm(make_profile(60.0, 50.0)) == []

    def test_auto_shutdown_sized_on_idle_time(self, scorer):
        profile = make_profile(40.0, 120.0, average_daily_cost=10.0)

        recs = scorer.score_vm(profile)

        assert [r.type for r in recs] == [RecommendationType.AUTO_SHUTDOWN]
        # 10/day * 30 days * 60% idle * 50%
        assert recs[0].potential_monthly_savings == pytest.approx(90.0)
        assert_savings_invariants(recs)

    def test_spot_for_general_purpose_sizes(self, scorer):
        recs = scorer.score_vm(make_profile(30.0, 100.0, vm_size="Standard_D2s_v3"))

        types = [r.type for r in recs]
        assert RecommendationType.SPOT in types
        assert RecommendationType.AUTO_SHUTDOWN in types
        spot = next(r for r in recs if r.type == RecommendationType.SPOT)
        assert spot.potential_monthly_savings == pytest.approx(60.0)
        assert spot.priority == RecommendationPriority.LOW

    def test_delete_candidate(self, scorer):
        profile = make_profile(4.0, 12.0, days_active=3)

        recs = scorer.score_vm(profile)

        assert [r.type for r in recs] == [RecommendationType.DELETE]
        assert recs[0].potential_monthly_savings == pytest.approx(12.0)
        assert recs[0].savings_percent == pytest.approx(100.0)
        assert recs[0].priority == RecommendationPriority.HIGH

    def test_rightsize_large_sizes(self, scorer):
        recs = scorer.score_vm(make_profile(55.0, 40.0, vm_size="Standard_E8s_v3"))

        rightsize = next(r for r in recs if r.type == RecommendationType.RIGHTSIZE)
        assert rightsize.potential_monthly_savings == pytest.approx(12.0)
        assert rightsize.additional_info["suggested_size"] == "Standard_E4s_v3"
        assert "Standard_E4s_v3" in rightsize.title

    def test_co_firing_sorted_by_priority(self, scorer):
        profile = make_profile(5.0, 20.0, vm_size="Standard_D16s_v3", days_active=4)

        recs = scorer.score_vm(profile)

        types = [r.type for r in recs]
        assert types[0] == RecommendationType.DELETE
        assert set(types) == {
            RecommendationType.DELETE,
            RecommendationType.SPOT,
            RecommendationType.RIGHTSIZE,
        }
        ranks = [r.priority.rank for r in recs]
        assert ranks == sorted(ranks)
        assert_savings_invariants(recs)

    @pytest.mark.parametrize(
        "size, suggested",
        [
            ("Standard_D8s_v3", "Standard_D4s_v3"),
            ("Standard_D32s_v3", "Standard_D16s_v3"),
            ("Standard_F16s_v2", "Standard_F8s_v2"),
        ],
    )
    def test_rightsize_by_vcpu_count(self, scorer, size, suggested):
        recs = scorer.score_vm(make_profile(55.0, 100.0, vm_size=size))

        rightsize = next(r for r in recs if r.type == RecommendationType.RIGHTSIZE)
        assert rightsize.additional_info["suggested_size"] == suggested
        assert rightsize.potential_monthly_savings == pytest.approx(30.0)

    @pytest.mark.parametrize("size", ["Standard_D4s_v3", "Standard_B2s", "Standard_DS3_v2", "Basic_A8"])
    def test_small_sizes_not_rightsized(self, scorer, size):
        recs = scorer.score_vm(make_profile(55.0, 100.0, vm_size=size))
        assert RecommendationType.RIGHTSIZE not in [r.type for r in recs]

    def test_boundary_seventy_is_reserved(self, scorer):
        types = [r.type for r in scorer.score_vm(make_profile(70.0, 200.0))]
        assert types == [RecommendationType.RESERVED_INSTANCE]


class TestSuggestSmallerSize:
    @pytest.mark.parametrize(
        "size, expected",
        [
            ("Standard_D8s_v3", "Standard_D4s_v3"),
            ("Standard_M64s", "Standard_M32s"),
            ("Standard_L16s_v2", "Standard_L8s_v2"),
        ],
    )
    def test_downsize(self, size, expected):
        assert suggest_smaller_size(size) == expected


class TestDisks:
    def test_unattached_disk(self, scorer):
        pricing = ScorerConfig()
        cost = estimate_disk_cost(100, "Standard_LRS", pricing)
        disk = DiskInfo(
            id="disk-1", name="disk-1", size_gb=100, state="Unattached",
            sku="Standard_LRS", monthly_estimated_cost=cost,
        )

        rec = scorer.score_disk(disk)

        assert cost == pytest.approx(5.0)
        assert rec.type == RecommendationType.DELETE_UNUSED
        assert rec.potential_monthly_savings == cost
        assert rec.potential_annual_savings == cost * 12
        assert rec.savings_percent == 100.0
        assert rec.priority == RecommendationPriority.LOW

    def test_attached_disk_ignored(self, scorer):
        disk = DiskInfo(id="d", name="d", state="Attached", monthly_estimated_cost=80.0)
        assert scorer.score_disk(disk) is None

    @pytest.mark.parametrize(
        "cost, expected",
        [
            (50.01, RecommendationPriority.HIGH),
            (50.0, RecommendationPriority.MEDIUM),
            (20.01, RecommendationPriority.MEDIUM),
            (20.0, RecommendationPriority.LOW),
        ],
    )
    def test_disk_priority(self, scorer, cost, expected):
        assert scorer.disk_priority(cost) == expected

    def test_unknown_sku_uses_standard_rate(self):
        assert estimate_disk_cost(200, "Mystery_SKU", ScorerConfig()) == pytest.approx(10.0)


class TestStoppedVMs:
    def test_deallocated_vm(self, scorer):
        vm = VMInfo(id="vm-1", name="vm-1", vm_size="Standard_D8s_v3",
                    power_state="PowerState/deallocated", monthly_estimated_cost=400.0)

        rec = scorer.score_stopped_vm(vm)

        assert rec.type == RecommendationType.DELETE_UNUSED
        assert rec.potential_monthly_savings == pytest.approx(40.0)
        assert rec.priority == RecommendationPriority.LOW

    def test_expensive_stopped_vm_is_medium(self, scorer):
        vm = VMInfo(id="vm-1", name="vm-1", power_state=PowerState.STOPPED, monthly_estimated_cost=600.0)
        assert scorer.score_stopped_vm(vm).priority == RecommendationPriority.MEDIUM

    def test_running_vm_ignored(self, scorer):
        vm = VMInfo(id="vm-1", name="vm-1", power_state="PowerState/running", monthly_estimated_cost=600.0)
        assert scorer.score_stopped_vm(vm) is None


class TestVMProfile:
    def test_profile_metrics(self, scorer, make_entries):
        entries = make_entries([10.0, 0.0, 20.0, 30.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0])

        profile = scorer.build_vm_profile(VM_ID, entries, period_days=10)

        assert profile.vm_name == "vm-app"
        assert profile.resource_group == "rg-web"
        assert profile.total_cost == 60.0
        assert profile.days_active == 3
        assert profile.average_daily_cost == pytest.approx(20.0)
        assert profile.peak_daily_cost == 30.0
        assert profile.min_daily_cost == 10.0
        assert profile.utilization_percentage == pytest.approx(30.0)
        assert profile.projected_monthly_cost == pytest.approx(20.0 * 30 * 0.30)

    def test_trend_needs_two_complete_months(self, scorer, make_entries):
        profile = scorer.build_vm_profile(VM_ID, make_entries([10.0] * 40), period_days=40)

        assert profile.cost_trend == TrendDirection.STABLE
        assert profile.trend_percentage == 0.0

    def test_trend_between_complete_months(self, scorer, make_entries):
        entries = make_entries([10.0] * 31 + [15.0] * 29)

        profile = scorer.build_vm_profile(VM_ID, entries, period_days=60)

        assert [m.month for m in profile.monthly_costs] == ["2024-01", "2024-02"]
        assert profile.monthly_costs[1].compared_to_previous_month == pytest.approx(40.32, abs=0.01)
        assert profile.cost_trend == TrendDirection.INCREASING
        assert profile.trend_percentage == pytest.approx(40.32, abs=0.01)

    def test_trend_from_zero_month(self, scorer, make_entries):
        entries = make_entries([0.0] * 31 + [5.0] * 29)
        profile = scorer.build_vm_profile(VM_ID, entries, period_days=60)

        assert profile.cost_trend == TrendDirection.INCREASING
        assert profile.trend_percentage == 100.0

    def test_profile_uses_vm_metadata(self, scorer, make_entries):
        vm = VMInfo(id=VM_ID, name="app-server", vm_size="Standard_D4s_v3", location="westeurope")

        profile = scorer.build_vm_profile(VM_ID, make_entries([10.0] * 30), vm, period_days=30)

        assert profile.vm_name == "app-server"
        assert profile.location == "westeurope"
        assert profile.utilization_percentage == pytest.approx(100.0)
        assert [r.type for r in profile.recommendations] == [RecommendationType.RESERVED_INSTANCE]


class TestScoreResourcesAndSummaries:
    def test_score_resources(self, scorer, make_entries):
        facts = ResourceFacts(
            disks=[
                DiskInfo(id="disk-1", name="disk-1", state="Unattached", monthly_estimated_cost=60.0),
                DiskInfo(id="disk-2", name="disk-2", state="Attached", monthly_estimated_cost=60.0),
            ],
            vms=[
                VMInfo(id=VM_ID, name="vm-app", vm_size="Standard_B2s",
                       power_state="PowerState/running", monthly_estimated_cost=40.0),
                VMInfo(id="vm-off", name="vm-off", power_state="PowerState/stopped",
                       monthly_estimated_cost=100.0),
            ],
        )
        vm_costs = {VM_ID.lower(): make_entries([10.0] * 30)}

        recommendations, profiles = scorer.score_resources(facts, vm_costs, period_days=30)

        assert len(profiles) == 1
        assert profiles[0].vm_size == "Standard_B2s"
        types = sorted(r.type.value for r in recommendations)
        assert types == ["delete-unused", "delete-unused", "reserved-instance"]
        ranks = [r.priority.rank for r in recommendations]
        assert ranks == sorted(ranks)
        assert_savings_invariants(recommendations)

    def test_summary_is_exhaustive(self, scorer):
        recs = (
            scorer.score_vm(make_profile(75.0, 200.0))
            + scorer.score_vm(make_profile(60.0, 100.0))
            + scorer.score_vm(make_profile(5.0, 20.0, vm_size="Standard_D16s_v3", days_active=4))
        )

        summary = scorer.summarize(recs)

        assert summary.total_recommendations == len(recs)
        assert sum(b.count for b in summary.by_type.values()) == len(recs)
        assert sum(b.count for b in summary.by_priority.values()) == len(recs)
        assert sum(b.count for b in summary.by_status.values()) == len(recs)
        assert summary.total_potential_monthly_savings == pytest.approx(
            sum(r.potential_monthly_savings for r in recs)
        )
        assert summary.total_potential_annual_savings == pytest.approx(
            summary.total_potential_monthly_savings * 12
        )
        top = [r.potential_monthly_savings for r in summary.top_recommendations]
        assert top == sorted(top, reverse=True)
        assert summary.top_recommendations[0].potential_monthly_savings == pytest.approx(80.0)

    def test_empty_summary(self, scorer):
        summary = scorer.summarize([])
        assert summary.total_recommendations == 0
        assert summary.total_potential_monthly_savings == 0

    def test_vm_summary(self, scorer, make_entries):
        profiles = [
            scorer.build_vm_profile(f"{VM_ID}-{i}", make_entries([float(i + 1)] * 30), period_days=30)
            for i in range(20)
        ]

        summary = scorer.summarize_vms(profiles)

        assert summary.total_vm_cost == pytest.approx(sum(p.total_cost for p in profiles))
        assert summary.average_vm_cost == pytest.approx(summary.total_vm_cost / 20)
        assert len(summary.top_cost_vms) == 15
        assert summary.top_cost_vms[0].total_cost == pytest.approx(600.0)
        assert summary.vms_by_trend == {"increasing": 0, "decreasing": 0, "stable": 20}
        assert summary.recommendations_by_type == {"reserved-instance": 20}
