"""
Recommendation Scorer - turns per-resource cost and state facts into
prioritized, quantified savings recommendations.
"""

import re
import uuid
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Tuple

from ..models import (
    Confidence,
    DailyCostEntry,
    DiskInfo,
    DiskState,
    Effort,
    MonthlyVMCost,
    PowerState,
    Recommendation,
    RecommendationPriority,
    RecommendationSummary,
    RecommendationType,
    ResourceFacts,
    SummaryBucket,
    TrendDirection,
    VMCostProfile,
    VMCostSummary,
    VMInfo,
)
from ..services.config import ScorerConfig
from ..services.normalization import extract_resource_name
from ..utils.logging import get_logger

logger = get_logger(__name__)

VM_RESOURCE_TYPE = "Microsoft.Compute/virtualMachines"
DISK_RESOURCE_TYPE = "Microsoft.Compute/disks"
DAYS_PER_MONTH = 30

# Standard_<family><vcpus>..., e.g. Standard_D16s_v3 -> ("D", "16")
SIZE_PATTERN = re.compile(r"Standard_([A-Z]+)(\d+)")

# Known one-step downsizes; other sizes halve their first number
DOWNSIZE_MAP = {
    "Standard_D4s_v3": "Standard_D2s_v3",
    "Standard_D8s_v3": "Standard_D4s_v3",
    "Standard_D16s_v3": "Standard_D8s_v3",
    "Standard_E4s_v3": "Standard_E2s_v3",
    "Standard_E8s_v3": "Standard_E4s_v3",
    "Standard_E16s_v3": "Standard_E8s_v3",
}


def suggest_smaller_size(vm_size: str) -> str:
    """Next smaller VM size in the same family"""
    if vm_size in DOWNSIZE_MAP:
        return DOWNSIZE_MAP[vm_size]
    return re.sub(r"\d+", lambda m: str(max(int(m.group()) // 2, 1)), vm_size, count=1)


def _new_id(rec_type: RecommendationType) -> str:
    return f"rec-{rec_type.value}-{uuid.uuid4().hex[:8]}"


class RecommendationScorer:
    """Rule-based savings recommendations for VMs and disks."""

    def __init__(self, config: Optional[ScorerConfig] = None):
        self.config = config or ScorerConfig()

    # ------------------------------------------------------------------
    # VM cost profiles
    # ------------------------------------------------------------------

    def _monthly_costs(self, entries: List[DailyCostEntry]) -> List[MonthlyVMCost]:
        by_month: Dict[str, List[float]] = defaultdict(list)
        for entry in entries:
            by_month[entry.date.strftime("%Y-%m")].append(entry.cost)

        monthly = []
        previous_total = None
        for month in sorted(by_month):
            costs = by_month[month]
            total = sum(costs)
            active = sum(1 for c in costs if c > 0)
            compared = None
            if previous_total is not None and previous_total > 0:
                compared = (total - previous_total) / previous_total * 100

            year, month_number = month.split("-")
            monthly.append(
                MonthlyVMCost(
                    month=month,
                    month_name=date(int(year), int(month_number), 1).strftime("%b %Y"),
                    total_cost=total,
                    days_active=active,
                    days_observed=len(costs),
                    average_daily_cost=total / active if active else 0.0,
                    compared_to_previous_month=compared,
                )
            )
            previous_total = total
        return monthly

    def classify_vm_trend(self, monthly: List[MonthlyVMCost]) -> Tuple[TrendDirection, float]:
        """
        Compare the two most recent complete months. Fewer than two complete
        months is stable with 0%.
        """
        complete = [m for m in monthly if m.days_observed >= self.config.complete_month_min_days]
        if len(complete) < 2:
            return TrendDirection.STABLE, 0.0

        previous, recent = complete[-2], complete[-1]
        if previous.total_cost == 0:
            if recent.total_cost > 0:
                return TrendDirection.INCREASING, 100.0
            return TrendDirection.STABLE, 0.0

        change = (recent.total_cost - previous.total_cost) / previous.total_cost * 100
        threshold = self.config.trend_threshold_percent
        if change > threshold:
            return TrendDirection.INCREASING, change
        if change < -threshold:
            return TrendDirection.DECREASING, change
        return TrendDirection.STABLE, change

    def build_vm_profile(
        self,
        resource_id: str,
        entries: List[DailyCostEntry],
        vm_info: Optional[VMInfo] = None,
        period_days: int = 90,
    ) -> VMCostProfile:
        """Cost and usage profile of one VM, scored with its recommendations"""
        entries = sorted(entries, key=lambda e: e.date)
        costs = [e.cost for e in entries]
        active_costs = [c for c in costs if c > 0]

        total_cost = sum(costs)
        days_active = len(active_costs)
        average_daily_cost = total_cost / days_active if days_active else 0.0
        utilization = days_active / period_days * 100 if period_days > 0 else 0.0

        monthly = self._monthly_costs(entries)
        trend, trend_percentage = self.classify_vm_trend(monthly)

        resource_group = (
            (entries[0].resource_group if entries else "")
            or (vm_info.resource_group if vm_info else "")
            or "Unknown"
        )

        profile = VMCostProfile(
            vm_name=vm_info.name if vm_info else extract_resource_name(resource_id),
            resource_id=resource_id,
            resource_group=resource_group,
            vm_size=vm_info.vm_size if vm_info else None,
            location=vm_info.location if vm_info else None,
            power_state=vm_info.power_state if vm_info else PowerState.UNKNOWN,
            total_cost=total_cost,
            average_daily_cost=average_daily_cost,
            peak_daily_cost=max(costs) if costs else 0.0,
            min_daily_cost=min(active_costs) if active_costs else 0.0,
            days_active=days_active,
            days_in_period=period_days,
            utilization_percentage=utilization,
            monthly_costs=monthly,
            cost_trend=trend,
            trend_percentage=trend_percentage,
            cost_per_active_day=average_daily_cost,
            projected_monthly_cost=average_daily_cost * DAYS_PER_MONTH * utilization / 100,
        )
        return profile.model_copy(update={"recommendations": self.score_vm(profile)})

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _vm_recommendation(
        self,
        profile: VMCostProfile,
        rec_type: RecommendationType,
        rank: int,
        monthly_savings: float,
        title: str,
        rationale: str,
        confidence: Confidence,
        effort: Effort = Effort.LOW,
        action: str = "",
        **extra,
    ) -> Recommendation:
        current = profile.projected_monthly_cost
        monthly_savings = max(monthly_savings, 0.0)
        savings_percent = min(monthly_savings / current * 100, 100.0) if current > 0 else 0.0

        return Recommendation(
            id=_new_id(rec_type),
            type=rec_type,
            priority=RecommendationPriority.from_rank(rank),
            resource_id=profile.resource_id,
            resource_name=profile.vm_name,
            resource_type=VM_RESOURCE_TYPE,
            resource_group=profile.resource_group,
            location=profile.location or "",
            title=title,
            description=f"VM {profile.vm_name}: {title.lower()}",
            action=action or title,
            rationale=rationale,
            current_monthly_cost=current,
            projected_monthly_cost=max(current - monthly_savings, 0.0),
            potential_monthly_savings=monthly_savings,
            potential_annual_savings=monthly_savings * 12,
            savings_percent=savings_percent,
            effort=effort,
            confidence=confidence,
            category="VM Optimization",
            additional_info={
                "utilization_percentage": profile.utilization_percentage,
                "days_active": profile.days_active,
                "days_in_period": profile.days_in_period,
                "cost_trend": profile.cost_trend.value,
                "vm_size": profile.vm_size,
                **extra,
            },
        )

    def _is_large_size(self, vm_size: Optional[str]) -> bool:
        """Memory/storage families, or any family at or above the vCPU cutoff"""
        match = SIZE_PATTERN.match(vm_size or "")
        if not match:
            return False
        family, vcpus = match.groups()
        return family in self.config.large_size_families or int(vcpus) >= self.config.rightsize_min_vcpus

    def _is_general_purpose(self, vm_size: Optional[str]) -> bool:
        return bool(vm_size) and any(i in vm_size for i in self.config.general_purpose_size_indicators)

    def score_vm(self, profile: VMCostProfile) -> List[Recommendation]:
        """
        Evaluate every utilization rule independently against one VM.

        Rules may co-fire; the result is sorted by priority, most urgent first.
        """
        cfg = self.config
        utilization = profile.utilization_percentage
        projected = profile.projected_monthly_cost
        recommendations = []

        if utilization >= cfg.reserved_min_utilization and profile.cost_trend != TrendDirection.DECREASING:
            recommendations.append(
                self._vm_recommendation(
                    profile,
                    RecommendationType.RESERVED_INSTANCE,
                    1,
                    projected * cfg.reserved_savings_rate,
                    title="Consider Reserved Instance",
                    rationale=(
                        f"VM runs {utilization:.0f}% of the time with {profile.cost_trend.value} usage. "
                        f"A 1-year reservation could save ~{cfg.reserved_savings_rate:.0%} on compute costs."
                    ),
                    confidence=(
                        Confidence.HIGH
                        if utilization >= cfg.reserved_high_confidence_utilization
                        else Confidence.MEDIUM
                    ),
                    action="Purchase a 1-year reservation for this VM size",
                )
            )

        if (
            cfg.savings_plan_min_utilization <= utilization < cfg.reserved_min_utilization
            and projected > cfg.savings_plan_min_monthly_cost
        ):
            recommendations.append(
                self._vm_recommendation(
                    profile,
                    RecommendationType.SAVINGS_PLAN,
                    2,
                    projected * cfg.savings_plan_savings_rate,
                    title="Consider Savings Plan",
                    rationale=(
                        f"VM has moderate utilization ({utilization:.0f}%). A savings plan offers "
                        f"flexibility with ~{cfg.savings_plan_savings_rate:.0%} savings."
                    ),
                    confidence=Confidence.MEDIUM,
                )
            )

        if cfg.shutdown_min_utilization <= utilization < cfg.shutdown_max_utilization:
            idle_cost = profile.average_daily_cost * DAYS_PER_MONTH * (1 - utilization / 100)
            recommendations.append(
                self._vm_recommendation(
                    profile,
                    RecommendationType.AUTO_SHUTDOWN,
                    2,
                    idle_cost * cfg.shutdown_idle_savings_rate,
                    title="Implement Auto-Shutdown Schedule",
                    rationale=(
                        f"VM runs only {utilization:.0f}% of the time. Shutting it down during "
                        f"inactive hours could reduce costs."
                    ),
                    confidence=Confidence.HIGH,
                    action="Configure an auto-shutdown schedule",
                )
            )

        if utilization < cfg.spot_max_utilization and self._is_general_purpose(profile.vm_size):
            recommendations.append(
                self._vm_recommendation(
                    profile,
                    RecommendationType.SPOT,
                    3,
                    projected * cfg.spot_savings_rate,
                    title="Consider Spot VM",
                    rationale=(
                        "Low utilization suggests a dev/test workload. Spot VMs suit "
                        "interruptible workloads at a steep discount."
                    ),
                    confidence=Confidence.LOW,
                    effort=Effort.MEDIUM,
                )
            )

        if utilization < cfg.delete_max_utilization and profile.days_active < cfg.delete_max_active_days:
            recommendations.append(
                self._vm_recommendation(
                    profile,
                    RecommendationType.DELETE,
                    1,
                    projected,
                    title="Evaluate VM Necessity",
                    rationale=(
                        f"VM was active only {profile.days_active} days out of {profile.days_in_period} "
                        f"({utilization:.0f}% utilization). Consider whether it is still required."
                    ),
                    confidence=Confidence.MEDIUM,
                    action="Delete the VM if it is no longer required",
                )
            )

        if self._is_large_size(profile.vm_size) and utilization < cfg.rightsize_max_utilization:
            suggested = suggest_smaller_size(profile.vm_size)
            recommendations.append(
                self._vm_recommendation(
                    profile,
                    RecommendationType.RIGHTSIZE,
                    3,
                    projected * cfg.rightsize_savings_rate,
                    title=f"Consider rightsizing to {suggested}",
                    rationale=(
                        f"VM size {profile.vm_size} may be oversized for the workload. Review "
                        f"CPU and memory metrics to confirm the smaller size."
                    ),
                    confidence=Confidence.LOW,
                    effort=Effort.MEDIUM,
                    suggested_size=suggested,
                )
            )

        recommendations.sort(key=lambda r: r.priority.rank)
        return recommendations

    def disk_priority(self, monthly_cost: float) -> RecommendationPriority:
        if monthly_cost > self.config.disk_high_priority_cost:
            return RecommendationPriority.HIGH
        if monthly_cost > self.config.disk_medium_priority_cost:
            return RecommendationPriority.MEDIUM
        return RecommendationPriority.LOW

    def score_disk(self, disk: DiskInfo) -> Optional[Recommendation]:
        """Unattached disks are deletion candidates worth their full cost"""
        if disk.state != DiskState.UNATTACHED:
            return None

        cost = disk.monthly_estimated_cost
        return Recommendation(
            id=_new_id(RecommendationType.DELETE_UNUSED),
            type=RecommendationType.DELETE_UNUSED,
            priority=self.disk_priority(cost),
            resource_id=disk.id,
            resource_name=disk.name,
            resource_type=DISK_RESOURCE_TYPE,
            resource_group=disk.resource_group,
            location=disk.location,
            title=f"Delete unattached disk: {disk.name}",
            description=(
                f"Managed disk {disk.name} ({disk.size_gb:g} GB, {disk.sku}) is not attached "
                f"to any VM and is incurring storage costs."
            ),
            action="Delete the unattached disk",
            rationale=(
                "Unattached disks keep incurring storage charges. If the disk is not needed "
                "for backup or future use, deleting it removes the cost."
            ),
            current_monthly_cost=cost,
            projected_monthly_cost=0.0,
            potential_monthly_savings=cost,
            potential_annual_savings=cost * 12,
            savings_percent=100.0,
            effort=Effort.LOW,
            confidence=Confidence.HIGH,
            implementation_steps=[
                "Confirm with the resource owner that the disk is not needed",
                "Snapshot the disk if its data must be retained",
                f"az disk delete --name {disk.name} --resource-group {disk.resource_group}",
            ],
            risks=[
                "Data loss if the disk holds important data",
                "The disk may be reserved for a future deployment",
            ],
            prerequisites=["Check backup and compliance requirements"],
            category="Storage Optimization",
            additional_info={"size_gb": disk.size_gb, "sku": disk.sku, "state": disk.state.value},
        )

    def score_stopped_vm(self, vm: VMInfo) -> Optional[Recommendation]:
        """Stopped VMs still pay for their disks, a fixed fraction of running cost"""
        if not vm.power_state.is_stopped:
            return None

        residual = vm.monthly_estimated_cost * self.config.stopped_vm_residual_fraction
        priority = (
            RecommendationPriority.MEDIUM
            if residual > self.config.stopped_vm_medium_priority_cost
            else RecommendationPriority.LOW
        )
        return Recommendation(
            id=_new_id(RecommendationType.DELETE_UNUSED),
            type=RecommendationType.DELETE_UNUSED,
            priority=priority,
            resource_id=vm.id,
            resource_name=vm.name,
            resource_type=VM_RESOURCE_TYPE,
            resource_group=vm.resource_group,
            location=vm.location,
            title=f"Review {vm.power_state.value} VM: {vm.name}",
            description=(
                f"VM {vm.name} ({vm.vm_size}) is {vm.power_state.value}. It incurs no compute "
                f"charges but its disks are still billed."
            ),
            action="Review whether the VM is still needed and delete it if unused",
            rationale="Stopped VMs keep incurring storage charges for their OS and data disks.",
            current_monthly_cost=residual,
            projected_monthly_cost=0.0,
            potential_monthly_savings=residual,
            potential_annual_savings=residual * 12,
            savings_percent=100.0,
            effort=Effort.LOW,
            confidence=Confidence.MEDIUM,
            implementation_steps=[
                "Confirm with the resource owner that the VM is not needed",
                "Snapshot disks whose data must be retained",
                f"az vm delete --name {vm.name} --resource-group {vm.resource_group} --yes",
                "Delete the disks left behind",
            ],
            risks=["Data loss if disks are deleted without a backup"],
            prerequisites=["Back up important data"],
            category="VM Optimization",
            additional_info={"vm_size": vm.vm_size, "power_state": vm.power_state.value},
        )

    def score_resources(
        self,
        facts: ResourceFacts,
        vm_costs: Optional[Dict[str, List[DailyCostEntry]]] = None,
        period_days: int = 90,
    ) -> Tuple[List[Recommendation], List[VMCostProfile]]:
        """
        Score every disk, stopped VM and VM cost profile.

        Returns all recommendations, most urgent and then largest savings
        first, and the VM profiles ordered by total cost.
        """
        recommendations = []

        for disk in facts.disks:
            rec = self.score_disk(disk)
            if rec:
                recommendations.append(rec)

        for vm in facts.vms:
            rec = self.score_stopped_vm(vm)
            if rec:
                recommendations.append(rec)

        vms_by_id = {vm.id.lower(): vm for vm in facts.vms}
        profiles = []
        for resource_id, entries in (vm_costs or {}).items():
            profile = self.build_vm_profile(
                resource_id, entries, vms_by_id.get(resource_id.lower()), period_days
            )
            profiles.append(profile)
            recommendations.extend(profile.recommendations)

        profiles.sort(key=lambda p: p.total_cost, reverse=True)
        recommendations.sort(key=lambda r: (r.priority.rank, -r.potential_monthly_savings))

        logger.info(
            "Resources scored",
            disks=len(facts.disks),
            vms=len(facts.vms),
            vm_profiles=len(profiles),
            recommendations=len(recommendations),
        )
        return recommendations, profiles

    # ------------------------------------------------------------------
    # Rollups
    # ------------------------------------------------------------------

    def summarize(
        self, recommendations: List[Recommendation], currency: str = "USD"
    ) -> RecommendationSummary:
        """Totals and exhaustive by-type, by-priority and by-status buckets"""
        by_type: Dict[str, SummaryBucket] = defaultdict(SummaryBucket)
        by_priority: Dict[str, SummaryBucket] = defaultdict(SummaryBucket)
        by_status: Dict[str, SummaryBucket] = defaultdict(SummaryBucket)

        for rec in recommendations:
            for buckets, key in (
                (by_type, rec.type.value),
                (by_priority, rec.priority.value),
                (by_status, rec.status.value),
            ):
                buckets[key].count += 1
                buckets[key].savings += rec.potential_monthly_savings

        top = sorted(recommendations, key=lambda r: r.potential_monthly_savings, reverse=True)
        return RecommendationSummary(
            total_recommendations=len(recommendations),
            total_potential_monthly_savings=sum(r.potential_monthly_savings for r in recommendations),
            total_potential_annual_savings=sum(r.potential_annual_savings for r in recommendations),
            currency=currency,
            by_type=dict(by_type),
            by_priority=dict(by_priority),
            by_status=dict(by_status),
            top_recommendations=top[: self.config.top_recommendations],
        )

    def summarize_vms(self, profiles: List[VMCostProfile]) -> VMCostSummary:
        """Fleet rollup of VM cost profiles"""
        total_cost = sum(p.total_cost for p in profiles)
        by_trend = {direction.value: 0 for direction in TrendDirection}
        by_type: Dict[str, int] = defaultdict(int)
        savings = 0.0

        for profile in profiles:
            by_trend[profile.cost_trend.value] += 1
            for rec in profile.recommendations:
                savings += rec.potential_monthly_savings
                by_type[rec.type.value] += 1

        return VMCostSummary(
            total_vm_cost=total_cost,
            average_vm_cost=total_cost / len(profiles) if profiles else 0.0,
            top_cost_vms=sorted(profiles, key=lambda p: p.total_cost, reverse=True)[: self.config.top_vms],
            vms_by_trend=by_trend,
            total_potential_savings=savings,
            recommendations_by_type=dict(by_type),
        )
