"""
Resource facts consumed by the recommendation scorer.
"""

import datetime as dt
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from .recommendations import Recommendation
from .types import DiskState, PowerState, TrendDirection


class InventoryResource(BaseModel):
    """One item streamed by the resource inventory client"""

    id: str
    type: str
    name: Optional[str] = None
    location: str = ""
    tags: Dict[str, str] = Field(default_factory=dict)
    sku: Optional[str] = None
    provisioning_state: str = "Unknown"

    # Type-specific details (diskSizeGB, diskState, vmSize, ...)
    properties: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v):
        return v or {}


class DiskInfo(BaseModel):
    """Managed disk with its estimated monthly cost"""

    id: str
    name: str
    resource_group: str = ""
    location: str = ""
    size_gb: float = Field(default=0, ge=0)
    state: DiskState = DiskState.ATTACHED
    sku: str = "Standard_LRS"
    monthly_estimated_cost: float = Field(default=0.0, ge=0)

    @field_validator("state", mode="before")
    @classmethod
    def parse_state(cls, v):
        return DiskState.parse(v)


class VMInfo(BaseModel):
    """Virtual machine with power state and estimated monthly cost"""

    id: str
    name: str
    resource_group: str = ""
    location: str = ""
    vm_size: str = "Unknown"
    power_state: PowerState = PowerState.UNKNOWN
    monthly_estimated_cost: float = Field(default=0.0, ge=0)

    @field_validator("power_state", mode="before")
    @classmethod
    def parse_power_state(cls, v):
        return PowerState.parse(v)


class ResourceFacts(BaseModel):
    """Disks and VMs gathered from the inventory"""

    disks: List[DiskInfo] = Field(default_factory=list)
    vms: List[VMInfo] = Field(default_factory=list)


class DailyCostEntry(BaseModel):
    """One day of cost for a single resource"""

    date: dt.date
    cost: float = Field(ge=0)
    resource_group: str = ""


class MonthlyVMCost(BaseModel):
    month: str  # YYYY-MM
    month_name: str
    total_cost: float
    days_active: int
    days_observed: int
    average_daily_cost: float
    compared_to_previous_month: Optional[float] = None


class VMCostProfile(BaseModel):
    """Cost and usage profile of a single VM over the analysis window"""

    vm_name: str
    resource_id: str
    resource_group: str = ""
    vm_size: Optional[str] = None
    location: Optional[str] = None
    power_state: PowerState = PowerState.UNKNOWN

    total_cost: float = 0.0
    average_daily_cost: float = 0.0
    peak_daily_cost: float = 0.0
    min_daily_cost: float = 0.0

    days_active: int = 0
    days_in_period: int = 0
    utilization_percentage: float = Field(default=0.0, ge=0)

    monthly_costs: List[MonthlyVMCost] = Field(default_factory=list)
    cost_trend: TrendDirection = TrendDirection.STABLE
    trend_percentage: float = 0.0

    cost_per_active_day: float = 0.0
    projected_monthly_cost: float = Field(default=0.0, ge=0)

    recommendations: List[Recommendation] = Field(default_factory=list)


class VMCostSummary(BaseModel):
    """Fleet-level rollup of VM cost profiles"""

    total_vm_cost: float = 0.0
    average_vm_cost: float = 0.0
    top_cost_vms: List[VMCostProfile] = Field(default_factory=list)
    vms_by_trend: Dict[str, int] = Field(default_factory=dict)
    total_potential_savings: float = 0.0
    recommendations_by_type: Dict[str, int] = Field(default_factory=dict)
