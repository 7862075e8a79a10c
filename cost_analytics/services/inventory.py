"""
Resource inventory collector: disks and VMs with estimated monthly costs.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from ..models import DiskInfo, DiskState, InventoryResource, PowerState, ResourceFacts, VMInfo
from ..utils.logging import get_logger
from .clients import ResourceInventoryClient
from .config import AggregatorConfig, ScorerConfig
from .exceptions import UpstreamQueryError
from .normalization import extract_resource_group, extract_resource_name
from .throttle import RequestThrottle

logger = get_logger(__name__)

DISK_RESOURCE_TYPE = "microsoft.compute/disks"
VM_RESOURCE_TYPE = "microsoft.compute/virtualmachines"


def estimate_disk_cost(size_gb: float, sku: Optional[str], pricing: ScorerConfig) -> float:
    """Monthly disk cost from size and SKU; unknown SKUs use the standard rate"""
    rate = pricing.disk_price_per_gb.get(sku or "", pricing.default_disk_price_per_gb)
    return (size_gb or 0) * rate


def estimate_vm_cost(vm_size: Optional[str], pricing: ScorerConfig) -> float:
    """Monthly running cost for a VM size; unknown sizes use the default estimate"""
    return pricing.vm_monthly_estimates.get(vm_size or "", pricing.default_vm_monthly_cost)


class ResourceInventoryService:
    """Collects disk and VM facts from the inventory client"""

    def __init__(
        self,
        client: ResourceInventoryClient,
        pricing: Optional[ScorerConfig] = None,
        config: Optional[AggregatorConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        throttle: Optional[RequestThrottle] = None,
    ):
        self.client = client
        self.pricing = pricing or ScorerConfig()
        self.config = config or AggregatorConfig()
        self.throttle = throttle or RequestThrottle(self.config.api_delay_seconds, sleep=sleep)

    def _to_disk(self, resource: InventoryResource) -> DiskInfo:
        props = resource.properties
        size_gb = props.get("diskSizeGB") or 0
        sku = resource.sku or "Standard_LRS"
        return DiskInfo(
            id=resource.id,
            name=resource.name or extract_resource_name(resource.id),
            resource_group=extract_resource_group(resource.id),
            location=resource.location,
            size_gb=size_gb,
            state=props.get("diskState"),
            sku=sku,
            monthly_estimated_cost=estimate_disk_cost(size_gb, sku, self.pricing),
        )

    def _vm_size(self, resource: InventoryResource) -> str:
        props = resource.properties
        hardware = props.get("hardwareProfile") or {}
        return props.get("vmSize") or hardware.get("vmSize") or resource.sku or "Unknown"

    async def _power_state(self, resource: InventoryResource) -> PowerState:
        await self.throttle.wait()
        try:
            state = await self.client.get_power_state(resource.id)
        except Exception as e:
            logger.warning(
                "Could not read VM power state",
                resource_id=resource.id,
                error=str(e),
            )
            return PowerState.UNKNOWN
        return PowerState.parse(state)

    async def collect_facts(self) -> ResourceFacts:
        """
        Stream the inventory once and build disk and VM facts.

        The listing and every power-state read go through the throttle,
        one VM at a time.

        Raises:
            UpstreamQueryError: listing the inventory failed.
        """
        disks = []
        vm_resources = []

        await self.throttle.wait()
        try:
            async for resource in self.client.list_resources():
                resource_type = resource.type.lower()
                if resource_type == DISK_RESOURCE_TYPE:
                    disks.append(self._to_disk(resource))
                elif resource_type == VM_RESOURCE_TYPE:
                    vm_resources.append(resource)
        except Exception as e:
            logger.error("Listing resources failed", error=str(e))
            raise UpstreamQueryError("inventory", str(e)) from e

        vms = []
        for resource in vm_resources:
            vm_size = self._vm_size(resource)
            vms.append(
                VMInfo(
                    id=resource.id,
                    name=resource.name or extract_resource_name(resource.id),
                    resource_group=extract_resource_group(resource.id),
                    location=resource.location,
                    vm_size=vm_size,
                    power_state=await self._power_state(resource),
                    monthly_estimated_cost=estimate_vm_cost(vm_size, self.pricing),
                )
            )

        logger.info(
            "Resource facts collected",
            disks=len(disks),
            unattached_disks=sum(1 for d in disks if d.state == DiskState.UNATTACHED),
            vms=len(vms),
            stopped_vms=sum(1 for v in vms if v.power_state.is_stopped),
        )
        return ResourceFacts(disks=disks, vms=vms)
