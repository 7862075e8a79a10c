"""
Pytest configuration and shared fixtures for the Cost Analytics Engine.
"""

import pytest
import tempfile
from datetime import date, timedelta
from pathlib import Path
from typing import List
from unittest.mock import AsyncMock, MagicMock

from cost_analytics.models import (
    BillingQuery,
    BillingRow,
    CostPoint,
    CostSeries,
    DailyCostEntry,
    InventoryResource,
)
from cost_analytics.services.config import (
    AggregatorConfig,
    EngineConfig,
    ScopeConfig,
)

SCOPE = "/subscriptions/sub-123"
VM_WEB = "/subscriptions/sub-123/resourceGroups/rg-web/providers/Microsoft.Compute/virtualMachines/vm-web"
VM_BATCH = "/subscriptions/sub-123/resourceGroups/rg-batch/providers/Microsoft.Compute/virtualMachines/vm-batch"
DISK_ORPHAN = "/subscriptions/sub-123/resourceGroups/rg-web/providers/Microsoft.Compute/disks/disk-orphan"
DISK_OS = "/subscriptions/sub-123/resourceGroups/rg-web/providers/Microsoft.Compute/disks/disk-os"


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end pipeline tests")


class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeBillingBackend:
    """
    Answers billing queries from a fixed daily cost, one row per day.

    Daily rows use compact numeric dates (20240115) like the real API.
    """

    services = {"Virtual Machines": 0.6, "Storage Accounts": 0.3, "Azure Monitor": 0.1}
    resource_groups = {"rg-web": 0.7, "rg-batch": 0.3}

    def __init__(self, daily_cost: float = 100.0, currency: str = "USD"):
        self.daily_cost = daily_cost
        self.currency = currency
        self.queries: List[BillingQuery] = []

    def _days(self, query: BillingQuery):
        day = query.start_date
        while day <= query.end_date:
            yield day
            day += timedelta(days=1)

    async def query(self, scope: str, query: BillingQuery) -> List[BillingRow]:
        self.queries.append(query)
        days = list(self._days(query))
        window_total = self.daily_cost * len(days)

        if query.grouping_dimension is None:
            return [
                BillingRow(date=int(d.strftime("%Y%m%d")), cost=self.daily_cost, currency=self.currency)
                for d in days
            ]
        if query.grouping_dimension == "ServiceName":
            return [
                BillingRow(cost=window_total * share, currency=self.currency, group_key=name)
                for name, share in self.services.items()
            ]
        if query.grouping_dimension == "ResourceGroupName":
            return [
                BillingRow(cost=window_total * share, currency=self.currency, group_key=name)
                for name, share in self.resource_groups.items()
            ]
        # ResourceId grouping filtered to VMs: vm-web runs daily, vm-batch on 3 days
        rows = []
        for index, d in enumerate(days):
            rows.append(BillingRow(date=d.strftime("%Y%m%d"), cost=10.0, group_key=VM_WEB))
            if index < 3:
                rows.append(BillingRow(date=d.isoformat(), cost=40.0, group_key=VM_BATCH))
        rows.append(BillingRow(date=days[0].isoformat(), cost=5.0, group_key=DISK_OS))
        return rows


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def billing_backend():
    return FakeBillingBackend()


@pytest.fixture
def mock_billing_client(billing_backend):
    """Billing client mock backed by the fake backend."""
    client = MagicMock()
    client.query = AsyncMock(side_effect=billing_backend.query)
    return client


@pytest.fixture
def inventory_resources():
    return [
        InventoryResource(
            id=DISK_ORPHAN,
            type="Microsoft.Compute/disks",
            name="disk-orphan",
            location="eastus",
            sku="Premium_LRS",
            properties={"diskSizeGB": 100, "diskState": "Unattached"},
        ),
        InventoryResource(
            id=DISK_OS,
            type="Microsoft.Compute/disks",
            name="disk-os",
            location="eastus",
            sku="Standard_LRS",
            properties={"diskSizeGB": 64, "diskState": "Attached"},
        ),
        InventoryResource(
            id=VM_WEB,
            type="Microsoft.Compute/virtualMachines",
            name="vm-web",
            location="eastus",
            properties={"hardwareProfile": {"vmSize": "Standard_D4s_v3"}},
        ),
        InventoryResource(
            id=VM_BATCH,
            type="Microsoft.Compute/virtualMachines",
            name="vm-batch",
            location="eastus",
            properties={"vmSize": "Standard_E4s_v3"},
        ),
        InventoryResource(
            id="/subscriptions/sub-123/resourceGroups/rg-web/providers/Microsoft.Network/publicIPAddresses/ip-1",
            type="Microsoft.Network/publicIPAddresses",
            name="ip-1",
        ),
    ]


@pytest.fixture
def mock_inventory_client(inventory_resources):
    """Inventory client mock streaming the sample resources."""
    power_states = {
        VM_WEB: "PowerState/running",
        VM_BATCH: "PowerState/deallocated",
    }

    async def list_resources():
        for resource in inventory_resources:
            yield resource

    client = MagicMock()
    client.list_resources = MagicMock(side_effect=list_resources)
    client.get_power_state = AsyncMock(side_effect=lambda resource_id: power_states[resource_id])
    return client


@pytest.fixture
def aggregator_config():
    return AggregatorConfig(api_delay_seconds=3.0, max_retries=3, retry_base_delay_seconds=10.0)


@pytest.fixture
def engine_config(aggregator_config):
    return EngineConfig(
        scope=ScopeConfig(subscription_id="sub-123"),
        historical_days=60,
        aggregator=aggregator_config,
    )


@pytest.fixture
def make_series():
    """Build a contiguous daily CostSeries from a list of costs."""

    def _make(costs, start=date(2024, 1, 1), currency="USD", **kwargs):
        points = [
            CostPoint(date=start + timedelta(days=i), cost=cost, currency=currency)
            for i, cost in enumerate(costs)
        ]
        return CostSeries.from_points(points, currency=currency, **kwargs)

    return _make


@pytest.fixture
def make_entries():
    """Build VM daily cost entries from a list of costs."""

    def _make(costs, start=date(2024, 1, 1), resource_group="rg-web"):
        return [
            DailyCostEntry(date=start + timedelta(days=i), cost=cost, resource_group=resource_group)
            for i, cost in enumerate(costs)
        ]

    return _make
