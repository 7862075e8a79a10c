"""
Boundary of the external, read-only collaborators the engine consumes.

Concrete SDK-backed clients live outside this package; the engine only
depends on these abstract interfaces.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Union

from ..models import BillingQuery, BillingRow, InventoryResource, PowerState


class BillingQueryClient(ABC):
    """Delivers raw cost rows for a time window and grouping dimension"""

    @abstractmethod
    async def query(self, scope: str, query: BillingQuery) -> List[BillingRow]:
        """
        Run one cost query.

        Raises RateLimitError (or an error with status_code 429) when
        throttled; any other exception is treated as a hard failure.
        """


class ResourceInventoryClient(ABC):
    """Delivers resource metadata and VM power state"""

    @abstractmethod
    def list_resources(self) -> AsyncIterator[InventoryResource]:
        """Stream every resource in the subscription."""

    @abstractmethod
    async def get_power_state(self, resource_id: str) -> Union[PowerState, str]:
        """Return the power state of a VM, as an enum or a 'PowerState/<x>' code."""
