"""
Core types and enums for the cost analytics engine.
"""

from enum import Enum


class GroupingDimension(str, Enum):
    """Dimensions a cost query can be grouped by"""
    NONE = "none"
    SERVICE = "service"
    RESOURCE = "resource"
    RESOURCE_GROUP = "resource_group"

    @property
    def upstream_name(self):
        """Dimension name understood by the billing API"""
        return {
            GroupingDimension.NONE: None,
            GroupingDimension.SERVICE: "ServiceName",
            GroupingDimension.RESOURCE: "ResourceId",
            GroupingDimension.RESOURCE_GROUP: "ResourceGroupName",
        }[self]


class QueryType(str, Enum):
    """Upstream query kinds, used as part of the cache key"""
    DAILY = "daily"
    SERVICE = "service"
    RESOURCE = "resource"
    RESOURCE_GROUP = "resource_group"
    VM_DAILY = "vm_daily"

    @classmethod
    def for_dimension(cls, dimension: GroupingDimension) -> "QueryType":
        return {
            GroupingDimension.NONE: cls.DAILY,
            GroupingDimension.SERVICE: cls.SERVICE,
            GroupingDimension.RESOURCE: cls.RESOURCE,
            GroupingDimension.RESOURCE_GROUP: cls.RESOURCE_GROUP,
        }[dimension]


class Granularity(str, Enum):
    """Granularity of a cost series"""
    DAILY = "daily"
    MONTHLY = "monthly"


class DataProvenance(str, Enum):
    """Where the numbers in a series came from"""
    UPSTREAM = "upstream"
    SYNTHETIC = "synthetic"


class ServiceCategory(str, Enum):
    """Fixed taxonomy for billed service names"""
    COMPUTE = "Compute"
    STORAGE = "Storage"
    DATABASES = "Databases"
    NETWORKING = "Networking"
    MANAGEMENT = "Management"
    SECURITY = "Security"
    AI = "AI + ML"
    OTHER = "Other"


class TrendPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class Severity(str, Enum):
    """Anomaly severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AnomalyKind(str, Enum):
    DAILY = "daily"
    SERVICE_CONCENTRATION = "service_concentration"
    RECENT_SPIKE = "recent_spike"


class RecommendationType(str, Enum):
    """Types of recommendations"""
    RESERVED_INSTANCE = "reserved-instance"
    SAVINGS_PLAN = "savings-plan"
    AUTO_SHUTDOWN = "auto-shutdown"
    SPOT = "spot"
    DELETE = "delete"
    RIGHTSIZE = "rightsize"
    DELETE_UNUSED = "delete-unused"


class RecommendationPriority(str, Enum):
    """Recommendation priority; rank 1 is the most urgent scored tier"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {
            RecommendationPriority.CRITICAL: 0,
            RecommendationPriority.HIGH: 1,
            RecommendationPriority.MEDIUM: 2,
            RecommendationPriority.LOW: 3,
        }[self]

    @classmethod
    def from_rank(cls, rank: int) -> "RecommendationPriority":
        for priority in cls:
            if priority.rank == rank:
                return priority
        raise ValueError(f"Unknown priority rank: {rank}")


class RecommendationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    IMPLEMENTED = "implemented"
    IGNORED = "ignored"


class Effort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PowerState(str, Enum):
    """VM power states reported by the inventory client"""
    RUNNING = "running"
    STOPPED = "stopped"
    DEALLOCATED = "deallocated"
    STARTING = "starting"
    STOPPING = "stopping"
    DEALLOCATING = "deallocating"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "PowerState":
        """Accept enum values, plain names, or 'PowerState/<name>' codes"""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.UNKNOWN
        name = str(value).strip().lower()
        if name.startswith("powerstate/"):
            name = name[len("powerstate/"):]
        for state in cls:
            if state.value == name:
                return state
        return cls.UNKNOWN

    @property
    def is_stopped(self) -> bool:
        return self in (PowerState.STOPPED, PowerState.DEALLOCATED)


class DiskState(str, Enum):
    ATTACHED = "attached"
    UNATTACHED = "unattached"

    @classmethod
    def parse(cls, value) -> "DiskState":
        if isinstance(value, cls):
            return value
        if str(value or "").strip().lower() == "unattached":
            return cls.UNATTACHED
        return cls.ATTACHED


class StepStatus(str, Enum):
    """Outcome of one pipeline step"""
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"
