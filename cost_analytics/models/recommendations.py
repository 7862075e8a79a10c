"""
Recommendation models and summaries.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List
from pydantic import BaseModel, Field, model_validator

from .types import (
    Confidence,
    Effort,
    RecommendationPriority,
    RecommendationStatus,
    RecommendationType,
)


class Recommendation(BaseModel):
    """Recommendation model"""

    id: str = Field(..., description="Unique recommendation identifier")
    type: RecommendationType
    priority: RecommendationPriority
    status: RecommendationStatus = RecommendationStatus.PENDING

    # Resource identity
    resource_id: str
    resource_name: str
    resource_type: str
    resource_group: str = ""
    location: str = ""

    # Details
    title: str
    description: str = ""
    action: str = ""
    rationale: str

    # Cost impact
    current_monthly_cost: float = Field(ge=0)
    projected_monthly_cost: float = Field(ge=0)
    potential_monthly_savings: float = Field(ge=0)
    potential_annual_savings: float = Field(ge=0)
    currency: str = "USD"
    savings_percent: float = Field(ge=0, le=100)

    # Implementation
    effort: Effort = Effort.LOW
    confidence: Confidence = Confidence.MEDIUM
    implementation_steps: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    prerequisites: List[str] = Field(default_factory=list)

    # Metadata
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    detected_by: str = "recommendation-scorer"
    category: str = ""
    additional_info: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def annual_matches_monthly(self):
        if self.potential_annual_savings != self.potential_monthly_savings * 12:
            raise ValueError("potential_annual_savings must equal monthly savings x 12")
        return self


class SummaryBucket(BaseModel):
    count: int = 0
    savings: float = 0.0


class RecommendationSummary(BaseModel):
    """Rollup of recommendations by type, priority and status"""

    total_recommendations: int
    total_potential_monthly_savings: float
    total_potential_annual_savings: float
    currency: str = "USD"

    by_type: Dict[str, SummaryBucket] = Field(default_factory=dict)
    by_priority: Dict[str, SummaryBucket] = Field(default_factory=dict)
    by_status: Dict[str, SummaryBucket] = Field(default_factory=dict)

    top_recommendations: List[Recommendation] = Field(default_factory=list)
