"""
Billing query and row models exchanged with the external billing client.
"""

import datetime as dt
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BillingQuery(BaseModel):
    """A single cost query issued to the billing client"""

    model_config = ConfigDict(frozen=True)

    start_date: dt.date
    end_date: dt.date
    granularity: str = "Daily"  # "Daily" or "None"
    grouping_dimension: Optional[str] = None
    filter: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class BillingRow(BaseModel):
    """One row returned by the billing client"""

    # Either a compact numeric code (20240115), an 8-digit string, an ISO
    # string, a date or datetime; None for queries without daily granularity.
    date: Optional[Union[int, float, str, dt.datetime, dt.date]] = None
    cost: float = 0.0
    currency: Optional[str] = None
    group_key: Optional[str] = None

    @field_validator("cost", mode="before")
    @classmethod
    def coerce_cost(cls, v):
        if v is None or v == "":
            return 0.0
        return float(v)


BillingRows = List[BillingRow]
