"""
Pure helpers for normalizing upstream billing values.
"""

import re
import datetime as dt
from typing import Union

import pandas as pd

from ..models import ServiceCategory

COMPACT_DATE_PATTERN = re.compile(r"\d{8}")

# Checked in order; the first category with a matching keyword wins
SERVICE_CATEGORY_KEYWORDS = [
    (ServiceCategory.COMPUTE, ["virtual machine", "compute", "kubernetes", "container", "functions", "app service"]),
    (ServiceCategory.STORAGE, ["storage", "blob", "file", "disk", "backup"]),
    (ServiceCategory.DATABASES, ["sql", "database", "cosmos", "redis", "cache"]),
    (ServiceCategory.NETWORKING, ["network", "gateway", "load balancer", "firewall", "vpn", "dns"]),
    (ServiceCategory.MANAGEMENT, ["monitor", "log", "insight", "alert", "metric"]),
    (ServiceCategory.AI, ["ai", "cognitive", "bot", "machine learning"]),
    (ServiceCategory.SECURITY, ["security", "key vault", "sentinel"]),
]


def normalize_usage_date(value: Union[int, float, str, dt.date, dt.datetime]) -> dt.date:
    """
    Convert an upstream date value to a calendar date.

    Compact codes (20240115 as a number or string) are read as
    year-month-day. ISO strings keep the calendar day as written, so an
    offset such as "+05:00" never shifts the date to a neighbouring day.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Unrecognized usage date: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Unrecognized usage date: {value!r}")
        value = int(value)

    text = str(value).strip()
    if COMPACT_DATE_PATTERN.fullmatch(text):
        try:
            return pd.to_datetime(text, format="%Y%m%d").date()
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Unrecognized usage date: {value!r}") from e

    if not text:
        raise ValueError("Empty usage date")
    try:
        timestamp = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Unrecognized usage date: {value!r}") from e
    if pd.isna(timestamp):
        raise ValueError(f"Unrecognized usage date: {value!r}")
    return timestamp.date()


def categorize_service(service_name: str) -> ServiceCategory:
    """Map a billed service name onto the fixed service taxonomy"""
    name = (service_name or "").lower()
    for category, keywords in SERVICE_CATEGORY_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return category
    return ServiceCategory.OTHER


def extract_resource_group(resource_id: str) -> str:
    """Resource group segment of an ARM resource ID"""
    match = re.search(r"resourceGroups/([^/]+)", resource_id or "", re.IGNORECASE)
    return match.group(1) if match else ""


def extract_resource_name(resource_id: str) -> str:
    """Last path segment of an ARM resource ID"""
    parts = (resource_id or "").rstrip("/").split("/")
    return parts[-1] or resource_id
