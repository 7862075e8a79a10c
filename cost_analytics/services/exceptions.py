"""
Exception taxonomy for the cost analytics engine.
"""

from typing import Optional


class CostAnalyticsError(Exception):
    """Base class for all engine errors"""


class ConfigurationError(CostAnalyticsError):
    """Configuration file or values are invalid"""


class RateLimitError(CostAnalyticsError):
    """Raised by a billing or inventory client when the upstream throttles a call"""

    def __init__(self, message: str = "Too many requests", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after
        self.status_code = 429


class UpstreamQueryError(CostAnalyticsError):
    """An upstream query failed after retries, or with a non-rate-limit error"""

    def __init__(self, query_type: str, message: str, attempts: int = 1):
        super().__init__(f"{query_type} query failed: {message}")
        self.query_type = query_type
        self.attempts = attempts


class InsufficientHistoryError(CostAnalyticsError):
    """A forecast was requested without any historical points"""


def is_rate_limit_error(error: BaseException) -> bool:
    """True when an exception signals upstream throttling"""
    if isinstance(error, RateLimitError):
        return True
    if getattr(error, "status_code", None) == 429:
        return True
    return "too many requests" in str(error).lower()
