"""
In-memory memoization of billing query results.
"""

import time
from datetime import date
from typing import Any, Callable, Dict, Optional
from pydantic import BaseModel

from ..utils.logging import get_logger

logger = get_logger(__name__)


class CacheEntry(BaseModel):
    """One memoized query result"""

    key: str
    payload: Any
    timestamp: float


class QueryCache:
    """
    Process-lifetime cache keyed by (start date, end date, query type).

    Entries share one TTL and are evicted lazily when a lookup finds them
    expired. Not thread-safe: the aggregator is its single owner.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(start_date: date, end_date: date, query_type: str) -> str:
        query_type = getattr(query_type, "value", query_type)
        return f"{query_type}-{start_date.isoformat()}-{end_date.isoformat()}"

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._clock() - entry.timestamp >= self.ttl_seconds:
            del self._entries[key]
            self.misses += 1
            logger.debug("Cache entry expired", key=key)
            return None

        self.hits += 1
        logger.debug("Using cached result", key=key)
        return entry.payload

    def set(self, key: str, payload: Any) -> None:
        self._entries[key] = CacheEntry(key=key, payload=payload, timestamp=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get_stats(self) -> Dict[str, Any]:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "ttl_seconds": self.ttl_seconds,
        }
