"""
Pricing fetch cache.

Maps a normalized query to a previously fetched raw response. Keys embed a
version tag so bumping the version invalidates every stored entry.
"""
import copy
import hashlib
import time
from typing import Any, Dict, Optional, Tuple


def build_cache_key(query: str, version: str = "0") -> str:
    """
    Derive the cache key for a query.

    Args:
        query: Normalized query text
        version: Cache version tag

    Returns:
        32 character hex digest of "<version>::<query>"
    """
    return hashlib.md5(f"{version}::{query}".encode("utf-8")).hexdigest()


class PricingCache:
    """Interface for the key-value fetch-or-compute cache."""

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        raise NotImplementedError

    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store a value for ttl_seconds."""
        raise NotImplementedError


class InMemoryPricingCache(PricingCache):
    """
    In-memory cache with per-entry TTL.

    Values are deep-copied on the way in and out so callers can never mutate
    a stored response.
    """

    def __init__(self, clock=time.monotonic):
        """
        Initialize cache.

        Args:
            clock: Zero-argument callable returning seconds (injectable for tests)
        """
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            # Expired, remove from cache
            self._entries.pop(key, None)
            return None
        return copy.deepcopy(value)

    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = (copy.deepcopy(value), self._clock() + ttl_seconds)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics (for debugging/monitoring).

        Returns:
            Dictionary with stats
        """
        return {"total_entries": len(self._entries)}
