from __future__ import annotations

import time
from typing import Any, Callable, Sequence

from .config import DEFAULT_RECOMMENDATION_CONFIG


class RecommendationCache:
    """Per-user cache of the last computed recommendation ranking.

    Values are stored as tuples. Entries older than ``ttl_seconds`` count as
    misses and are evicted. Not locked.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_RECOMMENDATION_CONFIG.cache_ttl_seconds,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, user_id: str) -> tuple | None:
        entry = self._entries.get(user_id)
        if entry and self._clock() - entry["created_at"] < self.ttl_seconds:
            self._hits += 1
            return entry["value"]
        if entry:
            self._entries.pop(user_id, None)
        self._misses += 1
        return None

    def set(self, user_id: str, value: Sequence) -> None:
        self._entries[user_id] = {"value": tuple(value), "created_at": self._clock()}

    def invalidate(self, user_id: str) -> bool:
        """Drop the entry for *user_id*; return whether one existed."""
        return self._entries.pop(user_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            "ttl_seconds": self.ttl_seconds,
        }


DEFAULT_CACHE = RecommendationCache()


def invalidate_cache(user_id: str, cache: RecommendationCache = DEFAULT_CACHE) -> bool:
    return cache.invalidate(user_id)
