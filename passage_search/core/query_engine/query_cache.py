"""Read-through query result cache with LRU eviction and a TTL.

Entries are immutable snapshots: values are deep-copied when stored and again
when returned, so a hit never hands out a live reference to a prior result.
"""

from __future__ import annotations

import copy
import json
import re
import time
from collections import OrderedDict
from typing import Any, Callable, Mapping

from passage_search.core.settings import CacheSettings
from passage_search.observability.logger import get_logger

logger = get_logger(__name__)


class QueryCache:
    """Size-bounded (LRU) and age-bounded (TTL) cache keyed by query + options."""

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = max_size
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_settings(cls, settings: Any) -> "QueryCache | None":
        """Build a cache from ``settings.cache``; None when caching is disabled."""

        cache_settings = getattr(settings, "cache", None)
        if not isinstance(cache_settings, CacheSettings):
            cache_settings = CacheSettings()
        if not cache_settings.enabled:
            return None
        return cls(max_size=cache_settings.max_size, ttl_seconds=cache_settings.ttl_seconds)

    @staticmethod
    def make_key(query: str, options: Mapping[str, Any] | None = None) -> str:
        return f"{query}:{json.dumps(dict(options or {}), sort_keys=True, default=str)}"

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        value, stored_at = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            self.misses += 1
            logger.debug("Cache entry expired for key: %s", key)
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = (copy.deepcopy(value), self._clock())
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted least recently used cache entry: %s", evicted)

    def invalidate(self, key_pattern: str | None = None) -> int:
        """Drop entries whose key matches ``key_pattern`` (all when None)."""

        if key_pattern is None:
            count = len(self._entries)
            self._entries.clear()
            return count
        pattern = re.compile(key_pattern)
        doomed = [key for key in self._entries if pattern.search(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
        }

    def __len__(self) -> int:
        return len(self._entries)
