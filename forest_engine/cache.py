"""
Forest Engine: cache store.

Simple in-memory key -> (value, written_at, ttl) map. An entry is valid
while ``now - written_at < ttl``; expired entries are treated as absent
and evicted lazily on read, with an optional opportunistic sweep.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from config.settings import CACHE_TTLS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    written_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.written_at < self.ttl


class CacheStore:
    """In-memory cache with per-category TTL support."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[str, CacheEntry] = {}
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if not expired. Never raises."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_valid(self._clock()):
            logger.debug(f"Cache hit: {key[:40]}")
            return entry.value
        del self._entries[key]
        return None

    def entry(self, key: str) -> Optional[CacheEntry]:
        """Raw entry for a key, valid or not."""
        return self._entries.get(key)

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Set cached value with TTL, overwriting any previous entry."""
        self._entries[key] = CacheEntry(key=key, value=value, written_at=self._clock(), ttl=ttl)

    def invalidate_all(self) -> None:
        """Clear all cached values."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cache cleared ({count} entries)")

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if not e.is_valid(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


def ttl_for(category) -> int:
    """Fixed TTL (seconds) for a data category."""
    return CACHE_TTLS[getattr(category, "value", category)]


def generate_cache_key(category, params: dict, live_only: bool) -> str:
    """Unique cache key from category, mode and request parameters."""
    name = getattr(category, "value", category)
    mode = "live" if live_only else "any"
    param_str = json.dumps(params, sort_keys=True, default=str)
    digest = hashlib.md5(f"{name}:{mode}:{param_str}".encode()).hexdigest()
    return f"{name}:{mode}:{digest}"
