"""Summary cache for context compaction (exact match on summarized messages)."""

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

import structlog

from chatflow.types import Message

logger = structlog.get_logger()


@dataclass
class CacheEntry:
    """A cached summary entry."""

    key: str
    summary: str
    timestamp: float
    ttl_seconds: int

    def is_expired(self) -> bool:
        """Check if entry has expired."""
        return (time.time() - self.timestamp) > self.ttl_seconds


class SummaryCache:
    """TTL cache of generated conversation summaries.

    Owned by one compactor instance; all access goes through a lock so a
    summary is computed at most once per key even under concurrent calls.
    """

    def __init__(self, ttl_seconds: int = 1800, max_size: int = 256) -> None:
        """Initialize summary cache.

        Args:
            ttl_seconds: Time-to-live for cached entries
            max_size: Maximum number of entries to store
        """
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def key_for(messages: Sequence[Message]) -> str:
        """Generate a cache key from the messages being summarized."""
        digest = hashlib.sha256()
        for message in messages:
            digest.update(message.role.value.encode())
            digest.update(b"\x1f")
            digest.update(message.content.encode())
            digest.update(b"\x1e")
        return digest.hexdigest()

    def get(self, key: str) -> Optional[str]:
        """Get a cached summary if present and fresh."""
        with self._lock:
            return self._get_locked(key)

    def set(self, key: str, summary: str) -> None:
        """Cache a summary."""
        with self._lock:
            self._set_locked(key, summary)

    def get_or_set(self, key: str, factory: Callable[[], str]) -> str:
        """Return the cached summary, computing and storing it on a miss."""
        with self._lock:
            cached = self._get_locked(key)
            if cached is not None:
                return cached

            summary = factory()
            self._set_locked(key, summary)
            return summary

    def _get_locked(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)

        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired():
            del self._cache[key]
            self._misses += 1
            logger.debug("summary_cache_entry_expired", key=key[:8])
            return None

        self._hits += 1
        logger.debug("summary_cache_hit", key=key[:8])
        return entry.summary

    def _set_locked(self, key: str, summary: str) -> None:
        if key not in self._cache and len(self._cache) >= self.max_size:
            self._evict_oldest()

        self._cache[key] = CacheEntry(
            key=key,
            summary=summary,
            timestamp=time.time(),
            ttl_seconds=self.ttl_seconds,
        )

    def _evict_oldest(self) -> None:
        """Evict the oldest 10% of entries."""
        sorted_entries = sorted(self._cache.items(), key=lambda x: x[1].timestamp)
        to_remove = int(len(sorted_entries) * 0.1) + 1

        for key, _ in sorted_entries[:to_remove]:
            del self._cache[key]

        logger.debug("summary_cache_evicted", removed=to_remove)

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
        logger.info("summary_cache_cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    @property
    def hit_rate(self) -> float:
        """Hit rate as percentage (0-100)."""
        with self._lock:
            return self._hit_rate_locked()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hit_rate_locked(),
                "ttl_seconds": self.ttl_seconds,
            }

    def _hit_rate_locked(self) -> float:
        total = self._hits + self._misses
        if total == 0:
            return 0.0
        return (self._hits / total) * 100
