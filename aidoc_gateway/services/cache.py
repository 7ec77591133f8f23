"""
Response Cache Service

In-process memoization of AI responses keyed by the exchanged messages.

Entries are visible while ``now - created_at <= ttl_seconds`` and purged
lazily on read. The map is bounded: once it holds more than max_entries,
the oldest-inserted entry is evicted (insertion order, not LRU).

Pattern: Repository pattern over an in-memory store
Anti-Pattern §1.3 Avoided: Uses typed structures for entries
"""

import hashlib
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from aidoc_gateway.models.domain import Message
from aidoc_gateway.observability.metrics import record_cache_operation


# =============================================================================
# Default Configuration
# =============================================================================


DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_CACHE_MAX_ENTRIES = 1000


@dataclass
class CacheEntry:
    """A cached response and its insertion time on the cache clock."""

    response: str
    created_at: float


# =============================================================================
# ResponseCache Service
# =============================================================================


class ResponseCache:
    """
    Bounded TTL cache for completed AI responses.

    All operations hold a lock so insert-then-evict is atomic with respect
    to concurrent callers.

    Attributes:
        ttl_seconds: Entry lifetime in seconds
        max_entries: Bound on the number of stored entries
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """
        Initialize ResponseCache.

        Args:
            ttl_seconds: Entry lifetime (default: 300)
            max_entries: Maximum stored entries (default: 1000)
            clock: Monotonic clock in seconds, injectable for tests
        """
        self._ttl_seconds = ttl_seconds if ttl_seconds is not None else DEFAULT_CACHE_TTL_SECONDS
        self._max_entries = max_entries if max_entries is not None else DEFAULT_CACHE_MAX_ENTRIES
        if self._max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._clock = clock or time.monotonic
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @staticmethod
    def make_key(messages: list[Message]) -> str:
        """
        Generate a cache key from an ordered message list.

        Only role and content take part, in order; timestamps do not.

        Returns:
            Hex digest string
        """
        key_parts = [[m.role, m.content] for m in messages]
        key_json = json.dumps(key_parts, ensure_ascii=False, separators=(",", ":"))
        return hashlib.sha256(key_json.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[str]:
        """
        Return the cached response if present and not expired.

        Expired entries are removed.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() - entry.created_at > self._ttl_seconds:
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                record_cache_operation("miss")
                return None

            self._hits += 1
            record_cache_operation("hit")
            return entry.response

    def put(self, key: str, response: str) -> None:
        """
        Insert or overwrite an entry, then evict the oldest if over the bound.

        Overwriting moves the key to the newest insertion position.
        """
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(response=response, created_at=self._clock())
            if len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        """Remove all entries unconditionally."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Size and hit ratio since construction."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hitRate": self._hits / lookups if lookups else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
