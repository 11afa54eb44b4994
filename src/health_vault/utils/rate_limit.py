# ============================================================================
# src/health_vault/utils/rate_limit.py
# ============================================================================
"""
Sliding-Window Rate Limiter

One instance per route, constructed explicitly and injected where it is
used (the API builds one for /api/extract and one for /api/chat).

Features:
- Per-client request timestamps inside a sliding time window
- LRU eviction when more than max_keys clients are tracked
- Whole-entry expiry once a client has been idle for a full window
- Thread-safe operations
- Statistics for monitoring

Example:
    limiter = RateLimiter(interval=60.0, max_keys=500)

    if not limiter.check(limit=30, key=client_ip).allowed:
        raise RateLimitedError("Rate limit exceeded")
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List
import logging


@dataclass
class RateLimitEntry:
    """
    Request history for one client key.

    Attributes:
        key: Client identifier (usually the forwarded IP)
        timestamps: Monotonic times of the requests still inside the window
        last_seen: Monotonic time of the most recent check
    """
    key: str
    timestamps: List[float] = field(default_factory=list)
    last_seen: float = 0.0

    def prune(self, now: float, interval: float) -> None:
        """Drop timestamps that have left the window"""
        self.timestamps = [ts for ts in self.timestamps if now - ts < interval]

    def is_expired(self, now: float, interval: float) -> bool:
        return now - self.last_seen >= interval


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: float = 0.0


class RateLimitStatistics:
    """Track limiter behaviour"""

    def __init__(self):
        self.allowed = 0
        self.rejected = 0
        self.evictions = 0
        self.expirations = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "rejected": self.rejected,
            "evictions": self.evictions,
            "expirations": self.expirations,
        }


class RateLimiter:
    """
    Time-windowed request counter keyed by client.

    A request is allowed while fewer than `limit` requests from the same key
    fall inside the last `interval` seconds.
    """

    def __init__(
        self,
        interval: float = 60.0,
        max_keys: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize limiter.

        Args:
            interval: Window length in seconds
            max_keys: Maximum number of tracked clients (LRU eviction when exceeded)
            clock: Monotonic time source, injectable for tests
        """
        self.interval = interval
        self.max_keys = max_keys
        self._clock = clock

        self._entries: "OrderedDict[str, RateLimitEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._stats = RateLimitStatistics()

        self.logger = logging.getLogger(__name__)

    def check(self, limit: int, key: str) -> RateLimitResult:
        """
        Record a request for `key` if it fits in the budget.

        Rejected requests are not recorded, so a client that keeps hammering
        is let back in as soon as its oldest allowed request ages out.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is not None and entry.is_expired(now, self.interval):
                self._entries.pop(key)
                self._stats.expirations += 1
                entry = None

            if entry is None:
                self._ensure_space()
                entry = RateLimitEntry(key=key)
                self._entries[key] = entry

            entry.prune(now, self.interval)
            entry.last_seen = now
            self._entries.move_to_end(key)

            if len(entry.timestamps) >= limit:
                self._stats.rejected += 1
                retry_after = self.interval - (now - entry.timestamps[0])
                self.logger.warning(f"Rate limit exceeded for {key} ({limit}/{self.interval:.0f}s)")
                return RateLimitResult(allowed=False, remaining=0, retry_after=max(0.0, retry_after))

            entry.timestamps.append(now)
            self._stats.allowed += 1
            return RateLimitResult(allowed=True, remaining=limit - len(entry.timestamps))

    def reset(self, key: str) -> bool:
        """Forget one client. Returns True if it was tracked."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def cleanup_expired(self) -> int:
        """Remove all idle clients. Returns number of entries removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._entries.items()
                if entry.is_expired(now, self.interval)
            ]
            for key in expired:
                del self._entries[key]
            self._stats.expirations += len(expired)
            return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            stats = self._stats.to_dict()
            stats["tracked_keys"] = len(self._entries)
            stats["max_keys"] = self.max_keys
            stats["interval"] = self.interval
            return stats

    def _ensure_space(self) -> None:
        """Evict least recently seen clients until a new key fits"""
        while len(self._entries) >= self.max_keys:
            evicted_key, _ = self._entries.popitem(last=False)
            self._stats.evictions += 1
            self.logger.debug(f"Evicted rate limit entry: {evicted_key}")
