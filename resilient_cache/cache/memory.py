"""In-process fallback store.

Serves the cache when the backing store is disabled or unreachable.
Entries live in an OrderedDict with per-key expiry; reads check expiry
lazily and a background task sweeps expired entries to bound memory.
Contents are lost on restart.

The store is confined to the event loop thread and takes no locks. A
multi-threaded caller would need a mutex around every method.
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with its expiration instant (monotonic seconds)."""

    key: str
    value: Any
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class MemoryCache:
    """
    Local key-value store with TTL expiry and LRU eviction.

    Attributes:
        max_entries: Maximum number of live entries before LRU eviction
        sweep_interval: Seconds between background expiry sweeps
    """

    def __init__(
        self,
        max_entries: int = 10000,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize memory cache.

        Args:
            max_entries: Maximum number of entries to keep
            sweep_interval: Interval in seconds for the expiry sweep
            clock: Monotonic time source, replaceable in tests
        """
        self.max_entries = max_entries
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._sweep_task: Optional[asyncio.Task] = None
        self._closed = False

        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "evictions": 0,
            "expirations": 0,
        }

    def _ensure_sweeper(self) -> None:
        """Start the sweep task on first use inside a running loop."""
        if self._closed or (self._sweep_task and not self._sweep_task.done()):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        self._sweep_task = loop.create_task(self._sweep_loop())

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            removed = self.sweep()
            if removed:
                logger.debug("memory_cache_swept", removed=removed, size=len(self._entries))

    def sweep(self) -> int:
        """
        Evict every expired entry.

        Iterates over a snapshot of the keys so a large map is never
        scanned while being mutated.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        removed = 0

        for key in list(self._entries.keys()):
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(now):
                del self._entries[key]
                removed += 1

        self._stats["expirations"] += removed
        return removed

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._stats["expirations"] += 1
            return None

        return entry

    async def get(self, key: str) -> Tuple[bool, Any]:
        """
        Retrieve a value.

        Returns:
            (found, value) tuple; a stored None is distinguishable from a miss
        """
        self._ensure_sweeper()

        entry = self._live_entry(key)
        if entry is None:
            self._stats["misses"] += 1
            return False, None

        self._entries.move_to_end(key)
        self._stats["hits"] += 1
        return True, entry.value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Store a value, replacing any previous entry for the key."""
        self._ensure_sweeper()

        expires_at = None
        if ttl_seconds is not None:
            expires_at = self._clock() + ttl_seconds

        self._entries[key] = CacheEntry(key=key, value=value, expires_at=expires_at)
        self._entries.move_to_end(key)
        self._stats["sets"] += 1

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._stats["evictions"] += 1
            logger.debug("memory_cache_evicted", key=evicted)

        return True

    async def delete(self, key: str) -> bool:
        """Delete a key; returns True if a live entry was removed."""
        if self._live_entry(key) is None:
            return False

        del self._entries[key]
        self._stats["deletes"] += 1
        return True

    async def keys(self, pattern: str = "*") -> List[str]:
        """Return live keys matching a Redis-style glob pattern."""
        now = self._clock()
        return [
            key
            for key, entry in list(self._entries.items())
            if not entry.is_expired(now) and fnmatchcase(key, pattern)
        ]

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every live key matching a glob pattern."""
        matched = await self.keys(pattern)
        for key in matched:
            del self._entries[key]

        self._stats["deletes"] += len(matched)
        return len(matched)

    async def flush(self) -> bool:
        """Remove every entry."""
        count = len(self._entries)
        self._entries.clear()
        logger.debug("memory_cache_flushed", removed=count)
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total_requests if total_requests > 0 else 0.0

        return {
            **self._stats,
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "hit_rate": round(hit_rate, 4),
        }

    async def close(self) -> None:
        """Stop the sweep task and drop all entries."""
        self._closed = True

        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass

        self._sweep_task = None
        self._entries.clear()
