"""Cache façade with transparent fallback from Redis to local memory.

This module provides the CacheManager class, the single entry point route
handlers use for caching. It decides per call which backend serves the
request, retries on the local store when the backing store fails, and
reports every environmental failure as a miss.
"""

from typing import Any, Optional

from resilient_cache.cache import codec
from resilient_cache.cache.connection import RedisCache
from resilient_cache.cache.health import BackendHealth, BackendState
from resilient_cache.cache.keys import validate_key
from resilient_cache.cache.memory import MemoryCache
from resilient_cache.config import CacheSettings, load_settings, require_backend_url
from resilient_cache.exceptions import (
    CacheSerializationError,
    CacheTTLError,
    CacheValidationError,
)
from resilient_cache.models.responses import (
    BackendHealthInfo,
    CacheStats,
    HealthCheckResponse,
)
from resilient_cache.utils.logger import get_logger

logger = get_logger(__name__)


class _Miss:
    """Sentinel type for cache misses."""

    _instance: Optional["_Miss"] = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"


# Returned by get() for misses and failures alike; a cached None is a hit.
MISS = _Miss()


class CacheManager:
    """
    Main cache operations manager with fail-open behavior.

    Routes to Redis while it is healthy and to the in-process MemoryCache
    otherwise. Callers cannot tell which backend served them: values are
    JSON-normalized at this boundary so both paths return the same shapes.

    Attributes:
        settings: Process configuration
        remote: Backing store client, None when disabled by configuration
        local: Local fallback store
    """

    def __init__(
        self,
        settings: CacheSettings,
        remote: Optional[RedisCache] = None,
        local: Optional[MemoryCache] = None,
    ) -> None:
        """
        Initialize cache manager.

        Args:
            settings: Cache settings
            remote: Pre-built backing store client (built from settings if None)
            local: Pre-built local store (built from settings if None)

        Raises:
            ConfigurationError: If the cache is enabled without a backing store URL
        """
        self.settings = settings
        self.local = local or MemoryCache(
            max_entries=settings.local_max_entries,
            sweep_interval=settings.sweep_interval,
        )
        self._disabled_health: Optional[BackendHealth] = None

        if settings.cache_disabled:
            self.remote: Optional[RedisCache] = None
            self._disabled_health = BackendHealth.disabled()
            logger.info("cache_remote_disabled", reason="configuration")
        elif remote is not None:
            self.remote = remote
        else:
            require_backend_url(settings)
            self.remote = RedisCache(
                url=settings.backend_url,
                failure_threshold=settings.failure_threshold,
                socket_timeout=settings.socket_timeout,
                max_connections=settings.max_connections,
            )

        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "errors": 0,
            "fallbacks": 0,
        }

    @property
    def health(self) -> BackendHealth:
        if self.remote is None:
            return self._disabled_health
        return self.remote.health

    @property
    def state(self) -> BackendState:
        return self.health.state

    @property
    def backend(self) -> str:
        """Name of the backend that would serve the next call."""
        return "redis" if self._use_remote() else "memory"

    def _use_remote(self) -> bool:
        return self.remote is not None and self.remote.is_healthy

    async def connect(self) -> bool:
        """
        Connect the backing store.

        Returns:
            True if Redis is reachable; False if it is down or disabled
        """
        if self.remote is None:
            return False
        return await self.remote.connect()

    async def _ensure_connected(self) -> None:
        if self.remote is not None and self.remote.health.state is BackendState.UNKNOWN:
            await self.remote.connect()

    def _note_fallback(self, operation: str, key: str) -> None:
        self._stats["fallbacks"] += 1
        logger.info(
            "cache_fallback_used",
            operation=operation,
            key=key,
            backend_state=self.state.value,
        )

    def _resolve_ttl(self, ttl: Optional[int]) -> int:
        if ttl is None:
            return self.settings.default_ttl_seconds
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
            raise CacheTTLError(ttl)
        return ttl

    async def get(self, key: str) -> Any:
        """
        Retrieve cached value by key.

        Args:
            key: Cache key to retrieve

        Returns:
            Cached value, or MISS if not found or if the cache is broken

        Raises:
            CacheKeyError: If key is empty or not a string

        Example:
            >>> value = await manager.get("conversations:user:42")
            >>> if value is MISS:
            ...     value = await load_conversations("42")
        """
        validate_key(key)
        await self._ensure_connected()

        if self._use_remote():
            result = await self.remote.get(key)

            if result.ok:
                if result.value is None:
                    self._stats["misses"] += 1
                    logger.debug("cache_miss", key=key, backend="redis")
                    return MISS

                try:
                    value = codec.decode(result.value)
                except CacheSerializationError as e:
                    logger.error("cache_get_decode_error", key=key, error=str(e))
                    self._stats["errors"] += 1
                    self._stats["misses"] += 1
                    # Invalid cached data - delete it
                    await self.remote.delete(key)
                    return MISS

                self._stats["hits"] += 1
                logger.debug("cache_hit", key=key, backend="redis")
                return value

            self._note_fallback("get", key)

        found, value = await self.local.get(key)

        if not found:
            self._stats["misses"] += 1
            logger.debug("cache_miss", key=key, backend="memory")
            return MISS

        self._stats["hits"] += 1
        logger.debug("cache_hit", key=key, backend="memory")
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store value in cache with TTL.

        Args:
            key: Cache key
            value: Data to cache (must be JSON-serializable)
            ttl: Time to live in seconds (DEFAULT_TTL_SECONDS if None)

        Returns:
            True if cached successfully, False otherwise

        Raises:
            CacheKeyError: If key is empty or not a string
            CacheTTLError: If ttl is not a positive integer
        """
        validate_key(key)
        ttl = self._resolve_ttl(ttl)

        try:
            payload = codec.encode(value)
        except CacheSerializationError as e:
            logger.error("cache_set_serialization_error", key=key, error=str(e))
            self._stats["errors"] += 1
            return False

        await self._ensure_connected()

        if self._use_remote():
            result = await self.remote.set(key, payload, ttl)
            if result.ok:
                # Drop any copy written during an earlier outage so it
                # cannot shadow this value during the next one.
                await self.local.delete(key)
                self._stats["sets"] += 1
                logger.debug("cache_set", key=key, ttl=ttl, backend="redis", size=len(payload))
                return True

            self._note_fallback("set", key)

        # Store the JSON-normalized value so the fallback path returns
        # exactly what a Redis round trip would.
        stored = await self.local.set(key, codec.decode(payload), ttl)
        if stored:
            self._stats["sets"] += 1
            logger.debug("cache_set", key=key, ttl=ttl, backend="memory")
        return stored

    async def delete(self, key: str) -> bool:
        """
        Delete cached value by key.

        The local copy is always removed so that entries written during an
        outage do not resurface during the next one.

        Returns:
            True if the serving backend removed an entry
        """
        validate_key(key)
        await self._ensure_connected()

        removed_locally = await self.local.delete(key)

        if self._use_remote():
            result = await self.remote.delete(key)
            if result.ok:
                deleted = result.value > 0
                if deleted:
                    self._stats["deletes"] += 1
                logger.debug("cache_delete", key=key, deleted=deleted, backend="redis")
                return deleted

            self._note_fallback("delete", key)

        if removed_locally:
            self._stats["deletes"] += 1
        logger.debug("cache_delete", key=key, deleted=removed_locally, backend="memory")
        return removed_locally

    async def delete_by_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern (e.g. "conversations:user:42*").

        Returns:
            Number of keys deleted by the serving backend
        """
        if not isinstance(pattern, str) or not pattern:
            raise CacheValidationError("pattern cannot be empty", field="pattern")

        await self._ensure_connected()

        removed_locally = await self.local.delete_pattern(pattern)

        if self._use_remote():
            matched = await self.remote.keys_matching(pattern)
            if matched.ok:
                deleted = await self.remote.delete(*matched.value)
                if deleted.ok:
                    self._stats["deletes"] += deleted.value
                    logger.info(
                        "cache_delete_pattern",
                        pattern=pattern,
                        deleted=deleted.value,
                        backend="redis",
                    )
                    return deleted.value

            self._note_fallback("delete_by_pattern", pattern)

        self._stats["deletes"] += removed_locally
        logger.info(
            "cache_delete_pattern",
            pattern=pattern,
            deleted=removed_locally,
            backend="memory",
        )
        return removed_locally

    async def flush(self) -> bool:
        """
        Clear the entire cache (use with caution!).

        Returns:
            True if the serving backend was flushed
        """
        await self._ensure_connected()
        await self.local.flush()

        if self._use_remote():
            result = await self.remote.flush()
            if result.ok:
                logger.info("cache_flushed", backend="redis")
                return True

            self._note_fallback("flush", "*")

        logger.info("cache_flushed", backend="memory")
        return True

    def get_stats(self) -> CacheStats:
        """Get cache statistics for both backends."""
        lookups = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / lookups if lookups > 0 else 0.0

        return CacheStats(
            backend=self.backend,
            disabled=self.remote is None,
            hit_rate=round(hit_rate, 4),
            remote=BackendHealthInfo(**self.health.to_dict()),
            local=self.local.get_stats(),
            **self._stats,
        )

    async def health_check(self) -> HealthCheckResponse:
        """
        Probe the backing store and summarize cache health.

        Returns:
            HealthCheckResponse with "healthy", "degraded" or "disabled" status
        """
        if self.remote is None:
            return HealthCheckResponse(
                status="disabled",
                components={"redis": BackendState.DISABLED.value, "memory": "healthy"},
            )

        reachable = await self.remote.ping()

        return HealthCheckResponse(
            status="healthy" if reachable else "degraded",
            components={"redis": self.state.value, "memory": "healthy"},
        )

    async def close(self) -> None:
        """Close the backing store connection and stop the local sweep."""
        if self.remote is not None:
            await self.remote.close()
        await self.local.close()


# Process-wide manager, created on first use
_cache_manager: Optional[CacheManager] = None


async def get_cache_manager() -> CacheManager:
    """
    Get the process-wide cache manager, creating and connecting it on first use.

    Raises:
        ConfigurationError: If the environment configuration is invalid
    """
    global _cache_manager

    if _cache_manager is None:
        manager = CacheManager(load_settings())
        _cache_manager = manager
        await manager.connect()

        logger.info(
            "cache_manager_initialized",
            backend=manager.backend,
            state=manager.state.value,
        )

    return _cache_manager


def set_cache_manager(manager: Optional[CacheManager]) -> Optional[CacheManager]:
    """Install a cache manager as the process-wide instance; returns the previous one."""
    global _cache_manager
    previous = _cache_manager
    _cache_manager = manager
    return previous


async def close_cache_manager() -> None:
    """Tear down the process-wide cache manager, if one was created."""
    global _cache_manager

    manager = _cache_manager
    _cache_manager = None

    if manager is not None:
        await manager.close()
        logger.info("cache_manager_closed")
