"""Redis connection and health management.

This module provides the RedisCache class, the backing store client.
It owns the connection pool, the reconnect loop and the BackendHealth
record. Every command fails soft: transport errors are logged, counted
and reported through CommandResult instead of being raised.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, NamedTuple, Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

import structlog

from resilient_cache.cache.health import BackendHealth
from resilient_cache.config import RECONNECT_BACKOFF_BASE, RECONNECT_BACKOFF_MAX
from resilient_cache.exceptions import CacheConnectionError, ConfigurationError
from resilient_cache.utils.logger import redact_url

logger = structlog.get_logger(__name__)

# redis.TimeoutError and redis.ConnectionError derive from RedisError;
# OSError covers sockets torn down underneath the client.
TRANSPORT_ERRORS = (redis.RedisError, OSError, asyncio.TimeoutError)


class CommandResult(NamedTuple):
    """
    Outcome of a backing store command.

    Attributes:
        ok: False if the command failed or was skipped because the
            store is not healthy
        value: Command result, or the command's no-op value on failure
    """

    ok: bool
    value: Any = None


def backoff_delay(
    attempt: int,
    base: float = RECONNECT_BACKOFF_BASE,
    cap: float = RECONNECT_BACKOFF_MAX,
) -> float:
    """
    Exponential reconnect delay, capped.

    Example:
        >>> [backoff_delay(n) for n in range(7)]
        [0.1, 0.2, 0.4, 0.8, 1.6, 3.0, 3.0]
    """
    return min(base * (2 ** attempt), cap)


class RedisCache:
    """
    Redis client with connection pooling, health tracking and reconnects.

    Attributes:
        url: Connection URL (credentials are never logged)
        pool: Redis connection pool
        client: Redis client instance
        health: Process-wide health record for this connection
    """

    def __init__(
        self,
        url: str,
        failure_threshold: int = 3,
        socket_timeout: float = 5.0,
        max_connections: int = 20,
        backoff_base: float = RECONNECT_BACKOFF_BASE,
        backoff_max: float = RECONNECT_BACKOFF_MAX,
        client: Optional[redis.Redis] = None,
    ) -> None:
        """
        Initialize the Redis client.

        No network I/O happens here; call connect() to open the connection.

        Args:
            url: Redis connection URL
            failure_threshold: Consecutive failures before marking unhealthy
            socket_timeout: Connect and command timeout in seconds
            max_connections: Connection pool size
            backoff_base: First reconnect delay in seconds
            backoff_max: Upper bound for reconnect delays
            client: Pre-built client (used by tests)

        Raises:
            ConfigurationError: If the URL cannot be parsed
        """
        self.url = url
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.health = BackendHealth(failure_threshold=failure_threshold)
        self.pool: Optional[ConnectionPool] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closed = False

        if client is not None:
            self.client = client
            return

        try:
            self.pool = ConnectionPool.from_url(
                url,
                max_connections=max_connections,
                decode_responses=False,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
            )
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid backing store URL: {e}", setting="BACKEND_URL"
            ) from e

        self.client = redis.Redis(connection_pool=self.pool)

        logger.info(
            "redis_pool_initialized",
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            redis_url=redact_url(url),
        )

    @property
    def is_healthy(self) -> bool:
        return self.health.is_healthy

    async def connect(self) -> bool:
        """
        Open the connection and verify it with PING.

        On failure a reconnect loop is scheduled in the background.
        Never raises.

        Returns:
            True if the store answered
        """
        if self._closed:
            return False

        if await self._attempt_connect():
            return True

        self._schedule_reconnect()
        return False

    async def _attempt_connect(self) -> bool:
        self.health.mark_connecting()

        try:
            await self.client.ping()
        except TRANSPORT_ERRORS as e:
            self.health.record_failure(CacheConnectionError(str(e), operation="connect"))
            logger.error(
                "redis_connect_failed",
                redis_url=redact_url(self.url),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        self.health.record_success()
        logger.info("redis_connected", redis_url=redact_url(self.url))
        return True

    def _schedule_reconnect(self) -> None:
        if self._closed:
            return
        if self._reconnect_task and not self._reconnect_task.done():
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("redis_reconnect_not_scheduled", reason="no_running_loop")
            return

        self._reconnect_task = loop.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        attempt = 0

        while not self._closed and not self.health.is_healthy:
            delay = backoff_delay(attempt, self.backoff_base, self.backoff_max)
            self.health.reconnect_attempts = attempt + 1

            logger.info(
                "redis_reconnect_scheduled",
                attempt=attempt + 1,
                delay_seconds=delay,
            )

            await asyncio.sleep(delay)

            if self._closed or self.health.is_healthy:
                break

            if await self._attempt_connect():
                break

            attempt += 1

    async def ping(self) -> bool:
        """
        Explicit health probe.

        Unlike regular commands this always reaches for the network, even
        when the store is marked unhealthy, and records the outcome.

        Returns:
            True if Redis is healthy, False otherwise
        """
        try:
            await self.client.ping()
        except TRANSPORT_ERRORS as e:
            self._record_failure("ping", e)
            return False

        self.health.record_success()
        logger.debug("redis_ping_success")
        return True

    def _record_failure(self, operation: str, error: BaseException) -> None:
        wrapped = CacheConnectionError(str(error), operation=operation)
        became_unhealthy = self.health.record_failure(wrapped)

        logger.warning(
            "redis_command_failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            consecutive_failures=self.health.consecutive_failures,
        )

        if became_unhealthy:
            self._schedule_reconnect()

    async def _execute(
        self,
        operation: str,
        command: Callable[[], Awaitable[Any]],
        default: Any = None,
    ) -> CommandResult:
        if self._closed or not self.health.is_healthy:
            return CommandResult(False, default)

        try:
            value = await command()
        except TRANSPORT_ERRORS as e:
            self._record_failure(operation, e)
            return CommandResult(False, default)

        self.health.record_success()
        return CommandResult(True, value)

    async def get(self, key: str) -> CommandResult:
        """Fetch the raw bytes stored at key (None on a miss)."""

        async def command() -> Any:
            try:
                return await self.client.get(key)
            except UnicodeDecodeError as e:
                # A client built with decode_responses=True cannot decode
                # non-UTF-8 payloads; pass the raw bytes on as corrupt data.
                return e.object

        return await self._execute("get", command)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> CommandResult:
        """Store a raw string, with expiry when ttl_seconds is given."""

        async def command() -> bool:
            if ttl_seconds is not None:
                await self.client.setex(key, ttl_seconds, value)
            else:
                await self.client.set(key, value)
            return True

        return await self._execute("set", command, default=False)

    async def delete(self, *keys: str) -> CommandResult:
        """Delete keys; the result value is the number removed."""
        if not keys:
            return CommandResult(True, 0)

        async def command() -> int:
            return int(await self.client.delete(*keys))

        return await self._execute("delete", command, default=0)

    async def keys_matching(self, pattern: str) -> CommandResult:
        """
        List keys matching a glob pattern using incremental SCAN.

        Keys are returned as the server sent them (bytes from the default
        pool) and can be passed straight back to delete().
        """

        async def command() -> List[Any]:
            return [key async for key in self.client.scan_iter(match=pattern, count=500)]

        return await self._execute("keys_matching", command, default=[])

    async def flush(self) -> CommandResult:
        """Remove every key in the selected database."""

        async def command() -> bool:
            await self.client.flushdb()
            return True

        return await self._execute("flush", command, default=False)

    async def close(self) -> None:
        """
        Close the client and pool and stop reconnecting.

        Should be called during application shutdown.
        """
        self._closed = True

        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        try:
            await self.client.aclose()
            logger.info("redis_client_closed")

            if self.pool:
                await self.pool.disconnect()
                logger.info("redis_pool_disconnected")

        except TRANSPORT_ERRORS as e:
            logger.error(
                "redis_close_error",
                error=str(e),
                error_type=type(e).__name__,
            )
