"""Memoizing wrapper for async computations.

Wraps a coroutine function so each call checks the cache once, computes
on a miss, and stores the result before returning. Cache trouble never
fails the call; errors raised by the wrapped function always propagate.

Concurrent callers that miss on the same key each run the computation;
there is no single-flight de-duplication.
"""

import functools
import inspect
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar, Union

from resilient_cache.cache import codec
from resilient_cache.cache.keys import SEPARATOR, build_key, validate_key
from resilient_cache.cache.manager import MISS, CacheManager, get_cache_manager
from resilient_cache.cache.ttl import CacheTTL
from resilient_cache.exceptions import CacheSerializationError, CacheTTLError
from resilient_cache.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

KeyGenerator = Callable[..., str]


def default_key_params(args: tuple, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build key parameters from call arguments.

    A mapping passed as the first positional argument supplies the
    parameters directly. Other positional arguments are named arg0,
    arg1, ... by position, and keyword arguments are added by name.
    """
    params: Dict[str, Any] = {}
    positional = list(args)

    if positional and isinstance(positional[0], Mapping):
        params.update(positional.pop(0))
        offset = 1
    else:
        offset = 0

    for index, value in enumerate(positional, start=offset):
        params[f"arg{index}"] = value

    params.update(kwargs)
    return params


def _normalize_ttl(ttl: Union[int, CacheTTL, None]) -> Optional[int]:
    if ttl is None:
        return None
    if isinstance(ttl, CacheTTL):
        return ttl.value
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
        raise CacheTTLError(ttl)
    return ttl


def wrap(
    fn: Callable[..., Awaitable[T]],
    namespace: Optional[str] = None,
    ttl: Union[int, CacheTTL, None] = None,
    key_generator: Optional[KeyGenerator] = None,
    manager: Optional[CacheManager] = None,
) -> Callable[..., Awaitable[T]]:
    """
    Wrap an async function with cache-aside memoization.

    Args:
        fn: Coroutine function to memoize
        namespace: Key namespace (defaults to the function's qualified name)
        ttl: Time to live in seconds or a CacheTTL tier. If None, a namespace
            ending in a tier name (e.g. "api:short") uses that tier; otherwise
            the manager default applies
        key_generator: Callable receiving the call's arguments and returning the key
        manager: Cache manager to use (process-wide manager if None)

    Returns:
        Coroutine function with the same signature as fn. Results are
        JSON-normalized on every call (tuples become lists, mapping keys
        become strings), whether they were computed or read from the cache

    Raises:
        TypeError: If fn is not a coroutine function
        CacheTTLError: If ttl is invalid

    Example:
        >>> async def list_conversations(params):
        ...     return await db.conversations.find(params)
        >>> cached_list = wrap(list_conversations, namespace="conversations", ttl=60)
        >>> await cached_list({"user": "42"})
    """
    if not inspect.iscoroutinefunction(fn):
        raise TypeError(f"wrap() requires a coroutine function, got {fn!r}")

    namespace = namespace or fn.__qualname__
    if ttl is None and SEPARATOR in namespace:
        ttl = CacheTTL.match(namespace)
    ttl_seconds = _normalize_ttl(ttl)

    def cache_key(*args: Any, **kwargs: Any) -> str:
        if key_generator is not None:
            key = key_generator(*args, **kwargs)
        else:
            key = build_key(namespace, default_key_params(args, kwargs))
        return validate_key(key)

    async def resolve_manager() -> CacheManager:
        if manager is not None:
            return manager
        return await get_cache_manager()

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        key = cache_key(*args, **kwargs)
        cache = await resolve_manager()

        try:
            cached_result = await cache.get(key)
        except Exception as e:
            logger.warning(
                "cache_wrapper_get_failed",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            cached_result = MISS

        if cached_result is not MISS:
            logger.debug("cache_wrapper_hit", namespace=namespace, key=key)
            return cached_result

        logger.debug("cache_wrapper_miss", namespace=namespace, key=key)
        result = await fn(*args, **kwargs)

        # Hand back the same JSON shape a later hit would return.
        try:
            result = codec.decode(codec.encode(result))
        except CacheSerializationError as e:
            logger.debug("cache_wrapper_result_not_normalized", key=key, error=str(e))

        try:
            await cache.set(key, result, ttl_seconds)
        except Exception as e:
            logger.warning(
                "cache_wrapper_set_failed",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )

        return result

    async def invalidate(*args: Any, **kwargs: Any) -> bool:
        """Drop the cached result for these arguments."""
        cache = await resolve_manager()
        return await cache.delete(cache_key(*args, **kwargs))

    wrapper.cache_key = cache_key
    wrapper.invalidate = invalidate
    return wrapper


def cached(
    fn: Optional[Callable[..., Awaitable[T]]] = None,
    *,
    namespace: Optional[str] = None,
    ttl: Union[int, CacheTTL, None] = None,
    key_generator: Optional[KeyGenerator] = None,
    manager: Optional[CacheManager] = None,
):
    """
    Decorator form of wrap().

    Usable bare (``@cached``) or with options (``@cached(ttl=CacheTTL.SHORT)``).
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        return wrap(
            func,
            namespace=namespace,
            ttl=ttl,
            key_generator=key_generator,
            manager=manager,
        )

    if fn is not None:
        return decorator(fn)

    return decorator
