"""Cache key generation for consistent, deterministic cache keys.

This module provides the CacheKeyGenerator class for building readable
cache keys from a namespace and a parameter mapping.
"""

import json
from typing import Any, Mapping, Optional

import structlog

from resilient_cache.exceptions import CacheKeyError, CacheValidationError

logger = structlog.get_logger(__name__)

SEPARATOR = ":"


def validate_key(key: Any) -> str:
    """
    Check that a cache key is a non-empty string.

    Raises:
        CacheKeyError: If the key is empty or not a string
    """
    if not isinstance(key, str):
        raise CacheKeyError(f"Cache key must be a string, got {type(key).__name__}")
    if not key:
        raise CacheKeyError()
    return key


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return str(value)


class CacheKeyGenerator:
    """
    Generate consistent cache keys for API computations.

    Cache keys follow the pattern: {namespace}:{name}:{value}:{name}:{value}...

    Parameter names are sorted so that two mappings holding the same
    pairs in a different insertion order produce the same key. Parameters
    whose value is None are left out entirely, so omitting a parameter and
    passing it as None are equivalent.
    """

    @staticmethod
    def generate(namespace: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Generate cache key for a namespaced request.

        Args:
            namespace: Key namespace (e.g., "conversations")
            params: Request parameters as a mapping

        Returns:
            Cache key string

        Raises:
            CacheKeyError: If namespace is empty
            CacheValidationError: If params is not a mapping

        Example:
            >>> CacheKeyGenerator.generate("api", {"user": "42", "path": "/x"})
            'api:path:/x:user:42'
        """
        if not isinstance(namespace, str) or not namespace:
            raise CacheKeyError("Cache namespace cannot be empty")

        if params is None:
            params = {}
        elif not isinstance(params, Mapping):
            raise CacheValidationError(
                f"expected a mapping, got {type(params).__name__}", field="params"
            )

        parts = [namespace]
        for name in sorted(params, key=str):
            value = params[name]
            if value is None:
                continue
            parts.append(f"{name}{SEPARATOR}{_render_value(value)}")

        cache_key = SEPARATOR.join(parts)

        logger.debug(
            "cache_key_generated",
            namespace=namespace,
            param_count=len(parts) - 1,
            cache_key=cache_key,
        )

        return cache_key


def build_key(namespace: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Shorthand for CacheKeyGenerator.generate."""
    return CacheKeyGenerator.generate(namespace, params)


# Convenience singleton instance
key_generator = CacheKeyGenerator()
