"""TTL (Time To Live) presets for cached API responses.

This module defines the standard expiration tiers handlers pick from,
and resolves a tier from a namespace such as "api:short".
"""

from enum import Enum
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class CacheTTL(Enum):
    """
    Cache TTL tiers, in seconds.

    - SHORT: fast-changing data (live conversation lists)
    - STANDARD: the default for API responses
    - MEDIUM: derived data that is moderately expensive to rebuild
    - LONG: slow-changing reference data (voice catalogs, settings)
    """

    SHORT = 60  # 1 minute
    STANDARD = 300  # 5 minutes
    MEDIUM = 900  # 15 minutes
    LONG = 3600  # 1 hour

    @staticmethod
    def match(namespace: str) -> Optional["CacheTTL"]:
        """Return the tier named by the last segment of a namespace, if any."""
        tier = namespace.rsplit(":", 1)[-1].upper()
        return CacheTTL.__members__.get(tier)

    @staticmethod
    def for_namespace(namespace: str, default: Optional[int] = None) -> int:
        """
        Determine TTL from the last segment of a namespace.

        Args:
            namespace: Cache namespace, e.g. "api:medium"
            default: TTL to use when no tier matches (STANDARD if None)

        Returns:
            TTL in seconds

        Example:
            >>> CacheTTL.for_namespace("api:short")
            60
            >>> CacheTTL.for_namespace("conversations", default=120)
            120
        """
        tier = CacheTTL.match(namespace)

        if tier is not None:
            ttl = tier.value
        else:
            ttl = default if default is not None else CacheTTL.STANDARD.value

        logger.debug("ttl_determined", namespace=namespace, ttl_seconds=ttl)

        return ttl
