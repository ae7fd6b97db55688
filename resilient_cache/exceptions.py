"""
Custom exceptions for the resilient cache layer.

Environmental failures (transport, serialization) are absorbed inside the
cache and surface as misses. Only configuration and caller errors are
meant to reach application code.
"""

from typing import Any, Optional


class CacheError(Exception):
    """
    Base exception for all cache related errors.

    Use this for catching any error raised by the cache package.
    """

    def __init__(self, message: str) -> None:
        """
        Initialize CacheError.

        Args:
            message: Error description
        """
        self.message = message
        super().__init__(self.message)


class ConfigurationError(CacheError):
    """
    Raised when cache configuration is invalid at startup.

    This occurs when:
    - The backing store URL is missing while the cache is enabled
    - An environment variable holds a value of the wrong type or range

    There is no safe default for these, so they are fatal.

    Example:
        >>> raise ConfigurationError("BACKEND_URL is required", setting="BACKEND_URL")
    """

    def __init__(self, message: str, setting: Optional[str] = None) -> None:
        """
        Initialize ConfigurationError.

        Args:
            message: Error description
            setting: Optional name of the offending setting
        """
        self.setting = setting
        super().__init__(message)


class CacheValidationError(CacheError, ValueError):
    """
    Raised when a caller passes invalid arguments to a cache operation.

    This is a programming mistake, not an environmental condition,
    and is never retried or absorbed.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        """
        Initialize CacheValidationError.

        Args:
            message: Error description
            field: Optional argument name that failed validation
        """
        self.field = field

        if field:
            message = f"{field}: {message}"

        super().__init__(message)


class CacheKeyError(CacheValidationError):
    """
    Raised when a cache key or namespace is empty or not a string.

    Example:
        >>> raise CacheKeyError("Cache key cannot be empty")
    """

    def __init__(self, message: str = "Cache key cannot be empty") -> None:
        super().__init__(message, field="key")


class CacheTTLError(CacheValidationError):
    """
    Raised when a TTL is not a positive integer number of seconds.

    Example:
        >>> raise CacheTTLError(ttl=0)
    """

    def __init__(self, ttl: Any) -> None:
        self.ttl = ttl
        super().__init__(
            f"TTL must be a positive integer number of seconds, got {ttl!r}",
            field="ttl",
        )


class CacheSerializationError(CacheError):
    """
    Raised when a value cannot be encoded for, or decoded from, the backing store.

    The cache façade treats this as a miss on read and as a failed
    write on set; it is never propagated to callers.
    """


class CacheConnectionError(CacheError):
    """
    Raised inside the backing store client for transport failures.

    Wraps connection refusals, timeouts and protocol errors so health
    tracking can record a uniform error type. Never leaves the client.
    """

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        """
        Initialize CacheConnectionError.

        Args:
            message: Error description
            operation: Backing store command that failed
        """
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        """Return error message prefixed with the failing operation."""
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message
