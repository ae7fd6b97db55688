"""
Configuration management for the resilient cache.

Settings are read from the environment (and an optional ``.env`` file)
with pydantic-settings. Missing or malformed values that have no safe
default are reported as ConfigurationError at startup.
"""

from typing import Optional

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from resilient_cache.exceptions import ConfigurationError

# Reconnect backoff bounds (seconds)
RECONNECT_BACKOFF_BASE = 0.1
RECONNECT_BACKOFF_MAX = 3.0


class CacheSettings(BaseSettings):
    """
    Process configuration for the cache layer.

    Each field is populated from the environment variable named in its
    alias. Legacy names used by older deployments (REDIS_URL,
    DISABLE_REDIS) are accepted as fallbacks.
    """

    backend_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("BACKEND_URL", "REDIS_URL", "backend_url"),
        description="Connection string for the remote key-value store",
    )
    cache_disabled: bool = Field(
        False,
        validation_alias=AliasChoices("CACHE_DISABLED", "DISABLE_REDIS", "cache_disabled"),
        description="Force local-only mode for the life of the process",
    )
    default_ttl_seconds: int = Field(
        300,
        gt=0,
        validation_alias=AliasChoices("DEFAULT_TTL_SECONDS", "default_ttl_seconds"),
    )
    failure_threshold: int = Field(
        3,
        ge=1,
        validation_alias=AliasChoices("CACHE_FAILURE_THRESHOLD", "failure_threshold"),
        description="Consecutive failures before the backing store is marked unhealthy",
    )
    socket_timeout: float = Field(
        5.0,
        gt=0,
        validation_alias=AliasChoices("CACHE_SOCKET_TIMEOUT", "socket_timeout"),
    )
    max_connections: int = Field(
        20,
        ge=1,
        validation_alias=AliasChoices("CACHE_MAX_CONNECTIONS", "max_connections"),
    )
    local_max_entries: int = Field(
        10000,
        ge=1,
        validation_alias=AliasChoices("CACHE_LOCAL_MAX_ENTRIES", "local_max_entries"),
    )
    sweep_interval: float = Field(
        60.0,
        gt=0,
        validation_alias=AliasChoices("CACHE_SWEEP_INTERVAL", "sweep_interval"),
        description="Seconds between local store expiry sweeps",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def load_settings(**overrides) -> CacheSettings:
    """
    Load cache settings from the environment.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        Validated CacheSettings

    Raises:
        ConfigurationError: If a required setting is missing or invalid

    Example:
        >>> settings = load_settings(cache_disabled=True)
        >>> settings.default_ttl_seconds
        300
    """
    try:
        settings = CacheSettings(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid cache configuration: {first.get('msg')}",
            setting=location,
        ) from e

    require_backend_url(settings)
    return settings


def require_backend_url(settings: CacheSettings) -> None:
    """Reject an enabled cache that has nowhere to connect."""
    if not settings.cache_disabled and not settings.backend_url:
        raise ConfigurationError(
            "BACKEND_URL is required unless CACHE_DISABLED is set",
            setting="BACKEND_URL",
        )
