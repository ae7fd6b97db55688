"""
Pydantic response models for cache introspection.

Defines the structures returned by CacheManager.get_stats() and
CacheManager.health_check(), consumed by admin endpoints and the CLI.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BackendHealthInfo(BaseModel):
    """Snapshot of the backing store health record."""

    state: str = Field(
        ...,
        description="Routing state (disabled, unknown, connecting, healthy, unhealthy)",
    )
    connected: bool = Field(False, description="Whether the last round trip succeeded")
    consecutive_failures: int = Field(0, ge=0)
    total_failures: int = Field(0, ge=0)
    reconnect_attempts: int = Field(0, ge=0)
    last_error: Optional[str] = Field(None, description="Most recent transport error")
    last_success_at: Optional[float] = None
    last_failure_at: Optional[float] = None


class CacheStats(BaseModel):
    """
    Cache statistics across both backends.

    Counters are per-process and reset on restart.
    """

    backend: str = Field(
        ...,
        description="Backend currently serving requests (redis or memory)",
    )
    disabled: bool = Field(..., description="Remote store disabled by configuration")
    hits: int = Field(0, ge=0)
    misses: int = Field(0, ge=0)
    sets: int = Field(0, ge=0)
    deletes: int = Field(0, ge=0)
    errors: int = Field(0, ge=0, description="Serialization and unexpected backend errors")
    fallbacks: int = Field(
        0,
        ge=0,
        description="Operations retried on the local store after a remote failure",
    )
    hit_rate: float = Field(0.0, ge=0.0, le=1.0)
    remote: BackendHealthInfo
    local: dict[str, Any] = Field(
        default_factory=dict,
        description="Local store counters and size",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "backend": "redis",
                "disabled": False,
                "hits": 120,
                "misses": 30,
                "sets": 30,
                "deletes": 2,
                "errors": 0,
                "fallbacks": 0,
                "hit_rate": 0.8,
                "remote": {"state": "healthy", "connected": True},
                "local": {"size": 0, "max_entries": 10000},
            }
        }
    )


class HealthCheckResponse(BaseModel):
    """
    Health check response for the cache layer.

    The cache is "healthy" when the remote store serves requests,
    "degraded" when requests fall back to the local store, and
    "disabled" when local-only mode is configured.
    """

    status: str = Field(
        ...,
        description="Overall health status (healthy, degraded, disabled)",
    )
    components: dict[str, str] = Field(
        ...,
        description="Health status of individual components",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "components": {"redis": "healthy", "memory": "healthy"},
            }
        }
    )
