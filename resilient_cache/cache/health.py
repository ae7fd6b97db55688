"""Health tracking for the backing store connection.

BackendHealth is the only channel through which the façade learns to stop
routing to the remote store. Transitions:

    DISABLED (permanent)
    UNKNOWN -> CONNECTING -> HEALTHY | UNHEALTHY
    HEALTHY <-> UNHEALTHY      (consecutive failure / success counts)
    UNHEALTHY -> CONNECTING    (scheduled reconnect attempt)
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


class BackendState(str, Enum):
    """Routing state of the backing store."""

    DISABLED = "disabled"
    UNKNOWN = "unknown"
    CONNECTING = "connecting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class BackendHealth:
    """
    Process-wide health record for one backing store connection.

    Attributes:
        failure_threshold: Consecutive failures that flip HEALTHY to UNHEALTHY
        connected: Whether the last round trip reached the store
        last_error: Most recent transport error, if any
        consecutive_failures: Failures since the last success
        state: Current routing state
        reconnect_attempts: Reconnect attempts since the store went unhealthy
    """

    failure_threshold: int = 3
    connected: bool = False
    last_error: Optional[BaseException] = None
    consecutive_failures: int = 0
    state: BackendState = BackendState.UNKNOWN
    reconnect_attempts: int = 0
    last_success_at: Optional[float] = None
    last_failure_at: Optional[float] = None
    total_failures: int = field(default=0)

    @classmethod
    def disabled(cls) -> "BackendHealth":
        """Health record for a backing store turned off by configuration."""
        return cls(state=BackendState.DISABLED)

    @property
    def is_healthy(self) -> bool:
        return self.state is BackendState.HEALTHY

    @property
    def is_disabled(self) -> bool:
        return self.state is BackendState.DISABLED

    def mark_connecting(self) -> None:
        if self.is_disabled:
            return
        self.state = BackendState.CONNECTING

    def record_success(self) -> None:
        """Record a successful round trip; any success restores HEALTHY."""
        if self.is_disabled:
            return

        previous = self.state
        self.connected = True
        self.consecutive_failures = 0
        self.reconnect_attempts = 0
        self.last_success_at = time.time()
        self.state = BackendState.HEALTHY

        if previous is not BackendState.HEALTHY:
            logger.info("backend_healthy", previous_state=previous.value)

    def record_failure(self, error: BaseException) -> bool:
        """
        Record a failed round trip.

        Args:
            error: Transport or protocol error raised by the store

        Returns:
            True if this failure moved the backend to UNHEALTHY
        """
        if self.is_disabled:
            return False

        self.last_error = error
        self.consecutive_failures += 1
        self.total_failures += 1
        self.last_failure_at = time.time()

        if self.state is BackendState.CONNECTING or (
            self.consecutive_failures >= self.failure_threshold
        ):
            became_unhealthy = self.state is not BackendState.UNHEALTHY
            self.connected = False
            self.state = BackendState.UNHEALTHY

            if became_unhealthy:
                logger.warning(
                    "backend_unhealthy",
                    consecutive_failures=self.consecutive_failures,
                    failure_threshold=self.failure_threshold,
                    error=str(error),
                    error_type=type(error).__name__,
                )
            return became_unhealthy

        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "connected": self.connected,
            "consecutive_failures": self.consecutive_failures,
            "total_failures": self.total_failures,
            "reconnect_attempts": self.reconnect_attempts,
            "last_error": str(self.last_error) if self.last_error else None,
            "last_success_at": self.last_success_at,
            "last_failure_at": self.last_failure_at,
        }
