"""Reconnect backoff timing for the connection controller.

Contains:
- BackoffPolicy: Base interval and optional cap
- BackoffState: Deadline-based retry timer driven by external ticks

The first retry after a disconnect happens instantly; the timer then waits
base_ms before the next attempt and doubles the wait after every attempt
until a successful connect resets it.
"""

import logging
from dataclasses import dataclass

from common.protocol import DEFAULT_BACKOFF_BASE_MS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackoffPolicy:
    """Backoff parameters in milliseconds. max_interval_ms=None means no cap."""

    base_ms: int = DEFAULT_BACKOFF_BASE_MS
    max_interval_ms: int | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.base_ms <= 0:
            raise ValueError(f"base_ms must be > 0, got {self.base_ms}")
        if self.max_interval_ms is not None and self.max_interval_ms < self.base_ms:
            raise ValueError(
                f"max_interval_ms ({self.max_interval_ms}) must be >= base_ms ({self.base_ms})"
            )

    def grow(self, interval_ms: int) -> int:
        """Return the interval that follows interval_ms."""
        grown = interval_ms * 2
        if self.max_interval_ms is not None:
            grown = min(grown, self.max_interval_ms)
        return grown


@dataclass
class BackoffState:
    """Mutable retry timer owned by the controller."""

    policy: BackoffPolicy
    wait_interval_ms: int = 0
    next_attempt_at_ms: int | None = None
    pending_attempt: bool = False

    def __post_init__(self) -> None:
        if self.wait_interval_ms == 0:
            self.wait_interval_ms = self.policy.base_ms

    def arm(self, now_ms: int) -> None:
        """Start waiting for the next attempt after an instant retry."""
        self.wait_interval_ms = self.policy.base_ms
        self.next_attempt_at_ms = now_ms + self.wait_interval_ms
        self.pending_attempt = True
        logger.debug(f"Backoff armed: next attempt at {self.next_attempt_at_ms}ms")

    def due(self, now_ms: int) -> bool:
        """True if a pending attempt's deadline has been reached."""
        return (
            self.pending_attempt
            and self.next_attempt_at_ms is not None
            and now_ms >= self.next_attempt_at_ms
        )

    def advance(self, now_ms: int) -> None:
        """Record an attempt at now_ms; the doubled interval governs the next wait."""
        self.wait_interval_ms = self.policy.grow(self.wait_interval_ms)
        self.next_attempt_at_ms = now_ms + self.wait_interval_ms
        logger.debug(
            f"Backoff: interval now {self.wait_interval_ms}ms, "
            f"next attempt at {self.next_attempt_at_ms}ms"
        )

    def clear(self) -> None:
        """Drop any pending attempt without touching the interval."""
        self.next_attempt_at_ms = None
        self.pending_attempt = False

    def reset(self) -> None:
        """Return to the base interval with nothing pending."""
        self.wait_interval_ms = self.policy.base_ms
        self.clear()
