"""Reporting abstractions for chunklink.

Contains:
- Report ABC: Base class for all reports
- ControllerReport: Snapshot of connection controller state
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class Report(ABC):
    """Abstract base class for reports."""

    @abstractmethod
    def print(self) -> None:
        """Print the report to stdout."""
        pass

    @abstractmethod
    def success(self) -> bool:
        """Return True if the report indicates success."""
        pass


@dataclass
class ControllerReport(Report):
    """Connection controller state at one point in time.

    next_attempt_at_ms is only set while a retry is pending.
    """

    intent: bool
    connected: bool
    pending_attempt: bool
    wait_interval_ms: int
    next_attempt_at_ms: int | None = None
    connect_attempts: int = 0
    successful_connects: int = 0
    chunks_per_sec: int | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.pending_attempt and self.next_attempt_at_ms is None:
            raise ValueError("next_attempt_at_ms is required when pending_attempt=True")

    def print(self) -> None:
        """Print the controller report."""
        state = "connected" if self.connected else "disconnected"
        print(f"Chunk server: {state} (intent={'on' if self.intent else 'off'})")
        print(
            f"Attempts: {self.connect_attempts} connect, "
            f"{self.successful_connects} successful"
        )
        if self.pending_attempt:
            print(
                f"Retry pending at t={self.next_attempt_at_ms}ms "
                f"(interval={self.wait_interval_ms}ms)"
            )
        if self.chunks_per_sec is not None:
            print(f"Chunk rate: {self.chunks_per_sec}/s")

    def success(self) -> bool:
        """Return True if at least one connection was established."""
        return self.successful_connects > 0
