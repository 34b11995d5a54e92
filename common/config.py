"""Configuration snapshot and diffing for chunklink.

Contains:
- ChunkConfig: Immutable configuration snapshot
- diff_config: Fields that differ between two snapshots
- format_chunks_per_sec: Control message announcing the chunk loading rate
- load_config: Snapshot with environment overrides applied
- reload_config: Current snapshot with environment overrides applied
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Any

DEFAULT_HOSTNAME = "localhost"
DEFAULT_PORT = 12312
DEFAULT_CHUNKS_PER_SEC = 80

INFO_SET_CHUNKS_PER_SEC = "SET_CHUNKS_PER_SEC:"

# Fields whose changes the chunk server has to hear about
SERVER_RELEVANT_FIELDS = frozenset({"chunk_loads_per_second"})


@dataclass(frozen=True)
class ChunkConfig:
    """Client configuration as seen at one point in time."""

    enabled: bool = True
    hostname: str = DEFAULT_HOSTNAME
    port: int = DEFAULT_PORT
    chunk_loads_per_second: int = DEFAULT_CHUNKS_PER_SEC

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.chunk_loads_per_second < 0:
            raise ValueError(
                f"chunk_loads_per_second must be >= 0, got {self.chunk_loads_per_second}"
            )
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be in 1..65535, got {self.port}")

    @property
    def url(self) -> str:
        """pyserial URL of the chunk server."""
        return f"socket://{self.hostname}:{self.port}"


def diff_config(old: ChunkConfig, new: ChunkConfig) -> frozenset[str]:
    """Return the names of fields whose values differ between two snapshots."""
    return frozenset(
        f.name for f in fields(ChunkConfig) if getattr(old, f.name) != getattr(new, f.name)
    )


def format_chunks_per_sec(rate: int) -> str:
    return f"{INFO_SET_CHUNKS_PER_SEC}{rate}"


def _env_bool(raw: str) -> bool:
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


def _env_overrides() -> dict[str, Any]:
    """Field values for the CHUNKLINK_* variables that are actually set."""
    env = os.environ
    overrides: dict[str, Any] = {}
    if "CHUNKLINK_ENABLED" in env:
        overrides["enabled"] = _env_bool(env["CHUNKLINK_ENABLED"])
    if "CHUNKLINK_HOST" in env:
        overrides["hostname"] = env["CHUNKLINK_HOST"]
    if "CHUNKLINK_PORT" in env:
        overrides["port"] = int(env["CHUNKLINK_PORT"])
    if "CHUNKLINK_CHUNKS_PER_SEC" in env:
        overrides["chunk_loads_per_second"] = int(env["CHUNKLINK_CHUNKS_PER_SEC"])
    return overrides


def load_config() -> ChunkConfig:
    """Build a snapshot from defaults and CHUNKLINK_* environment variables."""
    return ChunkConfig(**_env_overrides())


def reload_config(current: ChunkConfig) -> ChunkConfig:
    """Apply CHUNKLINK_* environment variables on top of current.

    Fields without a variable set keep their current value, so settings
    given on the command line survive a reload.
    """
    return replace(current, **_env_overrides())
