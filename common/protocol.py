"""Protocol definitions for chunklink.

Contains:
- MsgType enum for link frame types
- Clock, LinkPort, ChunkServerClient, ChunkServerListener, ChunkHandler Protocols
- MonotonicClock: Default Clock implementation
- Timing and backoff constants
- Logging configuration
"""

import logging
import os
import time
from enum import IntEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from common.connection import Chunk, DisconnectReason

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Log level for the CLI (configurable via envvar)
LOG_LEVEL = os.environ.get("CHUNKLINK_LOG_LEVEL", "INFO").upper()


class MsgType(IntEnum):
    """Message types carried on the chunk server link."""

    HELLO = 0x01
    WELCOME = 0x02
    INFO = 0x10
    CHUNK = 0x11
    BYE = 0x20


class Clock(Protocol):
    """Monotonic millisecond clock."""

    def now(self) -> int: ...


class MonotonicClock:
    """Clock backed by time.monotonic_ns(), in milliseconds."""

    def now(self) -> int:
        return time.monotonic_ns() // 1_000_000


class LinkPort(Protocol):
    """Byte stream used by the link client (a pyserial port or a mock)."""

    def write(self, data: bytes, /) -> int | None: ...
    def read(self, size: int = ..., /) -> bytes: ...
    @property
    def in_waiting(self) -> int: ...
    def close(self) -> None: ...


class ChunkServerClient(Protocol):
    """Commands the controller issues to the chunk server connection.

    All commands are fire-and-forget; outcomes come back later through
    ChunkServerListener.
    """

    def connect(self) -> None: ...
    def disconnect(self, reason: "DisconnectReason") -> None: ...
    def send_message(self, text: str) -> None: ...
    def is_connected(self) -> bool: ...


class ChunkServerListener(Protocol):
    """Notifications delivered by a ChunkServerClient."""

    def on_chunk_server_connected(self) -> None: ...
    def on_chunk_server_disconnected(self, reason: "DisconnectReason") -> None: ...
    def on_receive_extra_chunk(self, chunk: "Chunk") -> None: ...


class ChunkHandler(Protocol):
    """Chunk-handling collaborator the controller forwards chunk events to."""

    def on_player_changed_dimension(self, dim: int) -> None: ...
    def on_game_chunk(self, chunk: "Chunk") -> None: ...
    def on_extra_chunk(self, chunk: "Chunk") -> bool: ...


# Default timing constants
DEFAULT_BACKOFF_BASE_MS = 1000  # First retry wait after an instant retry
DEFAULT_HANDSHAKE_TIMEOUT_MS = 10_000  # Wait this long for WELCOME after HELLO
TICKS_PER_SEC = 20  # Host loop frame rate used by the runner
DEFAULT_RUN_DURATION_S = 0  # 0 = run until interrupted
