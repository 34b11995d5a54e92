"""Common modules for chunklink.

This package contains shared code used by the controller and the link client:
- protocol: MsgType enum, collaborator Protocols, MonotonicClock, timing constants
- connection: DisconnectReason, Chunk, LinkError
- config: ChunkConfig snapshot and diff_config
- message: Frame encoding and incremental decoding
- encoding: Link message encoding/decoding
- io: Link I/O helpers (drain_input, read_available, write_frame)
- device: Link setup through pyserial URL handlers
- report: Reporting abstractions
"""

from common.config import (
    INFO_SET_CHUNKS_PER_SEC,
    SERVER_RELEVANT_FIELDS,
    ChunkConfig,
    diff_config,
    format_chunks_per_sec,
    load_config,
    reload_config,
)
from common.connection import (
    GAME_ENDING,
    NO_GAME_RUNNING,
    Chunk,
    DisconnectCode,
    DisconnectReason,
    LinkError,
)
from common.encoding import EncodingError, TransportError
from common.protocol import (
    DEFAULT_BACKOFF_BASE_MS,
    DEFAULT_HANDSHAKE_TIMEOUT_MS,
    TICKS_PER_SEC,
    ChunkHandler,
    ChunkServerClient,
    ChunkServerListener,
    Clock,
    LinkPort,
    MonotonicClock,
    MsgType,
)

__all__ = [
    # Protocol
    "MsgType",
    "Clock",
    "MonotonicClock",
    "LinkPort",
    "ChunkServerClient",
    "ChunkServerListener",
    "ChunkHandler",
    "DEFAULT_BACKOFF_BASE_MS",
    "DEFAULT_HANDSHAKE_TIMEOUT_MS",
    "TICKS_PER_SEC",
    # Connection
    "Chunk",
    "DisconnectCode",
    "DisconnectReason",
    "GAME_ENDING",
    "NO_GAME_RUNNING",
    # Config
    "ChunkConfig",
    "INFO_SET_CHUNKS_PER_SEC",
    "SERVER_RELEVANT_FIELDS",
    "diff_config",
    "format_chunks_per_sec",
    "load_config",
    "reload_config",
    # Exceptions
    "EncodingError",
    "LinkError",
    "TransportError",
]
