"""Connection controller package for chunklink.

This package holds the connection lifecycle logic:
- controller: ConnectionController state machine
- backoff: BackoffPolicy and deadline-based BackoffState
- chunks: ChunkTracker for forwarded chunk events
"""

from controller.backoff import BackoffPolicy, BackoffState
from controller.chunks import ChunkTracker
from controller.controller import ConnectionController

__all__ = [
    "BackoffPolicy",
    "BackoffState",
    "ChunkTracker",
    "ConnectionController",
]
