"""Connection value types for chunklink.

Contains:
- DisconnectCode: Enum identifying why a connection ended
- DisconnectReason: Comparable token plus human-readable text
- Chunk: Extra or game chunk as seen by the controller
- LinkError: Exception for link transport failures
"""

from dataclasses import dataclass
from enum import Enum


class DisconnectCode(Enum):
    """Why the chunk server connection ended."""

    GAME_ENDING = "game_ending"
    NO_GAME_RUNNING = "no_game_running"
    REMOTE = "remote"
    CONNECT_FAILED = "connect_failed"
    LINK_ERROR = "link_error"
    RECONFIGURED = "reconfigured"


class LinkError(Exception):
    """Raised when the chunk server link cannot be opened or used."""

    pass


@dataclass(frozen=True)
class DisconnectReason:
    """Reason carried with disconnect commands and notifications."""

    code: DisconnectCode
    text: str

    def __str__(self) -> str:
        return self.text


GAME_ENDING = DisconnectReason(DisconnectCode.GAME_ENDING, "Game ending")
NO_GAME_RUNNING = DisconnectReason(DisconnectCode.NO_GAME_RUNNING, "No game running")


@dataclass(frozen=True)
class Chunk:
    """A world chunk at column (x, z). Payload bytes are opaque here."""

    x: int
    z: int
    data: bytes = b""

    @property
    def pos(self) -> tuple[int, int]:
        return self.x, self.z
