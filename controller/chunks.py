"""Chunk bookkeeping for extra chunks received from the chunk server.

ChunkTracker remembers which chunk columns the game itself has loaded in the
player's current dimension, so extra chunks never overwrite game chunks.
"""

import logging
from collections.abc import Callable

from common.connection import Chunk

logger = logging.getLogger(__name__)


class ChunkTracker:
    """ChunkHandler that filters extra chunks against game-loaded chunks."""

    def __init__(self, sink: Callable[[Chunk], None]) -> None:
        self._sink = sink
        self._dimension: int | None = None
        self._game_loaded: set[tuple[int, int]] = set()
        self.delivered = 0
        self.dropped = 0

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def is_game_loaded(self, pos: tuple[int, int]) -> bool:
        return pos in self._game_loaded

    def on_player_changed_dimension(self, dim: int) -> None:
        logger.info(f"Player changed dimension {self._dimension} -> {dim}")
        self._dimension = dim
        self._game_loaded.clear()

    def on_game_chunk(self, chunk: Chunk) -> None:
        self._game_loaded.add(chunk.pos)

    def on_extra_chunk(self, chunk: Chunk) -> bool:
        """Hand the chunk to the sink unless the game already loaded it."""
        if self.is_game_loaded(chunk.pos):
            self.dropped += 1
            logger.debug(f"Extra chunk {chunk.pos} already loaded by game, dropped")
            return False
        self._sink(chunk)
        self.delivered += 1
        return True
