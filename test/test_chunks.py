"""Unit tests for chunk bookkeeping."""

from collections.abc import Callable

import pytest

from common.connection import Chunk
from controller.chunks import ChunkTracker


@pytest.mark.unit
class TestChunkTracker:
    """Tests for ChunkTracker."""

    def test_extra_chunk_delivered(self, make_chunk: Callable[..., Chunk]) -> None:
        loaded: list[Chunk] = []
        tracker = ChunkTracker(sink=loaded.append)
        chunk = make_chunk(3, 4)
        assert tracker.on_extra_chunk(chunk) is True
        assert loaded == [chunk]
        assert tracker.delivered == 1

    def test_game_chunk_wins(self, make_chunk: Callable[..., Chunk]) -> None:
        loaded: list[Chunk] = []
        tracker = ChunkTracker(sink=loaded.append)
        tracker.on_game_chunk(make_chunk(3, 4, b"game"))
        assert tracker.is_game_loaded((3, 4))
        assert tracker.on_extra_chunk(make_chunk(3, 4, b"extra")) is False
        assert loaded == []
        assert tracker.dropped == 1

    def test_dimension_change_forgets_game_chunks(self, make_chunk: Callable[..., Chunk]) -> None:
        loaded: list[Chunk] = []
        tracker = ChunkTracker(sink=loaded.append)
        assert tracker.dimension is None
        tracker.on_game_chunk(make_chunk(0, 0))
        tracker.on_player_changed_dimension(-1)
        assert tracker.dimension == -1
        assert not tracker.is_game_loaded((0, 0))
        assert tracker.on_extra_chunk(make_chunk(0, 0)) is True
