"""Connection lifecycle controller for the chunk server.

Keeps one logical connection to the chunk server alive while a game session
is running. Every inbound event is a method call; every outbound effect is a
fire-and-forget command on the ChunkServerClient. Events are expected to be
delivered serially from the host loop, so there is no locking.

The controller's own intent flag is the only source of truth for whether a
connection should exist. The host's "in game" signal is never consulted:
it still reads as in-game while the game is tearing down.
"""

import logging

from common.config import (
    SERVER_RELEVANT_FIELDS,
    ChunkConfig,
    diff_config,
    format_chunks_per_sec,
)
from common.connection import GAME_ENDING, NO_GAME_RUNNING, Chunk, DisconnectReason
from common.protocol import TRACE, ChunkHandler, ChunkServerClient, Clock, MonotonicClock
from common.report import ControllerReport
from controller.backoff import BackoffPolicy, BackoffState

logger = logging.getLogger(__name__)


class ConnectionController:
    """Supervises the chunk server connection for one game client.

    chunk_server may be None at construction when the client needs the
    controller as its listener, but set_chunk_server() must be called before
    the first event is delivered. Events arriving earlier raise RuntimeError;
    that is a wiring error, not a connection failure.
    """

    def __init__(
        self,
        chunk_server: ChunkServerClient | None,
        config: ChunkConfig,
        clock: Clock | None = None,
        policy: BackoffPolicy | None = None,
        chunks: ChunkHandler | None = None,
    ) -> None:
        self._chunk_server = chunk_server
        self._last_sent_config = config
        self._clock: Clock = clock or MonotonicClock()
        self._backoff = BackoffState(policy or BackoffPolicy())
        self._chunks = chunks
        self._intent = False
        # A connect() was issued and no outcome has been observed yet
        self._connecting = False
        self._connect_attempts = 0
        self._successful_connects = 0

    def set_chunk_server(self, chunk_server: ChunkServerClient) -> None:
        """Attach the client after construction (it needs us as its listener)."""
        self._chunk_server = chunk_server

    @property
    def intent(self) -> bool:
        """True while a game session is running and a connection is wanted."""
        return self._intent

    @property
    def backoff(self) -> BackoffState:
        return self._backoff

    @property
    def last_sent_config(self) -> ChunkConfig:
        return self._last_sent_config

    def _server(self) -> ChunkServerClient:
        if self._chunk_server is None:
            raise RuntimeError("No chunk server client attached")
        return self._chunk_server

    def _connect(self) -> None:
        self._connecting = True
        self._connect_attempts += 1
        logger.info(f"Connecting to chunk server (attempt {self._connect_attempts})")
        self._server().connect()

    # -------------------------------------------------------------------------
    # Game session events
    # -------------------------------------------------------------------------

    def on_game_connected(self) -> None:
        self._intent = True
        if self._server().is_connected() or self._connecting:
            logger.debug("Game connected: chunk server already connected or connecting")
            return
        self._connect()

    def on_game_disconnected(self) -> None:
        """Withdraw intent and always tell the chunk server to disconnect."""
        self._intent = False
        self._connecting = False
        self._backoff.clear()
        logger.info(f"Game ended, disconnecting chunk server ({GAME_ENDING})")
        self._server().disconnect(GAME_ENDING)

    def on_player_changed_dimension(self, dim: int) -> None:
        if self._chunks is None:
            logger.debug(f"Dimension change to {dim} ignored: no chunk handler")
            return
        self._chunks.on_player_changed_dimension(dim)

    def on_receive_game_chunk(self, chunk: Chunk) -> None:
        if self._chunks is not None:
            self._chunks.on_game_chunk(chunk)

    # -------------------------------------------------------------------------
    # Chunk server events
    # -------------------------------------------------------------------------

    def on_chunk_server_connected(self) -> None:
        self._connecting = False
        if not self._intent:
            logger.warning("Chunk server connected while no game is running, disconnecting")
            self._server().disconnect(NO_GAME_RUNNING)
            return
        self._successful_connects += 1
        self._backoff.reset()
        logger.info("Chunk server connected")

    def on_chunk_server_disconnected(self, reason: DisconnectReason) -> None:
        """Retry instantly on the first disconnect; later ones wait for the timer."""
        self._connecting = False
        if not self._intent:
            logger.info(f"Chunk server disconnected: {reason}")
            return
        if self._backoff.pending_attempt:
            logger.debug(f"Chunk server disconnected ({reason}), retry already pending")
            return
        logger.warning(f"Chunk server disconnected: {reason}, reconnecting")
        now_ms = self._clock.now()
        self._connect()
        self._backoff.arm(now_ms)

    def on_receive_extra_chunk(self, chunk: Chunk) -> None:
        if self._chunks is None:
            logger.debug(f"Extra chunk {chunk.pos} dropped: no chunk handler")
            return
        self._chunks.on_extra_chunk(chunk)

    # -------------------------------------------------------------------------
    # Time and configuration
    # -------------------------------------------------------------------------

    def on_tick(self, now_ms: int | None = None) -> None:
        """Issue a reconnect attempt if one is pending and its deadline passed."""
        if now_ms is None:
            now_ms = self._clock.now()
        if not self._intent or not self._backoff.due(now_ms):
            return
        if self._server().is_connected():
            logger.log(TRACE, "Tick: retry due but chunk server reports connected")
            return
        self._connect()
        self._backoff.advance(now_ms)

    def on_config_changed(self, new_config: ChunkConfig) -> None:
        """Announce a changed chunk loading rate; stay quiet otherwise."""
        changed = diff_config(self._last_sent_config, new_config) & SERVER_RELEVANT_FIELDS
        if "chunk_loads_per_second" not in changed:
            logger.debug("Config changed, nothing relevant to the chunk server")
            return
        msg = format_chunks_per_sec(new_config.chunk_loads_per_second)
        logger.info(f"Sending {msg}")
        self._server().send_message(msg)
        self._last_sent_config = new_config

    def report(self) -> ControllerReport:
        connected = self._chunk_server is not None and self._chunk_server.is_connected()
        return ControllerReport(
            intent=self._intent,
            connected=connected,
            pending_attempt=self._backoff.pending_attempt,
            wait_interval_ms=self._backoff.wait_interval_ms,
            next_attempt_at_ms=self._backoff.next_attempt_at_ms,
            connect_attempts=self._connect_attempts,
            successful_connects=self._successful_connects,
            chunks_per_sec=self._last_sent_config.chunk_loads_per_second,
        )
