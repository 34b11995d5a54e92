"""Client runner for chunklink.

Contains run_client() which plays the host game loop: it starts a session,
polls the link and ticks the controller once per frame, and ends the session
on timeout or SIGINT, returning an exit code based on the result. SIGHUP
reloads the config from the environment on top of the running snapshot.
"""

import logging
import signal
import time
from collections.abc import Callable
from enum import IntEnum
from types import FrameType

from client.link import LinkChunkServerClient, LinkState
from common.config import ChunkConfig, diff_config, reload_config
from common.connection import Chunk, DisconnectCode, DisconnectReason
from common.device import open_link
from common.protocol import DEFAULT_RUN_DURATION_S, TICKS_PER_SEC, Clock, LinkPort
from controller.backoff import BackoffPolicy
from controller.chunks import ChunkTracker
from controller.controller import ConnectionController

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Exit codes for client runs."""

    SUCCESS = 0  # Chunk server connected at least once
    NEVER_CONNECTED = 1  # Every connect attempt failed
    DISABLED = 2  # Config has enabled=False


def _log_chunk(chunk: Chunk) -> None:
    logger.debug(f"Extra chunk {chunk.pos} ({len(chunk.data)} bytes)")


def _apply_reload(
    controller: ConnectionController,
    link: LinkChunkServerClient,
    old: ChunkConfig,
    new: ChunkConfig,
    url_pinned: bool = False,
) -> None:
    """Act on a reloaded config.

    Toggling enabled ends or starts the session. A new server address is used
    for the next connect and drops the current link so the controller
    reconnects there, unless an explicit URL pins the address.
    """
    changed = diff_config(old, new)
    if not changed:
        logger.info("Config reloaded, nothing changed")
        return
    logger.info(f"Config reloaded, changed: {', '.join(sorted(changed))}")

    if changed & {"hostname", "port"}:
        if url_pinned:
            logger.warning(f"Ignoring address change to {new.url}: URL given explicitly")
        else:
            link.set_url(new.url)
            if new.enabled and link.state != LinkState.CLOSED:
                link.disconnect(
                    DisconnectReason(DisconnectCode.RECONFIGURED, "Server address changed")
                )

    if "enabled" in changed:
        if new.enabled:
            logger.info("Chunk loading enabled, starting session")
            controller.on_game_connected()
        else:
            logger.info("Chunk loading disabled, ending session")
            controller.on_game_disconnected()

    controller.on_config_changed(new)


def run_client(
    config: ChunkConfig,
    url: str | None = None,
    duration_s: float = DEFAULT_RUN_DURATION_S,
    policy: BackoffPolicy | None = None,
    ticks_per_sec: int = TICKS_PER_SEC,
    opener: Callable[[str], LinkPort] = open_link,
    clock: Clock | None = None,
) -> int:
    """Run one game session against the chunk server. Returns exit code.

    duration_s=0 runs until SIGINT. SIGHUP reloads the config from the
    environment; variables that are not set keep their current value.
    """
    if not config.enabled:
        logger.warning("Chunk loading disabled in config, not connecting")
        return ExitCode.DISABLED

    tracker = ChunkTracker(sink=_log_chunk)
    controller = ConnectionController(None, config, clock=clock, policy=policy, chunks=tracker)
    link = LinkChunkServerClient(url or config.url, controller, opener=opener, clock=clock)
    controller.set_chunk_server(link)

    running = True
    reload_requested = False

    def stop(_sig: int, _frame: FrameType | None) -> None:
        nonlocal running
        running = False

    def reload(_sig: int, _frame: FrameType | None) -> None:
        nonlocal reload_requested
        reload_requested = True

    previous_handlers = {signal.SIGINT: signal.signal(signal.SIGINT, stop)}
    if hasattr(signal, "SIGHUP"):
        previous_handlers[signal.SIGHUP] = signal.signal(signal.SIGHUP, reload)

    frame_s = 1.0 / ticks_per_sec
    start = time.monotonic()
    duration_msg = "until interrupted" if duration_s == 0 else f"for {duration_s}s"
    logger.info(f"Game session started, running {duration_msg} (Ctrl-C to stop)")
    try:
        controller.on_game_connected()
        while running and (duration_s == 0 or (time.monotonic() - start) < duration_s):
            link.poll()
            if reload_requested:
                reload_requested = False
                try:
                    new_config = reload_config(config)
                except ValueError as e:
                    logger.error(f"Config reload failed: {e}")
                else:
                    _apply_reload(controller, link, config, new_config, url_pinned=url is not None)
                    config = new_config
            controller.on_tick()
            time.sleep(frame_s)
    finally:
        controller.on_game_disconnected()
        link.poll()
        link.close()
        for signum, handler in previous_handlers.items():
            if handler is not None:
                signal.signal(signum, handler)

    report = controller.report()
    report.print()
    print(f"Extra chunks: {tracker.delivered} delivered, {tracker.dropped} dropped")
    return ExitCode.SUCCESS if report.success() else ExitCode.NEVER_CONNECTED
