"""Chunk server client over a framed byte link.

LinkChunkServerClient implements the ChunkServerClient commands on top of a
LinkPort (any pyserial URL). Commands never block on the server and never
call back into the listener directly: outcomes are queued and delivered the
next time the host loop calls poll().

Link handshake:
  1. Client sends HELLO
  2. Server answers WELCOME -> connected (or the handshake times out)
  3. Either side may send BYE with a reason text before closing
"""

import logging
from collections import deque
from collections.abc import Callable
from enum import Enum
from typing import Any

import serial

from common.connection import DisconnectCode, DisconnectReason, LinkError
from common.device import open_link
from common.encoding import (
    EncodingError,
    TransportError,
    decode_chunk,
    decode_payload,
    decode_text,
    encode_control,
    encode_text,
)
from common.io import drain_input, read_available, write_frame
from common.message import FrameDecoder
from common.protocol import (
    DEFAULT_HANDSHAKE_TIMEOUT_MS,
    ChunkServerListener,
    Clock,
    LinkPort,
    MonotonicClock,
    MsgType,
)

logger = logging.getLogger(__name__)


class LinkState(Enum):
    """Link client state."""

    CLOSED = "closed"
    CONNECTING = "connecting"  # HELLO sent, waiting for WELCOME
    CONNECTED = "connected"


class LinkChunkServerClient:
    """ChunkServerClient speaking the framed link protocol."""

    def __init__(
        self,
        url: str,
        listener: ChunkServerListener | None = None,
        opener: Callable[[str], LinkPort] = open_link,
        clock: Clock | None = None,
        handshake_timeout_ms: int = DEFAULT_HANDSHAKE_TIMEOUT_MS,
    ) -> None:
        self._url = url
        self._listener = listener
        self._opener = opener
        self._clock: Clock = clock or MonotonicClock()
        self._handshake_timeout_ms = handshake_timeout_ms
        self._hello_at_ms = 0
        self._port: LinkPort | None = None
        self._state = LinkState.CLOSED
        self._decoder = FrameDecoder()
        self._events: deque[tuple[str, tuple[Any, ...]]] = deque()

    def set_listener(self, listener: ChunkServerListener) -> None:
        self._listener = listener

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def url(self) -> str:
        return self._url

    def set_url(self, url: str) -> None:
        """Use url for the next connect(). An open link is left alone."""
        self._url = url

    def is_connected(self) -> bool:
        return self._state == LinkState.CONNECTED

    def _notify(self, name: str, *args: Any) -> None:
        self._events.append((name, args))

    def _close(self) -> None:
        port, self._port = self._port, None
        self._state = LinkState.CLOSED
        if self._decoder.pending:
            logger.debug(f"Discarding {self._decoder.pending} undecoded bytes")
        self._decoder.reset()
        if port is None:
            return
        try:
            port.close()
        except (serial.SerialException, OSError) as e:
            logger.debug(f"Error closing link: {e}")

    def _fail(
        self, error: Exception | str, code: DisconnectCode = DisconnectCode.LINK_ERROR
    ) -> None:
        logger.warning(f"Link to {self._url} failed: {error}")
        self._close()
        self._notify("on_chunk_server_disconnected", DisconnectReason(code, str(error)))

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def connect(self) -> None:
        if self._port is not None:
            logger.debug(f"Connect ignored: link already {self._state.value}")
            return
        try:
            port = self._opener(self._url)
        except LinkError as e:
            logger.warning(f"Connect failed: {e}")
            self._notify(
                "on_chunk_server_disconnected",
                DisconnectReason(DisconnectCode.CONNECT_FAILED, str(e)),
            )
            return
        self._port = port
        self._state = LinkState.CONNECTING
        self._hello_at_ms = self._clock.now()
        try:
            drain_input(port)
            write_frame(port, encode_control(MsgType.HELLO))
        except TransportError as e:
            self._fail(e)
            return
        logger.debug(f"Sent HELLO to {self._url}")

    def disconnect(self, reason: DisconnectReason) -> None:
        if self._port is None:
            logger.debug(f"Disconnect ({reason}): link already closed")
            return
        try:
            write_frame(self._port, encode_text(MsgType.BYE, reason.text))
        except TransportError as e:
            logger.debug(f"Could not send BYE: {e}")
        self._close()
        logger.info(f"Disconnected from {self._url}: {reason}")
        self._notify("on_chunk_server_disconnected", reason)

    def send_message(self, text: str) -> None:
        if self._port is None or self._state != LinkState.CONNECTED:
            logger.warning(f"Dropping message {text!r}: not connected")
            return
        try:
            write_frame(self._port, encode_text(MsgType.INFO, text))
        except TransportError as e:
            self._fail(e)

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def _handle(self, payload: bytes) -> None:
        try:
            msg_type, body = decode_payload(payload)
        except EncodingError as e:
            logger.warning(f"Ignoring malformed message: {e}")
            return

        match msg_type:
            case MsgType.WELCOME:
                if self._state == LinkState.CONNECTING:
                    self._state = LinkState.CONNECTED
                    logger.info(f"Link to {self._url} established")
                    self._notify("on_chunk_server_connected")
                else:
                    logger.debug(f"Unexpected WELCOME while {self._state.value}")
            case MsgType.CHUNK:
                if self._state != LinkState.CONNECTED:
                    logger.debug("Ignoring CHUNK before WELCOME")
                    return
                try:
                    chunk = decode_chunk(body)
                except EncodingError as e:
                    logger.warning(f"Ignoring malformed chunk: {e}")
                    return
                self._notify("on_receive_extra_chunk", chunk)
            case MsgType.INFO:
                logger.info(f"Chunk server: {decode_text(body)}")
            case MsgType.BYE:
                text = decode_text(body) or "Closed by server"
                self._close()
                logger.info(f"Chunk server closed the link: {text}")
                self._notify(
                    "on_chunk_server_disconnected",
                    DisconnectReason(DisconnectCode.REMOTE, text),
                )
            case _:
                logger.debug(f"Ignoring {msg_type.name} from server")

    def _read(self) -> None:
        port = self._port
        if port is None:
            return
        try:
            data = read_available(port)
        except TransportError as e:
            self._fail(e)
            return
        if not data:
            return
        self._decoder.feed(data)
        for payload, crc_ok in self._decoder.frames():
            if not crc_ok:
                logger.warning(f"Dropping frame with bad CRC ({len(payload)} bytes)")
                continue
            try:
                self._handle(payload)
            except EncodingError as e:
                logger.warning(f"Ignoring malformed message: {e}")
            if self._port is None:
                break

    def _check_handshake(self) -> None:
        if self._state != LinkState.CONNECTING:
            return
        waited_ms = self._clock.now() - self._hello_at_ms
        if waited_ms >= self._handshake_timeout_ms:
            self._fail(f"No WELCOME after {waited_ms} ms", DisconnectCode.CONNECT_FAILED)

    def poll(self) -> int:
        """Read the link and deliver queued notifications. Returns count delivered.

        Notifications queued while delivering (e.g. a failed reconnect) wait
        for the next poll.
        """
        self._read()
        self._check_handshake()
        count = len(self._events)
        for _ in range(count):
            name, args = self._events.popleft()
            if self._listener is None:
                logger.debug(f"No listener for {name}, dropped")
                continue
            getattr(self._listener, name)(*args)
        return count

    def close(self) -> None:
        """Close the port without notifying the listener."""
        self._close()
        self._events.clear()
