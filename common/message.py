"""Frame encoding/decoding for the chunk server link.

Frames use a sync-prefixed, length-prefixed layout with CRC32 checksums:
  [4-byte sync magic][4-byte length][payload][4-byte CRC32]

The sync magic allows recovery from framing errors (e.g., after a partial
write from a previous connection).

Lengths and CRCs are little-endian unsigned 32-bit. Chunk coordinates use
little-endian signed 32-bit.

The link is read non-blocking, so frames arrive in arbitrary pieces.
FrameDecoder buffers bytes until complete frames are available.
"""

import logging
import zlib
from collections.abc import Iterator
from typing import Literal

logger = logging.getLogger(__name__)

UINT32_SIZE = 4
BYTE_ORDER: Literal["little", "big"] = "little"

# Sync magic for frame alignment (chosen to be unlikely in chunk data)
SYNC_MAGIC = 0xC4A7C0DE
SYNC_MAGIC_BYTES = SYNC_MAGIC.to_bytes(UINT32_SIZE, BYTE_ORDER, signed=False)

HEADER_SIZE = 2 * UINT32_SIZE

# Maximum frame payload (prevents huge allocations on corrupted length)
MAX_MESSAGE_LENGTH = 1 << 20


def uint32_to_bytes(value: int) -> bytes:
    """Encode unsigned 32-bit int as little-endian bytes."""
    return value.to_bytes(UINT32_SIZE, BYTE_ORDER, signed=False)


def uint32_from_bytes(data: bytes) -> int:
    """Decode little-endian bytes to unsigned 32-bit int."""
    return int.from_bytes(data, BYTE_ORDER, signed=False)


def int32_to_bytes(value: int) -> bytes:
    """Encode signed 32-bit int as little-endian bytes."""
    return value.to_bytes(UINT32_SIZE, BYTE_ORDER, signed=True)


def int32_from_bytes(data: bytes) -> int:
    """Decode little-endian bytes to signed 32-bit int."""
    return int.from_bytes(data, BYTE_ORDER, signed=True)


def encode(payload: bytes) -> bytes:
    """Frame a payload with sync magic, length prefix and CRC32 suffix."""
    if len(payload) > MAX_MESSAGE_LENGTH:
        raise ValueError(f"Payload of {len(payload)} bytes exceeds max {MAX_MESSAGE_LENGTH}")
    length = uint32_to_bytes(len(payload))
    crc = uint32_to_bytes(zlib.crc32(payload))
    return SYNC_MAGIC_BYTES + length + payload + crc


class FrameDecoder:
    """Incremental frame decoder with resync capability.

    Feed it whatever bytes the port returned; iterate frames() to get
    (payload, crc_ok) for every complete frame buffered so far.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Bytes buffered but not yet part of a complete frame."""
        return len(self._buffer)

    def feed(self, data: bytes) -> None:
        self._buffer.extend(data)

    def reset(self) -> None:
        self._buffer.clear()

    def _resync(self) -> bool:
        """Drop bytes up to the next sync magic. Returns True if aligned."""
        idx = self._buffer.find(SYNC_MAGIC_BYTES)
        if idx < 0:
            # Keep a possible partial magic at the tail
            keep = UINT32_SIZE - 1
            skipped = max(0, len(self._buffer) - keep)
            if skipped:
                del self._buffer[:skipped]
                logger.debug(f"Discarded {skipped} bytes while looking for sync")
            return False
        if idx > 0:
            del self._buffer[:idx]
            logger.debug(f"Resynced after skipping {idx} bytes")
        return True

    def frames(self) -> Iterator[tuple[bytes, bool]]:
        while self._resync():
            if len(self._buffer) < HEADER_SIZE:
                return
            length = uint32_from_bytes(self._buffer[UINT32_SIZE:HEADER_SIZE])
            if length > MAX_MESSAGE_LENGTH:
                logger.warning(f"Frame length {length} exceeds max {MAX_MESSAGE_LENGTH}, resyncing")
                del self._buffer[:UINT32_SIZE]
                continue
            end = HEADER_SIZE + length + UINT32_SIZE
            if len(self._buffer) < end:
                return
            payload = bytes(self._buffer[HEADER_SIZE : HEADER_SIZE + length])
            expected_crc = uint32_from_bytes(self._buffer[end - UINT32_SIZE : end])
            del self._buffer[:end]
            yield payload, expected_crc == zlib.crc32(payload)
