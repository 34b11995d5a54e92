"""Link I/O helpers for chunklink.

Contains:
- drain_input: Clear stale data from input buffer
- read_available: Read whatever the port has buffered without blocking
- write_frame: Write an encoded frame, mapping transport failures
"""

import logging

import serial

from common.encoding import TransportError
from common.protocol import LinkPort

logger = logging.getLogger(__name__)

# Upper bound on bytes pulled from the port per poll
MAX_READ_PER_POLL = 64 * 1024


def drain_input(port: LinkPort) -> int:
    """Drain stale data from input buffer. Returns bytes drained.

    Raises TransportError if the port fails.
    """
    try:
        count = port.in_waiting
        if count > 0:
            port.read(count)
            logger.debug(f"Drained {count} stale bytes from input buffer")
        return count
    except (serial.SerialException, OSError) as e:
        raise TransportError(f"Drain failed: {e}") from e


def read_available(port: LinkPort) -> bytes:
    """Read buffered bytes without blocking.

    Raises TransportError if the port fails.
    """
    try:
        count = port.in_waiting
        if count <= 0:
            return b""
        return port.read(min(count, MAX_READ_PER_POLL))
    except (serial.SerialException, OSError) as e:
        raise TransportError(f"Read failed: {e}") from e


def write_frame(port: LinkPort, frame: bytes) -> int:
    """Write an encoded frame. Returns bytes written.

    Raises TransportError if the port fails.
    """
    try:
        return port.write(frame) or 0
    except (serial.SerialException, OSError) as e:
        raise TransportError(f"Write failed: {e}") from e
