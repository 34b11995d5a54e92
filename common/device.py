"""Link device setup for chunklink.

Contains:
- log_device_info: Log information about the link endpoint
- open_link: Open the chunk server link through pyserial URL handlers

Any URL pyserial understands works: socket://host:port for a TCP chunk
server, loop:// for a local echo, or a plain serial device path.
"""

import logging

import serial
import serial.tools.list_ports

from common.connection import LinkError

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115200


def log_device_info(url: str) -> None:
    """Log information about a link endpoint."""
    if "://" in url:
        logger.info(f"Link: {url}")
        return

    ports = [p for p in serial.tools.list_ports.comports() if p.device == url]
    if len(ports) == 0:
        logger.info(f"Link: {url} (not in port list)")
        return

    info = ports[0]
    logger.info(f"Link: {info.device} ({info.description})")
    if info.vid is not None:
        logger.debug(f"VID:PID: {info.vid:04x}:{info.pid:04x}")


def open_link(url: str, baudrate: int = DEFAULT_BAUDRATE) -> serial.SerialBase:
    """Open a non-blocking link to the chunk server.

    Raises LinkError if the endpoint cannot be opened.
    """
    log_device_info(url)
    try:
        ser = serial.serial_for_url(
            url,
            baudrate=baudrate,
            timeout=0,
            write_timeout=1.0,
        )
    except (serial.SerialException, OSError, ValueError) as e:
        raise LinkError(f"Cannot open {url}: {e}") from e
    logger.debug(f"Opened link {url} (timeout={ser.timeout})")
    return ser
