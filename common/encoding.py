"""Link message encoding/decoding for chunklink.

Contains functions for encoding and decoding chunk server link messages:
- Control messages (HELLO, WELCOME)
- Text messages (INFO, BYE)
- Chunk messages with column coordinates
"""

from common import message
from common.connection import Chunk
from common.protocol import MsgType

TEXT_ENCODING = "utf-8"

# CHUNK body: [int32 x][int32 z][data]
CHUNK_HEADER_SIZE = 2 * message.UINT32_SIZE


class EncodingError(Exception):
    """Raised when message decoding fails due to invalid message format."""

    pass


class TransportError(Exception):
    """Raised when the link fails while reading or writing."""

    pass


def encode_control(msg_type: MsgType) -> bytes:
    """Encode a bodyless control message (HELLO/WELCOME)."""
    return message.encode(bytes([msg_type]))


def encode_text(msg_type: MsgType, text: str) -> bytes:
    """Encode a text message (INFO/BYE)."""
    return message.encode(bytes([msg_type]) + text.encode(TEXT_ENCODING))


def encode_chunk(chunk: Chunk) -> bytes:
    payload = (
        bytes([MsgType.CHUNK])
        + message.int32_to_bytes(chunk.x)
        + message.int32_to_bytes(chunk.z)
        + chunk.data
    )
    return message.encode(payload)


def decode_payload(payload: bytes) -> tuple[MsgType, bytes]:
    """Split a frame payload into (msg_type, body).

    Raises EncodingError on an empty payload or unknown message type.
    """
    if not payload:
        raise EncodingError("Empty payload")
    try:
        msg_type = MsgType(payload[0])
    except ValueError:
        raise EncodingError(f"Invalid message type: {payload[0]}")
    return msg_type, payload[1:]


def decode_text(body: bytes) -> str:
    try:
        return body.decode(TEXT_ENCODING)
    except UnicodeDecodeError as e:
        raise EncodingError(f"Invalid text body: {e}")


def decode_chunk(body: bytes) -> Chunk:
    """Decode a CHUNK body. Raises EncodingError if the header is truncated."""
    if len(body) < CHUNK_HEADER_SIZE:
        raise EncodingError(
            f"Chunk body too short: {len(body)} bytes, need at least {CHUNK_HEADER_SIZE}"
        )
    x = message.int32_from_bytes(body[0:4])
    z = message.int32_from_bytes(body[4:8])
    return Chunk(x=x, z=z, data=bytes(body[CHUNK_HEADER_SIZE:]))
