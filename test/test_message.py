"""Unit tests for link framing and message encoding."""

import pytest

from common import message
from common.connection import Chunk
from common.encoding import (
    EncodingError,
    decode_chunk,
    decode_payload,
    decode_text,
    encode_chunk,
    encode_control,
    encode_text,
)
from common.message import FrameDecoder
from common.protocol import MsgType


def _frames(data: bytes) -> list[tuple[bytes, bool]]:
    decoder = FrameDecoder()
    decoder.feed(data)
    return list(decoder.frames())


@pytest.mark.unit
class TestIntHelpers:
    """Tests for integer helpers."""

    def test_uint32_little_endian(self) -> None:
        assert message.uint32_to_bytes(1) == b"\x01\x00\x00\x00"
        assert message.uint32_from_bytes(b"\x00\x01\x00\x00") == 256

    def test_int32_negative(self) -> None:
        assert message.int32_to_bytes(-1) == b"\xff\xff\xff\xff"
        assert message.int32_from_bytes(message.int32_to_bytes(-30_000_000)) == -30_000_000


@pytest.mark.unit
class TestFrameDecoder:
    """Tests for incremental frame decoding."""

    def test_frame_layout(self) -> None:
        encoded = message.encode(b"abc")
        # sync(4) + length(4) + payload(3) + crc(4)
        assert len(encoded) == 4 + 4 + 3 + 4
        assert encoded.startswith(message.SYNC_MAGIC_BYTES)

    def test_single_frame(self) -> None:
        assert _frames(message.encode(b"hello")) == [(b"hello", True)]

    def test_byte_by_byte(self) -> None:
        decoder = FrameDecoder()
        out: list[tuple[bytes, bool]] = []
        for b in message.encode(b"split"):
            decoder.feed(bytes([b]))
            out.extend(decoder.frames())
        assert out == [(b"split", True)]
        assert decoder.pending == 0

    def test_multiple_frames_in_one_read(self) -> None:
        data = message.encode(b"one") + message.encode(b"two")
        assert _frames(data) == [(b"one", True), (b"two", True)]

    def test_resync_after_garbage(self) -> None:
        data = b"\x00garbage\x13" + message.encode(b"ok")
        assert _frames(data) == [(b"ok", True)]

    def test_bad_crc_flagged(self) -> None:
        encoded = bytearray(message.encode(b"payload"))
        encoded[-1] ^= 0xFF
        assert _frames(bytes(encoded)) == [(b"payload", False)]

    def test_oversized_length_skipped(self) -> None:
        bogus = message.SYNC_MAGIC_BYTES + message.uint32_to_bytes(message.MAX_MESSAGE_LENGTH + 1)
        assert _frames(bogus + message.encode(b"next")) == [(b"next", True)]

    def test_garbage_only_keeps_tail(self) -> None:
        decoder = FrameDecoder()
        decoder.feed(b"x" * 100)
        assert list(decoder.frames()) == []
        assert decoder.pending == message.UINT32_SIZE - 1

    def test_encode_rejects_oversized_payload(self) -> None:
        with pytest.raises(ValueError):
            message.encode(b"\x00" * (message.MAX_MESSAGE_LENGTH + 1))


@pytest.mark.unit
class TestEncoding:
    """Tests for link message encoding."""

    def test_control(self) -> None:
        (payload, ok), = _frames(encode_control(MsgType.HELLO))
        assert ok
        assert decode_payload(payload) == (MsgType.HELLO, b"")

    def test_text(self) -> None:
        (payload, _), = _frames(encode_text(MsgType.INFO, "SET_CHUNKS_PER_SEC:42"))
        msg_type, body = decode_payload(payload)
        assert msg_type == MsgType.INFO
        assert decode_text(body) == "SET_CHUNKS_PER_SEC:42"

    def test_chunk(self) -> None:
        chunk = Chunk(x=-5, z=12, data=b"\xde\xad\xbe\xef")
        (payload, _), = _frames(encode_chunk(chunk))
        msg_type, body = decode_payload(payload)
        assert msg_type == MsgType.CHUNK
        assert decode_chunk(body) == chunk

    def test_empty_payload(self) -> None:
        with pytest.raises(EncodingError):
            decode_payload(b"")

    def test_unknown_type(self) -> None:
        with pytest.raises(EncodingError):
            decode_payload(b"\x7f")

    def test_truncated_chunk(self) -> None:
        with pytest.raises(EncodingError):
            decode_chunk(b"\x00\x00\x00")

    def test_invalid_text(self) -> None:
        with pytest.raises(EncodingError):
            decode_text(b"\xff\xfe")
