"""pytest configuration and fixtures for chunklink tests.

Provides:
- FakeClock: Settable millisecond clock
- MockChunkServer: ChunkServerClient that records every command
- RecordingListener: ChunkServerListener that records notifications
- MockLinkPort: Non-blocking byte port with separate in/out buffers
- WelcomingPort: MockLinkPort that answers HELLO with WELCOME
- PortFactory: Opener recording every URL and port it hands out
- Markers for unit vs integration tests
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

import pytest
import serial

from common.config import ChunkConfig
from common.connection import Chunk, DisconnectReason, LinkError
from common.encoding import encode_control
from common.protocol import MsgType


class FakeClock:
    """Clock whose time only moves when a test sets now_ms."""

    def __init__(self, now_ms: int = 0) -> None:
        self.now_ms = now_ms

    def now(self) -> int:
        return self.now_ms


class ChunkServerCall(Enum):
    CONNECT = auto()
    DISCONNECT = auto()
    SEND_STRING_MSG = auto()


@dataclass
class Call:
    call: ChunkServerCall
    args: tuple[Any, ...] = ()


class MockChunkServer:
    """Records commands; tests flip `connected` to simulate link state."""

    def __init__(self) -> None:
        self.connected = False
        self.calls: list[Call] = []

    def connect(self) -> None:
        self.calls.append(Call(ChunkServerCall.CONNECT))

    def disconnect(self, reason: DisconnectReason) -> None:
        self.calls.append(Call(ChunkServerCall.DISCONNECT, (reason,)))

    def send_message(self, text: str) -> None:
        self.calls.append(Call(ChunkServerCall.SEND_STRING_MSG, (text,)))

    def is_connected(self) -> bool:
        return self.connected

    def contains_call(self, call: ChunkServerCall) -> bool:
        return any(c.call == call for c in self.calls)

    def count(self, call: ChunkServerCall) -> int:
        return sum(1 for c in self.calls if c.call == call)

    def last_call(self) -> Call:
        assert self.calls, "no calls recorded"
        return self.calls[-1]


@dataclass
class RecordingListener:
    """Collects link notifications in delivery order."""

    events: list[tuple[str, Any]] = field(default_factory=list)

    def on_chunk_server_connected(self) -> None:
        self.events.append(("connected", None))

    def on_chunk_server_disconnected(self, reason: DisconnectReason) -> None:
        self.events.append(("disconnected", reason))

    def on_receive_extra_chunk(self, chunk: Chunk) -> None:
        self.events.append(("chunk", chunk))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


class MockLinkPort:
    """Mock link port for unit testing.

    Writes go to `sent`; inject() queues bytes for read(). Setting
    `fail_io` makes every read/write raise SerialException.
    """

    def __init__(self) -> None:
        self.sent = bytearray()
        self._inbound = bytearray()
        self._lock = threading.Lock()
        self.is_open = True
        self.fail_io = False

    def write(self, data: bytes) -> int:
        with self._lock:
            if self.fail_io:
                raise serial.SerialException("write failed")
            self.sent.extend(data)
            return len(data)

    def read(self, size: int = 1, /) -> bytes:
        with self._lock:
            if self.fail_io:
                raise serial.SerialException("read failed")
            data = bytes(self._inbound[:size])
            del self._inbound[:size]
            return data

    @property
    def in_waiting(self) -> int:
        with self._lock:
            if self.fail_io:
                raise serial.SerialException("port gone")
            return len(self._inbound)

    def close(self) -> None:
        self.is_open = False

    def inject(self, data: bytes) -> None:
        """Inject data as if received from the chunk server."""
        with self._lock:
            self._inbound.extend(data)


class WelcomingPort(MockLinkPort):
    """MockLinkPort whose server answers HELLO with WELCOME."""

    def write(self, data: bytes) -> int:
        written = super().write(data)
        if data == encode_control(MsgType.HELLO):
            self.inject(encode_control(MsgType.WELCOME))
        return written


class PortFactory:
    """Opener handing out MockLinkPorts.

    `refuse` makes opens fail; `welcome` hands out WelcomingPorts instead.
    """

    def __init__(self) -> None:
        self.ports: list[MockLinkPort] = []
        self.urls: list[str] = []
        self.refuse = False
        self.welcome = False

    def __call__(self, url: str) -> MockLinkPort:
        self.urls.append(url)
        if self.refuse:
            raise LinkError(f"Cannot open {url}: connection refused")
        port = WelcomingPort() if self.welcome else MockLinkPort()
        self.ports.append(port)
        return port

    @property
    def last(self) -> MockLinkPort:
        return self.ports[-1]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test (uses pyserial URL handlers)")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def chunk_server() -> MockChunkServer:
    return MockChunkServer()


@pytest.fixture
def conf() -> ChunkConfig:
    return ChunkConfig()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def port_factory() -> PortFactory:
    return PortFactory()


@pytest.fixture
def make_chunk() -> Callable[..., Chunk]:
    def _make(x: int = 0, z: int = 0, data: bytes = b"\x01\x02") -> Chunk:
        return Chunk(x=x, z=z, data=data)

    return _make
