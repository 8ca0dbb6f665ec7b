"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets.frames import Frame, Opcode
from websockets.http11 import Request
from websockets.server import ServerProtocol

from bookfeed.stream.errors import ReadError
from bookfeed.stream.sink import ErrorSink
from bookfeed.stream.transport import Connection, Endpoint


class RecordingSink:
    """Message sink that keeps everything it is given."""

    def __init__(self):
        self.emitted: list[Any] = []
        self.rejected = []

    def emit(self, message: Any) -> None:
        self.emitted.append(message)

    def reject(self, error) -> None:
        self.rejected.append(error)


class RecordingErrorSink(ErrorSink):
    def __init__(self):
        super().__init__()
        self.reports: list[tuple[str, str]] = []

    def report(self, stage: str, diagnostic: str) -> None:
        self.reports.append((stage, diagnostic))
        super().report(stage, diagnostic)


class FakeChannel:
    """Scripted WebSocket channel; raises ReadError once the script runs out."""

    def __init__(self, payloads: list[bytes] | None = None, *, write_error: Exception | None = None):
        self.payloads = list(payloads or [])
        self.write_error = write_error
        self.sent: list[str] = []
        self.buffer_sizes_before_read: list[int] = []

    async def send_text(self, text: str) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.sent.append(text)

    async def read_message(self, buffer: bytearray) -> int:
        self.buffer_sizes_before_read.append(len(buffer))
        if not self.payloads:
            raise ReadError("connection closed by peer")
        buffer.extend(self.payloads.pop(0))
        return len(buffer)


class FakeStage:
    """Stand-in for one network stage: records calls, returns or raises."""

    def __init__(self, result: Any = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[tuple] = []

    async def __call__(self, *args):
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        return self.result


def make_connection(port: int = 443) -> Connection:
    writer = MagicMock()
    writer.drain = AsyncMock()
    return Connection(reader=MagicMock(), writer=writer, peer=Endpoint("203.0.113.10", port))


class FakeNetwork:
    """Resolver, connector, negotiator and handshaker backed by FakeStages."""

    def __init__(self, channel: FakeChannel | None = None, connection: Connection | None = None):
        self.channel = channel or FakeChannel()
        self.connection = connection or make_connection()
        self.resolve = FakeStage([Endpoint("203.0.113.10", 443)])
        self.connect = FakeStage(self.connection)
        self.negotiate = FakeStage(None)
        self.handshake = FakeStage(self.channel)

    @property
    def resolver(self):
        return MagicMock(resolve=self.resolve)

    @property
    def connector(self):
        return MagicMock(connect=self.connect)

    @property
    def negotiator(self):
        return MagicMock(negotiate=self.negotiate)

    @property
    def handshaker(self):
        return MagicMock(handshake=self.handshake)


class ScriptedServer:
    """Server side of a WebSocket, driven in memory with websockets' ServerProtocol.

    Bytes the client writes are parsed here; bytes the server sends are fed
    into the client's StreamReader.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        *,
        reject_status: int | None = None,
        greeting: str | None = None,
    ):
        self.reader = reader
        self.protocol = ServerProtocol()
        self.reject_status = reject_status
        self.greeting = greeting
        self.requests: list[Request] = []
        self.texts: list[str] = []
        self.opcodes: list[Opcode] = []

    def write(self, data: bytes) -> None:
        self.protocol.receive_data(data)
        for event in self.protocol.events_received():
            if isinstance(event, Request):
                self.requests.append(event)
                if self.reject_status is not None:
                    response = self.protocol.reject(self.reject_status, "Forbidden\n")
                else:
                    response = self.protocol.accept(event)
                self.protocol.send_response(response)
                if self.greeting is not None and self.reject_status is None:
                    self.protocol.send_text(self.greeting.encode())
            elif isinstance(event, Frame):
                self.opcodes.append(event.opcode)
                if event.opcode is Opcode.TEXT:
                    self.texts.append(event.data.decode())
        self.flush()

    def send_text(self, text: str, *, fin: bool = True) -> None:
        self.protocol.send_text(text.encode(), fin=fin)
        self.flush()

    def flush(self) -> None:
        for data in self.protocol.data_to_send():
            if data:
                self.reader.feed_data(data)
            else:
                self.reader.feed_eof()


def make_server_connection(
    *, reject_status: int | None = None, greeting: str | None = None
) -> tuple[Connection, ScriptedServer]:
    """Client connection wired to an in-memory server. Call inside a running loop."""
    reader = asyncio.StreamReader()
    server = ScriptedServer(reader, reject_status=reject_status, greeting=greeting)
    writer = MagicMock()
    writer.write.side_effect = server.write
    writer.drain = AsyncMock()
    return Connection(reader=reader, writer=writer, peer=Endpoint("127.0.0.1", 443)), server


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def error_sink():
    return RecordingErrorSink()


@pytest.fixture
def book_notification():
    """Sample order-book notification as Deribit sends it."""
    return {
        "jsonrpc": "2.0",
        "method": "subscription",
        "params": {
            "channel": "book.BTC-PERPETUAL.100ms",
            "data": {
                "type": "change",
                "timestamp": 1700000000000,
                "instrument_name": "BTC-PERPETUAL",
                "change_id": 1234,
                "prev_change_id": 1233,
                "bids": [["new", 36500.0, 1200.0]],
                "asks": [["delete", 36510.5, 0.0]],
            },
        },
    }


@pytest.fixture
def subscribe_response():
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "result": ["book.BTC-PERPETUAL.100ms"],
        "usIn": 1700000000000000,
        "usOut": 1700000000000100,
        "usDiff": 100,
        "testnet": False,
    }
