"""WebSocket upgrade and framing over an established TLS stream.

The protocol state machine comes from the ``websockets`` sans-I/O
``ClientProtocol``; this module only moves bytes between it and the
asyncio stream so each stage can be driven and timed separately.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from collections import deque

from websockets.client import ClientProtocol
from websockets.exceptions import InvalidState, WebSocketException
from websockets.frames import Frame, Opcode
from websockets.protocol import State
from websockets.uri import parse_uri

from .errors import ProtocolHandshakeError, ReadError, WriteError
from .transport import Connection

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536


class WebSocketChannel:
    """An open WebSocket: one outstanding read and one outstanding write at most."""

    def __init__(
        self,
        connection: Connection,
        protocol: ClientProtocol,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self._reader = connection.reader
        self._writer = connection.writer
        self._protocol = protocol
        self._chunk_size = chunk_size
        self._pending: deque[Frame] = deque()

    @property
    def protocol(self) -> ClientProtocol:
        return self._protocol

    def queue_frames(self, events: list) -> None:
        self._pending.extend(event for event in events if isinstance(event, Frame))

    async def flush(self) -> None:
        for data in self._protocol.data_to_send():
            # b"" asks for a half-close, which TLS transports cannot do
            if data:
                self._writer.write(data)
        await self._writer.drain()

    async def send_text(self, text: str) -> None:
        try:
            self._protocol.send_text(text.encode("utf-8"))
            await self.flush()
        except (InvalidState, OSError, ssl.SSLError) as exc:
            raise WriteError(str(exc) or exc.__class__.__name__) from exc

    async def read_message(self, buffer: bytearray) -> int:
        """Read one complete text or binary message into ``buffer``.

        Continuation frames are appended until the final fragment. Control
        frames are answered by the protocol and never reach the buffer.
        Returns the number of payload bytes read.
        """
        while True:
            while self._pending:
                frame = self._pending.popleft()
                if frame.opcode is Opcode.CLOSE:
                    raise ReadError(self._close_reason())
                if frame.opcode in (Opcode.TEXT, Opcode.BINARY, Opcode.CONT):
                    buffer.extend(frame.data)
                    if frame.fin:
                        return len(buffer)
            await self._receive()

    async def _receive(self) -> None:
        try:
            data = await self._reader.read(self._chunk_size)
        except (OSError, ssl.SSLError) as exc:
            raise ReadError(str(exc) or exc.__class__.__name__) from exc

        if not data:
            self._protocol.receive_eof()
            raise ReadError("connection closed by peer")

        self._protocol.receive_data(data)
        if self._protocol.parser_exc is not None:
            raise ReadError(str(self._protocol.parser_exc))

        try:
            await self.flush()
        except (OSError, ssl.SSLError) as exc:
            raise ReadError(str(exc) or exc.__class__.__name__) from exc

        self.queue_frames(self._protocol.events_received())

    def _close_reason(self) -> str:
        close = self._protocol.close_rcvd
        if close is None:
            return "connection closed"
        return f"connection closed: {close}"


class ProtocolHandshaker:
    """Upgrades an encrypted stream to WebSocket at a fixed path."""

    def __init__(
        self,
        *,
        max_size: int | None = 2**22,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self._max_size = max_size
        self._chunk_size = chunk_size

    async def handshake(self, connection: Connection, authority: str, path: str) -> WebSocketChannel:
        host = authority.rsplit(":", 1)[0]
        try:
            protocol = ClientProtocol(parse_uri(f"wss://{host}{path}"), max_size=self._max_size)
        except WebSocketException as exc:
            raise ProtocolHandshakeError(str(exc)) from exc

        request = protocol.connect()
        del request.headers["Host"]
        request.headers["Host"] = authority
        protocol.send_request(request)

        channel = WebSocketChannel(connection, protocol, chunk_size=self._chunk_size)
        try:
            await channel.flush()
            await self._await_response(connection.reader, protocol, channel)
        except (OSError, ssl.SSLError) as exc:
            raise ProtocolHandshakeError(str(exc) or exc.__class__.__name__) from exc

        logger.info("WebSocket handshake with %s%s complete", authority, path)
        return channel

    async def _await_response(
        self,
        reader: asyncio.StreamReader,
        protocol: ClientProtocol,
        channel: WebSocketChannel,
    ) -> None:
        while protocol.state is State.CONNECTING:
            data = await reader.read(self._chunk_size)
            if data:
                protocol.receive_data(data)
            else:
                protocol.receive_eof()

            if protocol.handshake_exc is not None:
                raise ProtocolHandshakeError(str(protocol.handshake_exc))
            if not data:
                raise ProtocolHandshakeError("connection closed during handshake")

        # Frames that arrived in the same read as the response are kept for the pump.
        channel.queue_frames(protocol.events_received())
