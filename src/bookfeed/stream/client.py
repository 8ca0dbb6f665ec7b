"""Order-book streaming driver.

Walks one ``Session`` through resolve, connect, TLS, WebSocket upgrade,
subscribe and stream, issuing exactly one network operation per state.
Any stage failure is reported once and ends the session for good.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from typing import TYPE_CHECKING

from .errors import StageError
from .pump import MessagePump
from .session import Session
from .sink import ErrorSink, MessageSink
from .state import SessionState
from .subscription import send_subscription
from .transport import Connector, Resolver, SecureChannelNegotiator
from .websocket import ProtocolHandshaker

if TYPE_CHECKING:
    from ..settings import StreamSettings

logger = logging.getLogger(__name__)

DEFAULT_PATH = "/ws/api/v2"


class OrderBookStreamer:
    def __init__(
        self,
        *,
        resolver: Resolver,
        connector: Connector,
        negotiator: SecureChannelNegotiator,
        handshaker: ProtocolHandshaker,
        sink: MessageSink,
        error_sink: ErrorSink,
        path: str = DEFAULT_PATH,
    ):
        self.resolver = resolver
        self.connector = connector
        self.negotiator = negotiator
        self.handshaker = handshaker
        self.sink = sink
        self.error_sink = error_sink
        self.path = path

    @classmethod
    def from_settings(
        cls,
        settings: "StreamSettings",
        *,
        loop: asyncio.AbstractEventLoop,
        ssl_context: ssl.SSLContext,
        sink: MessageSink,
        error_sink: ErrorSink,
    ) -> "OrderBookStreamer":
        return cls(
            resolver=Resolver(loop),
            connector=Connector(loop, timeout=settings.connect_timeout),
            negotiator=SecureChannelNegotiator(ssl_context, timeout=settings.tls_handshake_timeout),
            handshaker=ProtocolHandshaker(
                max_size=settings.max_message_size,
                chunk_size=settings.read_chunk_size,
            ),
            sink=sink,
            error_sink=error_sink,
            path=settings.path,
        )

    async def run(self, session: Session) -> None:
        """Drive ``session`` until it fails; returns only after a failure."""
        if session.state is not SessionState.INIT:
            raise ValueError(f"session already started (state={session.state.value})")

        try:
            await self._establish(session)
            await self._stream(session)
        except StageError as exc:
            session.fail(exc.stage, exc.diagnostic)
            self.error_sink.report(exc.stage, exc.diagnostic)
        finally:
            if session.connection is not None:
                session.connection.writer.close()

    async def _establish(self, session: Session) -> None:
        session.advance()  # resolving
        logger.info("resolving %s:%s", session.host, session.port)
        endpoints = await self.resolver.resolve(session.host, session.port)

        session.advance()  # connecting
        connection = session.connection = await self.connector.connect(endpoints)
        session.authority = f"{session.host}:{connection.peer.port}"

        session.advance()  # secure handshaking
        await self.negotiator.negotiate(connection, session.host)

        session.advance()  # protocol handshaking
        session.channel = await self.handshaker.handshake(connection, session.authority, self.path)

    async def _stream(self, session: Session) -> None:
        session.advance()  # subscribing
        await send_subscription(session.channel, session.instrument)

        session.advance()  # streaming
        logger.info("streaming %s", session.instrument)
        await MessagePump(session.channel, self.sink).run(session.buffer)
