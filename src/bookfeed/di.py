from __future__ import annotations

import asyncio
import ssl
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .stream.client import OrderBookStreamer
from .stream.errors import SetupError
from .stream.session import Session
from .stream.sink import ConsoleMessageSink, ErrorSink, MessageSink
from .stream.transport import create_ssl_context

if TYPE_CHECKING:
    from .settings import Settings


@dataclass(slots=True)
class AppContainer:
    settings: "Settings"
    ssl_context: ssl.SSLContext
    sink: MessageSink = field(default_factory=ConsoleMessageSink)
    error_sink: ErrorSink = field(default_factory=ErrorSink)

    def create_session(self, instrument: str) -> Session:
        stream = self.settings.stream
        return Session(host=stream.host, port=stream.port, instrument=instrument)

    def create_streamer(self, loop: asyncio.AbstractEventLoop) -> OrderBookStreamer:
        return OrderBookStreamer.from_settings(
            self.settings.stream,
            loop=loop,
            ssl_context=self.ssl_context,
            sink=self.sink,
            error_sink=self.error_sink,
        )


def build_container(settings: "Settings", sink: MessageSink | None = None) -> AppContainer:
    """Build the application container; TLS context errors become ``SetupError``."""
    try:
        ssl_context = create_ssl_context(settings.stream.ca_file)
    except (ssl.SSLError, OSError, ValueError) as exc:
        raise SetupError(f"cannot create TLS context: {exc}") from exc

    container = AppContainer(settings=settings, ssl_context=ssl_context)
    if sink is not None:
        container.sink = sink
    return container
