from __future__ import annotations

import json
import logging
from typing import Protocol

from .errors import ParseError
from .sink import MessageSink

logger = logging.getLogger(__name__)


class MessageSource(Protocol):
    async def read_message(self, buffer: bytearray) -> int:
        ...


class MessagePump:
    """Receive loop: read one message, parse it, emit it, clear the buffer.

    Only a transport failure (``ReadError`` from the source) ends the loop;
    payloads that cannot be parsed or rendered, however deeply nested, are
    reported and skipped.
    """

    def __init__(self, source: MessageSource, sink: MessageSink):
        self._source = source
        self._sink = sink
        self.received = 0
        self.rejected = 0

    async def run(self, buffer: bytearray) -> None:
        while True:
            await self.pump_once(buffer)

    async def pump_once(self, buffer: bytearray) -> None:
        if buffer:
            raise RuntimeError("receive buffer must be empty before a read")

        await self._source.read_message(buffer)
        try:
            self._dispatch(buffer.decode("utf-8", errors="replace"))
        finally:
            buffer.clear()

    def _dispatch(self, payload: str) -> None:
        self.received += 1
        try:
            message = json.loads(payload)
        except (ValueError, RecursionError) as exc:
            self._reject(payload, str(exc))
            return

        # The console renderer recurses over the value again.
        try:
            self._sink.emit(message)
        except (ValueError, RecursionError) as exc:
            self._reject(payload, f"cannot render message: {exc}")

    def _reject(self, payload: str, reason: str) -> None:
        self.rejected += 1
        self._sink.reject(ParseError(payload, reason))
