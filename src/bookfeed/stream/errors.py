"""Failure taxonomy for the streaming session.

Stage errors are terminal: the driver reports them once and the session
stops for good. ``ParseError`` is local to one message and never ends the
session. ``SetupError`` happens before any network activity.
"""

from __future__ import annotations

from typing import ClassVar


class StreamError(Exception):
    """Base class for streaming failures."""


class SetupError(StreamError):
    """Invalid input or environment detected before connecting."""


class StageError(StreamError):
    """A connection-lifecycle stage failed."""

    stage: ClassVar[str] = "stream"

    def __init__(self, diagnostic: str):
        super().__init__(diagnostic)
        self.diagnostic = diagnostic


class ResolutionError(StageError):
    stage = "resolve"


class TransportConnectionError(StageError):
    stage = "connect"


class SecureHandshakeError(StageError):
    stage = "ssl_handshake"


class ProtocolHandshakeError(StageError):
    stage = "handshake"


class WriteError(StageError):
    stage = "write"


class ReadError(StageError):
    stage = "read"


class ParseError(StreamError):
    """Inbound payload was not valid JSON."""

    def __init__(self, payload: str, reason: str):
        super().__init__(f"Failed to parse JSON: {reason}")
        self.payload = payload
        self.reason = reason
