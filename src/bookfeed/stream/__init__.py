"""Order-book streaming over WebSocket-over-TLS."""

from .client import OrderBookStreamer
from .errors import (
    ParseError,
    ProtocolHandshakeError,
    ReadError,
    ResolutionError,
    SecureHandshakeError,
    SetupError,
    StageError,
    StreamError,
    TransportConnectionError,
    WriteError,
)
from .session import Session
from .sink import ConsoleMessageSink, ErrorSink, MessageSink
from .state import Failure, SessionState
from .subscription import build_subscription, encode_subscription

__all__ = [
    "OrderBookStreamer",
    "Session",
    "SessionState",
    "Failure",
    "ConsoleMessageSink",
    "ErrorSink",
    "MessageSink",
    "build_subscription",
    "encode_subscription",
    "StreamError",
    "SetupError",
    "StageError",
    "ResolutionError",
    "TransportConnectionError",
    "SecureHandshakeError",
    "ProtocolHandshakeError",
    "WriteError",
    "ReadError",
    "ParseError",
]
