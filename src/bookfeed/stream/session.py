from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .state import Failure, SessionState, fail_state, next_state

if TYPE_CHECKING:
    from .transport import Connection
    from .websocket import WebSocketChannel


@dataclass(slots=True)
class Session:
    """State of one streaming connection attempt."""

    host: str
    port: int
    instrument: str
    state: SessionState = SessionState.INIT
    failure: Failure | None = None
    history: list[SessionState] = field(default_factory=lambda: [SessionState.INIT])
    # "host:port" once connected; sent as the WebSocket Host header
    authority: str | None = None
    connection: "Connection | None" = None
    channel: "WebSocketChannel | None" = None
    buffer: bytearray = field(default_factory=bytearray)

    @property
    def failed(self) -> bool:
        return self.state is SessionState.FAILED

    def advance(self) -> SessionState:
        self.state = next_state(self.state)
        self.history.append(self.state)
        return self.state

    def fail(self, stage: str, reason: str) -> None:
        self.state = fail_state(self.state)
        self.failure = Failure(stage, reason)
        self.history.append(self.state)
