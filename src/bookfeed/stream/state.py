"""Connection lifecycle states and their transitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionState(Enum):
    INIT = "init"
    RESOLVING = "resolving"
    CONNECTING = "connecting"
    SECURE_HANDSHAKING = "secure_handshaking"
    PROTOCOL_HANDSHAKING = "protocol_handshaking"
    SUBSCRIBING = "subscribing"
    STREAMING = "streaming"
    FAILED = "failed"


LIFECYCLE: tuple[SessionState, ...] = (
    SessionState.INIT,
    SessionState.RESOLVING,
    SessionState.CONNECTING,
    SessionState.SECURE_HANDSHAKING,
    SessionState.PROTOCOL_HANDSHAKING,
    SessionState.SUBSCRIBING,
    SessionState.STREAMING,
)


class InvalidTransition(RuntimeError):
    """Requested move is not allowed from the current state."""


@dataclass(frozen=True, slots=True)
class Failure:
    stage: str
    reason: str


def next_state(state: SessionState) -> SessionState:
    """Return the successor of ``state`` in the lifecycle order."""
    if state is SessionState.FAILED:
        raise InvalidTransition("failed sessions cannot advance")
    index = LIFECYCLE.index(state)
    if index == len(LIFECYCLE) - 1:
        raise InvalidTransition(f"no state follows {state.value}")
    return LIFECYCLE[index + 1]


def fail_state(state: SessionState) -> SessionState:
    """Return the absorbing failure state reachable from ``state``."""
    if state is SessionState.FAILED:
        raise InvalidTransition("session already failed")
    return SessionState.FAILED
