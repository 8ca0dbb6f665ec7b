"""bookfeed: Deribit order-book streamer."""

from .settings import Settings
from .stream import OrderBookStreamer, Session, SessionState, build_subscription

__all__ = [
    "Settings",
    "OrderBookStreamer",
    "Session",
    "SessionState",
    "build_subscription",
]
