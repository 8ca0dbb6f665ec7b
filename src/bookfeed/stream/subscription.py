"""JSON-RPC subscription to a single instrument's order-book channel."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SUBSCRIBE_METHOD = "public/subscribe"
SUBSCRIBE_REQUEST_ID = 1
BOOK_INTERVAL = "100ms"


class TextSender(Protocol):
    async def send_text(self, text: str) -> None:
        ...


def book_channel(instrument: str) -> str:
    return f"book.{instrument}.{BOOK_INTERVAL}"


def build_subscription(instrument: str) -> dict[str, Any]:
    """Build the one-channel subscribe request.

    Only a single channel per session is supported.
    """
    return {
        "jsonrpc": "2.0",
        "id": SUBSCRIBE_REQUEST_ID,
        "method": SUBSCRIBE_METHOD,
        "params": {"channels": [book_channel(instrument)]},
    }


def encode_subscription(request: dict[str, Any]) -> str:
    return json.dumps(request, separators=(",", ":"), ensure_ascii=False)


async def send_subscription(channel: TextSender, instrument: str) -> str:
    """Send the subscribe frame and return the text that was written."""
    message = encode_subscription(build_subscription(instrument))
    await channel.send_text(message)
    logger.info("subscribed to %s", book_channel(instrument))
    return message
