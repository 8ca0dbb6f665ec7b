"""Output and diagnostic sinks for the streaming session."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from rich.console import Console
from rich.json import JSON

from .errors import ParseError

logger = logging.getLogger(__name__)


class MessageSink(Protocol):
    def emit(self, message: Any) -> None:
        """Deliver one parsed inbound message."""
        ...

    def reject(self, error: ParseError) -> None:
        """Report a payload that could not be parsed."""
        ...


class ConsoleMessageSink:
    """Pretty-prints messages to stdout; parse failures go to the log."""

    def __init__(self, console: Console | None = None, *, indent: int = 4):
        self.console = console or Console(soft_wrap=True)
        self.indent = indent

    def emit(self, message: Any) -> None:
        # One print call per message keeps the header and body together.
        self.console.print(
            "Received message:",
            JSON.from_data(message, indent=self.indent),
            sep="\n",
        )

    def reject(self, error: ParseError) -> None:
        logger.warning("%s; payload: %s", error, error.payload)


class ErrorSink:
    """Terminal failure reporting. Logs only; never raises or retries."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def report(self, stage: str, diagnostic: str) -> None:
        self._log.error("%s: %s", stage, diagnostic)
