from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import load_settings
from .di import build_container
from .logging import configure_logging
from .runtime import run
from .stream.errors import SetupError

logger = logging.getLogger(__name__)

INSTRUMENT_PROMPT = "Enter the instrument name (e.g., BTC-PERPETUAL): "


def main(argv: list[str] | None = None) -> int:
    """Entry point for both streaming and the trading CLI.

    - `bookfeed` or `bookfeed stream`: stream one instrument's order book
    - `bookfeed <typer-subcommand>`: REST trading commands (e.g. `bookfeed order-book BTC-PERPETUAL`)
    """
    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        return _run_stream_mode([])

    if argv[0] == "stream":
        return _run_stream_mode(argv[1:])

    return _run_cli_mode(argv)


def read_instrument(prompt: str = INSTRUMENT_PROMPT) -> str:
    """Ask once for the instrument on stdin; EOF counts as empty input."""
    try:
        return input(prompt)
    except EOFError:
        return ""


def _run_stream_mode(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="bookfeed stream", description="Stream an instrument's order book"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file (default: BOOKFEED_CONFIG or ./config.yml)",
    )
    parser.add_argument(
        "--instrument",
        default=None,
        help="Instrument name, e.g. BTC-PERPETUAL (prompted when omitted)",
    )

    args = parser.parse_args(argv)
    configure_logging(Path("logs"))

    instrument = args.instrument if args.instrument is not None else read_instrument()
    if not instrument.strip():
        logger.error("Instrument name cannot be empty.")
        return 1

    try:
        settings = load_settings(args.config)
        container = build_container(settings)
    except (ValueError, SetupError) as exc:
        logger.error("Error: %s", exc)
        return 1

    logger.info("bookfeed streaming %s", instrument)
    asyncio.run(run(container, instrument))
    logger.info("bookfeed exit")

    return 0


def _run_cli_mode(argv: list[str]) -> int:
    """Run the REST trading commands through Typer."""
    try:
        configure_logging(Path("logs"))

        # Imported lazily so stream mode never loads the REST stack
        from .cli import run_cli
        run_cli(argv)
        return 0
    except SystemExit as e:
        return e.code if e.code else 0
    except Exception as e:
        logger.error("CLI error: %s", e, exc_info=True)
        return 1
