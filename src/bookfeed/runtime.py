from __future__ import annotations

import asyncio
import logging

from .di import AppContainer
from .stream.session import Session

logger = logging.getLogger(__name__)


async def run(container: AppContainer, instrument: str) -> Session:
    """Stream ``instrument`` until the session fails; returns the finished session."""
    logger.info("runtime starting")
    logger.debug("settings=%s", container.settings.redacted())

    loop = asyncio.get_running_loop()
    streamer = container.create_streamer(loop)
    session = container.create_session(instrument)

    await streamer.run(session)

    if session.failure is not None:
        logger.info("session ended at stage %s", session.failure.stage)
    logger.info("runtime stopped")
    return session
