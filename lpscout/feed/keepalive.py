"""Periodic keep-alive pings for the feed connection."""

import asyncio
from typing import Any

import structlog

from ..core.errors import NotConnectedError
from .connection import ConnectionManager

logger = structlog.get_logger(__name__)

PING_MESSAGE = {"type": "ping"}


class KeepAliveScheduler:
    """Sends a liveness ping on a fixed period while the connection is open.

    The scheduler never reconnects or closes anything; it is purely a liveness
    signal layered over the manager's send contract.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        interval_seconds: float = 30.0,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self.manager = manager
        self.interval_seconds = interval_seconds
        self.payload = payload or PING_MESSAGE
        self.pings_sent = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> bool:
        """Send one ping if the connection is open.

        Returns:
            True if a ping was sent
        """
        if not self.manager.is_open:
            return False
        try:
            await self.manager.send(self.payload)
        except NotConnectedError:
            # Connection dropped between the state check and the send
            logger.debug("Skipped keep-alive, connection not open")
            return False
        self.pings_sent += 1
        logger.debug("Keep-alive sent", pings_sent=self.pings_sent)
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.tick()
            except Exception as e:
                logger.warning("Keep-alive send failed", error=str(e))

    def start(self) -> None:
        """Start the periodic ping task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Keep-alive started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the periodic ping task."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Keep-alive stopped", pings_sent=self.pings_sent)
