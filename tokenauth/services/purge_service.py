"""Background purge of expired refresh tokens."""

import asyncio
from typing import Optional

import structlog

from tokenauth.config import get_settings
from tokenauth.services.refresh_token_service import RefreshTokenService

logger = structlog.get_logger(__name__)


class RefreshTokenPurger:
    """Deletes expired refresh tokens on a fixed interval.

    Runs as its own asyncio task, so it never holds up request handling, and
    it only touches rows whose expiry has already passed.
    """

    def __init__(
        self,
        refresh_token_service: Optional[RefreshTokenService] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.refresh_token_service = refresh_token_service or RefreshTokenService()
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else get_settings().refresh_token_purge_interval_seconds
        )
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the purge loop as an asyncio background task."""
        self._running = True
        self._task = asyncio.create_task(self._purge_loop())
        logger.info("refresh_token_purger_started", interval_seconds=self.interval_seconds)

    async def stop(self):
        """Stop the purge loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("refresh_token_purger_stopped")

    async def purge_once(self) -> int:
        return await self.refresh_token_service.delete_expired_tokens()

    async def _purge_loop(self):
        """Purge, then sleep for the interval, until stopped."""
        while self._running:
            try:
                await self.purge_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("refresh_token_purge_error", error=str(e))

            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break
