"""Background one-second tick for the focus session."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from kairos.services.focus_session import FocusSession

logger = logging.getLogger(__name__)


class SessionTicker:
    def __init__(self, session: FocusSession, *, interval_seconds: float = 1.0) -> None:
        self._session = session
        self._interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="kairos-session-ticker")
        logger.info("Session ticker started (interval=%ss)", self._interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session ticker stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                self._session.tick()
            except Exception:
                logger.exception("Session tick failed")
