"""
Reclamation Sweep - Resolve Inactive Review Sessions
=====================================================

Every sweep interval, sessions idle for longer than the session timeout
are closed: if a venue name is known the review is saved best-effort
through the normal finalize flow, otherwise the session is discarded.
Either way the session leaves the store.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .finalizer import FinalizeOutcome, VenueFinalizer
from .session_controller import SessionController, utc_now
from ..domain.models import SessionState
from ..infrastructure.config import ReviewSettings

logger = logging.getLogger(__name__)


class ReclamationSweep:

    def __init__(
        self,
        controller: SessionController,
        finalizer: VenueFinalizer,
        settings: ReviewSettings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._controller = controller
        self._finalizer = finalizer
        self._settings = settings
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    async def run_once(self, now: Optional[datetime] = None) -> List[str]:
        """Reclaim every stale session. Returns the senders that were removed."""
        now = now or self._clock()
        cutoff = now - timedelta(seconds=self._settings.session_timeout_seconds)
        reclaimed = []

        for sender in self._controller.store.senders():
            async with self._controller.sender_lock(sender):
                session = self._controller.store.get(sender)
                if session is None or session.last_activity is None:
                    continue
                if session.last_activity >= cutoff:
                    continue

                logger.info(f"Reclaiming inactive session for {sender}")
                state = SessionState.ABANDONED
                session.awaiting_approval = False

                if session.venue_name:
                    try:
                        result = await self._finalizer.finalize(session, session.last_activity)
                        if result.outcome is FinalizeOutcome.SAVED:
                            state = SessionState.COMPLETED
                    except Exception as e:
                        logger.exception(f"Best-effort save failed for {sender}: {e}")

                self._controller.end_session(session, state)
                reclaimed.append(sender)

        if reclaimed:
            logger.info(f"Reclamation sweep removed {len(reclaimed)} session(s)")
        return reclaimed

    async def run_forever(self) -> None:
        interval = self._settings.sweep_interval_seconds
        logger.info(f"Reclamation sweep running every {interval}s")
        while True:
            await asyncio.sleep(interval)
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Reclamation sweep failed: {e}")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
