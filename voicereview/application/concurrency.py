"""
Concurrency Helpers - Per-Key Locks and Deferred Tasks
=======================================================

KeyedLocks serializes work per sender (or per venue id) while letting
different keys run in parallel. DeferredTasks runs single-fire delayed
callbacks, e.g. the approval timeout, that can be cancelled by key.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict, Set

logger = logging.getLogger(__name__)


class KeyedLocks:
    """One asyncio.Lock per key, dropped again once nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


class DeferredTasks:
    """
    Delayed single-fire callbacks.

    Keyed tasks replace any earlier task with the same key. A task removes
    itself from the registry just before its callback runs, so the callback
    may safely cancel its own key.
    """

    def __init__(self):
        self._keyed: Dict[str, asyncio.Task] = {}
        self._anonymous: Set[asyncio.Task] = set()

    def schedule(self, key: str, delay: float, callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.create_task(self._run_keyed(key, delay, callback))
        self._keyed[key] = task
        return task

    def spawn(self, delay: float, callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Fire-and-forget delayed callback that nothing cancels except shutdown."""
        task = asyncio.create_task(self._run(delay, callback))
        self._anonymous.add(task)
        task.add_done_callback(self._anonymous.discard)
        return task

    def cancel(self, key: str) -> bool:
        task = self._keyed.pop(key, None)
        if task is None or task is asyncio.current_task():
            return False
        task.cancel()
        return True

    def pending(self, key: str) -> bool:
        return key in self._keyed

    async def shutdown(self):
        tasks = list(self._keyed.values()) + list(self._anonymous)
        self._keyed.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_keyed(self, key: str, delay: float, callback):
        await asyncio.sleep(delay)
        if self._keyed.get(key) is asyncio.current_task():
            del self._keyed[key]
        await self._invoke(callback)

    async def _run(self, delay: float, callback):
        await asyncio.sleep(delay)
        await self._invoke(callback)

    async def _invoke(self, callback):
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Deferred task failed: {e}")
