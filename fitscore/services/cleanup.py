"""
Deferred, best-effort deletion of temporary documents
"""
import asyncio
from typing import Iterable, Set

from fitscore.utils.logging_config import get_logger

logger = get_logger(__name__)


class DeferredDeletionQueue:
    """
    Schedules document deletions on the running event loop.

    ``submit`` returns immediately; failures are logged and never reach the
    caller. ``drain`` waits for whatever is still pending, used on shutdown.
    """

    def __init__(self, store, delay_seconds: float = 5.0):
        self.store = store
        self.delay_seconds = delay_seconds
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, locators: Iterable[str]):
        locators = [loc for loc in locators if loc]
        if not locators:
            return None
        task = asyncio.get_running_loop().create_task(self._delete_later(locators))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Scheduled deletion of {len(locators)} temporary document(s) in {self.delay_seconds}s")
        return task

    async def _delete_later(self, locators):
        await asyncio.sleep(self.delay_seconds)
        loop = asyncio.get_running_loop()
        for locator in locators:
            try:
                deleted = await loop.run_in_executor(None, self.store.delete, locator)
            except Exception as e:
                logger.warning(f"Failed to delete temporary document {locator}: {e}")
                continue
            if deleted:
                logger.info(f"Cleaned up temporary document {locator}")

    async def drain(self):
        if not self._tasks:
            return
        logger.info(f"Waiting for {len(self._tasks)} pending cleanup task(s)")
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
