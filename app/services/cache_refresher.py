"""
app/services/cache_refresher.py

Purpose: Periodic cache refresh

- Re-reads every collection document on a fixed interval
- Keeps admin views within one interval of the store
- Runs in-memory housekeeping (expired confirmation codes) on the same cycle
"""

import asyncio
from typing import Callable, Iterable, List, Optional

from app.core.logging import get_logger
from app.db.jsonbin import JsonBinClient

logger = get_logger(__name__)


class CacheRefresher:

    def __init__(
        self,
        storage: JsonBinClient,
        collection_ids: Iterable[str],
        interval: float = 30.0,
        housekeeping: Optional[Callable[[], int]] = None,
    ):
        self.storage = storage
        self.collection_ids: List[str] = [collection_id for collection_id in collection_ids if collection_id]
        self.interval = interval
        self.housekeeping = housekeeping
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_once(self) -> int:
        refreshed = await self.storage.refresh(self.collection_ids)
        logger.debug(f"Cache refreshed: {refreshed}/{len(self.collection_ids)} collections")
        return refreshed

    async def run_cycle(self) -> int:
        """One refresh plus housekeeping. Returns the number of refreshed collections."""
        refreshed = await self.refresh_once()
        if self.housekeeping is not None:
            removed = self.housekeeping()
            if removed:
                logger.debug(f"Housekeeping removed {removed} expired item(s)")
        return refreshed

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error(f"Cache refresh cycle failed: {e}", exc_info=True)

    def start(self):
        if self.interval <= 0 or not self.collection_ids:
            logger.info("Background cache refresh disabled")
            return
        if not self.running:
            self._task = asyncio.create_task(self._run())
            logger.info(f"Background cache refresh every {self.interval}s")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
