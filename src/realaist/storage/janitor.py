"""Background task that sweeps expired entries out of the memory cache."""

import asyncio
import logging
from datetime import datetime, timezone

from .cache import ReadThroughCache

logger = logging.getLogger(__name__)


class CacheJanitor:
    """Periodically calls ``clear_expired`` on a cache."""

    def __init__(self, cache: ReadThroughCache, interval: float = 300.0):
        self._cache = cache
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._status: dict = {
            "is_running": False,
            "interval_sec": interval,
            "last_sweep_at": None,
            "last_removed": 0,
            "total_removed": 0,
        }

    async def start(self):
        """Launch the sweep loop."""
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop())
        self._status["is_running"] = True
        logger.info(f"Cache janitor started (interval={self._interval}s)")

    async def stop(self):
        """Cancel the sweep loop."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Cache janitor stopped")
        self._status["is_running"] = False

    def get_status(self) -> dict:
        """Return current janitor status."""
        return {**self._status}

    def sweep(self) -> int:
        """Run one expiry pass and record it."""
        removed = self._cache.clear_expired()
        self._status["last_sweep_at"] = datetime.now(timezone.utc).isoformat()
        self._status["last_removed"] = removed
        self._status["total_removed"] += removed
        return removed

    async def _loop(self):
        """Main loop: sleep, sweep, repeat."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed unexpectedly")
