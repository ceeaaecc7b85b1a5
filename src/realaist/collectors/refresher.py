"""Refresh stale cached listings when a client returns after inactivity.

Clients report focus, blur, visibility and activity signals; when a client
comes back after being away longer than the threshold, the default listing
query is refetched if stale and every other stale entry is dropped so it is
refetched on its next read.
"""

import logging
import time
from typing import Callable, Optional

from ..models.property import PropertyFilters
from ..storage.constants import DEFAULT_PROPERTIES_KEY
from .service import PropertiesService

logger = logging.getLogger(__name__)


class StaleDataRefresher:
    """Tracks client attention and refreshes stale cache entries on return."""

    # Away longer than this triggers a refresh (2 minutes)
    DEFAULT_STALE_THRESHOLD = 120.0

    # Activity pings closer together than this are ignored (30 seconds)
    DEFAULT_ACTIVITY_DEBOUNCE = 30.0

    def __init__(
        self,
        properties: PropertiesService,
        stale_threshold: float = DEFAULT_STALE_THRESHOLD,
        activity_debounce: float = DEFAULT_ACTIVITY_DEBOUNCE,
        max_age: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the refresher.

        Args:
            properties: Service whose cache and source are refreshed
            stale_threshold: Seconds away before a return triggers a refresh
            activity_debounce: Minimum seconds between recorded activity pings
            max_age: Max age handed to ``is_stale`` (cache default if None)
            clock: Returns the current time in seconds
        """
        self.properties = properties
        self.cache = properties.cache
        self.stale_threshold = stale_threshold
        self.activity_debounce = activity_debounce
        self.max_age = max_age
        self._clock = clock
        now = clock()
        self.last_activity = now
        self.last_blur = now

    def on_blur(self) -> None:
        self.last_blur = self._clock()

    async def on_focus(self) -> bool:
        self.last_activity = self._clock()
        return await self.refresh_if_needed()

    async def on_visible(self) -> bool:
        self.last_activity = self._clock()
        return await self.refresh_if_needed()

    async def on_page_show(self) -> bool:
        self.last_activity = self._clock()
        return await self.refresh_if_needed()

    def on_activity(self) -> None:
        now = self._clock()
        if now - self.last_activity > self.activity_debounce:
            self.last_activity = now
            logger.debug("User activity detected, resetting timer")

    def should_refresh(self) -> bool:
        """Check whether the client was away longer than the threshold."""
        return self._clock() - self.last_blur > self.stale_threshold

    async def refresh_if_needed(self) -> bool:
        """Refresh stale data if the client was away long enough.

        Returns:
            True if a refresh pass ran, False if it was not needed or failed
        """
        if not self.should_refresh():
            logger.debug("No refresh needed, recent activity")
            return False

        logger.info("Refreshing stale data")
        try:
            if self.cache.is_stale(DEFAULT_PROPERTIES_KEY, self.max_age):
                await self.cache.refresh_stale_data(
                    DEFAULT_PROPERTIES_KEY,
                    lambda: self.properties.source.fetch_properties(PropertyFilters()),
                    self.cache.options(ttl=self.properties.list_ttl),
                )

            for key in self.cache.get_stats()["entries"]:
                if self.cache.is_stale(key, self.max_age):
                    logger.debug(f"Dropping stale cache entry {key}")
                    self.cache.clear(key)
        except Exception:
            logger.exception("Error refreshing stale data")
            return False
        return True

    async def force_refresh_all(self) -> bool:
        """Clear the whole cache and reload the default listing query."""
        logger.info("Force refreshing all data")
        self.cache.clear_all()
        try:
            await self.properties.get_properties()
        except Exception:
            logger.exception("Error during force refresh")
            return False
        return True

    def get_status(self) -> dict:
        now = self._clock()
        return {
            "last_activity": self.last_activity,
            "time_since_last_activity": now - self.last_activity,
            "last_blur": self.last_blur,
            "time_since_last_blur": now - self.last_blur,
            "should_refresh": self.should_refresh(),
        }
