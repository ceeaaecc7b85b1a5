"""Cache-backed property data access.

This module provides the PropertiesService class which sits between the
HTTP layer and a PropertySource. Reads go through the read-through cache
with per-resource TTLs; writes go straight to the source and then drop
every cached listing so the next read sees the change.
"""

import logging
from typing import Optional

from ..models.property import Property, PropertyCreate, PropertyFilters, PropertyUpdate
from ..storage.cache import ReadThroughCache
from ..storage.constants import CACHE_DURATIONS
from .base import PropertySource

logger = logging.getLogger(__name__)


def property_key(property_id: str) -> str:
    return f"property-{property_id}"


def developer_properties_key(developer_id: str) -> str:
    return f"properties-developer-{developer_id}"


class PropertiesService:
    """Listing reads and writes with caching.

    Example:
        service = PropertiesService(source, cache)

        listings = await service.get_properties(PropertyFilters(status="active"))
        detail = await service.get_property(listings[0].id)

        # Bypass the cache (manual refresh button)
        listings = await service.get_properties(force_refresh=True)
    """

    # Listing queries change whenever a developer publishes (5 minutes)
    DEFAULT_LIST_TTL = CACHE_DURATIONS["API"]

    # Single properties change rarely (10 minutes)
    DEFAULT_DETAIL_TTL = CACHE_DURATIONS["PROPERTIES"]

    def __init__(
        self,
        source: PropertySource,
        cache: ReadThroughCache,
        list_ttl: float = DEFAULT_LIST_TTL,
        detail_ttl: float = DEFAULT_DETAIL_TTL,
    ):
        self.source = source
        self.cache = cache
        self.list_ttl = list_ttl
        self.detail_ttl = detail_ttl

    async def get_properties(
        self,
        filters: Optional[PropertyFilters] = None,
        force_refresh: bool = False,
    ) -> list[Property]:
        """Fetch listings matching the filters, newest first.

        Raises:
            PropertySourceError: If the store fails and nothing is cached
        """
        filters = filters or PropertyFilters()
        return await self.cache.get(
            filters.cache_key(),
            lambda: self.source.fetch_properties(filters),
            self.cache.options(ttl=self.list_ttl, force_refresh=force_refresh),
        )

    async def get_property(
        self,
        property_id: str,
        force_refresh: bool = False,
    ) -> Optional[Property]:
        """Fetch one listing, or None if it does not exist.

        Misses are not cached, so a listing published after a failed lookup
        is visible on the next call.
        """
        key = property_key(property_id)
        found = await self.cache.get(
            key,
            lambda: self.source.fetch_property(property_id),
            self.cache.options(ttl=self.detail_ttl, force_refresh=force_refresh),
        )
        if found is None:
            self.cache.clear(key)
        return found

    async def get_developer_properties(
        self,
        developer_id: str,
        force_refresh: bool = False,
    ) -> list[Property]:
        """Fetch every listing a developer owns."""
        return await self.cache.get(
            developer_properties_key(developer_id),
            lambda: self.source.fetch_developer_properties(developer_id),
            self.cache.options(ttl=self.list_ttl, force_refresh=force_refresh),
        )

    async def create_property(self, data: PropertyCreate, developer_id: str) -> Property:
        created = await self.source.insert_property(data, developer_id)
        self._invalidate()
        return created

    async def update_property(
        self,
        property_id: str,
        data: PropertyUpdate,
        developer_id: str,
    ) -> Property:
        updated = await self.source.update_property(property_id, data, developer_id)
        self._invalidate()
        return updated

    async def delete_property(self, property_id: str, developer_id: str) -> None:
        await self.source.delete_property(property_id, developer_id)
        self._invalidate()

    def _invalidate(self) -> None:
        removed = self.cache.clear_property_caches()
        logger.debug(f"Invalidated {removed} property cache entries")
