"""Property data access.

This module provides a unified interface for reading and writing property
listings in the hosted store, with caching in front of the reads.

Main Components:
    - PropertySource: Abstract base class for property stores
    - SupabasePropertySource: PostgREST client for the hosted table
    - PropertiesService: Cache-backed reads and invalidating writes
    - StaleDataRefresher: Refreshes stale entries when a client returns

Example usage:
    from realaist.collectors import PropertiesService, SupabasePropertySource
    from realaist.storage import ReadThroughCache

    service = PropertiesService(SupabasePropertySource(url, key), ReadThroughCache())
    listings = await service.get_properties()
"""

from .base import NotAuthenticatedError, PropertySource, PropertySourceError, RateLimitError
from .refresher import StaleDataRefresher
from .service import PropertiesService
from .supabase import SupabasePropertySource

__all__ = [
    "PropertySource",
    "PropertySourceError",
    "RateLimitError",
    "NotAuthenticatedError",
    "SupabasePropertySource",
    "PropertiesService",
    "StaleDataRefresher",
]
