"""In-memory caching for remote property data.

This package provides the read-through cache that keeps listing queries and
single properties in memory to avoid redundant calls to the hosted store,
plus the background sweep that drops expired entries.
"""

from .cache import CacheEntry, CacheOptions, ReadThroughCache
from .janitor import CacheJanitor

__all__ = ["CacheEntry", "CacheOptions", "ReadThroughCache", "CacheJanitor"]
