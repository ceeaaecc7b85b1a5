"""In-memory read-through cache for remote property data.

This module provides a keyed get-or-fetch cache that sits in front of the
hosted property store, enabling:
- Fewer network round trips through TTL-based caching
- Stale-data fallback when the store fails transiently
- Version tagging so a schema bump invalidates old entries
- Bulk invalidation by key prefix or regular expression
"""

import asyncio
import inspect
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import to_json

from .constants import CACHE_DURATIONS, CACHE_VERSION, PROPERTY_PREFIXES, USER_PREFIXES

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchFn = Callable[[], Union[Awaitable[T], T]]

# Default TTL (5 minutes)
DEFAULT_TTL = CACHE_DURATIONS["API"]

# Default max age (24 hours)
DEFAULT_MAX_AGE = CACHE_DURATIONS["DYNAMIC"]


@dataclass
class CacheEntry(Generic[T]):
    """Cached value with its creation time, expiry and version tag."""

    data: T
    timestamp: float
    expires_at: float
    version: str

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def age(self, now: float) -> float:
        return now - self.timestamp


class CacheOptions(BaseModel):
    """Per-call cache behaviour.

    Attributes:
        ttl: Seconds an entry is served without refetching (default 300).
        max_age: Seconds after which an entry is unusable; stale data is
            accepted up to twice this age when a fetch fails (default 86400).
        force_refresh: Skip the cache read and always fetch (default False).
        version: Tag that must match the stored entry (default CACHE_VERSION).
    """

    model_config = ConfigDict(frozen=True)

    ttl: float = Field(default=DEFAULT_TTL, ge=0)
    max_age: float = Field(default=DEFAULT_MAX_AGE, ge=0)
    force_refresh: bool = False
    version: str = CACHE_VERSION


class ReadThroughCache:
    """Keyed get-or-fetch memory cache with stale-on-error fallback.

    The cache is domain-agnostic: callers supply an opaque string key and a
    zero-argument fetch function. One instance is meant to be built at
    application start and handed to the services that need it.

    Example:
        cache = ReadThroughCache()

        # Fetch once, serve from memory for the TTL
        listings = await cache.get(
            "properties-{}",
            source.fetch_properties,
            cache.options(ttl=600),
        )

        # Invalidate every listing query after a write
        cache.clear_prefix("properties-")

        # Periodic maintenance
        removed = cache.clear_expired()
    """

    def __init__(
        self,
        default_options: Optional[CacheOptions] = None,
        clock: Callable[[], float] = time.time,
        coalesce_misses: bool = False,
    ):
        """Initialize the cache.

        Args:
            default_options: Options used when a call passes none.
            clock: Returns the current time in seconds.
            coalesce_misses: If True, concurrent misses for the same key
                share one in-flight fetch instead of each fetching.
        """
        self.default_options = default_options or CacheOptions()
        self.coalesce_misses = coalesce_misses
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._in_flight: dict[tuple[str, str], asyncio.Future] = {}

    @classmethod
    def from_settings(cls, settings: Any, clock: Callable[[], float] = time.time) -> "ReadThroughCache":
        """Build a cache from application settings."""
        return cls(
            default_options=CacheOptions(
                ttl=settings.cache_ttl,
                max_age=settings.cache_max_age,
                version=settings.cache_version,
            ),
            clock=clock,
            coalesce_misses=settings.cache_coalesce_misses,
        )

    def options(self, **overrides: Any) -> CacheOptions:
        """Derive call options from the cache defaults.

        Example:
            cache.options(ttl=600, force_refresh=True)
        """
        return CacheOptions(**{**self.default_options.model_dump(), **overrides})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    async def get(
        self,
        key: str,
        fetch_fn: FetchFn[T],
        options: Optional[CacheOptions] = None,
    ) -> T:
        """Return cached data for a key, fetching it on a miss.

        Args:
            key: Non-empty cache key
            fetch_fn: Zero-argument callable producing the value (may be async)
            options: Call options (defaults to the cache defaults)

        Returns:
            Fresh cached data, newly fetched data, or stale data if the
            fetch failed and a usable entry exists

        Raises:
            ValueError: If the key is empty
            Exception: Whatever fetch_fn raised, when no stale data exists
        """
        _check_key(key)
        opts = options or self.default_options

        if not opts.force_refresh:
            entry = self._lookup(key, opts.max_age, opts.version)
            if entry is not None:
                logger.debug(f"Cache hit: {key}")
                return entry.data

        logger.debug(f"Fetching fresh data for {key}")
        try:
            if self.coalesce_misses:
                return await self._fetch_shared(key, fetch_fn, opts)
            return await self._fetch_and_store(key, fetch_fn, opts)
        except Exception as e:
            stale = self._lookup(key, opts.max_age * 2, opts.version, allow_expired=True)
            if stale is None:
                raise
            logger.warning(f"Using stale data for {key} due to fetch error: {e}")
            return stale.data

    async def refresh_stale_data(
        self,
        key: str,
        fetch_fn: FetchFn[T],
        options: Optional[CacheOptions] = None,
    ) -> T:
        """Fetch and store a key unconditionally.

        Used once a caller has decided via ``is_stale`` that an entry needs
        refreshing. Fetch errors propagate.
        """
        _check_key(key)
        data = await self._fetch_and_store(key, fetch_fn, options or self.default_options)
        logger.info(f"Refreshed stale data for {key}")
        return data

    async def preload(
        self,
        key: str,
        fetch_fn: FetchFn[Any],
        ttl: Optional[float] = None,
    ) -> bool:
        """Warm a key ahead of its first read.

        Returns:
            True if the data was stored, False if the fetch failed
        """
        _check_key(key)
        opts = self.options(ttl=ttl) if ttl is not None else self.default_options
        try:
            await self._fetch_and_store(key, fetch_fn, opts)
        except Exception as e:
            logger.error(f"Failed to preload {key}: {e}")
            return False
        logger.info(f"Preloaded data for {key}")
        return True

    def is_stale(self, key: str, max_age: Optional[float] = None) -> bool:
        """Check whether an entry is missing or past half its max age."""
        entry = self._entries.get(key)
        if entry is None:
            return True
        if max_age is None:
            max_age = self.default_options.max_age
        return entry.age(self._clock()) > max_age / 2

    def clear(self, key: str) -> None:
        """Remove one entry. Missing keys are ignored."""
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Cleared cache for {key}")

    def clear_all(self) -> None:
        """Remove every entry."""
        count = len(self._entries)
        self._entries.clear()
        if count:
            logger.info(f"Cleared all {count} cache entries")

    def clear_expired(self) -> int:
        """Remove entries past their expiry time.

        Returns:
            Number of entries deleted
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.info(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def clear_pattern(self, pattern: str) -> int:
        """Remove entries whose key matches a regular expression.

        The pattern is searched anywhere in the key; anchor it with ``^``
        to match a namespace.

        Returns:
            Number of entries deleted
        """
        regex = re.compile(pattern)
        return self._clear_matching(lambda key: regex.search(key) is not None, pattern)

    def clear_prefix(self, prefix: str) -> int:
        """Remove entries whose key starts with a prefix.

        Returns:
            Number of entries deleted
        """
        return self._clear_matching(lambda key: key.startswith(prefix), f"{prefix}*")

    def clear_property_caches(self) -> int:
        """Remove every cached listing query and single property."""
        return sum(self.clear_prefix(prefix) for prefix in PROPERTY_PREFIXES)

    def clear_user_caches(self) -> int:
        """Remove every cached user, auth and profile entry."""
        return sum(self.clear_prefix(prefix) for prefix in USER_PREFIXES)

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dict with entry count, keys, and approximate serialized size in bytes
        """
        entries = list(self._entries.values())
        return {
            "size": len(entries),
            "entries": list(self._entries),
            "memory_usage": len(to_json(entries, serialize_unknown=True)),
        }

    def _lookup(
        self,
        key: str,
        max_age: float,
        version: str,
        allow_expired: bool = False,
    ) -> Optional[CacheEntry[Any]]:
        """Find a usable entry.

        Version mismatches are dropped. Expired entries are left in place so
        the stale path can still reach them.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.version != version:
            del self._entries[key]
            logger.debug(f"Dropped {key}: version {entry.version} != {version}")
            return None

        now = self._clock()
        if entry.age(now) > max_age:
            return None
        if not allow_expired and entry.is_expired(now):
            return None
        return entry

    def _store(self, key: str, data: Any, ttl: float, version: str) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(
            data=data,
            timestamp=now,
            expires_at=now + ttl,
            version=version,
        )

    async def _fetch_and_store(self, key: str, fetch_fn: FetchFn[T], opts: CacheOptions) -> T:
        result = fetch_fn()
        if inspect.isawaitable(result):
            result = await result
        self._store(key, result, opts.ttl, opts.version)
        return result

    async def _fetch_shared(self, key: str, fetch_fn: FetchFn[T], opts: CacheOptions) -> T:
        """Join the in-flight fetch for a key and version, starting one if needed."""
        flight = (key, opts.version)
        pending = self._in_flight.get(flight)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_and_store(key, fetch_fn, opts))
            self._in_flight[flight] = pending

            def _settled(task: asyncio.Future) -> None:
                if self._in_flight.get(flight) is task:
                    del self._in_flight[flight]
                # Mark the exception retrieved when every waiter was cancelled
                if not task.cancelled():
                    task.exception()

            pending.add_done_callback(_settled)
        else:
            logger.debug(f"Joining in-flight fetch for {key}")

        # A cancelled waiter must not cancel the fetch the others share
        return await asyncio.shield(pending)

    def _clear_matching(self, predicate: Callable[[str], bool], label: str) -> int:
        matched = [key for key in self._entries if predicate(key)]
        for key in matched:
            del self._entries[key]

        if matched:
            logger.info(f"Cleared {len(matched)} cache entries matching {label}")
        return len(matched)


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise ValueError("Cache key must be a non-empty string")
