"""Cache diagnostics and invalidation endpoints."""

import logging
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from realaist.collectors import StaleDataRefresher
from realaist.storage import CacheJanitor, ReadThroughCache

from ..dependencies import get_cache, get_janitor, get_refresher

router = APIRouter()
logger = logging.getLogger(__name__)


class ClearScope(str, Enum):
    ALL = "all"
    PROPERTIES = "properties"
    USERS = "users"
    EXPIRED = "expired"


class ClearRequest(BaseModel):
    """Exactly one of key, prefix or scope selects what to remove."""
    key: Optional[str] = None
    prefix: Optional[str] = None
    scope: Optional[ClearScope] = None


class ClientEvent(str, Enum):
    FOCUS = "focus"
    BLUR = "blur"
    VISIBLE = "visible"
    PAGE_SHOW = "page_show"
    ACTIVITY = "activity"


@router.get("/stats")
async def cache_stats(
    cache: ReadThroughCache = Depends(get_cache),
    janitor: CacheJanitor = Depends(get_janitor),
):
    """Entry count, keys, approximate size and sweep status."""
    return {**cache.get_stats(), "janitor": janitor.get_status()}


@router.post("/clear")
async def clear_cache(
    body: ClearRequest,
    cache: ReadThroughCache = Depends(get_cache),
):
    """Remove one key, a key prefix, or a named scope."""
    selectors = [s for s in (body.key, body.prefix, body.scope) if s is not None]
    if len(selectors) != 1:
        raise HTTPException(status_code=422, detail="Provide exactly one of key, prefix or scope")

    if body.key is not None:
        removed = 1 if body.key in cache else 0
        cache.clear(body.key)
    elif body.prefix is not None:
        removed = cache.clear_prefix(body.prefix)
    elif body.scope == ClearScope.PROPERTIES:
        removed = cache.clear_property_caches()
    elif body.scope == ClearScope.USERS:
        removed = cache.clear_user_caches()
    elif body.scope == ClearScope.EXPIRED:
        removed = cache.clear_expired()
    else:
        removed = len(cache)
        cache.clear_all()

    logger.info(f"Cache clear request removed {removed} entries")
    return {"removed": removed, "size": len(cache)}


@router.post("/events/{event}")
async def client_event(
    event: ClientEvent,
    refresher: StaleDataRefresher = Depends(get_refresher),
):
    """Record a focus/visibility signal; may refresh stale data.

    The refresher is process-wide like the cache it refreshes: a blur from
    any client moves the shared last-blur time, and a focus from any client
    may then reload the listings every client reads.
    """
    refreshed = False
    if event == ClientEvent.BLUR:
        refresher.on_blur()
    elif event == ClientEvent.ACTIVITY:
        refresher.on_activity()
    elif event == ClientEvent.FOCUS:
        refreshed = await refresher.on_focus()
    elif event == ClientEvent.VISIBLE:
        refreshed = await refresher.on_visible()
    else:
        refreshed = await refresher.on_page_show()
    return {"refreshed": refreshed, **refresher.get_status()}


@router.post("/refresh")
async def force_refresh(refresher: StaleDataRefresher = Depends(get_refresher)):
    """Drop every entry and reload the default listing query."""
    ok = await refresher.force_refresh_all()
    if not ok:
        raise HTTPException(status_code=502, detail="Reload of listings failed")
    return {"refreshed": True}
