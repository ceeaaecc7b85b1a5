"""Request dependencies resolving the objects built in the app lifespan."""

from fastapi import Request

from realaist.collectors import PropertiesService, StaleDataRefresher
from realaist.storage import CacheJanitor, ReadThroughCache


def get_cache(request: Request) -> ReadThroughCache:
    return request.app.state.cache


def get_properties_service(request: Request) -> PropertiesService:
    return request.app.state.properties


def get_janitor(request: Request) -> CacheJanitor:
    return request.app.state.janitor


def get_refresher(request: Request) -> StaleDataRefresher:
    return request.app.state.refresher
