"""FastAPI application for the Realaist listings API."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from realaist.collectors import (
    NotAuthenticatedError,
    PropertiesService,
    PropertySource,
    PropertySourceError,
    StaleDataRefresher,
    SupabasePropertySource,
)
from realaist.config import Settings
from realaist.storage import CacheJanitor, ReadThroughCache

from .routers import cache, properties

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


def create_app(
    settings: Optional[Settings] = None,
    source: Optional[PropertySource] = None,
) -> FastAPI:
    """Build the API.

    Args:
        settings: Application settings (loaded from the environment if None)
        source: Property store (Supabase from settings if None)
    """
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage startup/shutdown: cache, store client and expiry sweep."""
        store = source or SupabasePropertySource.from_settings(settings)
        if not store.is_available():
            logger.warning("Supabase is not configured, listing requests will fail")

        shared_cache = ReadThroughCache.from_settings(settings)
        service = PropertiesService(
            store,
            shared_cache,
            list_ttl=settings.properties_ttl,
            detail_ttl=settings.property_detail_ttl,
        )
        janitor = CacheJanitor(shared_cache, interval=settings.cache_cleanup_interval)

        app.state.cache = shared_cache
        app.state.properties = service
        app.state.janitor = janitor
        app.state.refresher = StaleDataRefresher(
            service, stale_threshold=settings.stale_refresh_threshold
        )

        await janitor.start()
        yield
        await janitor.stop()
        if hasattr(store, "close"):
            await store.close()

    app = FastAPI(
        title="Realaist API",
        description="Property listings served through a read-through cache",
        version="3.0.2",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    allowed_origins = [
        "http://localhost:5173",  # Vite dev
        "http://127.0.0.1:5173",
    ]
    if settings.frontend_url:
        allowed_origins.append(settings.frontend_url.rstrip("/"))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(SecurityHeadersMiddleware)

    @app.exception_handler(NotAuthenticatedError)
    async def not_authenticated(request: Request, exc: NotAuthenticatedError):
        return JSONResponse(status_code=401, content={"detail": exc.message})

    @app.exception_handler(PropertySourceError)
    async def source_failed(request: Request, exc: PropertySourceError):
        logger.warning(f"{request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=502,
            content={"detail": f"Property store unavailable: {exc.message}"},
        )

    app.include_router(properties.router, prefix="/api/properties", tags=["Properties"])
    app.include_router(cache.router, prefix="/api/cache", tags=["Cache"])

    @app.get("/")
    async def root():
        """API root endpoint."""
        return {
            "name": "Realaist API",
            "version": "3.0.2",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "cache_entries": len(request.app.state.cache),
            "store": "configured" if request.app.state.properties.source.is_available() else "missing",
        }

    return app


app = create_app()
