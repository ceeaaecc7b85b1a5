"""API routers."""

from . import cache, properties

__all__ = ["properties", "cache"]
