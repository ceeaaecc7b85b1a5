"""Data models for Realaist."""

from realaist.models.property import (
    Developer,
    Property,
    PropertyCreate,
    PropertyFilters,
    PropertyStatus,
    PropertyUpdate,
)

__all__ = [
    "PropertyStatus",
    "Developer",
    "Property",
    "PropertyFilters",
    "PropertyCreate",
    "PropertyUpdate",
]
