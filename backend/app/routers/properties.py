"""Property listing API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from realaist.collectors import PropertiesService
from realaist.models.property import Property, PropertyFilters, PropertyStatus

from ..dependencies import get_properties_service

router = APIRouter()
logger = logging.getLogger(__name__)


class PropertyListResponse(BaseModel):
    """Response containing listing results."""
    properties: list[Property]
    count: int


@router.get("", response_model=PropertyListResponse)
async def list_properties(
    location: Optional[str] = Query(default=None, description="Case-insensitive location match"),
    property_type: Optional[str] = Query(default=None),
    min_price: Optional[float] = Query(default=None, ge=0),
    max_price: Optional[float] = Query(default=None, ge=0),
    bedrooms: Optional[int] = Query(default=None, ge=0),
    bathrooms: Optional[float] = Query(default=None, ge=0),
    status: Optional[PropertyStatus] = Query(default=None),
    developer_id: Optional[str] = Query(default=None),
    refresh: bool = Query(default=False, description="Bypass the cache"),
    service: PropertiesService = Depends(get_properties_service),
) -> PropertyListResponse:
    """List properties, newest first."""
    filters = PropertyFilters(
        location=location,
        property_type=property_type,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        status=status,
        developer_id=developer_id,
    )
    listings = await service.get_properties(filters, force_refresh=refresh)
    return PropertyListResponse(properties=listings, count=len(listings))


@router.get("/developer/{developer_id}", response_model=PropertyListResponse)
async def list_developer_properties(
    developer_id: str,
    refresh: bool = Query(default=False),
    service: PropertiesService = Depends(get_properties_service),
) -> PropertyListResponse:
    """List every property a developer owns."""
    listings = await service.get_developer_properties(developer_id, force_refresh=refresh)
    return PropertyListResponse(properties=listings, count=len(listings))


@router.get("/{property_id}", response_model=Property)
async def get_property(
    property_id: str,
    refresh: bool = Query(default=False),
    service: PropertiesService = Depends(get_properties_service),
) -> Property:
    """Get a single property."""
    found = await service.get_property(property_id, force_refresh=refresh)
    if found is None:
        raise HTTPException(status_code=404, detail=f"Property {property_id} not found")
    return found
