"""Property listing data models."""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class PropertyStatus(str, Enum):
    """Publication state of a listing."""

    ACTIVE = "active"
    SOLD = "sold"
    PENDING = "pending"
    DRAFT = "draft"


class Developer(BaseModel):
    """Developer profile embedded in a listing."""

    id: str
    first_name: str | None = None
    last_name: str | None = None
    company_name: str | None = None
    phone: str | None = None


class Property(BaseModel):
    """Real estate listing data model.

    Represents one row of the hosted ``properties`` table, with the owning
    developer's profile embedded when the store returns it.
    """

    # Identification
    id: str = Field(..., description="Row identifier")
    developer_id: str = Field(..., description="Owning developer profile id")

    # Listing content
    title: str = Field(..., description="Listing headline")
    description: str | None = Field(default=None, description="Free-text description")
    price: float = Field(..., ge=0, description="Asking price")
    location: str = Field(..., description="Location label shown in search")
    property_type: str = Field(..., description="Type label (apartment, villa, etc.)")

    # Property details
    bedrooms: int | None = Field(default=None, ge=0, description="Number of bedrooms")
    bathrooms: float | None = Field(default=None, ge=0, description="Number of bathrooms")
    square_feet: int | None = Field(default=None, ge=0, description="Living area in sqft")
    images: list[str] = Field(default_factory=list, description="Gallery image URLs")

    status: PropertyStatus = Field(default=PropertyStatus.DRAFT)
    developer: Developer | None = Field(default=None)

    created_at: str | None = Field(default=None, description="ISO creation timestamp")
    updated_at: str | None = Field(default=None, description="ISO update timestamp")

    model_config = {
        "str_strip_whitespace": True,
    }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Property":
        """Map a raw store row into a Property.

        Null ``images`` become an empty list and a null ``developer`` embed
        is dropped.
        """
        data = dict(row)
        if data.get("images") is None:
            data["images"] = []
        if not data.get("developer"):
            data["developer"] = None
        return cls.model_validate(data)


class PropertyFilters(BaseModel):
    """Listing query filters.

    Only truthy values are applied to the query, so ``min_price=0`` is the
    same as no lower bound.
    """

    location: str | None = None
    property_type: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    bedrooms: int | None = None
    bathrooms: float | None = None
    status: PropertyStatus | None = None
    developer_id: str | None = None

    def active(self) -> dict[str, Any]:
        """Return the filters that will be applied, JSON-ready."""
        return {
            name: value
            for name, value in self.model_dump(mode="json").items()
            if value
        }

    def cache_key(self) -> str:
        """Canonical listing cache key, ``properties-{}`` when unfiltered."""
        return "properties-" + json.dumps(self.active(), sort_keys=True, separators=(",", ":"))


class PropertyCreate(BaseModel):
    """Payload for creating a listing."""

    title: str
    description: str = ""
    price: float = Field(..., ge=0)
    location: str
    property_type: str
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: float | None = Field(default=None, ge=0)
    square_feet: int | None = Field(default=None, ge=0)
    images: list[str] = Field(default_factory=list)
    status: PropertyStatus = PropertyStatus.DRAFT


class PropertyUpdate(BaseModel):
    """Partial update; only fields that were set are sent to the store."""

    title: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    location: str | None = None
    property_type: str | None = None
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: float | None = Field(default=None, ge=0)
    square_feet: int | None = Field(default=None, ge=0)
    images: list[str] | None = None
    status: PropertyStatus | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
