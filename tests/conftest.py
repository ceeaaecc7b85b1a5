"""Pytest fixtures and test utilities."""

from collections import Counter
from typing import Optional

import pytest

from realaist.collectors import PropertiesService, PropertySource, PropertySourceError
from realaist.models.property import (
    Developer,
    Property,
    PropertyCreate,
    PropertyFilters,
    PropertyStatus,
    PropertyUpdate,
)
from realaist.storage import ReadThroughCache


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePropertySource(PropertySource):
    """In-memory property store that counts calls and can be made to fail."""

    name = "fake"

    def __init__(self, properties: Optional[list[Property]] = None):
        self.properties = {p.id: p for p in properties or []}
        self.calls: Counter = Counter()
        self.fail_with: Optional[Exception] = None

    def _record(self, operation: str) -> None:
        self.calls[operation] += 1
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch_properties(self, filters: Optional[PropertyFilters] = None) -> list[Property]:
        self._record("fetch_properties")
        found = list(self.properties.values())
        if filters and filters.location:
            found = [p for p in found if filters.location.lower() in p.location.lower()]
        if filters and filters.status:
            found = [p for p in found if p.status == filters.status]
        return found

    async def fetch_property(self, property_id: str) -> Optional[Property]:
        self._record("fetch_property")
        return self.properties.get(property_id)

    async def fetch_developer_properties(self, developer_id: str) -> list[Property]:
        self._record("fetch_developer_properties")
        return [p for p in self.properties.values() if p.developer_id == developer_id]

    async def insert_property(self, data: PropertyCreate, developer_id: str) -> Property:
        self._record("insert_property")
        created = Property(
            id=f"prop-{len(self.properties) + 1}",
            developer_id=developer_id,
            **data.model_dump(),
        )
        self.properties[created.id] = created
        return created

    async def update_property(
        self, property_id: str, data: PropertyUpdate, developer_id: str
    ) -> Property:
        self._record("update_property")
        existing = self.properties.get(property_id)
        if existing is None or existing.developer_id != developer_id:
            raise PropertySourceError(self.name, f"Property {property_id} not found")
        updated = existing.model_copy(update=data.model_dump(exclude_unset=True))
        self.properties[property_id] = updated
        return updated

    async def delete_property(self, property_id: str, developer_id: str) -> None:
        self._record("delete_property")
        self.properties.pop(property_id, None)

    def is_available(self) -> bool:
        return True


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ReadThroughCache:
    """Cache with default options driven by the fake clock."""
    return ReadThroughCache(clock=clock)


@pytest.fixture
def sample_apartment() -> Property:
    """Active apartment listing with developer embed."""
    return Property(
        id="prop-1",
        developer_id="dev-1",
        title="Garden City Apartments",
        description="Two-bedroom units off Thika Road",
        price=8500000,
        location="Kasarani, Nairobi",
        property_type="apartment",
        bedrooms=2,
        bathrooms=2,
        square_feet=1100,
        images=["https://cdn.example.com/garden-1.jpg"],
        status=PropertyStatus.ACTIVE,
        developer=Developer(id="dev-1", first_name="Amina", last_name="Odhiambo"),
        created_at="2025-03-02T09:00:00Z",
    )


@pytest.fixture
def sample_villa() -> Property:
    """Draft villa listing from another developer."""
    return Property(
        id="prop-2",
        developer_id="dev-2",
        title="Karen Villa",
        price=65000000,
        location="Karen, Nairobi",
        property_type="villa",
        bedrooms=5,
        bathrooms=4.5,
        status=PropertyStatus.DRAFT,
        created_at="2025-02-14T12:30:00Z",
    )


@pytest.fixture
def source(sample_apartment: Property, sample_villa: Property) -> FakePropertySource:
    """Fake store holding the sample listings."""
    return FakePropertySource([sample_apartment, sample_villa])


@pytest.fixture
def service(source: FakePropertySource, cache: ReadThroughCache) -> PropertiesService:
    """Properties service over the fake store and fake-clock cache."""
    return PropertiesService(source, cache)
