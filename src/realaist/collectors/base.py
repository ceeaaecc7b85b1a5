"""Abstract base class for property stores.

This module defines the PropertySource abstract base class that the
properties service reads from and writes to. The hosted Supabase table is
the production implementation; tests plug in in-memory fakes through the
same interface.

Example usage:
    class MySource(PropertySource):
        name = "my_source"

        async def fetch_properties(self, filters=None):
            ...

        def is_available(self):
            return True
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.property import Property, PropertyCreate, PropertyFilters, PropertyUpdate


class PropertySource(ABC):
    """Abstract base class for remote property stores.

    Attributes:
        name: Unique identifier for this source (e.g., "supabase")
    """

    name: str

    @abstractmethod
    async def fetch_properties(
        self,
        filters: Optional[PropertyFilters] = None,
    ) -> list[Property]:
        """Fetch listings matching the filters, newest first.

        Raises:
            PropertySourceError: If the store is unavailable or the request fails
        """

    @abstractmethod
    async def fetch_property(self, property_id: str) -> Optional[Property]:
        """Fetch one listing, or None if it does not exist.

        Raises:
            PropertySourceError: If the store is unavailable or the request fails
        """

    @abstractmethod
    async def fetch_developer_properties(self, developer_id: str) -> list[Property]:
        """Fetch every listing owned by a developer, newest first."""

    @abstractmethod
    async def insert_property(self, data: PropertyCreate, developer_id: str) -> Property:
        """Create a listing owned by the developer and return the stored row."""

    @abstractmethod
    async def update_property(
        self,
        property_id: str,
        data: PropertyUpdate,
        developer_id: str,
    ) -> Property:
        """Apply a partial update to a listing the developer owns."""

    @abstractmethod
    async def delete_property(self, property_id: str, developer_id: str) -> None:
        """Delete a listing the developer owns."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this source is configured with the credentials it needs."""


class PropertySourceError(Exception):
    """Base exception for property store errors.

    Attributes:
        source: Name of the source that raised the error
        message: Error description
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class RateLimitError(PropertySourceError):
    """Raised when the store rejects requests for exceeding its rate limit."""

    def __init__(self, source: str, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        message = "Rate limit exceeded"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(source, message)


class NotAuthenticatedError(PropertySourceError):
    """Raised when a write is attempted without a user access token."""

    def __init__(self, source: str):
        super().__init__(source, "User not authenticated")
