"""Supabase property store.

Reads and writes the hosted ``properties`` table through the PostgREST
endpoint Supabase exposes at ``/rest/v1``. Uses httpx for async HTTP
requests; every row is returned with the owning developer's profile
embedded through the ``properties_developer_id_fkey`` relationship.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..models.property import Property, PropertyCreate, PropertyFilters, PropertyUpdate
from .base import NotAuthenticatedError, PropertySource, PropertySourceError, RateLimitError

logger = logging.getLogger(__name__)

TABLE = "properties"

PROPERTY_SELECT = (
    "*,developer:profiles!properties_developer_id_fkey"
    "(id,first_name,last_name,company_name,phone)"
)

# PostgREST returns a bare object instead of an array with this media type,
# and answers 406 when the filter matched no row.
SINGLE_OBJECT = "application/vnd.pgrst.object+json"


def _number(value: float) -> str:
    """Format a numeric filter value without a trailing .0."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def build_filter_params(filters: Optional[PropertyFilters]) -> list[tuple[str, str]]:
    """Translate listing filters into PostgREST query parameters.

    Example: PropertyFilters(location="Kilimani", min_price=100000)
          -> [("location", "ilike.*Kilimani*"), ("price", "gte.100000")]
    """
    if filters is None:
        return []

    params: list[tuple[str, str]] = []
    if filters.location:
        params.append(("location", f"ilike.*{filters.location}*"))
    if filters.property_type:
        params.append(("property_type", f"eq.{filters.property_type}"))
    if filters.min_price:
        params.append(("price", f"gte.{_number(filters.min_price)}"))
    if filters.max_price:
        params.append(("price", f"lte.{_number(filters.max_price)}"))
    if filters.bedrooms:
        params.append(("bedrooms", f"eq.{filters.bedrooms}"))
    if filters.bathrooms:
        params.append(("bathrooms", f"eq.{_number(filters.bathrooms)}"))
    if filters.status:
        params.append(("status", f"eq.{filters.status.value}"))
    if filters.developer_id:
        params.append(("developer_id", f"eq.{filters.developer_id}"))
    return params


class SupabasePropertySource(PropertySource):
    """PostgREST client for the hosted properties table.

    Attributes:
        name: "supabase"

    Example:
        async with SupabasePropertySource(url, anon_key) as source:
            listings = await source.fetch_properties(
                PropertyFilters(location="Westlands", max_price=25000000)
            )
    """

    name = "supabase"

    def __init__(
        self,
        url: Optional[str],
        api_key: Optional[str],
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the Supabase source.

        Args:
            url: Project base URL (e.g. https://xyz.supabase.co)
            api_key: Anonymous API key
            access_token: User JWT; required for writes
            timeout: Request timeout in seconds (default 10.0)
            client: Preconfigured HTTP client (built lazily if None)
        """
        self.url = url.rstrip("/") if url else None
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any) -> "SupabasePropertySource":
        return cls(
            url=settings.supabase_url,
            api_key=settings.supabase_anon_key,
            access_token=settings.supabase_access_token,
            timeout=settings.request_timeout,
        )

    def is_available(self) -> bool:
        return bool(self.url and self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if not self.is_available():
            raise PropertySourceError(self.name, "Supabase URL or API key not configured")
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.url}/rest/v1",
                timeout=self.timeout,
                headers={"apikey": self.api_key},
            )
        return self._client

    def _auth_headers(self, require_user: bool = False) -> dict[str, str]:
        if require_user and not self.access_token:
            raise NotAuthenticatedError(self.name)
        token = self.access_token or self.api_key
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        params: list[tuple[str, str]],
        headers: Optional[dict[str, str]] = None,
        json: Any = None,
        require_user: bool = False,
    ) -> httpx.Response:
        """Send a request to the properties table and check the status."""
        client = await self._get_client()
        all_headers = {**self._auth_headers(require_user), **(headers or {})}

        try:
            response = await client.request(
                method, f"/{TABLE}", params=params, headers=all_headers, json=json
            )
        except httpx.HTTPError as e:
            logger.warning(f"{method} {TABLE} failed: {e}")
            raise PropertySourceError(self.name, f"Request failed: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                self.name, int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        return response

    def _raise_for_error(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = None
        message = body.get("message") if isinstance(body, dict) else None
        message = message or response.text
        raise PropertySourceError(self.name, f"HTTP {response.status_code}: {message}")

    async def _fetch_list(self, params: list[tuple[str, str]]) -> list[Property]:
        response = await self._request(
            "GET",
            [("select", PROPERTY_SELECT), *params, ("order", "created_at.desc")],
        )
        self._raise_for_error(response)

        properties = []
        for row in response.json():
            try:
                properties.append(Property.from_row(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed property row {row.get('id')}: {e}")
        return properties

    def _to_property(self, row: Any) -> Property:
        try:
            return Property.from_row(row)
        except ValidationError as e:
            raise PropertySourceError(self.name, f"Malformed property row: {e}") from e

    async def fetch_properties(
        self,
        filters: Optional[PropertyFilters] = None,
    ) -> list[Property]:
        properties = await self._fetch_list(build_filter_params(filters))
        logger.info(f"Fetched {len(properties)} properties from {self.name}")
        return properties

    async def fetch_property(self, property_id: str) -> Optional[Property]:
        response = await self._request(
            "GET",
            [("select", PROPERTY_SELECT), ("id", f"eq.{property_id}")],
            headers={"Accept": SINGLE_OBJECT},
        )
        if response.status_code == 406:
            logger.debug(f"Property not found: {property_id}")
            return None
        self._raise_for_error(response)
        return self._to_property(response.json())

    async def fetch_developer_properties(self, developer_id: str) -> list[Property]:
        return await self._fetch_list([("developer_id", f"eq.{developer_id}")])

    async def insert_property(self, data: PropertyCreate, developer_id: str) -> Property:
        payload = {**data.model_dump(mode="json"), "developer_id": developer_id}
        response = await self._request(
            "POST",
            [("select", PROPERTY_SELECT)],
            headers={"Accept": SINGLE_OBJECT, "Prefer": "return=representation"},
            json=payload,
            require_user=True,
        )
        self._raise_for_error(response)
        created = self._to_property(response.json())
        logger.info(f"Created property {created.id}")
        return created

    async def update_property(
        self,
        property_id: str,
        data: PropertyUpdate,
        developer_id: str,
    ) -> Property:
        response = await self._request(
            "PATCH",
            [
                ("select", PROPERTY_SELECT),
                ("id", f"eq.{property_id}"),
                ("developer_id", f"eq.{developer_id}"),
            ],
            headers={"Accept": SINGLE_OBJECT, "Prefer": "return=representation"},
            json=data.changes(),
            require_user=True,
        )
        if response.status_code == 406:
            raise PropertySourceError(
                self.name, f"Property {property_id} not found for developer {developer_id}"
            )
        self._raise_for_error(response)
        return self._to_property(response.json())

    async def delete_property(self, property_id: str, developer_id: str) -> None:
        response = await self._request(
            "DELETE",
            [("id", f"eq.{property_id}"), ("developer_id", f"eq.{developer_id}")],
            require_user=True,
        )
        self._raise_for_error(response)
        logger.info(f"Deleted property {property_id}")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "SupabasePropertySource":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
