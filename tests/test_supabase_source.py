"""Tests for SupabasePropertySource against a mocked PostgREST endpoint."""

import json

import httpx
import pytest

from realaist.collectors import (
    NotAuthenticatedError,
    PropertySourceError,
    RateLimitError,
    SupabasePropertySource,
)
from realaist.collectors.supabase import PROPERTY_SELECT, build_filter_params
from realaist.models.property import PropertyCreate, PropertyFilters, PropertyStatus, PropertyUpdate

BASE_URL = "https://test.supabase.co"

ROW = {
    "id": "prop-1",
    "title": "Garden City Apartments",
    "description": None,
    "price": 8500000,
    "location": "Kasarani, Nairobi",
    "property_type": "apartment",
    "bedrooms": 2,
    "bathrooms": 2,
    "square_feet": 1100,
    "images": None,
    "status": "active",
    "developer_id": "dev-1",
    "developer": {
        "id": "dev-1",
        "first_name": "Amina",
        "last_name": "Odhiambo",
        "company_name": None,
        "phone": "+254700000000",
    },
    "created_at": "2025-03-02T09:00:00+00:00",
    "updated_at": "2025-03-02T09:00:00+00:00",
}


def make_source(handler, access_token=None) -> tuple[SupabasePropertySource, list[httpx.Request]]:
    """Source wired to a MockTransport that records every request."""
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(
        transport=httpx.MockTransport(record),
        base_url=f"{BASE_URL}/rest/v1",
    )
    source = SupabasePropertySource(
        BASE_URL, "anon-key", access_token=access_token, client=client
    )
    return source, seen


class TestFilterParams:

    def test_no_filters(self):
        assert build_filter_params(None) == []
        assert build_filter_params(PropertyFilters()) == []

    def test_all_filters(self):
        params = build_filter_params(
            PropertyFilters(
                location="Kilimani",
                property_type="apartment",
                min_price=100000,
                max_price=2500000.5,
                bedrooms=3,
                bathrooms=2,
                status=PropertyStatus.ACTIVE,
                developer_id="dev-1",
            )
        )

        assert params == [
            ("location", "ilike.*Kilimani*"),
            ("property_type", "eq.apartment"),
            ("price", "gte.100000"),
            ("price", "lte.2500000.5"),
            ("bedrooms", "eq.3"),
            ("bathrooms", "eq.2"),
            ("status", "eq.active"),
            ("developer_id", "eq.dev-1"),
        ]

    def test_zero_values_not_applied(self):
        assert build_filter_params(PropertyFilters(min_price=0, bedrooms=0)) == []


class TestReads:

    @pytest.mark.asyncio
    async def test_fetch_properties_maps_rows(self):
        source, seen = make_source(lambda request: httpx.Response(200, json=[ROW]))

        properties = await source.fetch_properties(PropertyFilters(min_price=100000))

        assert len(properties) == 1
        prop = properties[0]
        assert prop.id == "prop-1"
        assert prop.images == []
        assert prop.status == PropertyStatus.ACTIVE
        assert prop.developer.first_name == "Amina"

        params = seen[0].url.params
        assert params["select"] == PROPERTY_SELECT
        assert params["order"] == "created_at.desc"
        assert params.get_list("price") == ["gte.100000"]
        assert seen[0].headers["authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_fetch_property(self):
        source, seen = make_source(lambda request: httpx.Response(200, json=ROW))

        prop = await source.fetch_property("prop-1")

        assert prop.title == "Garden City Apartments"
        assert seen[0].url.params["id"] == "eq.prop-1"
        assert seen[0].headers["accept"] == "application/vnd.pgrst.object+json"

    @pytest.mark.asyncio
    async def test_fetch_property_not_found(self):
        source, _ = make_source(
            lambda request: httpx.Response(406, json={"message": "JSON object requested, multiple (or no) rows returned"})
        )

        assert await source.fetch_property("missing") is None

    @pytest.mark.asyncio
    async def test_fetch_developer_properties(self):
        source, seen = make_source(lambda request: httpx.Response(200, json=[ROW, {**ROW, "id": "prop-3"}]))

        properties = await source.fetch_developer_properties("dev-1")

        assert [p.id for p in properties] == ["prop-1", "prop-3"]
        assert seen[0].url.params["developer_id"] == "eq.dev-1"


class TestErrors:

    @pytest.mark.asyncio
    async def test_http_error_raises_source_error(self):
        source, _ = make_source(
            lambda request: httpx.Response(500, json={"message": "relation does not exist"})
        )

        with pytest.raises(PropertySourceError, match="relation does not exist"):
            await source.fetch_properties()

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        source, _ = make_source(
            lambda request: httpx.Response(429, headers={"Retry-After": "30"})
        )

        with pytest.raises(RateLimitError) as exc_info:
            await source.fetch_properties()

        assert exc_info.value.retry_after == 30

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        source, _ = make_source(fail)

        with pytest.raises(PropertySourceError, match="Request failed"):
            await source.fetch_properties()

    @pytest.mark.asyncio
    async def test_unconfigured_source(self):
        source = SupabasePropertySource(None, None)

        assert not source.is_available()
        with pytest.raises(PropertySourceError, match="not configured"):
            await source.fetch_properties()


    @pytest.mark.asyncio
    async def test_non_object_error_body(self):
        source, _ = make_source(lambda request: httpx.Response(500, json=["upstream error"]))

        with pytest.raises(PropertySourceError, match="HTTP 500: .*upstream error"):
            await source.fetch_properties()

    @pytest.mark.asyncio
    async def test_null_error_body(self):
        source, _ = make_source(lambda request: httpx.Response(502, content=b"null"))

        with pytest.raises(PropertySourceError, match="HTTP 502"):
            await source.fetch_properties()

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self):
        bad = {**ROW, "id": "prop-bad", "location": None}
        source, _ = make_source(lambda request: httpx.Response(200, json=[ROW, bad]))

        properties = await source.fetch_properties()

        assert [p.id for p in properties] == ["prop-1"]

    @pytest.mark.asyncio
    async def test_malformed_single_row(self):
        source, _ = make_source(
            lambda request: httpx.Response(200, json={**ROW, "status": "archived"})
        )

        with pytest.raises(PropertySourceError, match="Malformed property row"):
            await source.fetch_property("prop-1")


class TestWrites:

    @pytest.mark.asyncio
    async def test_insert_requires_token(self):
        source, seen = make_source(lambda request: httpx.Response(201, json=ROW))

        with pytest.raises(NotAuthenticatedError):
            await source.insert_property(
                PropertyCreate(title="x", price=1, location="y", property_type="z"), "dev-1"
            )
        assert seen == []

    @pytest.mark.asyncio
    async def test_insert_property(self):
        source, seen = make_source(
            lambda request: httpx.Response(201, json=ROW), access_token="user-jwt"
        )

        created = await source.insert_property(
            PropertyCreate(
                title="Garden City Apartments",
                price=8500000,
                location="Kasarani, Nairobi",
                property_type="apartment",
            ),
            "dev-1",
        )

        assert created.id == "prop-1"
        request = seen[0]
        assert request.method == "POST"
        assert request.headers["authorization"] == "Bearer user-jwt"
        assert request.headers["prefer"] == "return=representation"
        body = json.loads(request.content)
        assert body["developer_id"] == "dev-1"
        assert body["status"] == "draft"
        assert body["images"] == []

    @pytest.mark.asyncio
    async def test_update_sends_only_changes(self):
        source, seen = make_source(
            lambda request: httpx.Response(200, json={**ROW, "price": 9000000}),
            access_token="user-jwt",
        )

        updated = await source.update_property("prop-1", PropertyUpdate(price=9000000), "dev-1")

        assert updated.price == 9000000
        request = seen[0]
        assert request.method == "PATCH"
        assert json.loads(request.content) == {"price": 9000000.0}
        assert request.url.params["developer_id"] == "eq.dev-1"

    @pytest.mark.asyncio
    async def test_update_not_owned(self):
        source, _ = make_source(lambda request: httpx.Response(406, json={}), access_token="user-jwt")

        with pytest.raises(PropertySourceError, match="not found"):
            await source.update_property("prop-1", PropertyUpdate(title="x"), "dev-9")

    @pytest.mark.asyncio
    async def test_delete_property(self):
        source, seen = make_source(lambda request: httpx.Response(204), access_token="user-jwt")

        await source.delete_property("prop-1", "dev-1")

        assert seen[0].method == "DELETE"
        assert seen[0].url.params["id"] == "eq.prop-1"
