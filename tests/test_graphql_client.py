"""Tests for the Admin GraphQL client (httpx, mocked transport)."""

from __future__ import annotations

import httpx
import pytest

from shopify_platform.clients.graphql import GraphqlClient
from shopify_platform.errors import (
    GraphqlQueryError,
    HttpInternalError,
    HttpRequestError,
    HttpResponseError,
    HttpThrottlingError,
)
from shopify_platform.session.session import Session

QUERY = "{ shop { name } }"


@pytest.fixture
def client(session, config, transport) -> GraphqlClient:
    return GraphqlClient(session, config, transport=transport)


class TestQuery:
    @pytest.mark.asyncio
    async def test_returns_parsed_body(self, client, transport):
        transport.queue({"data": {"shop": {"name": "Shop 1"}}}, headers={"X-Request-Id": "abc"})
        response = await client.query(QUERY, variables={"a": 1})

        assert response.body == {"data": {"shop": {"name": "Shop 1"}}}
        assert response.headers["x-request-id"] == "abc"
        assert transport.bodies[0] == {"query": QUERY, "variables": {"a": 1}}

    @pytest.mark.asyncio
    async def test_request_headers(self, client, transport):
        transport.queue({"data": {}})
        await client.query(QUERY, extra_headers={"X-Extra": "1"})

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.headers["X-Shopify-Access-Token"] == "dangit"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["X-Extra"] == "1"
        assert request.headers["User-Agent"].startswith("Shopify Platform Library v")

    @pytest.mark.asyncio
    async def test_user_agent_prefix(self, session, config_factory, transport):
        client = GraphqlClient(session, config_factory(user_agent_prefix="My App"), transport=transport)
        transport.queue({"data": {}})
        await client.query(QUERY)
        assert transport.requests[0].headers["User-Agent"].startswith("My App | Shopify Platform Library")

    @pytest.mark.asyncio
    async def test_configured_api_version(self, session, config_factory, transport):
        client = GraphqlClient(session, config_factory(api_version="2024-07"), transport=transport)
        transport.queue({"data": {}})
        await client.query(QUERY)
        assert transport.requests[0].url.path == "/admin/api/2024-07/graphql.json"


class TestErrors:
    @pytest.mark.asyncio
    async def test_graphql_errors(self, client, transport):
        transport.queue({"errors": [{"message": "Field 'nope' doesn't exist"}]})
        with pytest.raises(GraphqlQueryError) as exc_info:
            await client.query(QUERY)
        assert exc_info.value.body["errors"][0]["message"].startswith("Field")

    @pytest.mark.asyncio
    async def test_throttled(self, client, transport):
        transport.queue({"errors": "Throttled"}, status_code=429, headers={"Retry-After": "2.0"})
        with pytest.raises(HttpThrottlingError) as exc_info:
            await client.query(QUERY)
        assert exc_info.value.retry_after == 2.0
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_server_error(self, client, transport):
        transport.queue({"errors": "Internal"}, status_code=502)
        with pytest.raises(HttpInternalError):
            await client.query(QUERY)

    @pytest.mark.asyncio
    async def test_client_error(self, client, transport):
        transport.queue({"errors": "Not found"}, status_code=404)
        with pytest.raises(HttpResponseError) as exc_info:
            await client.query(QUERY)
        assert not isinstance(exc_info.value, HttpInternalError)
        assert exc_info.value.response.body == {"errors": "Not found"}

    @pytest.mark.asyncio
    async def test_network_failure(self, client, transport):
        transport.queue_error(httpx.ReadTimeout("timed out"))
        with pytest.raises(HttpRequestError):
            await client.query(QUERY)

    def test_requires_access_token(self, config):
        session = Session(id="offline_shop1.myshopify.io", shop="shop1.myshopify.io", state="s", is_online=False)
        with pytest.raises(ValueError):
            GraphqlClient(session, config)
