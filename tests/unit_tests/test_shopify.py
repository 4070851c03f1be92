"""Tests for the Shopify Admin GraphQL client."""

import json

import httpx
import pytest

from device_guard.errors import TagMutationError
from device_guard.services.shopify import ShopifyClient, customer_gid


def _client(handler) -> ShopifyClient:
    return ShopifyClient(
        "test-shop.myshopify.com",
        "shpat_test",
        transport=httpx.MockTransport(handler),
    )


def _tags_add_response(tags=None, user_errors=None) -> dict:
    return {
        "data": {
            "tagsAdd": {
                "node": {"id": customer_gid("1"), "email": "a@b.c", "tags": tags or []},
                "userErrors": user_errors or [],
            }
        }
    }


class TestShopifyClient:
    def test_customer_gid(self):
        assert customer_gid("12345") == "gid://shopify/Customer/12345"

    def test_graphql_url(self):
        client = ShopifyClient("test-shop.myshopify.com", "tok", api_version="2025-01")
        assert client.graphql_url == (
            "https://test-shop.myshopify.com/admin/api/2025-01/graphql.json"
        )

    async def test_add_verified_tag_sends_mutation(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["token"] = request.headers["X-Shopify-Access-Token"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_tags_add_response(["email_verified"]))

        client = _client(handler)
        await client.add_verified_tag("12345")
        await client.close()

        assert seen["url"].endswith("/admin/api/2025-01/graphql.json")
        assert seen["token"] == "shpat_test"
        assert "tagsAdd" in seen["body"]["query"]
        assert seen["body"]["variables"] == {
            "id": "gid://shopify/Customer/12345",
            "tags": ["email_verified"],
        }

    async def test_user_errors_raise(self):
        def handler(request):
            return httpx.Response(
                200,
                json=_tags_add_response(user_errors=[{"field": ["id"], "message": "Customer not found"}]),
            )

        client = _client(handler)
        with pytest.raises(TagMutationError, match="Customer not found"):
            await client.add_tags("1", ["email_verified"])
        await client.close()

    async def test_graphql_errors_raise(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "Throttled"}]})

        client = _client(handler)
        with pytest.raises(TagMutationError, match="Throttled"):
            await client.add_verified_tag("1")
        await client.close()

    async def test_http_error_raises(self):
        def handler(request):
            return httpx.Response(401, json={"errors": "Invalid API key"})

        client = _client(handler)
        with pytest.raises(TagMutationError):
            await client.add_verified_tag("1")
        await client.close()

    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(TagMutationError):
            await client.add_verified_tag("1")
        await client.close()

    async def test_has_verified_tag(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"data": {"customer": {"id": customer_gid("7"), "tags": ["vip", "email_verified"]}}},
            )

        client = _client(handler)
        assert await client.has_verified_tag("7") is True
        await client.close()

    async def test_unknown_customer_not_verified(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"customer": None}})

        client = _client(handler)
        assert await client.has_verified_tag("404") is False
        await client.close()


class TestDevMode:
    async def test_unconfigured_client_makes_no_requests(self):
        def handler(request):
            raise AssertionError("no HTTP call expected in dev mode")

        client = ShopifyClient("", "", transport=httpx.MockTransport(handler))
        assert client.enabled is False
        await client.add_verified_tag("1")
        assert await client.has_verified_tag("1") is False
        await client.close()
