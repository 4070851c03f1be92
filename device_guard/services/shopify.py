"""
Async client for the Shopify Admin GraphQL API.

Used to tag customers once their email is verified and to look the tag
up again. Built once at startup from config and shared for the app
lifetime.

Without a shop domain and access token the client runs in dev mode:
mutations are only logged and lookups report "not verified".
"""

from __future__ import annotations

import logging

import httpx

from device_guard.config import (
    SHOPIFY_ADMIN_TOKEN,
    SHOPIFY_API_VERSION,
    SHOPIFY_SHOP,
    SHOPIFY_TIMEOUT,
    VERIFIED_TAG,
)
from device_guard.errors import TagMutationError

logger = logging.getLogger(__name__)

_TAGS_ADD_MUTATION = """
mutation addTags($id: ID!, $tags: [String!]!) {
  tagsAdd(id: $id, tags: $tags) {
    node {
      ... on Customer {
        id
        email
        tags
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

_CUSTOMER_QUERY = """
query getCustomer($id: ID!) {
  customer(id: $id) {
    id
    email
    tags
  }
}
"""


def customer_gid(customer_id: str) -> str:
    """Turn a numeric customer ID into a Shopify global ID."""
    return f"gid://shopify/Customer/{customer_id}"


class ShopifyClient:
    """Minimal Admin API client: add and read customer tags."""

    def __init__(
        self,
        shop: str,
        access_token: str,
        *,
        api_version: str = "2025-01",
        verified_tag: str = "email_verified",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._shop = shop
        self._api_version = api_version
        self._verified_tag = verified_tag
        self._enabled = bool(shop and access_token)
        self._client = httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": access_token,
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls) -> ShopifyClient:
        return cls(
            SHOPIFY_SHOP,
            SHOPIFY_ADMIN_TOKEN,
            api_version=SHOPIFY_API_VERSION,
            verified_tag=VERIFIED_TAG,
            timeout=SHOPIFY_TIMEOUT,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def graphql_url(self) -> str:
        return f"https://{self._shop}/admin/api/{self._api_version}/graphql.json"

    async def close(self) -> None:
        await self._client.aclose()

    async def _graphql(self, query: str, variables: dict) -> dict:
        try:
            resp = await self._client.post(
                self.graphql_url, json={"query": query, "variables": variables}
            )
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Shopify request failed: %s", exc)
            raise TagMutationError(f"Shopify request failed: {exc}") from exc

        errors = payload.get("errors")
        if errors:
            logger.error("Shopify GraphQL errors: %s", errors)
            raise TagMutationError(errors[0].get("message", "GraphQL error"))
        return payload.get("data") or {}

    # ── Tags ──────────────────────────────────────────────────────────

    async def add_tags(self, customer_id: str, tags: list[str]) -> list[str]:
        """Add *tags* to the customer and return the customer's tags."""
        if not self._enabled:
            logger.info("[DEV] Would add tags %s to customer %s", tags, customer_id)
            return list(tags)

        data = await self._graphql(
            _TAGS_ADD_MUTATION, {"id": customer_gid(customer_id), "tags": tags}
        )
        result = data.get("tagsAdd") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            logger.error("tagsAdd rejected for customer %s: %s", customer_id, user_errors)
            raise TagMutationError(user_errors[0].get("message", "tagsAdd failed"))

        node = result.get("node") or {}
        return node.get("tags", [])

    async def add_verified_tag(self, customer_id: str) -> None:
        await self.add_tags(customer_id, [self._verified_tag])

    async def get_tags(self, customer_id: str) -> list[str]:
        if not self._enabled:
            return []

        data = await self._graphql(_CUSTOMER_QUERY, {"id": customer_gid(customer_id)})
        customer = data.get("customer")
        if customer is None:
            logger.warning("Shopify customer %s not found", customer_id)
            return []
        return customer.get("tags", [])

    async def has_verified_tag(self, customer_id: str) -> bool:
        return self._verified_tag in await self.get_tags(customer_id)
