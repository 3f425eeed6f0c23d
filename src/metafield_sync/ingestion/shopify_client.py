"""Shopify Admin GraphQL client wrapper for inventory and metafield operations."""

from typing import Any

import httpx
import structlog

from metafield_sync.models.config import ShopifyConfig, SyncConfig
from metafield_sync.models.snapshot import (
    Item,
    ItemPage,
    ItemWithSnapshot,
    LocationLevel,
    WriteResult,
)
from metafield_sync.utils.gid import to_gid
from metafield_sync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()


class ShopifyApiError(Exception):
    """Raised when a GraphQL request fails or returns top-level errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ShopifyThrottledError(ShopifyApiError):
    """Raised when Shopify rejects a request because the cost budget is exhausted."""


class ShopifyServerError(ShopifyApiError):
    """Raised on 5xx responses from Shopify."""


RETRYABLE_EXCEPTIONS = (httpx.TransportError, ShopifyThrottledError, ShopifyServerError)

LIST_VARIANTS_QUERY = """
query GetVariants($first: Int!, $cursor: String) {
  productVariants(first: $first, after: $cursor) {
    pageInfo {
      hasNextPage
      endCursor
    }
    edges {
      node {
        id
        inventoryItem {
          id
        }
      }
    }
  }
}
"""

INVENTORY_LEVELS_QUERY = """
query InventoryLevels($inventoryItemId: ID!, $first: Int!) {
  inventoryItem(id: $inventoryItemId) {
    inventoryLevels(first: $first) {
      edges {
        node {
          quantities(names: ["available"]) {
            quantity
          }
          location {
            id
            name
          }
        }
      }
    }
  }
}
"""

LOCATION_NAME_QUERY = """
query GetLocationName($id: ID!) {
  location(id: $id) {
    id
    name
  }
}
"""

VARIANT_BY_INVENTORY_ITEM_QUERY = """
query GetVariantWithMetafield($inventoryItemId: ID!, $namespace: String!, $key: String!) {
  inventoryItem(id: $inventoryItemId) {
    variant {
      id
      metafield(namespace: $namespace, key: $key) {
        id
        value
      }
    }
  }
}
"""

METAFIELDS_SET_MUTATION = """
mutation SetMetafields($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    metafields {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

VARIANT_COUNT_QUERY = """
query CountVariants {
  productVariantsCount {
    count
  }
}
"""


class ShopifyAdminClient:
    """Async client for the handful of Admin API operations the sync needs.

    One instance is bound to a single shop session. The underlying
    ``httpx.AsyncClient`` is created lazily unless one is injected.
    """

    def __init__(
        self,
        shopify_config: ShopifyConfig,
        sync_config: SyncConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._config = shopify_config
        self._sync_config = sync_config or SyncConfig()
        self._http = http_client or httpx.AsyncClient(timeout=shopify_config.timeout_seconds)
        self._owns_http = http_client is None

        # Bind the retry policy per instance so it follows configuration
        self._post = exponential_backoff_retry(
            max_retries=self._sync_config.max_retries,
            base_delay=self._sync_config.retry_base_delay,
            max_delay=60.0,
            exceptions=RETRYABLE_EXCEPTIONS,
        )(self._post_once)

        log.info(
            "shopify_client_initialized",
            shop_domain=shopify_config.shop_domain,
            api_version=shopify_config.api_version,
        )

    @property
    def shop_domain(self) -> str:
        return self._config.shop_domain

    async def __aenter__(self) -> "ShopifyAdminClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run a GraphQL operation and return its ``data`` object.

        Args:
            query: GraphQL document
            variables: Operation variables

        Returns:
            The ``data`` member of the response (empty dict if null)

        Raises:
            ShopifyThrottledError: If still throttled after retries
            ShopifyServerError: If Shopify keeps answering with 5xx
            ShopifyApiError: For other HTTP failures or GraphQL errors
            httpx.TransportError: If the network keeps failing after retries
        """
        payload = await self._post({"query": query, "variables": variables or {}})
        return payload.get("data") or {}

    async def _post_once(self, body: dict[str, Any]) -> dict[str, Any]:
        response = await self._http.post(
            self._config.graphql_url,
            json=body,
            headers={
                "X-Shopify-Access-Token": self._config.access_token,
                "Content-Type": "application/json",
            },
        )

        if response.status_code == 429:
            raise ShopifyThrottledError("Throttled by Shopify", status_code=429)
        if response.status_code >= 500:
            raise ShopifyServerError(
                f"Shopify returned HTTP {response.status_code}", status_code=response.status_code
            )
        if response.status_code >= 400:
            raise ShopifyApiError(
                f"Shopify returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ShopifyApiError(f"Invalid JSON in Shopify response: {e}") from e

        errors = payload.get("errors")
        if errors:
            if isinstance(errors, list):
                if any(
                    (error.get("extensions") or {}).get("code") == "THROTTLED"
                    for error in errors
                    if isinstance(error, dict)
                ):
                    raise ShopifyThrottledError("Query cost exceeded available budget")
                message = ", ".join(
                    str(error.get("message", error)) if isinstance(error, dict) else str(error)
                    for error in errors
                )
            else:
                message = str(errors)
            raise ShopifyApiError(message)

        return payload

    async def list_items_page(self, cursor: str | None, page_size: int) -> ItemPage:
        """Fetch one page of variants with their inventory item ids."""
        data = await self.execute(LIST_VARIANTS_QUERY, {"first": page_size, "cursor": cursor})
        connection = data.get("productVariants")
        if connection is None:
            raise ShopifyApiError("Response is missing productVariants")

        items = []
        for edge in connection.get("edges", []):
            node = edge["node"]
            inventory_item = node.get("inventoryItem") or {}
            items.append(Item(id=node["id"], tracking_unit_id=inventory_item.get("id")))

        page_info = connection.get("pageInfo") or {}
        return ItemPage(
            items=items,
            next_cursor=page_info.get("endCursor"),
            has_more=bool(page_info.get("hasNextPage")),
        )

    async def get_location_levels(self, tracking_unit_id: str | int) -> list[LocationLevel]:
        """Fetch the available quantity of an inventory item at every stocked location."""
        data = await self.execute(
            INVENTORY_LEVELS_QUERY,
            {
                "inventoryItemId": to_gid("InventoryItem", tracking_unit_id),
                "first": self._sync_config.location_levels_limit,
            },
        )
        inventory_item = data.get("inventoryItem")
        if inventory_item is None:
            raise ShopifyApiError(f"Inventory item not found: {tracking_unit_id}")

        levels = []
        for edge in inventory_item["inventoryLevels"]["edges"]:
            node = edge["node"]
            quantities = node.get("quantities") or []
            levels.append(
                LocationLevel(
                    location_id=node["location"]["id"],
                    location_name=node["location"].get("name") or "",
                    available=quantities[0].get("quantity") if quantities else None,
                )
            )
        return levels

    async def get_location_name(self, location_id: str | int) -> str | None:
        """Look up a location's name, None if the location does not exist."""
        data = await self.execute(LOCATION_NAME_QUERY, {"id": to_gid("Location", location_id)})
        location = data.get("location")
        return location.get("name") if location else None

    async def find_item_by_tracking_unit(
        self, tracking_unit_id: str | int
    ) -> ItemWithSnapshot | None:
        """Resolve the variant owning an inventory item, with its stored snapshot value."""
        data = await self.execute(
            VARIANT_BY_INVENTORY_ITEM_QUERY,
            {
                "inventoryItemId": to_gid("InventoryItem", tracking_unit_id),
                "namespace": self._sync_config.metafield_namespace,
                "key": self._sync_config.metafield_key,
            },
        )
        variant = (data.get("inventoryItem") or {}).get("variant")
        if not variant:
            return None

        metafield = variant.get("metafield") or {}
        return ItemWithSnapshot(id=variant["id"], snapshot_value=metafield.get("value"))

    async def write_snapshot_field(self, item_id: str, value: str) -> WriteResult:
        """
        Store a serialized snapshot in the variant's metafield.

        Args:
            item_id: Variant global id
            value: Serialized snapshot

        Returns:
            WriteResult whose validation_errors hold any userErrors

        Raises:
            ShopifyApiError: If the request itself fails
        """
        data = await self.execute(
            METAFIELDS_SET_MUTATION,
            {
                "metafields": [
                    {
                        "ownerId": item_id,
                        "namespace": self._sync_config.metafield_namespace,
                        "key": self._sync_config.metafield_key,
                        "type": "json",
                        "value": value,
                    }
                ]
            },
        )
        user_errors = (data.get("metafieldsSet") or {}).get("userErrors") or []
        return WriteResult(validation_errors=user_errors)

    async def estimate_total_item_count(self) -> int:
        """Return the shop's variant count."""
        data = await self.execute(VARIANT_COUNT_QUERY)
        count = (data.get("productVariantsCount") or {}).get("count")
        return int(count or 0)
