"""Shopify Admin API access."""

from metafield_sync.ingestion.shopify_client import (
    ShopifyAdminClient,
    ShopifyApiError,
    ShopifyServerError,
    ShopifyThrottledError,
)

__all__ = [
    "ShopifyAdminClient",
    "ShopifyApiError",
    "ShopifyServerError",
    "ShopifyThrottledError",
]
