"""Keeps per-variant multi-location stock snapshots in a Shopify metafield."""

__version__ = "0.1.0"
