"""Data models for the metafield sync service."""

from metafield_sync.models.config import AppConfig, LoggingConfig, ShopifyConfig, SyncConfig
from metafield_sync.models.snapshot import (
    Item,
    ItemPage,
    ItemWithSnapshot,
    LocationLevel,
    LocationRecord,
    Snapshot,
    WriteResult,
)

__all__ = [
    "AppConfig",
    "Item",
    "ItemPage",
    "ItemWithSnapshot",
    "LocationLevel",
    "LocationRecord",
    "LoggingConfig",
    "ShopifyConfig",
    "Snapshot",
    "SyncConfig",
    "WriteResult",
]
