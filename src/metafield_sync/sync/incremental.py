"""Incremental snapshot updates driven by inventory level webhooks."""

from datetime import datetime
from typing import Any, Callable

import structlog

from metafield_sync.ingestion.shopify_client import ShopifyAdminClient
from metafield_sync.models.snapshot import LocationRecord, Snapshot
from metafield_sync.processing.merger import build_snapshot, merge_location
from metafield_sync.processing.metafield_codec import decode_or_none, encode
from metafield_sync.sync.models import InventoryLevelNotification, utcnow

log = structlog.stdlib.get_logger()


class ItemNotFoundError(LookupError):
    """Raised when no variant owns the notified inventory item."""


class SnapshotWriteError(RuntimeError):
    """Raised when Shopify rejects a snapshot write with userErrors."""

    def __init__(self, message: str, validation_errors: list[dict[str, Any]]):
        super().__init__(message)
        self.validation_errors = validation_errors


class IncrementalUpdateHandler:
    """Applies a single location's new quantity to a variant's snapshot."""

    def __init__(
        self,
        client: ShopifyAdminClient,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._client = client
        self._clock = clock

    async def handle(self, notification: InventoryLevelNotification) -> Snapshot:
        """
        Update the snapshot of the variant owning the notified inventory item.

        When the variant has no usable snapshot (unset, empty or unreadable) a
        full one is rebuilt from the current inventory levels; if that rebuild
        finds any location the notified change is already part of it. Otherwise
        the notified location is upserted into the existing snapshot.

        Args:
            notification: Parsed webhook payload

        Returns:
            The snapshot that was written

        Raises:
            ItemNotFoundError: If no variant is linked to the inventory item
            SnapshotWriteError: If the metafield write returns userErrors
            ShopifyApiError: If a query or the write request fails
        """
        structlog.contextvars.bind_contextvars(inventory_item_id=notification.inventory_item_id)
        try:
            return await self._handle(notification)
        finally:
            structlog.contextvars.unbind_contextvars("inventory_item_id")

    async def _handle(self, notification: InventoryLevelNotification) -> Snapshot:
        item = await self._client.find_item_by_tracking_unit(notification.inventory_item_id)
        if item is None:
            log.error("variant_not_found_for_inventory_item")
            raise ItemNotFoundError(
                f"Variant not found for inventory item {notification.inventory_item_id}"
            )

        snapshot = decode_or_none(item.snapshot_value)
        rebuilt = False

        if snapshot is None or snapshot.is_empty:
            log.info("snapshot_missing_rebuilding", variant_id=item.id)
            levels = await self._client.get_location_levels(notification.inventory_item_id)
            snapshot = build_snapshot(levels, self._clock())
            rebuilt = not snapshot.is_empty
            log.info("snapshot_rebuilt", variant_id=item.id, location_count=len(snapshot.locations))

        if not rebuilt:
            name = await self._resolve_location_name(notification.location_id)
            snapshot = merge_location(
                snapshot,
                LocationRecord(
                    location_id=notification.location_id,
                    name=name,
                    available=notification.available,
                    updated_at=self._clock(),
                ),
            )

        result = await self._client.write_snapshot_field(item.id, encode(snapshot))
        if not result.ok:
            log.error(
                "snapshot_write_rejected",
                variant_id=item.id,
                user_errors=result.validation_errors,
            )
            raise SnapshotWriteError("Failed to update metafield", result.validation_errors)

        log.info(
            "snapshot_updated",
            variant_id=item.id,
            location_id=notification.location_id,
            available=notification.available,
            rebuilt=rebuilt,
        )
        return snapshot

    async def _resolve_location_name(self, location_id: int) -> str:
        """Location name, or ``Location <id>`` when it cannot be looked up."""
        try:
            name = await self._client.get_location_name(location_id)
        except Exception as e:
            log.warning("location_name_lookup_failed", location_id=location_id, error=str(e))
            name = None
        return name or f"Location {location_id}"
