"""Shared fixtures: an in-memory stand-in for the Shopify Admin API."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from metafield_sync.ingestion.shopify_client import ShopifyApiError
from metafield_sync.models.config import SyncConfig
from metafield_sync.models.snapshot import (
    Item,
    ItemPage,
    ItemWithSnapshot,
    LocationLevel,
    WriteResult,
)
from metafield_sync.utils.gid import legacy_id, to_gid


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FakeShopifyClient:
    """Implements the ShopifyAdminClient operations over in-memory data.

    Variants are paged with the index of the next variant as cursor. Latency
    on level fetches lets tests observe how many calls overlap.
    """

    def __init__(
        self,
        variants: list[Item] | None = None,
        levels: dict[int, list[LocationLevel]] | None = None,
        location_names: dict[int, str] | None = None,
        total_count: int | None = None,
        latency: float = 0.0,
    ):
        self.variants = variants or []
        self.levels = levels or {}
        self.location_names = location_names or {}
        self.total_count = total_count if total_count is not None else len(self.variants)
        self.latency = latency

        self.metafields: dict[str, str] = {}
        self.variant_by_unit: dict[int, str] = {
            legacy_id(v.tracking_unit_id): v.id for v in self.variants if v.tracking_unit_id
        }
        self.write_errors: dict[str, list[dict]] = {}
        self.failing_units: set[int] = set()
        self.fail_on_page: int | None = None
        self.fail_count = False
        self.fail_location_name = False

        self.page_requests: list[tuple[str | None, int]] = []
        self.level_requests: list[int] = []
        self.location_name_requests: list[int] = []
        self.writes: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def list_items_page(self, cursor: str | None, page_size: int) -> ItemPage:
        self.page_requests.append((cursor, page_size))
        if self.fail_on_page == len(self.page_requests):
            raise ShopifyApiError("Internal error fetching variants")

        start = int(cursor) if cursor else 0
        chunk = self.variants[start : start + page_size]
        end = start + len(chunk)
        return ItemPage(items=chunk, next_cursor=str(end), has_more=end < len(self.variants))

    async def get_location_levels(self, tracking_unit_id: str | int) -> list[LocationLevel]:
        unit = legacy_id(tracking_unit_id)
        self.level_requests.append(unit)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.latency)
        finally:
            self.in_flight -= 1
        if unit in self.failing_units:
            raise ShopifyApiError(f"Inventory item not found: {unit}")
        return list(self.levels.get(unit, []))

    async def get_location_name(self, location_id: str | int) -> str | None:
        self.location_name_requests.append(legacy_id(location_id))
        if self.fail_location_name:
            raise ShopifyApiError("Location lookup failed")
        return self.location_names.get(legacy_id(location_id))

    async def find_item_by_tracking_unit(self, tracking_unit_id: str | int) -> ItemWithSnapshot | None:
        variant_id = self.variant_by_unit.get(legacy_id(tracking_unit_id))
        if variant_id is None:
            return None
        return ItemWithSnapshot(id=variant_id, snapshot_value=self.metafields.get(variant_id))

    async def write_snapshot_field(self, item_id: str, value: str) -> WriteResult:
        if item_id in self.write_errors:
            return WriteResult(validation_errors=self.write_errors[item_id])
        self.writes.append((item_id, value))
        self.metafields[item_id] = value
        return WriteResult()

    async def estimate_total_item_count(self) -> int:
        if self.fail_count:
            raise ShopifyApiError("productVariantsCount unavailable")
        return self.total_count


def make_variants(count: int, untracked: set[int] | None = None) -> list[Item]:
    """Variants 1..count, each tracked by inventory item 1000+n unless listed as untracked."""
    untracked = untracked or set()
    return [
        Item(
            id=to_gid("ProductVariant", n),
            tracking_unit_id=None if n in untracked else to_gid("InventoryItem", 1000 + n),
        )
        for n in range(1, count + 1)
    ]


def make_levels(*entries: tuple[int, str, int | None]) -> list[LocationLevel]:
    return [
        LocationLevel(
            location_id=to_gid("Location", location_id),
            location_name=name,
            available=available,
        )
        for location_id, name, available in entries
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fast_sync_config() -> SyncConfig:
    return SyncConfig(batch_size=50, concurrency_limit=5, batch_delay_seconds=0.0)
