"""Tests for webhook-driven incremental snapshot updates."""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from conftest import FakeShopifyClient, make_levels, make_variants
from metafield_sync.ingestion.shopify_client import ShopifyApiError
from metafield_sync.sync.incremental import (
    IncrementalUpdateHandler,
    ItemNotFoundError,
    SnapshotWriteError,
)
from metafield_sync.sync.models import InventoryLevelNotification

T0 = "2024-05-01T08:00:00Z"


def _stored(*entries: tuple[int, str, int]) -> str:
    return json.dumps(
        {
            "locations": [
                {"id": location_id, "name": name, "available": available, "updatedAt": T0}
                for location_id, name, available in entries
            ]
        }
    )


@pytest.fixture
def client() -> FakeShopifyClient:
    # Variant 1 is tracked by inventory item 111
    fake = FakeShopifyClient(variants=make_variants(1))
    fake.variant_by_unit = {111: fake.variants[0].id}
    fake.location_names = {7: "Warehouse", 8: "Pop-up"}
    return fake


def _notification(**payload) -> InventoryLevelNotification:
    return InventoryLevelNotification.model_validate(payload)


@pytest.mark.asyncio
async def test_existing_location_is_updated(client, clock) -> None:
    variant_id = client.variants[0].id
    client.metafields[variant_id] = _stored((7, "A", 3))
    handler = IncrementalUpdateHandler(client, clock)

    snapshot = await handler.handle(
        _notification(inventory_item_id=111, location_id=7, available="12")
    )

    assert len(snapshot.locations) == 1
    record = snapshot.locations[0]
    assert record.location_id == 7
    assert record.available == 12
    assert record.updated_at > datetime(2024, 5, 1, 8, tzinfo=timezone.utc)
    stored = json.loads(client.metafields[variant_id])
    assert stored["locations"][0]["available"] == 12
    assert client.level_requests == []


@pytest.mark.asyncio
async def test_new_location_is_appended(client, clock) -> None:
    variant_id = client.variants[0].id
    client.metafields[variant_id] = _stored((7, "Warehouse", 3))
    handler = IncrementalUpdateHandler(client, clock)

    snapshot = await handler.handle(_notification(inventory_item_id=111, location_id=8, available=5))

    assert [(r.location_id, r.name, r.available) for r in snapshot.locations] == [
        (7, "Warehouse", 3),
        (8, "Pop-up", 5),
    ]
    assert client.location_name_requests == [8]


@pytest.mark.asyncio
async def test_missing_snapshot_is_rebuilt_from_all_levels(client, clock) -> None:
    client.levels = {111: make_levels((7, "Warehouse", 12), (8, "Pop-up", 1))}
    handler = IncrementalUpdateHandler(client, clock)

    snapshot = await handler.handle(_notification(inventory_item_id=111, location_id=7, available=12))

    assert [(r.location_id, r.available) for r in snapshot.locations] == [(7, 12), (8, 1)]
    assert client.level_requests == [111]
    # The rebuild already reflects the change, no single-location merge
    assert client.location_name_requests == []
    assert len(client.writes) == 1


@pytest.mark.parametrize(
    "stored",
    ["", "{not json", '{"locations": []}', '{"locations": "x"}'],
)
@pytest.mark.asyncio
async def test_unusable_snapshot_is_treated_as_missing(client, clock, stored) -> None:
    client.metafields[client.variants[0].id] = stored
    client.levels = {111: make_levels((9, "Outlet", 2))}
    handler = IncrementalUpdateHandler(client, clock)

    snapshot = await handler.handle(_notification(inventory_item_id=111, location_id=9, available=2))

    assert [(r.location_id, r.name) for r in snapshot.locations] == [(9, "Outlet")]
    assert client.level_requests == [111]


@pytest.mark.asyncio
async def test_empty_rebuild_still_records_the_notified_location(client, clock) -> None:
    handler = IncrementalUpdateHandler(client, clock)

    snapshot = await handler.handle(_notification(inventory_item_id=111, location_id=7, available=4))

    assert [(r.location_id, r.name, r.available) for r in snapshot.locations] == [
        (7, "Warehouse", 4)
    ]


@pytest.mark.asyncio
async def test_location_name_falls_back_to_placeholder(client, clock) -> None:
    client.metafields[client.variants[0].id] = _stored((7, "Warehouse", 3))
    client.fail_location_name = True
    handler = IncrementalUpdateHandler(client, clock)

    snapshot = await handler.handle(_notification(inventory_item_id=111, location_id=42, available=1))

    assert snapshot.find(42).name == "Location 42"


@pytest.mark.asyncio
async def test_unknown_location_uses_placeholder(client, clock) -> None:
    client.metafields[client.variants[0].id] = _stored((7, "Warehouse", 3))
    handler = IncrementalUpdateHandler(client, clock)

    snapshot = await handler.handle(_notification(inventory_item_id=111, location_id=55, available=1))

    assert snapshot.find(55).name == "Location 55"


@pytest.mark.asyncio
async def test_non_numeric_quantity_becomes_zero(client, clock) -> None:
    client.metafields[client.variants[0].id] = _stored((7, "Warehouse", 3))
    handler = IncrementalUpdateHandler(client, clock)

    snapshot = await handler.handle(
        _notification(inventory_item_id=111, location_id=7, available="lots")
    )

    assert snapshot.find(7).available == 0


@pytest.mark.asyncio
async def test_unknown_inventory_item_raises_not_found(client, clock) -> None:
    handler = IncrementalUpdateHandler(client, clock)

    with pytest.raises(ItemNotFoundError):
        await handler.handle(_notification(inventory_item_id=999, location_id=7, available=1))

    assert client.writes == []


@pytest.mark.asyncio
async def test_rejected_write_raises(client, clock) -> None:
    variant_id = client.variants[0].id
    client.metafields[variant_id] = _stored((7, "Warehouse", 3))
    client.write_errors = {variant_id: [{"field": ["value"], "message": "Too long"}]}
    handler = IncrementalUpdateHandler(client, clock)

    with pytest.raises(SnapshotWriteError) as excinfo:
        await handler.handle(_notification(inventory_item_id=111, location_id=7, available=1))

    assert excinfo.value.validation_errors == [{"field": ["value"], "message": "Too long"}]


@pytest.mark.asyncio
async def test_failed_rebuild_propagates(client, clock) -> None:
    client.failing_units = {111}
    handler = IncrementalUpdateHandler(client, clock)

    with pytest.raises(ShopifyApiError):
        await handler.handle(_notification(inventory_item_id=111, location_id=7, available=1))


class TestNotificationPayload:
    def test_extra_webhook_fields_are_ignored(self) -> None:
        notification = _notification(
            inventory_item_id=111,
            location_id="7",
            available=3,
            updated_at="2025-01-01T00:00:00Z",
            admin_graphql_api_id="gid://shopify/InventoryLevel/1?inventory_item_id=111",
        )

        assert notification.location_id == 7

    def test_global_ids_are_accepted(self) -> None:
        notification = _notification(
            inventory_item_id="gid://shopify/InventoryItem/111",
            location_id="gid://shopify/Location/7",
        )

        assert (notification.inventory_item_id, notification.location_id) == (111, 7)
        assert notification.available == 0

    def test_missing_ids_are_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _notification(location_id=7, available=1)
