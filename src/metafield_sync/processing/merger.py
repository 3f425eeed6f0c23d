"""Building and merging location snapshots."""

import re
from datetime import datetime
from typing import Any, Iterable

from metafield_sync.models.snapshot import LocationLevel, LocationRecord, Snapshot
from metafield_sync.utils.gid import legacy_id

LEADING_INTEGER = re.compile(r"\s*([+-]?[0-9]+)")


def coerce_quantity(value: Any) -> int:
    """
    Coerce a quantity from a webhook or API response to a non-negative int.

    Strings are read up to the end of their leading integer, so ``"12"``,
    ``"12.0"`` and ``"12abc"`` all give 12 and ``"1e3"`` gives 1. Anything
    without a leading integer (None, ``""``, ``"abc"``) becomes 0. Negative
    quantities clamp to 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, float):
        try:
            quantity = int(value)
        except (ValueError, OverflowError):
            return 0
    else:
        match = LEADING_INTEGER.match(str(value))
        if match is None:
            return 0
        quantity = int(match.group(1))
    return max(quantity, 0)


def record_from_level(level: LocationLevel, now: datetime) -> LocationRecord:
    """Map a platform inventory level to a snapshot entry stamped with ``now``."""
    return LocationRecord(
        location_id=legacy_id(level.location_id),
        name=level.location_name,
        available=coerce_quantity(level.available),
        updated_at=now,
    )


def build_snapshot(levels: Iterable[LocationLevel], now: datetime) -> Snapshot:
    """
    Build a full snapshot from every inventory level of an inventory item.

    If a location is reported twice the later level wins, keeping the
    position of the first occurrence.
    """
    snapshot = Snapshot(locations=[])
    for level in levels:
        snapshot = merge_location(snapshot, record_from_level(level, now))
    return snapshot


def merge_location(snapshot: Snapshot | None, record: LocationRecord) -> Snapshot:
    """
    Upsert ``record`` into ``snapshot`` by location id.

    An existing entry is replaced in place, otherwise the record is appended.
    The input snapshot is not modified.

    Args:
        snapshot: Prior snapshot, None when there is none
        record: Entry to write

    Returns:
        New Snapshot containing the record
    """
    locations = list(snapshot.locations) if snapshot is not None else []

    for index, existing in enumerate(locations):
        if existing.location_id == record.location_id:
            locations[index] = record
            break
    else:
        locations.append(record)

    return Snapshot(locations=locations)
