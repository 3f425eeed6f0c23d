"""Pydantic models for the per-variant location snapshot and platform records."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from metafield_sync.utils.gid import legacy_id


class LocationRecord(BaseModel):
    """Availability of one variant at one location."""

    model_config = ConfigDict(populate_by_name=True)

    location_id: int = Field(default=..., alias="id", description="Numeric location id")
    name: str = Field(default=..., description="Human-readable location name")
    available: int = Field(default=0, ge=0, description="Available quantity at the location")
    updated_at: datetime = Field(
        default=..., alias="updatedAt", description="When this entry was last written"
    )

    @field_validator("location_id", mode="before")
    @classmethod
    def normalize_location_id(cls, v: Any) -> int:
        """Accept location global ids written by older bulk runs."""
        if isinstance(v, str):
            return legacy_id(v)
        return v


class Snapshot(BaseModel):
    """Ordered per-location availability stored in the ``custom.locations`` metafield."""

    locations: list[LocationRecord] = Field(
        default=..., description="Location entries, unique by location_id"
    )

    @model_validator(mode="after")
    def check_unique_locations(self) -> "Snapshot":
        """Reject snapshots that list the same location twice."""
        seen: set[int] = set()
        for record in self.locations:
            if record.location_id in seen:
                raise ValueError(f"Duplicate location id in snapshot: {record.location_id}")
            seen.add(record.location_id)
        return self

    @property
    def is_empty(self) -> bool:
        return not self.locations

    def find(self, location_id: int) -> LocationRecord | None:
        """Return the entry for ``location_id`` if present."""
        for record in self.locations:
            if record.location_id == location_id:
                return record
        return None


class Item(BaseModel):
    """A catalog variant and the inventory item tracking its stock."""

    id: str = Field(default=..., description="Variant global id")
    tracking_unit_id: str | None = Field(
        default=None, description="Inventory item global id, None for untracked variants"
    )


class ItemPage(BaseModel):
    """One page of variants returned by the cursor-paginated listing."""

    items: list[Item] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, description="Cursor for the following page")
    has_more: bool = Field(default=False, description="True if another page can be fetched")


class LocationLevel(BaseModel):
    """Raw inventory level for an inventory item at a location."""

    location_id: str = Field(default=..., description="Location global id")
    location_name: str = Field(default="", description="Location name")
    available: int | None = Field(default=None, description="Available quantity if reported")


class ItemWithSnapshot(BaseModel):
    """A variant resolved from an inventory item, with its stored metafield value."""

    id: str = Field(default=..., description="Variant global id")
    snapshot_value: str | None = Field(
        default=None, description="Raw metafield value, None when the metafield is unset"
    )


class WriteResult(BaseModel):
    """Outcome of a metafield write that reached the platform."""

    validation_errors: list[dict[str, Any]] = Field(
        default_factory=list, description="userErrors returned by metafieldsSet"
    )

    @property
    def ok(self) -> bool:
        return not self.validation_errors
