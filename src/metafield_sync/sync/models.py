"""Data models for synchronization runs and their progress."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

from metafield_sync.processing.merger import coerce_quantity
from metafield_sync.utils.gid import legacy_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunPhase(str, Enum):
    """Lifecycle of the full sync as seen by a polling caller."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED_UNREAD = "completed_unread"
    COMPLETED_READ = "completed_read"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    API_ERROR = "apiError"
    USER_ERROR = "userError"


class ItemOutcome(BaseModel):
    """Result of syncing one variant during a bulk run."""

    item_id: str = Field(default=..., description="Variant global id")
    status: OutcomeStatus = Field(default=OutcomeStatus.SUCCESS)
    error: str | None = Field(default=None, description="Failure message for apiError")
    validation_errors: list[dict[str, Any]] = Field(
        default_factory=list, description="userErrors returned by the metafield write"
    )

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


class BatchErrorRecord(BaseModel):
    """A failure that aborted the run at a given batch."""

    type: Literal["batchError"] = "batchError"
    batch: int = Field(default=..., ge=1)
    error: str


class ApiErrorRecord(BaseModel):
    """A query or transport failure while syncing a single variant."""

    type: Literal["apiError"] = "apiError"
    item_id: str
    error: str


class UserErrorRecord(BaseModel):
    """Validation errors returned when writing a single variant's metafield."""

    type: Literal["userError"] = "userError"
    item_id: str
    errors: list[dict[str, Any]] = Field(default_factory=list)


ErrorRecord = Annotated[
    Union[BatchErrorRecord, ApiErrorRecord, UserErrorRecord],
    Field(discriminator="type"),
]


class SyncSummary(BaseModel):
    """Final result of a full sync run."""

    success: bool
    processed_count: int = Field(default=0, ge=0)
    total_count: int = Field(default=0, ge=0)
    batch_count: int = Field(default=0, ge=0)
    message: str = ""
    error: str | None = None


class ProgressState(BaseModel):
    """Progress of the current (or last) full sync run."""

    phase: RunPhase = RunPhase.IDLE
    processed_count: int = Field(default=0, ge=0)
    total_count: int = Field(
        default=0, ge=0, description="Estimated variant count, 0 while unknown"
    )
    is_running: bool = False
    current_batch: int = Field(default=0, ge=0)
    errors: list[ErrorRecord] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    summary: SyncSummary | None = None


class StatusResult(ProgressState):
    """Progress as returned to a polling caller.

    The summary fields (``action_completed`` through ``error``) are only filled
    on the first poll after a run completes.
    """

    action_completed: bool = False
    success: bool | None = None
    batch_count: int | None = None
    message: str | None = None
    error: str | None = None


class StartResult(BaseModel):
    """Response to a request to start a full sync."""

    success: bool
    message: str
    is_running: bool = False
    error: str | None = None


class InventoryLevelNotification(BaseModel):
    """Payload of an ``inventory_levels/update`` webhook."""

    inventory_item_id: int
    location_id: int
    available: int = 0

    @field_validator("inventory_item_id", "location_id", mode="before")
    @classmethod
    def parse_reference(cls, v: Any) -> int:
        return legacy_id(v)

    @field_validator("available", mode="before")
    @classmethod
    def parse_available(cls, v: Any) -> int:
        return coerce_quantity(v)
