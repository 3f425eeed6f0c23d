"""Bulk and incremental synchronization of location snapshots."""

from metafield_sync.sync.concurrency import TaskResult, run_bounded
from metafield_sync.sync.incremental import (
    IncrementalUpdateHandler,
    ItemNotFoundError,
    SnapshotWriteError,
)
from metafield_sync.sync.models import (
    InventoryLevelNotification,
    ItemOutcome,
    ProgressState,
    RunPhase,
    StartResult,
    StatusResult,
    SyncSummary,
)
from metafield_sync.sync.orchestrator import SyncAlreadyRunningError, SyncOrchestrator
from metafield_sync.sync.pagination import PaginatedEnumerator
from metafield_sync.sync.progress import ProgressTracker
from metafield_sync.sync.service import SyncService

__all__ = [
    "IncrementalUpdateHandler",
    "InventoryLevelNotification",
    "ItemNotFoundError",
    "ItemOutcome",
    "PaginatedEnumerator",
    "ProgressState",
    "ProgressTracker",
    "RunPhase",
    "SnapshotWriteError",
    "StartResult",
    "StatusResult",
    "SyncAlreadyRunningError",
    "SyncOrchestrator",
    "SyncService",
    "SyncSummary",
    "TaskResult",
    "run_bounded",
]
