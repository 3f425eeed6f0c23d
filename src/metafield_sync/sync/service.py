"""Long-lived service owning sync progress and the background run."""

import asyncio
from datetime import datetime
from typing import Any, Callable, Mapping

import structlog

from metafield_sync.ingestion.shopify_client import ShopifyAdminClient
from metafield_sync.models.config import SyncConfig
from metafield_sync.models.snapshot import Snapshot
from metafield_sync.sync.incremental import IncrementalUpdateHandler
from metafield_sync.sync.models import (
    InventoryLevelNotification,
    ProgressState,
    StartResult,
    StatusResult,
    SyncSummary,
    utcnow,
)
from metafield_sync.sync.orchestrator import SyncOrchestrator
from metafield_sync.sync.progress import ProgressTracker

log = structlog.stdlib.get_logger()

ALREADY_RUNNING_MESSAGE = "Process already running. Please wait for it to complete."
STARTED_MESSAGE = "Processing started. You can track progress on this page."
START_FAILED_MESSAGE = "Failed to start processing"


class SyncService:
    """Start/poll surface for the full sync plus the webhook entry point.

    One instance per process. It owns the ProgressTracker, so the run and the
    status queries always share the same state, and it keeps a reference to
    the background task for as long as the run lasts.
    """

    def __init__(
        self,
        client: ShopifyAdminClient,
        sync_config: SyncConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._progress = ProgressTracker(clock)
        self._orchestrator = SyncOrchestrator(client, self._progress, sync_config, clock)
        self._incremental = IncrementalUpdateHandler(client, clock)
        self._task: asyncio.Task[SyncSummary] | None = None

    @property
    def is_running(self) -> bool:
        return self._progress.is_running

    def start(self) -> StartResult:
        """
        Start a full sync in the background and return immediately.

        Must be called from within a running event loop.
        """
        if not self._orchestrator.start_run():
            return StartResult(success=False, message=ALREADY_RUNNING_MESSAGE, is_running=True)

        run = self._orchestrator.execute()
        try:
            self._task = asyncio.create_task(run, name="full-sync")
        except Exception as e:
            run.close()
            log.error("full_sync_start_failed", error=str(e))
            self._progress.finish(
                SyncSummary(success=False, message=START_FAILED_MESSAGE, error=str(e))
            )
            return StartResult(success=False, message=START_FAILED_MESSAGE, error=str(e))

        self._task.add_done_callback(self._on_run_done)
        log.info("full_sync_scheduled")
        return StartResult(success=True, message=STARTED_MESSAGE, is_running=True)

    def _on_run_done(self, task: "asyncio.Task[SyncSummary]") -> None:
        if task.cancelled():
            log.warning("full_sync_cancelled")
        elif task.exception() is not None:
            log.error("full_sync_crashed", error=str(task.exception()))

    def status(self) -> StatusResult:
        """Current progress, with the run summary on the first poll after completion."""
        return self._progress.read_status()

    def progress(self) -> ProgressState:
        """Current progress without consuming the summary."""
        return self._progress.snapshot()

    async def wait(self) -> SyncSummary | None:
        """Wait for the background run, if any, and return its summary."""
        if self._task is None:
            return None
        return await self._task

    async def handle_inventory_update(self, payload: Mapping[str, Any]) -> Snapshot:
        """
        Apply an ``inventory_levels/update`` webhook payload.

        Raises:
            pydantic.ValidationError: If the payload lacks the item or location id
            ItemNotFoundError, SnapshotWriteError, ShopifyApiError: From the handler
        """
        notification = InventoryLevelNotification.model_validate(dict(payload))
        return await self._incremental.handle(notification)
