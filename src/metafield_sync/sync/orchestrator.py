"""Full synchronization of location snapshots across the catalog."""

import asyncio
import uuid
from datetime import datetime
from functools import partial
from typing import Callable

import structlog

from metafield_sync.ingestion.shopify_client import ShopifyAdminClient
from metafield_sync.models.config import SyncConfig
from metafield_sync.models.snapshot import Item, ItemPage
from metafield_sync.processing.merger import build_snapshot
from metafield_sync.processing.metafield_codec import encode
from metafield_sync.sync.concurrency import run_bounded
from metafield_sync.sync.models import ItemOutcome, OutcomeStatus, SyncSummary, utcnow
from metafield_sync.sync.pagination import PaginatedEnumerator
from metafield_sync.sync.progress import ProgressTracker

log = structlog.stdlib.get_logger()


class SyncAlreadyRunningError(RuntimeError):
    """Raised when a full sync is requested while another one is running."""


class SyncOrchestrator:
    """Rewrites the location snapshot of every variant, batch by batch.

    A run walks the variant listing one page (batch) at a time. Within a batch
    each variant with an inventory item is processed as an independent task
    (fetch levels, encode, write) under a concurrency limit, and the results
    are folded into the shared ProgressTracker. Batches are separated by a
    fixed delay. A failure that cannot be attributed to a single variant stops
    the run after the failing batch.
    """

    def __init__(
        self,
        client: ShopifyAdminClient,
        progress: ProgressTracker,
        sync_config: SyncConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: Shopify client for the shop being synced
            progress: Tracker shared with status queries
            sync_config: Batch size, concurrency and delay settings
            clock: Source of timestamps for snapshot entries
        """
        self._client = client
        self._progress = progress
        self._config = sync_config or SyncConfig()
        self._clock = clock

    async def run(self) -> SyncSummary:
        """
        Start and complete a full sync in the caller's task.

        Returns:
            SyncSummary of the finished run

        Raises:
            SyncAlreadyRunningError: If another run is in progress
        """
        if not self.start_run():
            raise SyncAlreadyRunningError("A full sync is already running")
        return await self.execute()

    def start_run(self) -> bool:
        """Claim the run slot and reset progress; False if a run is already active."""
        return self._progress.begin_run()

    async def execute(self) -> SyncSummary:
        """
        Process every batch of a run claimed with ``start_run``.

        Never raises for item or batch failures; the outcome is reported in the
        returned summary and in the progress state.
        """
        run_id = uuid.uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(run_id=run_id)
        log.info(
            "full_sync_started",
            batch_size=self._config.batch_size,
            concurrency_limit=self._config.concurrency_limit,
        )

        summary: SyncSummary | None = None
        try:
            await self._estimate_total_count()
            batch_count, batch_error = await self._process_batches()
            state = self._progress.snapshot()

            if batch_error is None:
                message = (
                    f"Processed {state.processed_count} variants across {batch_count} batches"
                )
            else:
                message = f"Stopped at batch {batch_count}: {batch_error}"

            summary = SyncSummary(
                success=batch_error is None,
                processed_count=state.processed_count,
                total_count=state.total_count,
                batch_count=batch_count,
                message=message,
                error=batch_error,
            )
            log.info(
                "full_sync_completed",
                success=summary.success,
                processed_count=summary.processed_count,
                batch_count=batch_count,
                error_count=len(state.errors),
            )
        except Exception as e:
            log.exception("full_sync_failed", error=str(e))
            summary = self._failure_summary(str(e))
        finally:
            if summary is None:
                summary = self._failure_summary("Run interrupted")
            self._progress.finish(summary)
            structlog.contextvars.unbind_contextvars("run_id")

        return summary

    def _failure_summary(self, error: str) -> SyncSummary:
        state = self._progress.snapshot()
        return SyncSummary(
            success=False,
            processed_count=state.processed_count,
            total_count=state.total_count,
            batch_count=state.current_batch,
            message="Failed to complete processing",
            error=error,
        )

    async def _estimate_total_count(self) -> None:
        """Best-effort variant count; the run continues without it on failure."""
        try:
            total = await self._client.estimate_total_item_count()
        except Exception as e:
            log.warning("variant_count_estimate_failed", error=str(e))
            return

        self._progress.set_total_count(total)
        log.info("variant_count_estimated", total_count=total)

    async def _process_batches(self) -> tuple[int, str | None]:
        """
        Walk the variant pages until exhausted or a batch fails.

        Returns:
            Tuple of (batches started, error message of the failing batch or None)
        """
        pages: PaginatedEnumerator[Item] = PaginatedEnumerator(self._fetch_page)
        batch_number = 0

        while pages.has_more:
            batch_number += 1
            self._progress.start_batch(batch_number)
            log.info("fetching_batch", batch=batch_number)

            try:
                items = await anext(pages)
                log.info("batch_fetched", batch=batch_number, variant_count=len(items))

                outcomes = await self._process_batch(items)
                for outcome in outcomes:
                    self._progress.record_outcome(outcome)
            except Exception as e:
                log.error("batch_failed", batch=batch_number, error=str(e))
                self._progress.record_batch_error(batch_number, str(e))
                return batch_number, str(e)

            if pages.has_more and self._config.batch_delay_seconds > 0:
                log.debug("waiting_before_next_batch", delay_seconds=self._config.batch_delay_seconds)
                await asyncio.sleep(self._config.batch_delay_seconds)

        return batch_number, None

    async def _fetch_page(self, cursor: str | None) -> ItemPage:
        return await self._client.list_items_page(cursor, self._config.batch_size)

    async def _process_batch(self, items: list[Item]) -> list[ItemOutcome]:
        tracked = [item for item in items if item.tracking_unit_id]
        if len(tracked) < len(items):
            log.info("untracked_variants_skipped", count=len(items) - len(tracked))

        tasks = [partial(self._sync_item, item) for item in tracked]
        results = await run_bounded(tasks, self._config.concurrency_limit)

        outcomes = []
        for item, result in zip(tracked, results):
            if result.ok and result.value is not None:
                outcomes.append(result.value)
            else:
                outcomes.append(
                    ItemOutcome(
                        item_id=item.id,
                        status=OutcomeStatus.API_ERROR,
                        error=str(result.error),
                    )
                )
        return outcomes

    async def _sync_item(self, item: Item) -> ItemOutcome:
        """Fetch, encode and write one variant's snapshot."""
        try:
            levels = await self._client.get_location_levels(item.tracking_unit_id)
            snapshot = build_snapshot(levels, self._clock())
            result = await self._client.write_snapshot_field(item.id, encode(snapshot))
        except Exception as e:
            log.error("variant_sync_failed", variant_id=item.id, error=str(e))
            return ItemOutcome(item_id=item.id, status=OutcomeStatus.API_ERROR, error=str(e))

        if not result.ok:
            log.warning(
                "variant_metafield_rejected",
                variant_id=item.id,
                user_errors=result.validation_errors,
            )
            return ItemOutcome(
                item_id=item.id,
                status=OutcomeStatus.USER_ERROR,
                validation_errors=result.validation_errors,
            )

        log.debug("variant_synced", variant_id=item.id, location_count=len(snapshot.locations))
        return ItemOutcome(item_id=item.id)
