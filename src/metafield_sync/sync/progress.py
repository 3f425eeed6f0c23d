"""Process-wide progress of the full sync, shared with status queries."""

from datetime import datetime
from typing import Callable

import structlog

from metafield_sync.sync.models import (
    ApiErrorRecord,
    BatchErrorRecord,
    ItemOutcome,
    OutcomeStatus,
    ProgressState,
    RunPhase,
    StatusResult,
    SyncSummary,
    UserErrorRecord,
    utcnow,
)

log = structlog.stdlib.get_logger()


class ProgressTracker:
    """Owns the single ProgressState of this process.

    The background run writes through the ``begin_run``/``record_*``/``finish``
    methods; status queries read through ``snapshot`` and ``read_status``.
    Every write is a plain attribute assignment or list append, so a reader
    may see a batch half folded in but never a torn value.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._state = ProgressState()

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def phase(self) -> RunPhase:
        return self._state.phase

    def begin_run(self) -> bool:
        """
        Reset progress and mark a run as started.

        Returns:
            False, without touching the state, if a run is already in progress
        """
        if self._state.is_running:
            log.warning("sync_already_running", current_batch=self._state.current_batch)
            return False

        self._state = ProgressState(
            phase=RunPhase.RUNNING,
            is_running=True,
            started_at=self._clock(),
        )
        log.info("progress_reset", started_at=self._state.started_at)
        return True

    def set_total_count(self, total_count: int) -> None:
        self._state.total_count = max(total_count, self._state.processed_count, 0)

    def start_batch(self, batch_number: int) -> None:
        self._state.current_batch = batch_number

    def record_outcome(self, outcome: ItemOutcome) -> None:
        """Count one processed variant and keep its error, if any."""
        state = self._state
        state.processed_count += 1
        # A stale estimate must not make processed exceed total
        if state.total_count and state.processed_count > state.total_count:
            state.total_count = state.processed_count

        if outcome.status is OutcomeStatus.API_ERROR:
            state.errors.append(
                ApiErrorRecord(item_id=outcome.item_id, error=outcome.error or "Unknown error")
            )
        elif outcome.status is OutcomeStatus.USER_ERROR:
            state.errors.append(
                UserErrorRecord(item_id=outcome.item_id, errors=outcome.validation_errors)
            )

    def record_batch_error(self, batch_number: int, message: str) -> None:
        self._state.errors.append(BatchErrorRecord(batch=batch_number, error=message))

    def finish(self, summary: SyncSummary) -> None:
        """Freeze the run: stop running, stamp completion and store the summary."""
        state = self._state
        if state.phase is not RunPhase.RUNNING:
            log.warning("finish_without_running_sync", phase=state.phase.value)
            return

        state.is_running = False
        state.completed_at = self._clock()
        state.summary = summary
        state.phase = RunPhase.COMPLETED_UNREAD

    def snapshot(self) -> ProgressState:
        """Return a point-in-time copy of the progress state."""
        return self._state.model_copy(deep=True)

    def read_status(self) -> StatusResult:
        """
        Return progress for a polling caller.

        The first read after completion carries the summary and moves the run
        to COMPLETED_READ; later reads return the settled state only.
        """
        state = self.snapshot()
        fields = state.model_dump(exclude={"summary", "errors"})
        fields["errors"] = state.errors

        if state.phase is RunPhase.COMPLETED_UNREAD and state.summary is not None:
            self._state.phase = RunPhase.COMPLETED_READ
            fields["phase"] = RunPhase.COMPLETED_READ
            summary = state.summary
            return StatusResult(
                **fields,
                summary=summary,
                action_completed=True,
                success=summary.success,
                batch_count=summary.batch_count,
                message=summary.message,
                error=summary.error,
            )

        return StatusResult(**fields)
