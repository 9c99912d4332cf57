"""Sync orchestration.

One cycle:
1. Wait for any earlier cycle to unwind, then load the three partitions and
   recompute the processed-workout set from them
2. Fetch workout pages from the provider (most recent first)
3. Analyze the new workouts oldest first
4. Split the proposals into auto-applied and queued for review
5. Commit progression, history and config as one compensating sequence

Nothing is written until steps 2-4 succeed. Cancellation or a provider
failure leaves persisted state untouched. No retries: a failed cycle is
re-run by the caller.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from loguru import logger

from gzclp.analysis.matching import collect_discrepancies, deduplicate_discrepancies, filter_acknowledged
from gzclp.analysis.workout_analysis import analyze_workouts, filter_new_workouts
from gzclp.config.settings import settings
from gzclp.domain.enums import GZCLPDay
from gzclp.domain.models import DiscrepancyInfo, PendingChange, WorkoutLog, utc_now
from gzclp.history.recorder import processed_workout_ids, record_multiple_changes
from gzclp.integrations.hevy.client import HevyApiError
from gzclp.progression.apply_changes import apply_all_pending_changes, partition_for_auto_apply
from gzclp.progression.roles import next_day
from gzclp.state.models import Partition
from gzclp.state.repository import StateRepository
from gzclp.state.transfer import partition_write_step, run_compensating_steps
from gzclp.sync.cancellation import CancellationToken
from gzclp.sync.errors import ProviderUnavailableError


class WorkoutLogProvider(Protocol):
    def fetch_workouts(self, page: int) -> list[WorkoutLog]:
        """Return one page of workouts, most recent first; [] past the last page."""
        ...


@dataclass
class SyncReport:
    fetched: int = 0
    new_workouts: int = 0
    applied_changes: list[PendingChange] = field(default_factory=list)
    queued_changes: list[PendingChange] = field(default_factory=list)
    discrepancies: list[DiscrepancyInfo] = field(default_factory=list)
    detected_day: GZCLPDay | None = None
    current_day: GZCLPDay | None = None
    synced_at: datetime | None = None


class SyncOrchestrator:
    def __init__(
        self,
        repository: StateRepository,
        provider: WorkoutLogProvider,
        *,
        max_pages: int | None = None,
        history_max_entries: int | None = None,
    ):
        self._repository = repository
        self._provider = provider
        self._max_pages = max_pages or settings.sync_max_pages
        self._history_max_entries = history_max_entries
        self._active: CancellationToken | None = None
        # Guards _active; _cycle_lock serializes whole cycles
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()

    @property
    def in_progress(self) -> bool:
        return self._active is not None

    def cancel(self) -> None:
        with self._state_lock:
            self._cancel_active()

    def _cancel_active(self) -> None:
        if self._active is not None:
            logger.info("[SYNC] Cancelling in-flight sync")
            self._active.cancel()

    def sync(self) -> SyncReport:
        """Run one sync cycle, cancelling any cycle still in flight.

        The new cycle starts only after the cancelled one has unwound, so two
        cycles never read and write the partitions at the same time. A cycle
        already committing is allowed to finish.

        Raises:
            ProviderUnavailableError: If fetching workouts failed
            SyncCancelledError: If this cycle was cancelled before it committed
        """
        with self._state_lock:
            self._cancel_active()
            token = CancellationToken()
            self._active = token

        with self._cycle_lock:
            try:
                token.raise_if_cancelled("start")
                return self._run(token)
            finally:
                with self._state_lock:
                    if self._active is token:
                        self._active = None

    # -----------------------------
    # Steps
    # -----------------------------
    def _fetch(self, token: CancellationToken, processed: set[str]) -> list[WorkoutLog]:
        workouts: list[WorkoutLog] = []
        for page in range(1, self._max_pages + 1):
            token.raise_if_cancelled("fetch")
            try:
                page_workouts = self._provider.fetch_workouts(page)
            except HevyApiError as e:
                logger.error(f"[SYNC] Provider failed on page {page}: {e!s}")
                raise ProviderUnavailableError(f"Workout provider unavailable: {e!s}") from e

            if not page_workouts:
                break
            workouts.extend(page_workouts)
            # Pages are most recent first: a fully processed page means everything older is too
            if all(w.id in processed for w in page_workouts):
                logger.debug(f"[SYNC] Page {page} fully processed, stopping fetch")
                break

        logger.info(f"[SYNC] Fetched {len(workouts)} workouts")
        return workouts

    @staticmethod
    def _advances_day(
        detected_at: datetime | None,
        workouts: list[WorkoutLog],
        processed: set[str],
    ) -> bool:
        """Only a workout newer than every processed one moves the program day.

        Workouts that produced no change are analyzed again on later syncs and
        must not rewind the day.
        """
        if detected_at is None:
            return False
        latest_processed = max((w.start_time for w in workouts if w.id in processed), default=None)
        return latest_processed is None or detected_at > latest_processed

    def _run(self, token: CancellationToken) -> SyncReport:
        logger.info("[SYNC] Starting sync")
        config = self._repository.load_config()
        store = self._repository.load_progression()
        history = self._repository.load_history()

        processed = processed_workout_ids(
            history.history,
            store.progression,
            store.pending_changes,
            store.seen_workout_ids,
        )
        workouts = self._fetch(token, processed)
        new_workouts = filter_new_workouts(workouts, processed)
        report = SyncReport(fetched=len(workouts), new_workouts=len(new_workouts))

        token.raise_if_cancelled("analysis")
        # Analyze against the state the already-queued changes would produce
        baseline = apply_all_pending_changes(store.progression, store.pending_changes)
        batch = analyze_workouts(
            new_workouts,
            config.exercises,
            baseline,
            config.settings.weight_unit,
            routine_days=config.program.routine_ids,
            existing=store.pending_changes,
        )

        if config.settings.auto_apply:
            applied, queued = partition_for_auto_apply(
                batch.pending_changes,
                blocked_keys={c.progression_key for c in store.pending_changes},
            )
        else:
            applied, queued = [], list(batch.pending_changes)

        discrepancies = deduplicate_discrepancies(collect_discrepancies(batch.results))
        report.discrepancies = filter_acknowledged(discrepancies, store.acknowledged_discrepancies)
        report.applied_changes = applied
        report.queued_changes = queued
        report.detected_day = batch.last_detected_day

        token.raise_if_cancelled("commit")
        now = utc_now()
        new_store = store.model_copy(
            update={
                "progression": apply_all_pending_changes(store.progression, applied),
                "pending_changes": [*store.pending_changes, *queued],
                "last_sync": now,
            }
        )
        new_history = history.model_copy(
            update={
                "history": record_multiple_changes(
                    history.history,
                    applied,
                    config.exercises,
                    max_entries=self._history_max_entries,
                )
            }
        )
        steps = [
            partition_write_step(self._repository, Partition.PROGRESSION, new_store, store),
            partition_write_step(self._repository, Partition.HISTORY, new_history, history),
        ]
        if self._advances_day(batch.last_detected_at, workouts, processed):
            new_program = config.program.model_copy(update={"current_day": next_day(batch.last_detected_day)})
            new_config = config.model_copy(update={"program": new_program})
            steps.append(partition_write_step(self._repository, Partition.CONFIG, new_config, config))
            report.current_day = new_program.current_day
        else:
            report.current_day = config.program.current_day

        run_compensating_steps(steps)
        report.synced_at = now

        logger.info(
            f"[SYNC] Sync complete: {report.new_workouts} new workouts, "
            f"{len(applied)} changes applied, {len(queued)} queued, "
            f"{len(report.discrepancies)} discrepancies"
        )
        return report
