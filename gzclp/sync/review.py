"""Review of queued pending changes.

Applying a change updates its progression record and records history in one
compensating sequence. Rejecting keeps the change around for a single-level
undo for a short window.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from loguru import logger

from gzclp.domain.enums import Tier
from gzclp.domain.models import AcknowledgedDiscrepancy, PendingChange, utc_now
from gzclp.history.recorder import record_multiple_changes
from gzclp.progression.apply_changes import (
    apply_all_pending_changes,
    modify_pending_change_weight,
    reject_pending_change,
)
from gzclp.progression.roles import next_day
from gzclp.state.models import Partition
from gzclp.state.repository import StateRepository
from gzclp.state.transfer import partition_write_step, run_compensating_steps

UNDO_WINDOW = timedelta(seconds=5)


class PendingChangeNotFoundError(LookupError):
    """Raised when a change id is not in the pending queue."""


class PendingChangeService:
    def __init__(
        self,
        repository: StateRepository,
        *,
        undo_window: timedelta = UNDO_WINDOW,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._repository = repository
        self._undo_window = undo_window
        self._clock = clock
        self._recently_rejected: PendingChange | None = None
        self._rejected_at: datetime | None = None

    def list_pending(self) -> list[PendingChange]:
        return self._repository.load_progression().pending_changes

    def _find(self, changes: list[PendingChange], change_id: str) -> PendingChange:
        for change in changes:
            if change.id == change_id:
                return change
        raise PendingChangeNotFoundError(f"No pending change with id {change_id}")

    def _commit(self, changes: list[PendingChange], *, advance_day: bool = False) -> None:
        config = self._repository.load_config()
        store = self._repository.load_progression()
        history = self._repository.load_history()
        applied_ids = {c.id for c in changes}

        new_store = store.model_copy(
            update={
                "progression": apply_all_pending_changes(store.progression, changes),
                "pending_changes": [c for c in store.pending_changes if c.id not in applied_ids],
            }
        )
        new_history = history.model_copy(
            update={"history": record_multiple_changes(history.history, changes, config.exercises)}
        )
        steps = [
            partition_write_step(self._repository, Partition.PROGRESSION, new_store, store),
            partition_write_step(self._repository, Partition.HISTORY, new_history, history),
        ]
        if advance_day:
            program = config.program.model_copy(update={"current_day": next_day(config.program.current_day)})
            steps.append(
                partition_write_step(
                    self._repository,
                    Partition.CONFIG,
                    config.model_copy(update={"program": program}),
                    config,
                )
            )
        run_compensating_steps(steps)

    def apply(self, change_id: str) -> PendingChange:
        change = self._find(self.list_pending(), change_id)
        self._commit([change])
        logger.info(f"[REVIEW] Applied {change.exercise_name}: {change.current_weight} -> {change.new_weight}")
        return change

    def apply_all(self) -> list[PendingChange]:
        """Apply every queued change in order and advance the program day."""
        changes = self.list_pending()
        if not changes:
            return []
        self._commit(changes, advance_day=True)
        logger.info(f"[REVIEW] Applied {len(changes)} pending changes")
        return changes

    def reject(self, change_id: str) -> PendingChange:
        store = self._repository.load_progression()
        change = self._find(store.pending_changes, change_id)
        self._repository.save_progression(
            store.model_copy(
                update={
                    "pending_changes": reject_pending_change(store.pending_changes, change_id),
                    "seen_workout_ids": store.remember_workouts([change.workout_id]),
                }
            )
        )
        self._recently_rejected = change
        self._rejected_at = self._clock()
        logger.info(f"[REVIEW] Rejected {change.exercise_name} from workout {change.workout_id}")
        return change

    @property
    def recently_rejected(self) -> PendingChange | None:
        if self._recently_rejected is None or self._rejected_at is None:
            return None
        if self._clock() - self._rejected_at > self._undo_window:
            self._recently_rejected = None
            self._rejected_at = None
        return self._recently_rejected

    def undo_reject(self) -> PendingChange | None:
        """Restore the last rejected change if the undo window is still open."""
        change = self.recently_rejected
        if change is None:
            return None
        store = self._repository.load_progression()
        self._repository.save_progression(
            store.model_copy(update={"pending_changes": [*store.pending_changes, change]})
        )
        self._recently_rejected = None
        self._rejected_at = None
        logger.info(f"[REVIEW] Restored {change.exercise_name}")
        return change

    def modify(self, change_id: str, new_weight: float) -> PendingChange:
        config = self._repository.load_config()
        store = self._repository.load_progression()
        change = self._find(store.pending_changes, change_id)
        modified = modify_pending_change_weight(change, new_weight, config.settings.weight_unit)
        self._repository.save_progression(
            store.model_copy(
                update={"pending_changes": [modified if c.id == change_id else c for c in store.pending_changes]}
            )
        )
        return modified

    def acknowledge_discrepancy(self, exercise_id: str, tier: Tier, weight: float) -> None:
        store = self._repository.load_progression()
        remaining = [
            a for a in store.acknowledged_discrepancies if not (a.exercise_id == exercise_id and a.tier == tier)
        ]
        remaining.append(AcknowledgedDiscrepancy(exercise_id=exercise_id, tier=tier, acknowledged_weight=weight))
        self._repository.save_progression(store.model_copy(update={"acknowledged_discrepancies": remaining}))
