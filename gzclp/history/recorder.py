"""Progression history recording.

History is an append-only log per progression key, idempotent by workout id
and capped so it cannot grow without bound.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from loguru import logger

from gzclp.config.settings import settings
from gzclp.domain.models import (
    ExerciseDefinition,
    ExerciseHistory,
    HistoryEntry,
    PendingChange,
    ProgressionEntry,
    ProgressionKey,
)

History = dict[ProgressionKey, ExerciseHistory]


def create_history_entry_from_change(change: PendingChange) -> HistoryEntry:
    """Snapshot of what was lifted in the workout the change came from.

    The weight is the one actually on the bar, so drifted sessions chart
    correctly.
    """
    weight = change.discrepancy.actual_weight if change.discrepancy is not None else change.current_weight
    return HistoryEntry(
        date=change.workout_date,
        workout_id=change.workout_id,
        weight=weight,
        stage=change.current_stage,
        tier=change.tier,
        success=change.success,
        change_type=change.type,
        amrap_reps=change.amrap_reps,
    )


def prune_history(entries: list[HistoryEntry], max_entries: int) -> list[HistoryEntry]:
    """Drop the oldest entries past the cap. Entries must be sorted ascending."""
    if len(entries) <= max_entries:
        return entries
    return entries[len(entries) - max_entries :]


def record_progression_history(
    history: Mapping[ProgressionKey, ExerciseHistory],
    change: PendingChange,
    exercises: Mapping[str, ExerciseDefinition],
    *,
    max_entries: int | None = None,
) -> History:
    """Append a change to the history of its progression key.

    Recording the same workout twice for a key is a no-op.

    Args:
        history: Current history keyed by progression key
        change: Applied change to record
        exercises: Configured exercises keyed by id
        max_entries: Per-key cap; defaults to HISTORY_MAX_ENTRIES

    Returns:
        A new history mapping; the input is not modified
    """
    cap = max_entries if max_entries is not None else settings.history_max_entries
    updated = dict(history)
    key = change.progression_key
    existing = updated.get(key)

    if existing is not None and any(e.workout_id == change.workout_id for e in existing.entries):
        logger.debug(f"[HISTORY] Workout {change.workout_id} already recorded for {key}")
        return updated

    entry = create_history_entry_from_change(change)
    if existing is None:
        exercise = exercises.get(change.exercise_id)
        updated[key] = ExerciseHistory(
            progression_key=key,
            exercise_name=exercise.name if exercise is not None else change.exercise_name,
            tier=change.tier,
            role=exercise.role if exercise is not None else None,
            entries=[entry],
        )
        return updated

    entries = sorted([*existing.entries, entry], key=lambda e: e.date)
    pruned = prune_history(entries, cap)
    if len(pruned) < len(entries):
        logger.debug(f"[HISTORY] Pruned {len(entries) - len(pruned)} old entries for {key}")
    updated[key] = existing.model_copy(update={"entries": pruned})
    return updated


def record_multiple_changes(
    history: Mapping[ProgressionKey, ExerciseHistory],
    changes: Iterable[PendingChange],
    exercises: Mapping[str, ExerciseDefinition],
    *,
    max_entries: int | None = None,
) -> History:
    updated = dict(history)
    for change in changes:
        updated = record_progression_history(updated, change, exercises, max_entries=max_entries)
    return updated


def processed_workout_ids(
    history: Mapping[ProgressionKey, ExerciseHistory],
    progression: Mapping[ProgressionKey, ProgressionEntry],
    pending_changes: Iterable[PendingChange],
    seen_workout_ids: Iterable[str] = (),
) -> set[str]:
    """Workouts that already produced a recorded, applied or queued change.

    `seen_workout_ids` covers workouts whose changes were all rejected.
    Recomputed from persisted state at the start of every sync, never cached.
    """
    processed: set[str] = set(seen_workout_ids)
    for exercise_history in history.values():
        processed.update(e.workout_id for e in exercise_history.entries)
    for entry in progression.values():
        if entry.last_workout_id:
            processed.add(entry.last_workout_id)
    processed.update(change.workout_id for change in pending_changes)
    return processed


def merge_history(
    history: Mapping[ProgressionKey, ExerciseHistory],
    imported: Mapping[ProgressionKey, ExerciseHistory],
    *,
    max_entries: int | None = None,
) -> History:
    """Merge backfilled history into recorded history.

    Entries are merged per key and deduplicated by workout id. A recorded
    entry wins over an imported one for the same workout, since it carries
    the real stage, outcome and AMRAP reps. The result is sorted by date and
    capped per key.
    """
    cap = max_entries if max_entries is not None else settings.history_max_entries
    updated = dict(history)

    for key, incoming in imported.items():
        existing = updated.get(key)
        if existing is None:
            updated[key] = incoming.model_copy(
                update={"entries": prune_history(sorted(incoming.entries, key=lambda e: e.date), cap)}
            )
            continue

        recorded = {e.workout_id for e in existing.entries}
        added = [e for e in incoming.entries if e.workout_id not in recorded]
        entries = sorted([*existing.entries, *added], key=lambda e: e.date)
        updated[key] = existing.model_copy(update={"entries": prune_history(entries, cap)})
        logger.debug(f"[HISTORY] Merged {len(added)} imported entries into {key}")

    return updated
