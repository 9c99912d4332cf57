"""Workout analysis.

Resolves each logged exercise to its tier and progression record, extracts
the working sets and flags weight drift. `analyze_workouts` runs a whole batch
oldest first, projecting each workout's proposals onto a working copy of the
progression map before the next workout is analyzed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from gzclp.analysis.matching import detect_discrepancy, match_workout_to_exercises
from gzclp.analysis.sets import extract_sets
from gzclp.domain.enums import GZCLPDay, WeightUnit
from gzclp.domain.models import (
    AnalysisResult,
    ExerciseDefinition,
    PendingChange,
    ProgressionEntry,
    ProgressionKey,
    WorkoutLog,
)
from gzclp.progression.apply_changes import apply_all_pending_changes
from gzclp.progression.pending_changes import create_pending_changes_from_analysis
from gzclp.progression.rep_schemes import DEFAULT_CATALOG, RepSchemeCatalog
from gzclp.progression.roles import get_progression_key, resolve_tier


# -----------------------------
# Single workout
# -----------------------------
def analyze_workout(
    workout: WorkoutLog,
    exercises: Mapping[str, ExerciseDefinition],
    progression: Mapping[ProgressionKey, ProgressionEntry],
    day: GZCLPDay | None = None,
) -> list[AnalysisResult]:
    """Extract progression-relevant data for every configured exercise in a workout.

    Args:
        workout: Logged workout
        exercises: Configured exercises keyed by id
        progression: Progression records keyed by progression key
        day: Program day of the workout. Main lifts are skipped when None.

    Returns:
        One AnalysisResult per matched exercise that resolved to a tier and a
        progression record
    """
    results: list[AnalysisResult] = []

    for match in match_workout_to_exercises(workout, exercises):
        exercise = match.exercise
        if exercise.role is None:
            logger.debug(f"[ANALYSIS] {exercise.name} has no role, skipping")
            continue

        tier = resolve_tier(exercise.role, day)
        if tier is None:
            logger.debug(f"[ANALYSIS] {exercise.name} ({exercise.role}) has no tier on day {day}, skipping")
            continue

        key = get_progression_key(exercise.id, exercise.role, tier)
        entry = progression.get(key)
        if entry is None:
            logger.warning(f"[ANALYSIS] Missing progression entry {key!r} for {exercise.name}, skipping")
            continue

        extracted = extract_sets(match.logged.sets)
        # No working sets means no lifted weight to compare against
        discrepancy = detect_discrepancy(entry, extracted.weight) if extracted.reps else None

        results.append(
            AnalysisResult(
                exercise_id=exercise.id,
                exercise_name=exercise.name,
                progression_key=key,
                tier=tier,
                reps=extracted.reps,
                weight=extracted.weight,
                workout_id=workout.id,
                workout_date=workout.start_time,
                discrepancy=discrepancy,
                day=day,
            )
        )

    return results


# -----------------------------
# Workout selection
# -----------------------------
def sort_workouts_chronologically(workouts: Iterable[WorkoutLog]) -> list[WorkoutLog]:
    return sorted(workouts, key=lambda w: w.start_time)


def filter_new_workouts(workouts: Iterable[WorkoutLog], processed_ids: Iterable[str]) -> list[WorkoutLog]:
    processed = set(processed_ids)
    return [w for w in workouts if w.id not in processed]


def find_day_by_routine_id(
    routine_id: str | None,
    routine_days: Mapping[GZCLPDay, str] | None,
) -> GZCLPDay | None:
    """Map a workout's routine id back to the program day it was assigned to."""
    if routine_id is None or not routine_days:
        return None
    for day, assigned in routine_days.items():
        if assigned == routine_id:
            return GZCLPDay(day)
    return None


# -----------------------------
# Batch
# -----------------------------
@dataclass
class BatchAnalysis:
    results: list[AnalysisResult] = field(default_factory=list)
    pending_changes: list[PendingChange] = field(default_factory=list)
    projected_progression: dict[ProgressionKey, ProgressionEntry] = field(default_factory=dict)
    detected_days: list[GZCLPDay] = field(default_factory=list)
    last_detected_at: datetime | None = None

    @property
    def last_detected_day(self) -> GZCLPDay | None:
        return self.detected_days[-1] if self.detected_days else None


def analyze_workouts(
    workouts: Sequence[WorkoutLog],
    exercises: Mapping[str, ExerciseDefinition],
    progression: Mapping[ProgressionKey, ProgressionEntry],
    unit: WeightUnit,
    *,
    routine_days: Mapping[GZCLPDay, str] | None = None,
    fallback_day: GZCLPDay | None = None,
    existing: Iterable[PendingChange] = (),
    catalog: RepSchemeCatalog = DEFAULT_CATALOG,
) -> BatchAnalysis:
    """Analyze several workouts in ascending chronological order.

    Each workout is analyzed against the progression state the earlier
    workouts of the batch would produce, so two sessions of the same lift in
    one sync progress twice instead of proposing the same weight twice. The
    input progression map is left untouched.

    Args:
        workouts: Workouts in any order
        exercises: Configured exercises keyed by id
        progression: Persisted progression records
        unit: Active weight unit
        routine_days: Program day -> routine id assignments
        fallback_day: Day used for workouts whose routine is not assigned
        existing: Changes already queued; never duplicated
        catalog: Rep-scheme catalog

    Returns:
        BatchAnalysis with all results, the new pending changes, the projected
        progression map and the day detected for each workout
    """
    batch = BatchAnalysis(projected_progression=dict(progression))
    known = list(existing)

    for workout in sort_workouts_chronologically(workouts):
        day = find_day_by_routine_id(workout.routine_id, routine_days) or fallback_day
        if day is None:
            logger.info(f"[ANALYSIS] Workout {workout.id} has no known day, only T3 work will be analyzed")
        else:
            batch.detected_days.append(day)
            batch.last_detected_at = workout.start_time

        results = analyze_workout(workout, exercises, batch.projected_progression, day)
        changes = create_pending_changes_from_analysis(
            results,
            exercises,
            batch.projected_progression,
            unit,
            day,
            existing=known,
            catalog=catalog,
        )

        batch.results.extend(results)
        batch.pending_changes.extend(changes)
        known.extend(changes)
        batch.projected_progression = apply_all_pending_changes(batch.projected_progression, changes)

    logger.info(
        f"[ANALYSIS] Analyzed {len(workouts)} workouts: "
        f"{len(batch.results)} results, {len(batch.pending_changes)} pending changes"
    )
    return batch
