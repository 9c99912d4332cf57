"""History backfill from previously logged workouts.

Used once when a program is set up so charts start with the lifter's past
sessions instead of an empty log.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from loguru import logger

from gzclp.analysis.matching import match_workout_to_exercises
from gzclp.analysis.sets import extract_working_weight
from gzclp.analysis.workout_analysis import find_day_by_routine_id, sort_workouts_chronologically
from gzclp.config.settings import settings
from gzclp.domain.enums import ChangeType, GZCLPDay, Stage
from gzclp.domain.models import (
    ExerciseDefinition,
    ExerciseHistory,
    HistoryEntry,
    ProgressionKey,
    WorkoutLog,
)
from gzclp.history.recorder import prune_history
from gzclp.progression.roles import get_progression_key, resolve_tier


@dataclass
class HistoryImportResult:
    history: dict[ProgressionKey, ExerciseHistory] = field(default_factory=dict)
    workout_count: int = 0
    entry_count: int = 0


def build_history_from_workouts(
    workouts: Sequence[WorkoutLog],
    exercises: Mapping[str, ExerciseDefinition],
    routine_days: Mapping[GZCLPDay, str] | None = None,
    *,
    max_entries: int | None = None,
) -> HistoryImportResult:
    """Build progression history from past workouts.

    Historical stage and outcome are unknown, so every entry is recorded at
    stage 0 as a success; a weight lower than the previous session of the
    same key is recorded as a deload. Workouts whose routine is not assigned
    to a program day are skipped entirely.

    Args:
        workouts: Past workouts in any order
        exercises: Configured exercises keyed by id
        routine_days: Program day -> routine id assignments
        max_entries: Per-key cap; defaults to HISTORY_MAX_ENTRIES

    Returns:
        HistoryImportResult with the history and counts
    """
    cap = max_entries if max_entries is not None else settings.history_max_entries
    result = HistoryImportResult()
    previous_weights: dict[ProgressionKey, float] = {}

    for workout in sort_workouts_chronologically(workouts):
        day = find_day_by_routine_id(workout.routine_id, routine_days)
        if day is None:
            logger.debug(f"[HISTORY] Workout {workout.id} is not a program day, skipping")
            continue
        contributed = False

        for match in match_workout_to_exercises(workout, exercises):
            exercise = match.exercise
            tier = resolve_tier(exercise.role, day)
            if tier is None:
                continue

            weight = extract_working_weight(match.logged.sets)
            if weight <= 0:
                continue

            key = get_progression_key(exercise.id, exercise.role, tier)
            previous = previous_weights.get(key)

            exercise_history = result.history.setdefault(
                key,
                ExerciseHistory(progression_key=key, exercise_name=exercise.name, tier=tier, role=exercise.role),
            )
            if any(e.workout_id == workout.id for e in exercise_history.entries):
                continue
            previous_weights[key] = weight

            exercise_history.entries.append(
                HistoryEntry(
                    date=workout.start_time,
                    workout_id=workout.id,
                    weight=weight,
                    stage=Stage.ZERO,
                    tier=tier,
                    success=True,
                    change_type=ChangeType.DELOAD if previous is not None and weight < previous else ChangeType.PROGRESS,
                )
            )
            result.entry_count += 1
            contributed = True

        if contributed:
            result.workout_count += 1

    for exercise_history in result.history.values():
        exercise_history.entries = prune_history(exercise_history.entries, cap)

    logger.info(
        f"[HISTORY] Imported {result.entry_count} entries from {result.workout_count} workouts "
        f"across {len(result.history)} progression keys"
    )
    return result
