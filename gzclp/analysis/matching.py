"""Performance matching and weight-drift detection.

Matches logged exercises to configured exercises by external template id and
compares the lifted weight against the progression record it belongs to.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from loguru import logger

from gzclp.domain.models import (
    AcknowledgedDiscrepancy,
    AnalysisResult,
    DiscrepancyInfo,
    ExerciseDefinition,
    LoggedExercise,
    ProgressionEntry,
    WeightDiscrepancy,
    WorkoutLog,
)


@dataclass(frozen=True)
class ExerciseMatch:
    exercise: ExerciseDefinition
    logged: LoggedExercise


def match_workout_to_exercises(
    workout: WorkoutLog,
    exercises: Mapping[str, ExerciseDefinition],
) -> list[ExerciseMatch]:
    """Pair logged exercises with configured ones.

    Logged exercises with an unknown template are skipped. When the same
    template is logged twice in one workout only the first occurrence counts.
    """
    by_template = {exercise.external_template_id: exercise for exercise in exercises.values()}
    matches: list[ExerciseMatch] = []
    seen: set[str] = set()

    for logged in workout.exercises:
        exercise = by_template.get(logged.template_id)
        if exercise is None:
            logger.debug(f"[ANALYSIS] Unknown template {logged.template_id} in workout {workout.id}, skipping")
            continue
        if exercise.id in seen:
            logger.debug(f"[ANALYSIS] Duplicate exercise {exercise.name} in workout {workout.id}, keeping first")
            continue
        seen.add(exercise.id)
        matches.append(ExerciseMatch(exercise=exercise, logged=logged))

    return matches


def detect_discrepancy(entry: ProgressionEntry, actual_weight: float) -> WeightDiscrepancy | None:
    """Flag drift between the stored weight and what was actually lifted."""
    if round(entry.current_weight, 2) == round(actual_weight, 2):
        return None
    return WeightDiscrepancy(stored_weight=entry.current_weight, actual_weight=actual_weight)


def collect_discrepancies(results: Iterable[AnalysisResult]) -> list[DiscrepancyInfo]:
    return [
        DiscrepancyInfo(
            exercise_id=result.exercise_id,
            exercise_name=result.exercise_name,
            tier=result.tier,
            stored_weight=result.discrepancy.stored_weight,
            actual_weight=result.discrepancy.actual_weight,
            workout_id=result.workout_id,
            workout_date=result.workout_date,
        )
        for result in results
        if result.discrepancy is not None
    ]


def deduplicate_discrepancies(discrepancies: Iterable[DiscrepancyInfo]) -> list[DiscrepancyInfo]:
    """Keep only the most recent discrepancy per exercise and tier."""
    latest: dict[tuple[str, str], DiscrepancyInfo] = {}
    for discrepancy in discrepancies:
        key = (discrepancy.exercise_id, discrepancy.tier)
        existing = latest.get(key)
        if existing is None or discrepancy.workout_date > existing.workout_date:
            latest[key] = discrepancy
    return list(latest.values())


def filter_acknowledged(
    discrepancies: Iterable[DiscrepancyInfo],
    acknowledged: Iterable[AcknowledgedDiscrepancy],
) -> list[DiscrepancyInfo]:
    """Drop discrepancies the user already dismissed at the same lifted weight."""
    dismissed = {(a.exercise_id, a.tier, round(a.acknowledged_weight, 2)) for a in acknowledged}
    return [
        d for d in discrepancies
        if (d.exercise_id, d.tier, round(d.actual_weight, 2)) not in dismissed
    ]
