"""Progression entry lifecycle.

Entries are created when a role is assigned (two independent records for a
main lift, one for T3 work) and removed only with their owning exercise.
"""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from gzclp.domain.enums import ExerciseRole, Stage, Tier
from gzclp.domain.errors import RoleConflictError
from gzclp.domain.models import ExerciseDefinition, ProgressionEntry, ProgressionKey
from gzclp.progression.roles import is_main_lift_role, main_lift_keys


def _new_entry(exercise_id: str, weight: float, stage: Stage) -> ProgressionEntry:
    return ProgressionEntry(exercise_id=exercise_id, current_weight=weight, base_weight=weight, stage=stage)


def create_entries_for_exercise(
    exercise: ExerciseDefinition,
    weights: Mapping[Tier, float] | None = None,
    stages: Mapping[Tier, Stage] | None = None,
) -> dict[ProgressionKey, ProgressionEntry]:
    """Build the progression records an exercise's role requires.

    Args:
        exercise: Exercise with its role set
        weights: Starting weight per tier, 0 when absent
        stages: Starting stage per tier, stage 0 when absent

    Returns:
        {"squat-T1": ..., "squat-T2": ...} for a main lift, {exercise.id: ...}
        for T3, {} for an exercise without a role
    """
    weights = weights or {}
    stages = stages or {}

    if exercise.role is None:
        return {}
    if exercise.role == ExerciseRole.T3:
        return {
            exercise.id: _new_entry(exercise.id, weights.get(Tier.T3, 0.0), Stage.ZERO),
        }

    t1_key, t2_key = main_lift_keys(exercise.role)
    return {
        t1_key: _new_entry(exercise.id, weights.get(Tier.T1, 0.0), stages.get(Tier.T1, Stage.ZERO)),
        t2_key: _new_entry(exercise.id, weights.get(Tier.T2, 0.0), stages.get(Tier.T2, Stage.ZERO)),
    }


def remove_entries_for_exercise(
    progression: Mapping[ProgressionKey, ProgressionEntry],
    exercise: ExerciseDefinition,
) -> dict[ProgressionKey, ProgressionEntry]:
    keys = {exercise.id}
    if is_main_lift_role(exercise.role):
        keys.update(main_lift_keys(exercise.role))
    return {key: entry for key, entry in progression.items() if key not in keys}


def assign_role(
    exercises: Mapping[str, ExerciseDefinition],
    progression: Mapping[ProgressionKey, ProgressionEntry],
    exercise_id: str,
    role: ExerciseRole | None,
    weights: Mapping[Tier, float] | None = None,
    stages: Mapping[Tier, Stage] | None = None,
) -> tuple[dict[str, ExerciseDefinition], dict[ProgressionKey, ProgressionEntry]]:
    """Assign a role to an exercise and rebuild its progression records.

    A main-lift role can be held by one exercise only. Taking it from another
    exercise is refused instead of silently demoting that exercise to T3;
    the caller must reassign the holder first.

    Raises:
        KeyError: If exercise_id is not configured
        RoleConflictError: If another exercise already holds the main-lift role
    """
    exercise = exercises[exercise_id]

    if is_main_lift_role(role):
        holder = next(
            (other for other in exercises.values() if other.role == role and other.id != exercise_id),
            None,
        )
        if holder is not None:
            raise RoleConflictError(f"Role {role} is already assigned to {holder.name} ({holder.id})")

    updated_exercises = dict(exercises)
    if exercise.role == role:
        return updated_exercises, dict(progression)

    updated_progression = remove_entries_for_exercise(progression, exercise)
    updated = exercise.model_copy(update={"role": role})
    updated_exercises[exercise_id] = updated
    updated_progression.update(create_entries_for_exercise(updated, weights, stages))

    logger.info(f"[CONFIG] {exercise.name}: role {exercise.role} -> {role}")
    return updated_exercises, updated_progression
