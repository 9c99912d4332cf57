"""Pending change builder.

Turns analysis results into reviewable progression proposals: exactly one
proposal per (progression key, workout id), however often a workout is
reprocessed.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence

from loguru import logger

from gzclp.domain.enums import GZCLPDay, Tier, WeightUnit
from gzclp.domain.models import (
    AnalysisResult,
    ExerciseDefinition,
    PendingChange,
    ProgressionEntry,
    ProgressionResult,
)
from gzclp.progression.calculator import calculate_progression
from gzclp.progression.rep_schemes import DEFAULT_CATALOG, RepSchemeCatalog
from gzclp.progression.roles import get_progression_key, is_main_lift_role, muscle_group_for


def _display_name(exercise: ExerciseDefinition, tier: Tier) -> str:
    if is_main_lift_role(exercise.role) and tier in (Tier.T1, Tier.T2):
        return f"{tier} {exercise.name}"
    return exercise.name


def create_pending_change(
    exercise: ExerciseDefinition,
    entry: ProgressionEntry,
    result: ProgressionResult,
    analysis: AnalysisResult,
    *,
    sets_target: int,
    day: GZCLPDay | None = None,
) -> PendingChange:
    """Build a PendingChange from a calculated progression result.

    `entry` is the stored record: its weight and stage are what the user sees
    as "current", even when the calculation started from a drifted weight.
    """
    new_pr = result.amrap_reps is not None and result.amrap_reps > entry.amrap_record

    return PendingChange(
        id=uuid.uuid4().hex,
        exercise_id=exercise.id,
        exercise_name=_display_name(exercise, analysis.tier),
        progression_key=get_progression_key(exercise.id, exercise.role, analysis.tier),
        tier=analysis.tier,
        type=result.type,
        current_weight=entry.current_weight,
        current_stage=entry.stage,
        new_weight=result.new_weight,
        new_stage=result.new_stage,
        new_scheme=result.new_scheme,
        reason=result.reason,
        workout_id=analysis.workout_id,
        workout_date=analysis.workout_date,
        success=result.success,
        amrap_reps=result.amrap_reps,
        new_amrap_record=result.amrap_reps if new_pr else None,
        new_pr=new_pr,
        sets_completed=len(analysis.reps),
        sets_target=sets_target,
        day=analysis.day or day,
        discrepancy=analysis.discrepancy,
    )


def create_pending_changes_from_analysis(
    results: Sequence[AnalysisResult],
    exercises: Mapping[str, ExerciseDefinition],
    progression: Mapping[str, ProgressionEntry],
    unit: WeightUnit,
    day: GZCLPDay | None = None,
    *,
    existing: Iterable[PendingChange] = (),
    catalog: RepSchemeCatalog = DEFAULT_CATALOG,
) -> list[PendingChange]:
    """Calculate progression for every analysis result and emit proposals.

    Args:
        results: Analysis results, usually from one or more analyzed workouts
        exercises: Configured exercises keyed by id
        progression: Progression records keyed by progression key
        unit: Active weight unit
        day: Fallback day for results that carry none
        existing: Already-queued changes; their (key, workout) pairs are skipped
        catalog: Rep-scheme catalog

    Returns:
        New pending changes in result order
    """
    emitted = {(change.progression_key, change.workout_id) for change in existing}
    changes: list[PendingChange] = []

    for analysis in results:
        exercise = exercises.get(analysis.exercise_id)
        if exercise is None or exercise.role is None:
            logger.warning(f"[PENDING] Exercise {analysis.exercise_id} not configured, skipping")
            continue

        key = get_progression_key(exercise.id, exercise.role, analysis.tier)
        if (key, analysis.workout_id) in emitted:
            logger.debug(f"[PENDING] Change for {key} from workout {analysis.workout_id} already exists")
            continue

        entry = progression.get(key)
        if entry is None:
            logger.warning(
                f"[PENDING] Skipping {exercise.name} ({analysis.tier}): progression key {key!r} not found. "
                f"Available keys: {sorted(progression)}"
            )
            continue

        # Progress from what was actually lifted; keep the stored entry for display
        lifted = entry
        if analysis.discrepancy is not None:
            lifted = entry.model_copy(update={"current_weight": analysis.discrepancy.actual_weight})

        result = calculate_progression(
            analysis.tier,
            lifted,
            analysis.reps,
            muscle_group_for(exercise),
            unit,
            exercise.custom_increment,
            catalog=catalog,
        )
        change = create_pending_change(
            exercise,
            entry,
            result,
            analysis,
            sets_target=catalog.get(analysis.tier, entry.stage).sets,
            day=day,
        )
        emitted.add((key, analysis.workout_id))
        changes.append(change)
        logger.debug(
            f"[PENDING] {change.exercise_name}: key={key} workout={analysis.workout_id} type={change.type}"
        )

    return changes
