"""Stage detection from logged sets.

Infers which GZCLP stage an exercise is on from its set count and modal rep
count. Used when importing an existing program so progression records start
at the stage the lifter is actually on.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from gzclp.domain.enums import SetType, Stage, Tier
from gzclp.domain.models import LoggedSet, WorkoutLog
from gzclp.progression.rep_schemes import DEFAULT_CATALOG, RepSchemeCatalog


@dataclass(frozen=True)
class StageDetection:
    stage: Stage
    set_count: int
    rep_scheme: str


def _normal_sets(sets: Sequence[LoggedSet]) -> list[LoggedSet]:
    return [s for s in sets if s.type == SetType.NORMAL]


def _modal_reps(sets: Sequence[LoggedSet]) -> int:
    counts = Counter(s.reps or 0 for s in sets)
    if not counts:
        return 0
    return counts.most_common(1)[0][0]


def detect_stage(
    sets: Sequence[LoggedSet],
    tier: Tier,
    catalog: RepSchemeCatalog = DEFAULT_CATALOG,
) -> StageDetection | None:
    """Match normal sets against the tier's stage schemes.

    T3 is always stage 0. Returns None when there are no normal sets or the
    set/rep pattern matches no stage.
    """
    normal = _normal_sets(sets)
    if not normal:
        return None

    if tier == Tier.T3:
        return StageDetection(
            stage=Stage.ZERO,
            set_count=len(normal),
            rep_scheme=catalog.get(Tier.T3, Stage.ZERO).display,
        )

    modal = _modal_reps(normal)
    for stage in Stage:
        scheme = catalog.get(tier, stage)
        if len(normal) == scheme.sets and modal == scheme.reps:
            return StageDetection(stage=stage, set_count=len(normal), rep_scheme=scheme.display)
    return None


def extract_max_weight(sets: Sequence[LoggedSet]) -> float:
    weights = [s.weight for s in _normal_sets(sets) if s.weight is not None]
    return max(weights, default=0.0)


def detect_stage_from_workout_history(
    workouts: Sequence[WorkoutLog],
    template_id: str,
    tier: Tier,
    catalog: RepSchemeCatalog = DEFAULT_CATALOG,
) -> Stage | None:
    """Detect the stage from the most recent workout containing the exercise.

    Args:
        workouts: Workouts ordered most recent first
        template_id: External template id of the exercise
        tier: Tier whose patterns are matched
        catalog: Rep-scheme catalog

    Returns:
        The detected stage, or None when the most recent occurrence matches
        no pattern or the exercise was never logged
    """
    if tier == Tier.T3:
        return Stage.ZERO

    for workout in workouts:
        logged = next((ex for ex in workout.exercises if ex.template_id == template_id), None)
        if logged is None or not _normal_sets(logged.sets):
            continue
        detection = detect_stage(logged.sets, tier, catalog)
        return detection.stage if detection is not None else None

    return None
