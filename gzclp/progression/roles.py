"""Role utilities: tier resolution, progression keys and the day rotation.

Tier is never stored on an exercise. It is derived from the exercise's role
and the program day the workout belongs to.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from gzclp.domain.enums import MAIN_LIFT_ROLES, ExerciseRole, GZCLPDay, MuscleGroup, Tier
from gzclp.domain.models import ExerciseDefinition, ProgressionKey

# Which main lift is T1 on each day
T1_MAPPING: Mapping[GZCLPDay, ExerciseRole] = {
    GZCLPDay.A1: ExerciseRole.SQUAT,
    GZCLPDay.B1: ExerciseRole.OHP,
    GZCLPDay.A2: ExerciseRole.BENCH,
    GZCLPDay.B2: ExerciseRole.DEADLIFT,
}

# Which main lift is T2 on each day
T2_MAPPING: Mapping[GZCLPDay, ExerciseRole] = {
    GZCLPDay.A1: ExerciseRole.BENCH,
    GZCLPDay.B1: ExerciseRole.DEADLIFT,
    GZCLPDay.A2: ExerciseRole.SQUAT,
    GZCLPDay.B2: ExerciseRole.OHP,
}

DAY_CYCLE: Mapping[GZCLPDay, GZCLPDay] = {
    GZCLPDay.A1: GZCLPDay.B1,
    GZCLPDay.B1: GZCLPDay.A2,
    GZCLPDay.A2: GZCLPDay.B2,
    GZCLPDay.B2: GZCLPDay.A1,
}

LOWER_BODY_ROLES = frozenset({ExerciseRole.SQUAT, ExerciseRole.DEADLIFT})


def is_main_lift_role(role: ExerciseRole | None) -> bool:
    return role in MAIN_LIFT_ROLES


def next_day(day: GZCLPDay) -> GZCLPDay:
    return DAY_CYCLE[day]


def resolve_tier(role: ExerciseRole | None, day: GZCLPDay | None) -> Tier | None:
    """Resolve the tier a role occupies on a program day.

    Args:
        role: Exercise role (None means the exercise is not part of the program)
        day: Program day, or None when it could not be determined

    Returns:
        T3 for accessory work on any day. T1/T2 for a main lift scheduled on
        the day. None for role-less exercises, main lifts not scheduled on the
        day, and main lifts when the day is unknown. Guessing a tier there
        would write into an unrelated progression record.
    """
    if role is None:
        return None
    if role == ExerciseRole.T3:
        return Tier.T3
    if day is None:
        return None
    if t1_role_for_day(day) == role:
        return Tier.T1
    if t2_role_for_day(day) == role:
        return Tier.T2
    return None


def get_progression_key(exercise_id: str, role: ExerciseRole | None, tier: Tier) -> ProgressionKey:
    """Key of the progression record an exercise writes to.

    Examples:
        get_progression_key("uuid-1", ExerciseRole.SQUAT, Tier.T1) -> "squat-T1"
        get_progression_key("uuid-1", ExerciseRole.SQUAT, Tier.T2) -> "squat-T2"
        get_progression_key("uuid-9", ExerciseRole.T3, Tier.T3) -> "uuid-9"
    """
    if is_main_lift_role(role) and tier in (Tier.T1, Tier.T2):
        return f"{role}-{tier}"
    return exercise_id


def main_lift_keys(role: ExerciseRole) -> tuple[ProgressionKey, ProgressionKey]:
    return f"{role}-{Tier.T1}", f"{role}-{Tier.T2}"


def muscle_group_for(exercise: ExerciseDefinition) -> MuscleGroup:
    """Muscle group used to pick the weight increment."""
    if exercise.muscle_group is not None:
        return exercise.muscle_group
    if exercise.role in LOWER_BODY_ROLES:
        return MuscleGroup.LOWER
    return MuscleGroup.UPPER


def t1_role_for_day(day: GZCLPDay) -> ExerciseRole:
    return T1_MAPPING[day]


def t2_role_for_day(day: GZCLPDay) -> ExerciseRole:
    return T2_MAPPING[day]


@dataclass
class DayExercises:
    t1: ExerciseDefinition | None = None
    t2: ExerciseDefinition | None = None
    t3: list[ExerciseDefinition] = field(default_factory=list)


def exercises_for_day(
    exercises: Mapping[str, ExerciseDefinition],
    day: GZCLPDay,
    t3_schedule: Mapping[GZCLPDay, list[str]],
) -> DayExercises:
    """Group configured exercises by the tier they occupy on a day.

    T3 scheduling is independent of the main-lift rotation: only accessories
    listed in the day's schedule are included.
    """
    result = DayExercises()
    day_t3_ids = set(t3_schedule.get(day, []))

    for exercise in exercises.values():
        if exercise.role is None:
            continue
        if exercise.role == ExerciseRole.T3:
            if exercise.id in day_t3_ids:
                result.t3.append(exercise)
            continue
        tier = resolve_tier(exercise.role, day)
        if tier == Tier.T1:
            result.t1 = exercise
        elif tier == Tier.T2:
            result.t2 = exercise

    return result


def tier_for_key(key: ProgressionKey) -> Tier:
    """Tier a progression record belongs to: T1/T2 for main-lift keys, T3 otherwise."""
    for role in MAIN_LIFT_ROLES:
        for tier in (Tier.T1, Tier.T2):
            if key == f"{role}-{tier}":
                return tier
    return Tier.T3
