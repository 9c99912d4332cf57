from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from gzclp.domain.enums import SetType, WeightUnit
from gzclp.domain.models import LoggedExercise, LoggedSet, WorkoutLog

KG_TO_LBS = 2.20462


class HevySet(BaseModel):
    index: int | None = None
    type: SetType = SetType.NORMAL
    weight_kg: float | None = None
    reps: int | None = None
    rpe: float | None = None


class HevyExercise(BaseModel):
    index: int | None = None
    title: str | None = None
    exercise_template_id: str
    sets: list[HevySet] = Field(default_factory=list)


class HevyWorkout(BaseModel):
    id: str
    title: str | None = None
    routine_id: str | None = None
    start_time: datetime
    end_time: datetime | None = None
    exercises: list[HevyExercise] = Field(default_factory=list)

    raw: dict | None = None  # Raw API response


class HevyWorkoutPage(BaseModel):
    page: int
    page_count: int
    workouts: list[HevyWorkout] = Field(default_factory=list)


def convert_weight(weight_kg: float | None, unit: WeightUnit) -> float | None:
    """Hevy always reports kilograms; convert to the active unit."""
    if weight_kg is None:
        return None
    if unit == WeightUnit.LBS:
        return round(weight_kg * KG_TO_LBS, 1)
    return weight_kg


def map_hevy_workout(workout: HevyWorkout, unit: WeightUnit) -> WorkoutLog:
    """Map a Hevy workout to a provider-neutral WorkoutLog.

    Args:
        workout: Workout from the Hevy API
        unit: Active weight unit; weights are converted into it

    Returns:
        WorkoutLog with weights in the active unit
    """
    return WorkoutLog(
        id=workout.id,
        start_time=workout.start_time,
        routine_id=workout.routine_id,
        title=workout.title,
        exercises=tuple(
            LoggedExercise(
                template_id=exercise.exercise_template_id,
                title=exercise.title,
                sets=tuple(
                    LoggedSet(type=s.type, reps=s.reps, weight=convert_weight(s.weight_kg, unit))
                    for s in exercise.sets
                ),
            )
            for exercise in workout.exercises
        ),
    )
