"""Domain models for GZCLP progression tracking.

Provider-neutral workout logs, progression records, analysis results,
pending changes and history entries. Weights are always expressed in the
user's active unit.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from gzclp.domain.enums import (
    ChangeType,
    ExerciseRole,
    GZCLPDay,
    MuscleGroup,
    SetType,
    Stage,
    Tier,
)

# "squat-T1" for main lifts, the raw exercise id for T3 work
ProgressionKey = str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------
# Workout logs (external, immutable)
# -----------------------------
class LoggedSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: SetType = SetType.NORMAL
    reps: int | None = None
    weight: float | None = None


class LoggedExercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    template_id: str
    title: str | None = None
    sets: tuple[LoggedSet, ...] = ()


class WorkoutLog(BaseModel):
    """A completed workout as imported from the log provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    start_time: datetime
    routine_id: str | None = None
    title: str | None = None
    exercises: tuple[LoggedExercise, ...] = ()


# -----------------------------
# Configuration and progression records
# -----------------------------
class ExerciseDefinition(BaseModel):
    id: str
    external_template_id: str
    name: str
    role: ExerciseRole | None = None
    custom_increment: float | None = Field(default=None, gt=0)
    muscle_group: MuscleGroup | None = None


class ProgressionEntry(BaseModel):
    """Independent progression record for one (role, tier) or one T3 exercise."""

    exercise_id: str
    current_weight: float = Field(ge=0)
    stage: Stage = Stage.ZERO
    base_weight: float = Field(ge=0)
    amrap_record: int = Field(default=0, ge=0)
    amrap_record_date: datetime | None = None
    last_workout_id: str | None = None
    last_workout_date: datetime | None = None


# -----------------------------
# Analysis and proposals
# -----------------------------
class WeightDiscrepancy(BaseModel):
    stored_weight: float
    actual_weight: float


class AnalysisResult(BaseModel):
    """Progression-relevant data extracted for one exercise in one workout."""

    exercise_id: str
    exercise_name: str
    progression_key: ProgressionKey
    tier: Tier
    reps: list[int]
    weight: float
    workout_id: str
    workout_date: datetime
    discrepancy: WeightDiscrepancy | None = None
    day: GZCLPDay | None = None


class ProgressionResult(BaseModel):
    """Output of the progression state machine."""

    model_config = ConfigDict(frozen=True)

    type: ChangeType
    new_weight: float
    new_stage: Stage
    new_scheme: str
    success: bool
    reason: str
    amrap_reps: int | None = None
    new_amrap_record: int | None = None
    new_base_weight: float | None = None


class PendingChange(BaseModel):
    """A reviewable progression proposal derived from one logged exercise."""

    id: str
    exercise_id: str
    exercise_name: str
    progression_key: ProgressionKey
    tier: Tier
    type: ChangeType
    current_weight: float
    current_stage: Stage
    new_weight: float
    new_stage: Stage
    new_scheme: str
    reason: str
    workout_id: str
    workout_date: datetime
    created_at: datetime = Field(default_factory=utc_now)
    success: bool = False
    amrap_reps: int | None = None
    new_amrap_record: int | None = None
    new_pr: bool = False
    sets_completed: int = 0
    sets_target: int = 0
    day: GZCLPDay | None = None
    discrepancy: WeightDiscrepancy | None = None


class DiscrepancyInfo(BaseModel):
    exercise_id: str
    exercise_name: str
    tier: Tier
    stored_weight: float
    actual_weight: float
    workout_id: str
    workout_date: datetime


class AcknowledgedDiscrepancy(BaseModel):
    """User-dismissed drift; suppresses the same warning until the weight moves."""

    exercise_id: str
    tier: Tier
    acknowledged_weight: float


# -----------------------------
# History
# -----------------------------
class HistoryEntry(BaseModel):
    date: datetime
    workout_id: str
    weight: float
    stage: Stage
    tier: Tier
    success: bool
    change_type: ChangeType
    amrap_reps: int | None = None


class ExerciseHistory(BaseModel):
    progression_key: ProgressionKey
    exercise_name: str
    tier: Tier
    role: ExerciseRole | None = None
    entries: list[HistoryEntry] = Field(default_factory=list)
