"""Persisted state partitions.

Three partitions evolve independently: configuration, progression and
history. Each is stored as one JSON payload with its own revision.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from gzclp.domain.enums import GZCLPDay, WeightUnit
from gzclp.domain.models import (
    AcknowledgedDiscrepancy,
    ExerciseDefinition,
    ExerciseHistory,
    PendingChange,
    ProgressionEntry,
    ProgressionKey,
    utc_now,
)

STATE_VERSION = 1

# Workouts remembered after all their changes were rejected
MAX_SEEN_WORKOUT_IDS = 200


class Partition(StrEnum):
    CONFIG = "config"
    PROGRESSION = "progression"
    HISTORY = "history"


class ProgramConfig(BaseModel):
    name: str = "GZCLP"
    created_at: datetime = Field(default_factory=utc_now)
    routine_ids: dict[GZCLPDay, str] = Field(default_factory=dict)
    current_day: GZCLPDay = GZCLPDay.A1


class UserSettings(BaseModel):
    weight_unit: WeightUnit = WeightUnit.KG
    auto_apply: bool = False


class ConfigState(BaseModel):
    version: int = STATE_VERSION
    program: ProgramConfig = Field(default_factory=ProgramConfig)
    settings: UserSettings = Field(default_factory=UserSettings)
    exercises: dict[str, ExerciseDefinition] = Field(default_factory=dict)
    t3_schedule: dict[GZCLPDay, list[str]] = Field(default_factory=dict)


class ProgressionStore(BaseModel):
    progression: dict[ProgressionKey, ProgressionEntry] = Field(default_factory=dict)
    pending_changes: list[PendingChange] = Field(default_factory=list)
    last_sync: datetime | None = None
    acknowledged_discrepancies: list[AcknowledgedDiscrepancy] = Field(default_factory=list)
    seen_workout_ids: list[str] = Field(default_factory=list)

    def remember_workouts(self, workout_ids: list[str]) -> list[str]:
        """Seen workout ids with `workout_ids` appended, oldest dropped past the cap."""
        merged = [*self.seen_workout_ids, *(w for w in workout_ids if w not in self.seen_workout_ids)]
        return merged[-MAX_SEEN_WORKOUT_IDS:]


class HistoryState(BaseModel):
    history: dict[ProgressionKey, ExerciseHistory] = Field(default_factory=dict)


PARTITION_MODELS: dict[Partition, type[BaseModel]] = {
    Partition.CONFIG: ConfigState,
    Partition.PROGRESSION: ProgressionStore,
    Partition.HISTORY: HistoryState,
}
