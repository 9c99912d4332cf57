"""Canonical enums for the GZCLP progression engine.

All enums are string- or int-based so they serialize cleanly into the
persisted JSON partitions and into Hevy payloads.
"""

from enum import IntEnum, StrEnum


# -----------------------------
# Tiers and Stages
# -----------------------------
class Tier(StrEnum):
    """Exercise tier within a GZCLP day."""

    T1 = "T1"
    T2 = "T2"
    T3 = "T3"


class Stage(IntEnum):
    """Difficulty stage within a tier (0 easiest, 2 hardest)."""

    ZERO = 0
    ONE = 1
    TWO = 2

    @property
    def display(self) -> str:
        return f"Stage {self.value + 1}"


# -----------------------------
# Exercise Roles
# -----------------------------
class ExerciseRole(StrEnum):
    """Semantic identity of an exercise in the program."""

    SQUAT = "squat"
    BENCH = "bench"
    OHP = "ohp"
    DEADLIFT = "deadlift"
    T3 = "t3"


MAIN_LIFT_ROLES: tuple[ExerciseRole, ...] = (
    ExerciseRole.SQUAT,
    ExerciseRole.BENCH,
    ExerciseRole.OHP,
    ExerciseRole.DEADLIFT,
)


# -----------------------------
# Program Days
# -----------------------------
class GZCLPDay(StrEnum):
    """One of the four fixed workout slots."""

    A1 = "A1"
    B1 = "B1"
    A2 = "A2"
    B2 = "B2"


# -----------------------------
# Units and Muscle Groups
# -----------------------------
class WeightUnit(StrEnum):
    KG = "kg"
    LBS = "lbs"


class MuscleGroup(StrEnum):
    """Increment category: lower body lifts progress faster."""

    UPPER = "upper"
    LOWER = "lower"


# -----------------------------
# Change Types
# -----------------------------
class ChangeType(StrEnum):
    """Outcome of a progression calculation."""

    PROGRESS = "progress"
    STAGE_CHANGE = "stage_change"
    DELOAD = "deload"
    REPEAT = "repeat"


# -----------------------------
# Logged Set Types
# -----------------------------
class SetType(StrEnum):
    """Set type as recorded by the workout log provider."""

    WARMUP = "warmup"
    NORMAL = "normal"
    FAILURE = "failure"
    DROPSET = "dropset"
