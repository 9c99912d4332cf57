"""Progression forecast.

Simulates the next workouts of one progression key with the same rules the
calculator applies, failing sessions at the rate the lifter's history shows.
The simulation is deterministic: a failure rate of 25% fails every fourth
session, so the same history always produces the same forecast.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from gzclp.domain.enums import ChangeType, MuscleGroup, Stage, Tier, WeightUnit
from gzclp.domain.models import HistoryEntry, ProgressionEntry, utc_now
from gzclp.progression.calculator import calculate_deload, get_increment

DEFAULT_FAILURE_RATE = 0.3
DEFAULT_WORKOUTS_PER_STAGE = 8.0
MAX_FAILURE_RATE = 0.8

# Higher stages fail more often than stage 0
STAGE_FAILURE_MULTIPLIER = {Stage.ZERO: 1.0, Stage.ONE: 1.5, Stage.TWO: 2.0}


@dataclass(frozen=True)
class PredictionConfig:
    horizon_workouts: int = 12
    min_confidence: float = 0.1
    confidence_decay: float = 0.02
    assume_success: bool = False


@dataclass(frozen=True)
class HistoricalMetrics:
    failure_rate: float
    avg_workouts_per_stage: float
    deload_frequency: float
    sample_size: int


@dataclass(frozen=True)
class SimulatedOutcome:
    type: ChangeType
    new_weight: float
    new_stage: Stage


@dataclass(frozen=True)
class PredictionPoint:
    workout_number: int
    date: datetime
    weight: float
    stage: Stage
    confidence: float
    is_deload: bool = False
    is_stage_change: bool = False


@dataclass
class PredictionResult:
    points: list[PredictionPoint] = field(default_factory=list)
    overall_confidence: float = 0.0
    weeks_to_deload: float | None = None


# -----------------------------
# History metrics
# -----------------------------
def calculate_historical_metrics(entries: Sequence[HistoryEntry]) -> HistoricalMetrics:
    """Failure rate, deload frequency and average stage length of a history.

    An empty history gets a conservative 30% failure rate.
    """
    if not entries:
        return HistoricalMetrics(
            failure_rate=DEFAULT_FAILURE_RATE,
            avg_workouts_per_stage=DEFAULT_WORKOUTS_PER_STAGE,
            deload_frequency=0.0,
            sample_size=0,
        )

    failures = sum(1 for e in entries if not e.success)
    deloads = sum(1 for e in entries if e.change_type == ChangeType.DELOAD)

    avg_per_stage = DEFAULT_WORKOUTS_PER_STAGE
    change_indices = [i for i, e in enumerate(entries) if e.change_type == ChangeType.STAGE_CHANGE]
    spans: list[int] = []
    if change_indices and change_indices[0] > 0:
        spans.append(change_indices[0] + 1)
    spans.extend(current - previous for previous, current in zip(change_indices, change_indices[1:]))
    if spans:
        avg_per_stage = sum(spans) / len(spans)

    return HistoricalMetrics(
        failure_rate=failures / len(entries),
        avg_workouts_per_stage=avg_per_stage,
        deload_frequency=deloads / len(entries),
        sample_size=len(entries),
    )


# -----------------------------
# Simulation
# -----------------------------
def simulate_workout_outcome(
    tier: Tier,
    weight: float,
    stage: Stage,
    success: bool,
    muscle_group: MuscleGroup,
    unit: WeightUnit,
) -> SimulatedOutcome:
    increment = get_increment(muscle_group, unit)
    if success:
        return SimulatedOutcome(ChangeType.PROGRESS, round(weight + increment, 2), stage)
    if tier == Tier.T3:
        return SimulatedOutcome(ChangeType.REPEAT, weight, Stage.ZERO)
    if stage < Stage.TWO:
        return SimulatedOutcome(ChangeType.STAGE_CHANGE, weight, Stage(stage + 1))
    return SimulatedOutcome(ChangeType.DELOAD, calculate_deload(weight, unit), Stage.ZERO)


def _initial_confidence(history_length: int) -> float:
    if history_length < 5:
        return 0.3
    if history_length < 15:
        return 0.5
    if history_length < 30:
        return 0.7
    return 0.85


def _succeeds(metrics: HistoricalMetrics, stage: Stage, index: int, assume_success: bool) -> bool:
    if assume_success:
        return True
    rate = min(metrics.failure_rate * STAGE_FAILURE_MULTIPLIER[stage], MAX_FAILURE_RATE)
    if rate <= 0:
        return True
    return (index + 1) % round(1 / rate) != 0


def estimate_workout_date(workout_number: int, workouts_per_week: float, base_date: datetime) -> datetime:
    return base_date + timedelta(days=workout_number * 7 / workouts_per_week)


def predict_progression(
    tier: Tier,
    entry: ProgressionEntry,
    history: Sequence[HistoryEntry],
    muscle_group: MuscleGroup,
    unit: WeightUnit,
    *,
    workouts_per_week: float = 1.5,
    config: PredictionConfig = PredictionConfig(),
    base_date: datetime | None = None,
) -> PredictionResult:
    """Forecast the next `config.horizon_workouts` sessions of one key.

    Args:
        tier: Tier of the progression key
        entry: Current progression record
        history: Recorded history of the key, oldest first
        muscle_group: Muscle group that selects the increment
        unit: Active weight unit
        workouts_per_week: Sessions of this key per week. A main lift is
            trained twice per four-day rotation, so 1.5 at three sessions a week.
        config: Horizon and confidence tuning
        base_date: Date the forecast starts from, now when None

    Returns:
        PredictionResult with one point per simulated workout
    """
    if workouts_per_week <= 0:
        raise ValueError(f"workouts_per_week must be positive, got {workouts_per_week}")

    start = base_date or utc_now()
    metrics = calculate_historical_metrics(history)
    initial = _initial_confidence(len(history))
    result = PredictionResult(overall_confidence=initial)

    weight = entry.current_weight
    stage = Stage(entry.stage)
    first_deload: int | None = None

    for index in range(config.horizon_workouts):
        success = _succeeds(metrics, stage, index, config.assume_success)
        outcome = simulate_workout_outcome(tier, weight, stage, success, muscle_group, unit)
        if outcome.type == ChangeType.DELOAD and first_deload is None:
            first_deload = index

        result.points.append(
            PredictionPoint(
                workout_number=index + 1,
                date=estimate_workout_date(index + 1, workouts_per_week, start),
                weight=outcome.new_weight,
                stage=outcome.new_stage,
                confidence=max(initial * (1 - config.confidence_decay * index), config.min_confidence),
                is_deload=outcome.type == ChangeType.DELOAD,
                is_stage_change=outcome.type == ChangeType.STAGE_CHANGE,
            )
        )
        weight, stage = outcome.new_weight, outcome.new_stage

    if first_deload is not None:
        result.weeks_to_deload = (first_deload + 1) / workouts_per_week
    return result
