"""Tests for the progression forecast."""

from datetime import UTC, datetime, timedelta

import pytest

from gzclp.domain.enums import ChangeType, MuscleGroup, Stage, Tier, WeightUnit
from gzclp.domain.models import HistoryEntry, ProgressionEntry
from gzclp.progression.prediction import (
    DEFAULT_FAILURE_RATE,
    PredictionConfig,
    calculate_historical_metrics,
    predict_progression,
    simulate_workout_outcome,
)

START = datetime(2025, 3, 3, 18, 0, tzinfo=UTC)


def history_entry(index: int, success: bool = True, change_type: ChangeType = ChangeType.PROGRESS) -> HistoryEntry:
    return HistoryEntry(
        date=START - timedelta(days=30 - index),
        workout_id=f"w{index}",
        weight=100,
        stage=Stage.ZERO,
        tier=Tier.T1,
        success=success,
        change_type=change_type,
    )


def squat(weight: float = 100, stage: Stage = Stage.ZERO) -> ProgressionEntry:
    return ProgressionEntry(exercise_id="ex-squat", current_weight=weight, base_weight=weight, stage=stage)


class TestMetrics:
    def test_empty_history_is_conservative(self):
        metrics = calculate_historical_metrics([])

        assert metrics.failure_rate == DEFAULT_FAILURE_RATE
        assert metrics.sample_size == 0

    def test_rates_from_history(self):
        entries = [
            history_entry(0),
            history_entry(1),
            history_entry(2, success=False, change_type=ChangeType.STAGE_CHANGE),
            history_entry(3, success=False, change_type=ChangeType.DELOAD),
        ]

        metrics = calculate_historical_metrics(entries)

        assert metrics.failure_rate == 0.5
        assert metrics.deload_frequency == 0.25
        assert metrics.avg_workouts_per_stage == 3
        assert metrics.sample_size == 4


class TestSimulation:
    def test_success_adds_increment(self):
        outcome = simulate_workout_outcome(Tier.T1, 60, Stage.ONE, True, MuscleGroup.UPPER, WeightUnit.KG)

        assert (outcome.type, outcome.new_weight, outcome.new_stage) == (ChangeType.PROGRESS, 62.5, Stage.ONE)

    def test_failure_below_last_stage_changes_stage(self):
        outcome = simulate_workout_outcome(Tier.T2, 70, Stage.ZERO, False, MuscleGroup.LOWER, WeightUnit.KG)

        assert (outcome.type, outcome.new_weight, outcome.new_stage) == (ChangeType.STAGE_CHANGE, 70, Stage.ONE)

    def test_failure_at_last_stage_deloads(self):
        outcome = simulate_workout_outcome(Tier.T1, 100, Stage.TWO, False, MuscleGroup.LOWER, WeightUnit.KG)

        assert (outcome.type, outcome.new_weight, outcome.new_stage) == (ChangeType.DELOAD, 85, Stage.ZERO)

    def test_t3_failure_repeats(self):
        outcome = simulate_workout_outcome(Tier.T3, 30, Stage.ZERO, False, MuscleGroup.UPPER, WeightUnit.KG)

        assert (outcome.type, outcome.new_weight) == (ChangeType.REPEAT, 30)


class TestPredict:
    def test_assumed_success_climbs_linearly(self):
        result = predict_progression(
            Tier.T1,
            squat(),
            [],
            MuscleGroup.LOWER,
            WeightUnit.KG,
            config=PredictionConfig(horizon_workouts=4, assume_success=True),
            base_date=START,
        )

        assert [p.weight for p in result.points] == [105, 110, 115, 120]
        assert result.weeks_to_deload is None
        assert result.overall_confidence == 0.3

    def test_default_failure_rate_walks_through_stages_to_deload(self):
        result = predict_progression(
            Tier.T1,
            squat(),
            [],
            MuscleGroup.LOWER,
            WeightUnit.KG,
            config=PredictionConfig(horizon_workouts=6),
            base_date=START,
        )

        points = result.points
        assert [p.weight for p in points[:3]] == [105, 110, 110]
        assert points[2].is_stage_change
        assert points[3].stage == Stage.TWO
        assert points[4].weight == 115
        assert points[5].is_deload
        assert points[5].weight == 97.5
        assert result.weeks_to_deload == 4.0

    def test_dates_follow_training_frequency(self):
        result = predict_progression(
            Tier.T1,
            squat(),
            [],
            MuscleGroup.LOWER,
            WeightUnit.KG,
            workouts_per_week=3.5,
            config=PredictionConfig(horizon_workouts=2),
            base_date=START,
        )

        assert [p.date for p in result.points] == [START + timedelta(days=2), START + timedelta(days=4)]

    def test_confidence_decays_to_floor(self):
        result = predict_progression(
            Tier.T3,
            squat(30),
            [history_entry(i) for i in range(30)],
            MuscleGroup.UPPER,
            WeightUnit.KG,
            config=PredictionConfig(horizon_workouts=60, assume_success=True),
            base_date=START,
        )

        assert result.points[0].confidence == 0.85
        assert result.points[-1].confidence == 0.1

    def test_frequency_must_be_positive(self):
        with pytest.raises(ValueError):
            predict_progression(Tier.T1, squat(), [], MuscleGroup.LOWER, WeightUnit.KG, workouts_per_week=0)
