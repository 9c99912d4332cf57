"""Tests for exercise matching and discrepancy handling."""

from datetime import UTC, datetime, timedelta

from gzclp.analysis.matching import (
    collect_discrepancies,
    deduplicate_discrepancies,
    detect_discrepancy,
    filter_acknowledged,
    match_workout_to_exercises,
)
from gzclp.analysis.workout_analysis import analyze_workout
from gzclp.domain.enums import GZCLPDay, Tier
from gzclp.domain.models import AcknowledgedDiscrepancy, DiscrepancyInfo, ProgressionEntry

WORKOUT_DATE = datetime(2025, 1, 6, 18, 0, tzinfo=UTC)


def discrepancy(actual: float, days: int = 0, tier: Tier = Tier.T1) -> DiscrepancyInfo:
    return DiscrepancyInfo(
        exercise_id="ex-squat",
        exercise_name="Squat",
        tier=tier,
        stored_weight=100,
        actual_weight=actual,
        workout_id=f"w{days}",
        workout_date=WORKOUT_DATE + timedelta(days=days),
    )


class TestMatching:
    def test_matches_by_template_id(self, exercises, make_exercise, make_workout):
        workout = make_workout("w1", [make_exercise("tpl-squat", [3], 100), make_exercise("tpl-lat", [15], 30)])

        matches = match_workout_to_exercises(workout, exercises)

        assert [m.exercise.id for m in matches] == ["ex-squat", "ex-lat"]

    def test_unknown_template_is_skipped(self, exercises, make_exercise, make_workout):
        workout = make_workout("w1", [make_exercise("tpl-unknown", [10], 50)])

        assert match_workout_to_exercises(workout, exercises) == []

    def test_duplicate_exercise_keeps_first(self, exercises, make_exercise, make_workout):
        workout = make_workout(
            "w1",
            [make_exercise("tpl-squat", [3], 100), make_exercise("tpl-squat", [5], 60)],
        )

        matches = match_workout_to_exercises(workout, exercises)

        assert len(matches) == 1
        assert matches[0].logged.sets[0].weight == 100


class TestDiscrepancy:
    def test_equal_weights_have_no_discrepancy(self):
        entry = ProgressionEntry(exercise_id="ex-squat", current_weight=100, base_weight=100)

        assert detect_discrepancy(entry, 100.0) is None

    def test_different_weights_are_flagged(self):
        entry = ProgressionEntry(exercise_id="ex-squat", current_weight=100, base_weight=100)

        drift = detect_discrepancy(entry, 110)

        assert drift is not None
        assert drift.stored_weight == 100
        assert drift.actual_weight == 110

    def test_most_recent_per_exercise_and_tier_wins(self):
        deduped = deduplicate_discrepancies([discrepancy(105, 0), discrepancy(110, 2), discrepancy(60, 1, Tier.T2)])

        by_tier = {d.tier: d.actual_weight for d in deduped}
        assert by_tier == {Tier.T1: 110, Tier.T2: 60}

    def test_acknowledged_weight_is_filtered(self):
        acknowledged = [AcknowledgedDiscrepancy(exercise_id="ex-squat", tier=Tier.T1, acknowledged_weight=110)]

        remaining = filter_acknowledged([discrepancy(110), discrepancy(112.5, 1)], acknowledged)

        assert [d.actual_weight for d in remaining] == [112.5]

    def test_collect_skips_results_without_drift(self, exercises, progression, make_exercise, make_workout):
        workout = make_workout(
            "w1",
            [make_exercise("tpl-squat", [3, 3, 3, 3, 3], 110), make_exercise("tpl-bench", [10, 10, 10], 45)],
        )
        results = analyze_workout(workout, exercises, progression, GZCLPDay.A1)

        collected = collect_discrepancies(results)

        assert [(d.exercise_id, d.actual_weight) for d in collected] == [("ex-squat", 110)]
