"""Tests for single-workout and batch analysis."""

from gzclp.analysis.workout_analysis import (
    analyze_workout,
    analyze_workouts,
    filter_new_workouts,
    find_day_by_routine_id,
    sort_workouts_chronologically,
)
from gzclp.domain.enums import ChangeType, GZCLPDay, Tier, WeightUnit


def a1_session(make_exercise, squat_weight=100.0):
    return [
        make_exercise("tpl-squat", [3, 3, 3, 3, 5], squat_weight, warmups=2),
        make_exercise("tpl-bench", [10, 10, 10], 45),
        make_exercise("tpl-lat", [15, 15, 25], 30),
    ]


class TestAnalyzeWorkout:
    def test_resolves_tiers_for_the_day(self, exercises, progression, make_exercise, make_workout):
        workout = make_workout("w1", a1_session(make_exercise))

        results = analyze_workout(workout, exercises, progression, GZCLPDay.A1)

        assert [(r.progression_key, r.tier) for r in results] == [
            ("squat-T1", Tier.T1),
            ("bench-T2", Tier.T2),
            ("ex-lat", Tier.T3),
        ]
        squat = results[0]
        assert squat.reps == [3, 3, 3, 3, 5]
        assert squat.weight == 100
        assert squat.discrepancy is None
        assert squat.day == GZCLPDay.A1

    def test_same_lift_resolves_to_t2_on_other_day(self, exercises, progression, make_exercise, make_workout):
        workout = make_workout("w1", [make_exercise("tpl-squat", [10, 10, 10], 70)])

        results = analyze_workout(workout, exercises, progression, GZCLPDay.A2)

        assert [r.progression_key for r in results] == ["squat-T2"]
        assert results[0].discrepancy is None

    def test_unknown_day_analyzes_only_t3(self, exercises, progression, make_exercise, make_workout):
        workout = make_workout("w1", a1_session(make_exercise))

        results = analyze_workout(workout, exercises, progression, None)

        assert [r.progression_key for r in results] == ["ex-lat"]

    def test_main_lift_not_scheduled_is_skipped(self, exercises, progression, make_exercise, make_workout):
        workout = make_workout("w1", [make_exercise("tpl-ohp", [3, 3, 3, 3, 3], 40)])

        assert analyze_workout(workout, exercises, progression, GZCLPDay.A1) == []

    def test_roleless_exercise_is_skipped(self, exercises, progression, make_exercise, make_workout):
        workout = make_workout("w1", [make_exercise("tpl-curl", [12, 12, 12], 15)])

        assert analyze_workout(workout, exercises, progression, GZCLPDay.A1) == []

    def test_missing_progression_entry_is_skipped(self, exercises, progression, make_exercise, make_workout):
        del progression["squat-T1"]
        workout = make_workout("w1", a1_session(make_exercise))

        results = analyze_workout(workout, exercises, progression, GZCLPDay.A1)

        assert [r.progression_key for r in results] == ["bench-T2", "ex-lat"]

    def test_weight_drift_is_flagged(self, exercises, progression, make_exercise, make_workout):
        workout = make_workout("w1", a1_session(make_exercise, squat_weight=110))

        squat = analyze_workout(workout, exercises, progression, GZCLPDay.A1)[0]

        assert squat.discrepancy is not None
        assert squat.discrepancy.stored_weight == 100
        assert squat.discrepancy.actual_weight == 110

    def test_no_working_sets_is_not_drift(self, exercises, progression, make_exercise, make_workout):
        workout = make_workout("w1", [make_exercise("tpl-squat", [], 100, warmups=3)])

        squat = analyze_workout(workout, exercises, progression, GZCLPDay.A1)[0]

        assert squat.reps == []
        assert squat.discrepancy is None


class TestWorkoutSelection:
    def test_sort_is_ascending(self, make_workout):
        later = make_workout("w2", [], days_offset=2)
        earlier = make_workout("w1", [])

        assert [w.id for w in sort_workouts_chronologically([later, earlier])] == ["w1", "w2"]

    def test_filter_drops_processed(self, make_workout):
        workouts = [make_workout("w1", []), make_workout("w2", [], days_offset=1)]

        assert [w.id for w in filter_new_workouts(workouts, {"w1"})] == ["w2"]

    def test_find_day_by_routine_id(self, routine_ids):
        assert find_day_by_routine_id("routine-b2", routine_ids) == GZCLPDay.B2
        assert find_day_by_routine_id("routine-other", routine_ids) is None
        assert find_day_by_routine_id(None, routine_ids) is None
        assert find_day_by_routine_id("routine-a1", None) is None


class TestAnalyzeWorkouts:
    def test_batch_projects_changes_in_order(
        self, exercises, progression, routine_ids, make_exercise, make_workout
    ):
        # Passed newest first to check the batch sorts them
        workouts = [
            make_workout("w2", a1_session(make_exercise, 105), days_offset=7, routine_id="routine-a1"),
            make_workout("w1", a1_session(make_exercise, 100), routine_id="routine-a1"),
        ]

        batch = analyze_workouts(workouts, exercises, progression, WeightUnit.KG, routine_days=routine_ids)

        squat = [c for c in batch.pending_changes if c.progression_key == "squat-T1"]
        assert [(c.workout_id, c.current_weight, c.new_weight) for c in squat] == [("w1", 100, 105), ("w2", 105, 110)]
        assert all(c.discrepancy is None for c in squat)
        assert batch.projected_progression["squat-T1"].current_weight == 110
        assert progression["squat-T1"].current_weight == 100

    def test_detected_days_follow_routines(self, exercises, progression, routine_ids, make_exercise, make_workout):
        workouts = [
            make_workout("w1", a1_session(make_exercise), routine_id="routine-a1"),
            make_workout("w2", [make_exercise("tpl-ohp", [3, 3, 3, 3, 3], 40)], days_offset=2, routine_id="routine-b1"),
        ]

        batch = analyze_workouts(workouts, exercises, progression, WeightUnit.KG, routine_days=routine_ids)

        assert batch.detected_days == [GZCLPDay.A1, GZCLPDay.B1]
        assert batch.last_detected_day == GZCLPDay.B1
        ohp = next(c for c in batch.pending_changes if c.workout_id == "w2")
        assert ohp.progression_key == "ohp-T1"
        assert ohp.day == GZCLPDay.B1

    def test_unassigned_routine_uses_fallback_day(self, exercises, progression, make_exercise, make_workout):
        workouts = [make_workout("w1", a1_session(make_exercise), routine_id="routine-x")]

        batch = analyze_workouts(workouts, exercises, progression, WeightUnit.KG, fallback_day=GZCLPDay.A1)

        assert {c.progression_key for c in batch.pending_changes} == {"squat-T1", "bench-T2", "ex-lat"}

    def test_no_day_yields_only_t3_changes(self, exercises, progression, make_exercise, make_workout):
        workouts = [make_workout("w1", a1_session(make_exercise))]

        batch = analyze_workouts(workouts, exercises, progression, WeightUnit.KG)

        assert [c.progression_key for c in batch.pending_changes] == ["ex-lat"]
        assert batch.detected_days == []
        assert batch.last_detected_day is None

    def test_existing_changes_are_not_duplicated(
        self, exercises, progression, routine_ids, make_exercise, make_workout
    ):
        workouts = [make_workout("w1", a1_session(make_exercise), routine_id="routine-a1")]
        first = analyze_workouts(workouts, exercises, progression, WeightUnit.KG, routine_days=routine_ids)

        again = analyze_workouts(
            workouts,
            exercises,
            progression,
            WeightUnit.KG,
            routine_days=routine_ids,
            existing=first.pending_changes,
        )

        assert len(first.pending_changes) == 3
        assert again.pending_changes == []

    def test_t2_failure_moves_stage(self, exercises, progression, routine_ids, make_exercise, make_workout):
        workouts = [
            make_workout("w1", [make_exercise("tpl-bench", [10, 9, 8], 45)], routine_id="routine-a1"),
        ]

        batch = analyze_workouts(workouts, exercises, progression, WeightUnit.KG, routine_days=routine_ids)

        change = batch.pending_changes[0]
        assert change.type == ChangeType.STAGE_CHANGE
        assert change.new_scheme == "3x8"
