"""Tests for progression entry lifecycle and role assignment."""

import pytest

from gzclp.domain.enums import ExerciseRole, Stage, Tier
from gzclp.domain.errors import RoleConflictError
from gzclp.domain.models import ExerciseDefinition
from gzclp.progression.entries import (
    assign_role,
    create_entries_for_exercise,
    remove_entries_for_exercise,
)


def test_main_lift_gets_two_independent_entries(exercises):
    entries = create_entries_for_exercise(
        exercises["ex-squat"],
        {Tier.T1: 100, Tier.T2: 70},
        {Tier.T1: Stage.ONE},
    )

    assert set(entries) == {"squat-T1", "squat-T2"}
    assert entries["squat-T1"].current_weight == 100
    assert entries["squat-T1"].stage == Stage.ONE
    assert entries["squat-T2"].current_weight == 70
    assert entries["squat-T2"].stage == Stage.ZERO
    assert entries["squat-T2"].base_weight == 70


def test_t3_gets_one_entry_keyed_by_id(exercises):
    entries = create_entries_for_exercise(exercises["ex-lat"], {Tier.T3: 30})

    assert list(entries) == ["ex-lat"]
    assert entries["ex-lat"].current_weight == 30


def test_roleless_exercise_has_no_entries(exercises):
    assert create_entries_for_exercise(exercises["ex-curl"]) == {}


def test_remove_drops_both_main_lift_entries(exercises, progression):
    remaining = remove_entries_for_exercise(progression, exercises["ex-squat"])

    assert "squat-T1" not in remaining
    assert "squat-T2" not in remaining
    assert "bench-T1" in remaining


def test_assign_role_creates_entries(exercises, progression):
    updated_exercises, updated_progression = assign_role(
        exercises, progression, "ex-curl", ExerciseRole.T3, {Tier.T3: 12.5}
    )

    assert updated_exercises["ex-curl"].role == ExerciseRole.T3
    assert updated_progression["ex-curl"].current_weight == 12.5


def test_assign_role_replaces_previous_entries(exercises, progression):
    _, updated_progression = assign_role(exercises, progression, "ex-lat", None)

    assert "ex-lat" not in updated_progression


def test_taken_main_lift_role_is_refused(exercises, progression):
    front_squat = ExerciseDefinition(id="ex-fs", external_template_id="tpl-fs", name="Front Squat")
    exercises = {**exercises, front_squat.id: front_squat}

    with pytest.raises(RoleConflictError):
        assign_role(exercises, progression, "ex-fs", ExerciseRole.SQUAT)

    assert exercises["ex-squat"].role == ExerciseRole.SQUAT


def test_reassigning_same_role_is_noop(exercises, progression):
    updated_exercises, updated_progression = assign_role(exercises, progression, "ex-squat", ExerciseRole.SQUAT)

    assert updated_exercises == exercises
    assert updated_progression == progression
