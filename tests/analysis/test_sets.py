"""Tests for working-set extraction."""

from gzclp.analysis.sets import extract_reps, extract_sets, extract_working_weight
from gzclp.domain.enums import SetType
from gzclp.domain.models import LoggedSet


def test_warmups_are_excluded(make_exercise):
    logged = make_exercise("tpl-squat", [3, 3, 3, 3, 5], 100, warmups=3)

    extracted = extract_sets(logged.sets)

    assert extracted.reps == [3, 3, 3, 3, 5]
    assert extracted.weight == 100


def test_missing_reps_count_as_zero():
    sets = [LoggedSet(reps=3, weight=100), LoggedSet(reps=None, weight=100)]

    assert extract_reps(sets) == [3, 0]


def test_dropsets_count_and_failure_sets_do_not():
    sets = [
        LoggedSet(type=SetType.NORMAL, reps=10, weight=50),
        LoggedSet(type=SetType.DROPSET, reps=8, weight=40),
        LoggedSet(type=SetType.FAILURE, reps=4, weight=50),
    ]

    assert extract_reps(sets) == [10, 8]


def test_weight_comes_from_first_working_set():
    sets = [
        LoggedSet(type=SetType.WARMUP, reps=5, weight=20),
        LoggedSet(reps=3, weight=100),
        LoggedSet(reps=3, weight=95),
    ]

    assert extract_working_weight(sets) == 100


def test_no_working_sets_means_zero_weight(make_exercise):
    logged = make_exercise("tpl-squat", [], 100, warmups=2)

    extracted = extract_sets(logged.sets)

    assert extracted.reps == []
    assert extracted.weight == 0
