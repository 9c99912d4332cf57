"""Tests for the T1 warmup ramp."""

import pytest

from gzclp.domain.enums import WeightUnit
from gzclp.progression.warmup import WarmupSet, calculate_warmup_sets


def ramp(working_weight: float, unit: WeightUnit = WeightUnit.KG) -> list[tuple[float, int]]:
    return [(s.weight, s.reps) for s in calculate_warmup_sets(working_weight, unit)]


@pytest.mark.parametrize(
    ("working_weight", "expected"),
    [
        (100, [(50, 5), (70, 3), (85, 2)]),
        (60, [(30, 5), (42.5, 3), (50, 2)]),
        (40, [(20, 10), (30, 3)]),
        (20, [(20, 10)]),
    ],
)
def test_kg_ramps(working_weight, expected):
    assert ramp(working_weight) == expected


def test_lbs_ramp_uses_lbs_bar_and_plates():
    assert ramp(225, WeightUnit.LBS) == [(115, 5), (160, 3), (190, 2)]
    assert ramp(90, WeightUnit.LBS) == [(45, 10), (70, 3)]


def test_heavy_ramp_never_drops_below_bar():
    assert all(weight >= 20 for weight, _ in ramp(42.5))


def test_display():
    assert WarmupSet(weight=42.5, reps=3).display(WeightUnit.KG) == "42.5kgx3"
