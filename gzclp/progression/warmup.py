"""T1 warmup ramp.

Light working weights start from the empty bar; heavy ones ramp by
percentage of the working weight:

- Light: bar x10, 50% x5, 75% x3
- Heavy: 50% x5, 70% x3, 85% x2

Every warmup weight is rounded to the unit's plate increment and floored at
the bar. A step that rounds to the same weight as the previous one is dropped.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from gzclp.domain.enums import WeightUnit
from gzclp.progression.calculator import MIN_BAR_WEIGHT, format_weight, round_weight

# Working weights at or below this use the light ramp
HEAVY_THRESHOLD: Mapping[WeightUnit, float] = {
    WeightUnit.KG: 40.0,
    WeightUnit.LBS: 90.0,
}

# (fraction of working weight, reps); 0 means the empty bar
LIGHT_RAMP: tuple[tuple[float, int], ...] = ((0.0, 10), (0.5, 5), (0.75, 3))
HEAVY_RAMP: tuple[tuple[float, int], ...] = ((0.5, 5), (0.7, 3), (0.85, 2))


@dataclass(frozen=True)
class WarmupSet:
    weight: float
    reps: int

    def display(self, unit: WeightUnit) -> str:
        return f"{format_weight(self.weight, unit)}x{self.reps}"


def calculate_warmup_sets(working_weight: float, unit: WeightUnit) -> list[WarmupSet]:
    bar = MIN_BAR_WEIGHT[unit]
    ramp = HEAVY_RAMP if working_weight > HEAVY_THRESHOLD[unit] else LIGHT_RAMP

    sets: list[WarmupSet] = []
    for fraction, reps in ramp:
        weight = bar if fraction == 0 else max(bar, round_weight(working_weight * fraction, unit))
        if sets and sets[-1].weight == weight:
            continue
        sets.append(WarmupSet(weight=weight, reps=reps))
    return sets
