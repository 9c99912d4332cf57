"""GZCLP progression state machine.

Converts (tier, stage, logged reps) into the next prescribed weight and stage.
Pure math, no I/O: every function here is deterministic and safe to call
inside a sync cycle that may later be discarded.

Transitions:
- T1/T2 success: add the increment, keep the stage
- T1/T2 failure below stage 2: same weight, next stage
- T1/T2 failure at stage 2: deload to 85% (rounded, floored at the bar) and reset to stage 0
- T3 success (AMRAP >= 25): add the increment
- T3 failure: repeat the weight, never deload
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from gzclp.domain.enums import ChangeType, MuscleGroup, Stage, Tier, WeightUnit
from gzclp.domain.errors import ContractViolationError
from gzclp.domain.models import ProgressionEntry, ProgressionResult
from gzclp.progression.rep_schemes import (
    DEFAULT_CATALOG,
    T3_SUCCESS_THRESHOLD,
    RepScheme,
    RepSchemeCatalog,
)

WEIGHT_INCREMENTS: Mapping[WeightUnit, Mapping[MuscleGroup, float]] = {
    WeightUnit.KG: {MuscleGroup.UPPER: 2.5, MuscleGroup.LOWER: 5.0},
    WeightUnit.LBS: {MuscleGroup.UPPER: 5.0, MuscleGroup.LOWER: 10.0},
}

# Snap size for rounded weights (deloads)
WEIGHT_ROUNDING: Mapping[WeightUnit, float] = {
    WeightUnit.KG: 2.5,
    WeightUnit.LBS: 5.0,
}

# Empty barbell: deloads never go below it
MIN_BAR_WEIGHT: Mapping[WeightUnit, float] = {
    WeightUnit.KG: 20.0,
    WeightUnit.LBS: 45.0,
}

DELOAD_PERCENTAGE = 0.85


# -----------------------------
# Weight helpers
# -----------------------------
def _clean(weight: float) -> float:
    return round(weight, 2)


def round_weight(weight: float, unit: WeightUnit) -> float:
    """Round to the nearest plate increment of the unit (half rounds up)."""
    increment = WEIGHT_ROUNDING[unit]
    return _clean(math.floor(weight / increment + 0.5) * increment)


def get_increment(muscle_group: MuscleGroup, unit: WeightUnit) -> float:
    return WEIGHT_INCREMENTS[unit][muscle_group]


def calculate_deload(weight: float, unit: WeightUnit) -> float:
    """85% of the weight, rounded to the unit increment, never below the bar."""
    deloaded = round_weight(weight * DELOAD_PERCENTAGE, unit)
    return max(MIN_BAR_WEIGHT[unit], deloaded)


def format_weight(weight: float, unit: WeightUnit) -> str:
    """Format a weight for reasons and CLI output ("100kg", "102.5kg")."""
    if weight == int(weight):
        return f"{int(weight)}{unit}"
    return f"{weight:g}{unit}"


# -----------------------------
# Success determination
# -----------------------------
def meets_scheme(reps: Sequence[int], scheme: RepScheme) -> bool:
    """True when every prescribed set reached the rep target.

    Extra reps on the AMRAP set never fail it. Fewer logged sets than
    prescribed is a failure.
    """
    if len(reps) < scheme.sets:
        return False
    return all(rep >= scheme.reps for rep in reps[: scheme.sets])


def is_t1_success(reps: Sequence[int], stage: Stage, catalog: RepSchemeCatalog = DEFAULT_CATALOG) -> bool:
    return meets_scheme(reps, catalog.get(Tier.T1, stage))


def is_t2_success(reps: Sequence[int], stage: Stage, catalog: RepSchemeCatalog = DEFAULT_CATALOG) -> bool:
    return meets_scheme(reps, catalog.get(Tier.T2, stage))


def t3_amrap_reps(reps: Sequence[int]) -> int:
    return reps[-1] if reps else 0


def is_t3_success(reps: Sequence[int]) -> bool:
    """T3 passes on the final (AMRAP) set alone; earlier volume is irrelevant."""
    if not reps:
        return False
    return t3_amrap_reps(reps) >= T3_SUCCESS_THRESHOLD


# -----------------------------
# T1 / T2
# -----------------------------
def _calculate_main_lift_progression(
    tier: Tier,
    entry: ProgressionEntry,
    reps: Sequence[int],
    increment: float,
    unit: WeightUnit,
    catalog: RepSchemeCatalog,
) -> ProgressionResult:
    stage = Stage(entry.stage)
    scheme = catalog.get(tier, stage)
    success = meets_scheme(reps, scheme)
    weight = entry.current_weight
    at = format_weight(weight, unit)

    # AMRAP bookkeeping only applies where the scheme's last set is AMRAP
    amrap_reps: int | None = None
    new_amrap_record: int | None = None
    amrap_note = ""
    if scheme.amrap:
        amrap_reps = reps[scheme.sets - 1] if len(reps) >= scheme.sets else 0
        new_amrap_record = max(entry.amrap_record, amrap_reps)
        amrap_note = f" (AMRAP: {amrap_reps} reps)"

    if success:
        return ProgressionResult(
            type=ChangeType.PROGRESS,
            new_weight=_clean(weight + increment),
            new_stage=stage,
            new_scheme=scheme.display,
            success=True,
            reason=f"Completed {scheme.display} at {at}{amrap_note}. Adding {format_weight(increment, unit)}.",
            amrap_reps=amrap_reps,
            new_amrap_record=new_amrap_record,
        )

    if stage < Stage.TWO:
        next_stage = Stage(stage + 1)
        next_scheme = catalog.get(tier, next_stage)
        return ProgressionResult(
            type=ChangeType.STAGE_CHANGE,
            new_weight=weight,
            new_stage=next_stage,
            new_scheme=next_scheme.display,
            success=False,
            reason=f"Failed to complete {scheme.display} at {at}{amrap_note}. Moving to {next_scheme.display}.",
            amrap_reps=amrap_reps,
            new_amrap_record=new_amrap_record,
        )

    deload_weight = calculate_deload(weight, unit)
    restart_scheme = catalog.get(tier, Stage.ZERO)
    return ProgressionResult(
        type=ChangeType.DELOAD,
        new_weight=deload_weight,
        new_stage=Stage.ZERO,
        new_scheme=restart_scheme.display,
        success=False,
        reason=(
            f"Failed {scheme.display} at {at}{amrap_note}. "
            f"Deloading to {format_weight(deload_weight, unit)} and restarting at {restart_scheme.display}."
        ),
        amrap_reps=amrap_reps,
        new_amrap_record=new_amrap_record,
        new_base_weight=deload_weight,
    )


def calculate_t1_progression(
    entry: ProgressionEntry,
    reps: Sequence[int],
    muscle_group: MuscleGroup,
    unit: WeightUnit,
    catalog: RepSchemeCatalog = DEFAULT_CATALOG,
) -> ProgressionResult:
    return _calculate_main_lift_progression(
        Tier.T1, entry, reps, get_increment(muscle_group, unit), unit, catalog
    )


def calculate_t2_progression(
    entry: ProgressionEntry,
    reps: Sequence[int],
    muscle_group: MuscleGroup,
    unit: WeightUnit,
    catalog: RepSchemeCatalog = DEFAULT_CATALOG,
) -> ProgressionResult:
    return _calculate_main_lift_progression(
        Tier.T2, entry, reps, get_increment(muscle_group, unit), unit, catalog
    )


# -----------------------------
# T3
# -----------------------------
def calculate_t3_progression(
    entry: ProgressionEntry,
    reps: Sequence[int],
    muscle_group: MuscleGroup,
    unit: WeightUnit,
    custom_increment: float | None = None,
    catalog: RepSchemeCatalog = DEFAULT_CATALOG,
) -> ProgressionResult:
    scheme = catalog.get(Tier.T3, Stage.ZERO)
    amrap_reps = t3_amrap_reps(reps)
    increment = custom_increment if custom_increment is not None else get_increment(muscle_group, unit)
    at = format_weight(entry.current_weight, unit)
    new_amrap_record = max(entry.amrap_record, amrap_reps)

    if is_t3_success(reps):
        return ProgressionResult(
            type=ChangeType.PROGRESS,
            new_weight=_clean(entry.current_weight + increment),
            new_stage=Stage.ZERO,
            new_scheme=scheme.display,
            success=True,
            reason=(
                f"Hit {amrap_reps} reps on AMRAP set ({T3_SUCCESS_THRESHOLD}+ required) at {at}. "
                f"Adding {format_weight(increment, unit)}."
            ),
            amrap_reps=amrap_reps,
            new_amrap_record=new_amrap_record,
        )

    return ProgressionResult(
        type=ChangeType.REPEAT,
        new_weight=entry.current_weight,
        new_stage=Stage.ZERO,
        new_scheme=scheme.display,
        success=False,
        reason=f"Hit {amrap_reps} reps on AMRAP set (need {T3_SUCCESS_THRESHOLD}+) at {at}. Repeat same weight.",
        amrap_reps=amrap_reps,
        new_amrap_record=new_amrap_record,
    )


# -----------------------------
# Dispatcher
# -----------------------------
def calculate_progression(
    tier: Tier,
    entry: ProgressionEntry,
    reps: Sequence[int],
    muscle_group: MuscleGroup,
    unit: WeightUnit,
    custom_increment: float | None = None,
    *,
    catalog: RepSchemeCatalog = DEFAULT_CATALOG,
) -> ProgressionResult:
    """Calculate the next weight/stage for any tier.

    Args:
        tier: Tier the exercise occupied in the analyzed workout
        entry: Progression record selected for that tier
        reps: Working-set reps in logged order (warmups excluded)
        muscle_group: Selects the default increment
        unit: Active weight unit
        custom_increment: Per-exercise increment, honored for T3 only
        catalog: Rep-scheme catalog

    Returns:
        ProgressionResult describing the proposed transition

    Raises:
        ContractViolationError: If tier is not a Tier member
    """
    if tier == Tier.T1:
        return calculate_t1_progression(entry, reps, muscle_group, unit, catalog)
    if tier == Tier.T2:
        return calculate_t2_progression(entry, reps, muscle_group, unit, catalog)
    if tier == Tier.T3:
        return calculate_t3_progression(entry, reps, muscle_group, unit, custom_increment, catalog)
    raise ContractViolationError(f"Unknown tier: {tier!r}")
