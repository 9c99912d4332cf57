"""Applying, rejecting and modifying pending changes.

Every function returns new objects; the progression map passed in is never
mutated in place.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from loguru import logger

from gzclp.domain.enums import ChangeType, WeightUnit
from gzclp.domain.models import PendingChange, ProgressionEntry, ProgressionKey
from gzclp.progression.calculator import format_weight


def apply_pending_change(
    progression: Mapping[ProgressionKey, ProgressionEntry],
    change: PendingChange,
) -> dict[ProgressionKey, ProgressionEntry]:
    """Apply one change to the record addressed by its progression key.

    Only that record is touched. A change whose key is unknown leaves the map
    as it was.
    """
    updated = dict(progression)
    entry = updated.get(change.progression_key)
    if entry is None:
        logger.warning(f"[APPLY] No progression entry for {change.progression_key}, change {change.id} ignored")
        return updated

    fields: dict[str, object] = {
        "current_weight": change.new_weight,
        "stage": change.new_stage,
        "last_workout_id": change.workout_id,
        "last_workout_date": change.workout_date,
    }
    if change.type == ChangeType.DELOAD:
        fields["base_weight"] = change.new_weight
    if change.new_amrap_record is not None and change.new_amrap_record > entry.amrap_record:
        fields["amrap_record"] = change.new_amrap_record
        fields["amrap_record_date"] = change.workout_date

    updated[change.progression_key] = entry.model_copy(update=fields)
    return updated


def apply_all_pending_changes(
    progression: Mapping[ProgressionKey, ProgressionEntry],
    changes: Iterable[PendingChange],
) -> dict[ProgressionKey, ProgressionEntry]:
    """Apply changes in order so later ones build on earlier ones."""
    updated = dict(progression)
    for change in changes:
        updated = apply_pending_change(updated, change)
    return updated


def modify_pending_change_weight(change: PendingChange, new_weight: float, unit: WeightUnit) -> PendingChange:
    if new_weight < 0:
        raise ValueError(f"Weight must be non-negative, got {new_weight}")
    reason = (
        f"Modified by user: {format_weight(change.current_weight, unit)} -> {format_weight(new_weight, unit)} "
        f"(original suggestion: {format_weight(change.new_weight, unit)})"
    )
    return change.model_copy(update={"new_weight": new_weight, "reason": reason})


def reject_pending_change(changes: Sequence[PendingChange], change_id: str) -> list[PendingChange]:
    return [change for change in changes if change.id != change_id]


def requires_review(change: PendingChange) -> bool:
    """Changes built on drifted weights always wait for the user."""
    return change.discrepancy is not None


def partition_for_auto_apply(
    changes: Iterable[PendingChange],
    blocked_keys: Iterable[ProgressionKey] = (),
) -> tuple[list[PendingChange], list[PendingChange]]:
    """Split changes into (auto-applicable, queued for review).

    Once a progression key has a change waiting for review, every later
    change for that key waits too, so nothing is applied on top of an
    undecided proposal. `blocked_keys` seeds that set with keys that
    already have a change queued from an earlier sync.
    """
    auto: list[PendingChange] = []
    queued: list[PendingChange] = []
    blocked: set[ProgressionKey] = set(blocked_keys)

    for change in changes:
        if change.progression_key in blocked or requires_review(change):
            blocked.add(change.progression_key)
            queued.append(change)
        else:
            auto.append(change)

    return auto, queued
