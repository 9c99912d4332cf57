"""Set extraction from logged exercises.

Warmup sets never count toward progression. A set logged without a rep count
is a failed set (0 reps), not missing data.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from gzclp.domain.enums import SetType
from gzclp.domain.models import LoggedSet

WORKING_SET_TYPES = frozenset({SetType.NORMAL, SetType.DROPSET})


@dataclass(frozen=True)
class ExtractedSets:
    reps: list[int]
    weight: float


def working_sets(sets: Sequence[LoggedSet]) -> list[LoggedSet]:
    return [s for s in sets if s.type in WORKING_SET_TYPES]


def extract_reps(sets: Sequence[LoggedSet]) -> list[int]:
    return [s.reps if s.reps is not None else 0 for s in working_sets(sets)]


def extract_working_weight(sets: Sequence[LoggedSet]) -> float:
    """Weight of the first working set, 0 when there is none."""
    for s in working_sets(sets):
        return s.weight or 0.0
    return 0.0


def extract_sets(sets: Sequence[LoggedSet]) -> ExtractedSets:
    return ExtractedSets(reps=extract_reps(sets), weight=extract_working_weight(sets))
