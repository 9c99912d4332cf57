"""Rep-scheme catalog.

Immutable (tier, stage) -> set/rep prescription lookup. The catalog is a
value passed into the calculator rather than module state, so alternative
prescriptions can be injected in tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from gzclp.domain.enums import Stage, Tier
from gzclp.domain.errors import ContractViolationError

T3_SUCCESS_THRESHOLD = 25


@dataclass(frozen=True)
class RepScheme:
    """Immutable set/rep prescription.

    Attributes:
        sets: Number of prescribed working sets
        reps: Rep target for every prescribed set
        amrap: Whether the final set is as-many-reps-as-possible
        display: Human readable scheme ("5x3+")
    """

    sets: int
    reps: int
    amrap: bool
    display: str


@dataclass(frozen=True)
class RepSchemeCatalog:
    t1: Mapping[Stage, RepScheme]
    t2: Mapping[Stage, RepScheme]
    t3: RepScheme

    def get(self, tier: Tier, stage: Stage) -> RepScheme:
        """Return the scheme for a tier/stage. T3 ignores the stage."""
        if tier == Tier.T1:
            return self.t1[Stage(stage)]
        if tier == Tier.T2:
            return self.t2[Stage(stage)]
        if tier == Tier.T3:
            return self.t3
        raise ContractViolationError(f"Unknown tier: {tier!r}")


DEFAULT_CATALOG = RepSchemeCatalog(
    t1=MappingProxyType(
        {
            Stage.ZERO: RepScheme(sets=5, reps=3, amrap=True, display="5x3+"),
            Stage.ONE: RepScheme(sets=6, reps=2, amrap=True, display="6x2+"),
            Stage.TWO: RepScheme(sets=10, reps=1, amrap=True, display="10x1+"),
        }
    ),
    t2=MappingProxyType(
        {
            Stage.ZERO: RepScheme(sets=3, reps=10, amrap=False, display="3x10"),
            Stage.ONE: RepScheme(sets=3, reps=8, amrap=False, display="3x8"),
            Stage.TWO: RepScheme(sets=3, reps=6, amrap=False, display="3x6"),
        }
    ),
    t3=RepScheme(sets=3, reps=15, amrap=True, display="3x15+"),
)


def get_rep_scheme(tier: Tier, stage: Stage, catalog: RepSchemeCatalog = DEFAULT_CATALOG) -> RepScheme:
    return catalog.get(tier, stage)
