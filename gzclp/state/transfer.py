"""Export / import of the full state, and compensating multi-partition writes.

The three partitions live in separate rows that cannot be written in one
transaction from the caller's point of view. Writes that must land together
run as an ordered list of steps, each with an undo; when a step fails the
steps already applied are undone in reverse order.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from gzclp.domain.models import utc_now
from gzclp.state.errors import ImportValidationError
from gzclp.state.models import (
    STATE_VERSION,
    ConfigState,
    HistoryState,
    Partition,
    ProgressionStore,
)
from gzclp.state.repository import StateRepository


# -----------------------------
# Compensating steps
# -----------------------------
@dataclass(frozen=True)
class CompensatingStep:
    name: str
    apply: Callable[[], None]
    undo: Callable[[], None]


class CompensationError(RuntimeError):
    """Raised when a step failed and at least one undo failed as well.

    The state may be partially written; `failed_undos` names the steps whose
    undo did not run to completion.
    """

    def __init__(self, message: str, failed_undos: list[str]):
        super().__init__(message)
        self.failed_undos = failed_undos


def run_compensating_steps(steps: Sequence[CompensatingStep]) -> None:
    """Run steps in order, undoing completed ones in reverse if one fails.

    Raises:
        The failing step's exception once every completed step was undone
        CompensationError: If an undo failed too (chained to the step's error)
    """
    completed: list[CompensatingStep] = []
    for step in steps:
        try:
            step.apply()
        except Exception as e:
            logger.error(f"[TRANSFER] Step {step.name!r} failed: {e}. Undoing {len(completed)} completed steps")
            failed_undos: list[str] = []
            for done in reversed(completed):
                try:
                    done.undo()
                except Exception as undo_error:
                    logger.error(f"[TRANSFER] Undo of {done.name!r} failed: {undo_error}")
                    failed_undos.append(done.name)
            if failed_undos:
                raise CompensationError(
                    f"Step {step.name!r} failed and undo failed for {failed_undos}",
                    failed_undos,
                ) from e
            raise
        completed.append(step)
        logger.debug(f"[TRANSFER] Step {step.name!r} applied")


def partition_write_step(
    repository: StateRepository,
    partition: Partition,
    new_state: BaseModel,
    previous_state: BaseModel,
) -> CompensatingStep:
    return CompensatingStep(
        name=f"write {partition}",
        apply=lambda: repository.save(partition, new_state),
        undo=lambda: repository.save(partition, previous_state),
    )


# -----------------------------
# Export / import
# -----------------------------
class ExportBundle(BaseModel):
    version: int = STATE_VERSION
    exported_at: datetime = Field(default_factory=utc_now)
    config: ConfigState
    progression: ProgressionStore
    history: HistoryState


def export_state(repository: StateRepository) -> ExportBundle:
    return ExportBundle(
        config=repository.load_config(),
        progression=repository.load_progression(),
        history=repository.load_history(),
    )


def parse_bundle(data: dict[str, Any]) -> ExportBundle:
    """Validate raw import data.

    Raises:
        ImportValidationError: If the data is malformed or newer than supported
    """
    version = data.get("version")
    if not isinstance(version, int) or version < 1 or version > STATE_VERSION:
        raise ImportValidationError(f"Unsupported export version: {version!r} (supported: 1..{STATE_VERSION})")
    try:
        return ExportBundle.model_validate(data)
    except ValidationError as e:
        raise ImportValidationError(f"Invalid export data: {e.error_count()} errors") from e


def import_state(repository: StateRepository, bundle: ExportBundle) -> None:
    """Replace all three partitions with the bundle's, or none of them."""
    previous_config = repository.load_config()
    previous_progression = repository.load_progression()
    previous_history = repository.load_history()

    run_compensating_steps(
        [
            partition_write_step(repository, Partition.CONFIG, bundle.config, previous_config),
            partition_write_step(repository, Partition.PROGRESSION, bundle.progression, previous_progression),
            partition_write_step(repository, Partition.HISTORY, bundle.history, previous_history),
        ]
    )
    logger.info(
        f"[TRANSFER] Imported {len(bundle.config.exercises)} exercises, "
        f"{len(bundle.progression.progression)} progression entries, "
        f"{len(bundle.history.history)} history keys"
    )
