"""State repository.

Loads and saves the three state partitions. Every partition carries a
revision. A save made on top of a revision this repository has not seen
still wins (last writer wins) but is reported to subscribers through a
PartitionChanged notification instead of being overwritten silently.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from gzclp.db.session import get_session
from gzclp.state.db_models import StatePartition
from gzclp.state.errors import StateCorruptionError
from gzclp.state.models import (
    PARTITION_MODELS,
    ConfigState,
    HistoryState,
    Partition,
    ProgressionStore,
)

StateT = TypeVar("StateT", bound=BaseModel)

SessionFactory = Callable[[], AbstractContextManager[Session]]


@dataclass(frozen=True)
class PartitionChanged:
    """Emitted when a save overwrote a revision written by another context."""

    partition: Partition
    expected_revision: int
    found_revision: int
    new_revision: int


Subscriber = Callable[[PartitionChanged], None]


class StateRepository:
    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory
        self._seen_revisions: dict[Partition, int] = {}
        self._subscribers: list[Subscriber] = []

    # -----------------------------
    # Subscriptions
    # -----------------------------
    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, event: PartitionChanged) -> None:
        for callback in list(self._subscribers):
            callback(event)

    # -----------------------------
    # Load / save
    # -----------------------------
    def revision(self, partition: Partition) -> int:
        with self._session_factory() as session:
            row = session.get(StatePartition, partition.value)
            return row.revision if row is not None else 0

    def load(self, partition: Partition, model: type[StateT]) -> StateT:
        """Load a partition, returning the model's defaults when nothing is stored.

        Raises:
            StateCorruptionError: If the stored payload does not validate
        """
        with self._session_factory() as session:
            row = session.get(StatePartition, partition.value)
            if row is None:
                self._seen_revisions[partition] = 0
                return model()
            payload = row.payload
            revision = row.revision

        try:
            state = model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"[STATE] Partition {partition} failed validation: {e}")
            raise StateCorruptionError(f"Stored {partition} partition is corrupt") from e

        self._seen_revisions[partition] = revision
        return state

    def save(self, partition: Partition, state: BaseModel, *, expected_revision: int | None = None) -> int:
        """Persist a partition and return its new revision.

        Args:
            partition: Partition to write
            state: Partition model instance
            expected_revision: Revision the write is based on. Defaults to the
                revision this repository last loaded or saved.

        Returns:
            The new revision
        """
        expected_model = PARTITION_MODELS[partition]
        if not isinstance(state, expected_model):
            raise TypeError(f"Partition {partition} expects {expected_model.__name__}, got {type(state).__name__}")

        expected = expected_revision if expected_revision is not None else self._seen_revisions.get(partition, 0)
        payload = state.model_dump(mode="json")

        with self._session_factory() as session:
            row = session.get(StatePartition, partition.value)
            found = row.revision if row is not None else 0
            new_revision = found + 1
            now = datetime.now(timezone.utc)
            if row is None:
                session.add(StatePartition(name=partition.value, payload=payload, revision=new_revision, updated_at=now))
            else:
                row.payload = payload
                row.revision = new_revision
                row.updated_at = now

        self._seen_revisions[partition] = new_revision

        if found != expected:
            logger.warning(
                f"[STATE] Partition {partition} changed elsewhere (expected revision {expected}, found {found}); "
                f"overwriting with revision {new_revision}"
            )
            self._notify(
                PartitionChanged(
                    partition=partition,
                    expected_revision=expected,
                    found_revision=found,
                    new_revision=new_revision,
                )
            )
        return new_revision

    # -----------------------------
    # Typed helpers
    # -----------------------------
    def load_config(self) -> ConfigState:
        return self.load(Partition.CONFIG, ConfigState)

    def load_progression(self) -> ProgressionStore:
        return self.load(Partition.PROGRESSION, ProgressionStore)

    def load_history(self) -> HistoryState:
        return self.load(Partition.HISTORY, HistoryState)

    def save_config(self, state: ConfigState) -> int:
        return self.save(Partition.CONFIG, state)

    def save_progression(self, state: ProgressionStore) -> int:
        return self.save(Partition.PROGRESSION, state)

    def save_history(self, state: HistoryState) -> int:
        return self.save(Partition.HISTORY, state)
