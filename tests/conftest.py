"""Root conftest for all tests.

Shared fixtures: an isolated in-memory state repository, a configured GZCLP
program and builders for logged workouts.
"""

from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gzclp.domain.enums import ExerciseRole, GZCLPDay, SetType, Stage
from gzclp.domain.models import (
    ExerciseDefinition,
    LoggedExercise,
    LoggedSet,
    ProgressionEntry,
    WorkoutLog,
)
from gzclp.state.db_models import create_tables
from gzclp.state.repository import StateRepository

BASE_DATE = datetime(2025, 1, 6, 18, 0, tzinfo=UTC)

ROUTINE_IDS = {
    GZCLPDay.A1: "routine-a1",
    GZCLPDay.B1: "routine-b1",
    GZCLPDay.A2: "routine-a2",
    GZCLPDay.B2: "routine-b2",
}


@pytest.fixture
def db_engine():
    """Isolated in-memory SQLite engine shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    factory = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    @contextmanager
    def get_test_session() -> Generator[Session, None, None]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return get_test_session


@pytest.fixture
def repository(session_factory) -> StateRepository:
    return StateRepository(session_factory)


@pytest.fixture
def exercises() -> dict[str, ExerciseDefinition]:
    definitions = [
        ExerciseDefinition(id="ex-squat", external_template_id="tpl-squat", name="Squat", role=ExerciseRole.SQUAT),
        ExerciseDefinition(id="ex-bench", external_template_id="tpl-bench", name="Bench Press", role=ExerciseRole.BENCH),
        ExerciseDefinition(id="ex-ohp", external_template_id="tpl-ohp", name="Overhead Press", role=ExerciseRole.OHP),
        ExerciseDefinition(id="ex-dead", external_template_id="tpl-dead", name="Deadlift", role=ExerciseRole.DEADLIFT),
        ExerciseDefinition(id="ex-lat", external_template_id="tpl-lat", name="Lat Pulldown", role=ExerciseRole.T3),
        ExerciseDefinition(id="ex-curl", external_template_id="tpl-curl", name="Curl", role=None),
    ]
    return {d.id: d for d in definitions}


def _entry(exercise_id: str, weight: float, stage: Stage = Stage.ZERO) -> ProgressionEntry:
    return ProgressionEntry(exercise_id=exercise_id, current_weight=weight, base_weight=weight, stage=stage)


@pytest.fixture
def progression() -> dict[str, ProgressionEntry]:
    return {
        "squat-T1": _entry("ex-squat", 100),
        "squat-T2": _entry("ex-squat", 70),
        "bench-T1": _entry("ex-bench", 60),
        "bench-T2": _entry("ex-bench", 45),
        "ohp-T1": _entry("ex-ohp", 40),
        "ohp-T2": _entry("ex-ohp", 30),
        "deadlift-T1": _entry("ex-dead", 120),
        "deadlift-T2": _entry("ex-dead", 90),
        "ex-lat": _entry("ex-lat", 30),
    }


@pytest.fixture
def make_exercise():
    """Build a LoggedExercise: make_exercise("tpl-squat", [3, 3, 3, 3, 5], 100)."""

    def _make(
        template_id: str,
        reps: list[int | None],
        weight: float | None,
        *,
        warmups: int = 0,
        set_type: SetType = SetType.NORMAL,
    ) -> LoggedExercise:
        sets = [LoggedSet(type=SetType.WARMUP, reps=5, weight=20.0) for _ in range(warmups)]
        sets.extend(LoggedSet(type=set_type, reps=r, weight=weight) for r in reps)
        return LoggedExercise(template_id=template_id, sets=tuple(sets))

    return _make


@pytest.fixture
def make_workout():
    """Build a WorkoutLog `days_offset` days after BASE_DATE."""

    def _make(
        workout_id: str,
        exercises: list[LoggedExercise],
        *,
        days_offset: int = 0,
        routine_id: str | None = None,
    ) -> WorkoutLog:
        return WorkoutLog(
            id=workout_id,
            start_time=BASE_DATE + timedelta(days=days_offset),
            routine_id=routine_id,
            exercises=tuple(exercises),
        )

    return _make


@pytest.fixture
def routine_ids() -> dict[GZCLPDay, str]:
    return dict(ROUTINE_IDS)
