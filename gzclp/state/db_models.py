from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Engine, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class StatePartition(Base):
    """One persisted state partition.

    Stores:
    - name: Partition name (config, progression, history)
    - payload: JSON dump of the partition model
    - revision: Incremented on every save, used to detect concurrent writers
    - updated_at: Timestamp of the last save
    """

    __tablename__ = "state_partitions"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


def create_tables(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
