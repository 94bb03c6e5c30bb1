from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class DeliveryBatch(Base):
    __tablename__ = "delivery_batches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_key: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    trigger_source: Mapped[str] = mapped_column(String(32), default="manual")
    status: Mapped[str] = mapped_column(String(32), default="queued")
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    total_facts: Mapped[int] = mapped_column(Integer, default=0)
    delivered_facts: Mapped[int] = mapped_column(Integer, default=0)
    failed_facts: Mapped[int] = mapped_column(Integer, default=0)
    elapsed_ms: Mapped[float | None] = mapped_column(Float, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    outcomes: Mapped[list["FactOutcome"]] = relationship(back_populates="batch", cascade="all, delete-orphan")


class FactOutcome(Base):
    __tablename__ = "fact_outcomes"
    __table_args__ = (UniqueConstraint("batch_id", "fact_index", name="uq_batch_fact"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("delivery_batches.id", ondelete="CASCADE"), index=True)
    fact_index: Mapped[int] = mapped_column(Integer)
    value: Mapped[int] = mapped_column(Integer)
    indicator_to_mo_id: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(32))
    attempts: Mapped[int] = mapped_column(Integer)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[str] = mapped_column(Text)

    batch: Mapped[DeliveryBatch] = relationship(back_populates="outcomes")
    attempt_errors: Mapped[list["FactAttemptError"]] = relationship(
        back_populates="outcome", cascade="all, delete-orphan"
    )


class FactAttemptError(Base):
    __tablename__ = "fact_attempt_errors"
    __table_args__ = (UniqueConstraint("outcome_id", "attempt", name="uq_outcome_attempt"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    outcome_id: Mapped[int] = mapped_column(ForeignKey("fact_outcomes.id", ondelete="CASCADE"), index=True)
    attempt: Mapped[int] = mapped_column(Integer)
    error: Mapped[str] = mapped_column(Text)

    outcome: Mapped[FactOutcome] = relationship(back_populates="attempt_errors")
