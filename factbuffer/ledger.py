import json

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from factbuffer.client import build_form
from factbuffer.db_models import Base, DeliveryBatch, FactAttemptError, FactOutcome, utc_now
from factbuffer.schemas import DELIVERED, Outcome


def build_session_factory(database_url: str) -> sessionmaker[Session]:
    connect_args: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        # Scheduled batches open sessions from scheduler worker threads.
        connect_args["check_same_thread"] = False

    engine = create_engine(database_url, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_batch(db: Session, *, batch_key: str, trigger_source: str, total_facts: int) -> DeliveryBatch:
    batch = DeliveryBatch(
        batch_key=batch_key,
        trigger_source=trigger_source,
        status="queued",
        total_facts=total_facts,
    )
    db.add(batch)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValueError(f"batch key already used: {batch_key}") from exc

    db.refresh(batch)
    return batch


def mark_batch_running(db: Session, batch: DeliveryBatch) -> None:
    batch.status = "running"
    batch.started_at = utc_now()
    batch.error = None
    db.commit()


def store_outcomes(db: Session, *, batch_id: int, outcomes: list[Outcome]) -> None:
    for index, outcome in enumerate(outcomes):
        row = FactOutcome(
            batch_id=batch_id,
            fact_index=index,
            value=outcome.fact.value,
            indicator_to_mo_id=outcome.fact.indicator_to_mo_id,
            status=outcome.status,
            attempts=outcome.attempts,
            error=outcome.error,
            payload=json.dumps(build_form(outcome.fact), sort_keys=True),
        )
        row.attempt_errors = [
            FactAttemptError(attempt=attempt, error=error)
            for attempt, error in enumerate(outcome.attempt_errors, start=1)
        ]
        db.add(row)
    db.commit()


def mark_batch_completed(db: Session, batch: DeliveryBatch, *, outcomes: list[Outcome], elapsed_ms: float) -> None:
    delivered = sum(1 for outcome in outcomes if outcome.status == DELIVERED)
    batch.status = "completed"
    batch.total_facts = len(outcomes)
    batch.delivered_facts = delivered
    batch.failed_facts = len(outcomes) - delivered
    batch.elapsed_ms = elapsed_ms
    batch.completed_at = utc_now()
    batch.error = None
    db.commit()


def mark_batch_failed(db: Session, batch: DeliveryBatch, *, error: str) -> None:
    batch.status = "failed"
    batch.error = error
    batch.completed_at = utc_now()
    db.commit()
