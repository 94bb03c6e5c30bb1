from collections.abc import Sequence
import logging
import time

from sqlalchemy.orm import Session, sessionmaker

from factbuffer.buffer import FactBuffer
from factbuffer.client import FactClient
from factbuffer.config import Settings
from factbuffer.delivery import FactDeliverer
from factbuffer.ledger import create_batch, mark_batch_completed, mark_batch_failed, mark_batch_running, store_outcomes
from factbuffer.schemas import BatchResult, DELIVERED, Fact, Outcome


logger = logging.getLogger(__name__)


class BatchRunner:
    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker[Session],
        client: FactClient | None = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.client = client

    def run(self, facts: Sequence[Fact], *, batch_key: str, trigger_source: str = "manual") -> BatchResult:
        facts = list(facts)
        with self.session_factory() as db:
            batch = create_batch(db, batch_key=batch_key, trigger_source=trigger_source, total_facts=len(facts))
            mark_batch_running(db, batch)

            logger.info(
                "batch %s started with %d facts",
                batch_key,
                len(facts),
                extra={"batch_key": batch_key, "total_facts": len(facts)},
            )
            started = time.perf_counter()
            try:
                outcomes = self._deliver(facts)
                elapsed = time.perf_counter() - started
                store_outcomes(db, batch_id=batch.id, outcomes=outcomes)
                mark_batch_completed(db, batch, outcomes=outcomes, elapsed_ms=elapsed * 1000)
            except Exception as exc:
                db.rollback()
                mark_batch_failed(db, batch, error=str(exc))
                logger.exception("batch %s could not be completed", batch_key, extra={"batch_key": batch_key})
                raise

            delivered = sum(1 for outcome in outcomes if outcome.status == DELIVERED)
            logger.info(
                "batch %s finished in %.3fs: %d delivered, %d failed",
                batch_key,
                elapsed,
                delivered,
                len(outcomes) - delivered,
                extra={
                    "batch_key": batch_key,
                    "elapsed_seconds": round(elapsed, 3),
                    "delivered_facts": delivered,
                    "failed_facts": len(outcomes) - delivered,
                },
            )
            return BatchResult(
                batch_id=batch.id,
                batch_key=batch.batch_key,
                trigger_source=batch.trigger_source,
                status=batch.status,
                total_facts=len(outcomes),
                delivered_facts=delivered,
                failed_facts=len(outcomes) - delivered,
                elapsed_seconds=elapsed,
                outcomes=outcomes,
            )

    def _deliver(self, facts: list[Fact]) -> list[Outcome]:
        client = self.client or FactClient(self.settings)
        buffer = FactBuffer(
            FactDeliverer.from_settings(self.settings, client),
            max_workers=self.settings.max_workers,
        )
        try:
            buffer.add_facts(facts)
            return buffer.join()
        finally:
            buffer.close()
            if self.client is None:
                client.close()
