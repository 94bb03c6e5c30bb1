from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
import logging
import threading

from factbuffer.delivery import FactDeliverer
from factbuffer.schemas import FAILED, Fact, Outcome


logger = logging.getLogger(__name__)


class PendingCounter:
    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def add(self, delta: int) -> None:
        with self._cond:
            if self._count + delta < 0:
                raise ValueError("pending count cannot go negative")
            self._count += delta
            if self._count == 0:
                self._cond.notify_all()

    def done(self) -> None:
        self.add(-1)

    def wait(self, timeout: float | None = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


class FactBuffer:
    def __init__(self, deliverer: FactDeliverer, *, max_workers: int = 0) -> None:
        self.deliverer = deliverer
        self._queue: list[Fact] = []
        self._queue_lock = threading.Lock()
        self._pending = PendingCounter()
        self._outcomes: dict[int, Outcome] = {}
        self._outcomes_lock = threading.Lock()
        self._executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fact") if max_workers > 0 else None
        )

    @property
    def queued(self) -> int:
        with self._queue_lock:
            return len(self._queue)

    @property
    def pending(self) -> int:
        return self._pending.count

    def add_facts(self, facts: Sequence[Fact]) -> None:
        facts = list(facts)
        with self._queue_lock:
            first_position = len(self._queue)
            self._queue.extend(facts)

        # Count every task before any of them starts so join cannot return early.
        self._pending.add(len(facts))
        for position, fact in enumerate(facts, start=first_position):
            self._launch(position, fact)

    def join(self) -> list[Outcome]:
        self._pending.wait()
        with self._outcomes_lock:
            return [self._outcomes[position] for position in sorted(self._outcomes)]

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def _launch(self, position: int, fact: Fact) -> None:
        try:
            if self._executor is not None:
                self._executor.submit(self._process, position, fact)
            else:
                threading.Thread(target=self._process, args=(position, fact), name=f"fact-{position}").start()
        except RuntimeError as exc:
            logger.exception("could not start delivery of fact %s", fact.value, extra={"value": fact.value})
            self._finish(position, Outcome(fact=fact, status=FAILED, attempts=0, error=f"not started: {exc}"))

    def _process(self, position: int, fact: Fact) -> None:
        try:
            outcome = self.deliverer.deliver(fact)
        except Exception as exc:
            logger.exception("delivery of fact %s crashed", fact.value, extra={"value": fact.value})
            outcome = Outcome(fact=fact, status=FAILED, attempts=0, error=str(exc))
        self._finish(position, outcome)

    def _finish(self, position: int, outcome: Outcome) -> None:
        try:
            if outcome.delivered:
                logger.info(
                    "fact %s delivered after %d attempts",
                    outcome.fact.value,
                    outcome.attempts,
                    extra={"value": outcome.fact.value, "attempts": outcome.attempts},
                )
            else:
                logger.error(
                    "fact %s failed: %s",
                    outcome.fact.value,
                    outcome.error,
                    extra={"value": outcome.fact.value, "error": outcome.error},
                )
            with self._outcomes_lock:
                self._outcomes[position] = outcome
        finally:
            self._pending.done()
