import logging

from factbuffer.client import DeliveryError, FactClient
from factbuffer.config import Settings
from factbuffer.retry import RetryExhaustedError, run_with_retries
from factbuffer.schemas import DELIVERED, FAILED, Fact, Outcome


logger = logging.getLogger(__name__)


class FactDeliverer:
    def __init__(self, client: FactClient, *, max_attempts: int, retry_delay_seconds: float) -> None:
        self.client = client
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds

    @classmethod
    def from_settings(cls, settings: Settings, client: FactClient) -> "FactDeliverer":
        return cls(
            client,
            max_attempts=settings.max_attempts,
            retry_delay_seconds=settings.retry_delay_seconds,
        )

    def deliver(self, fact: Fact) -> Outcome:
        attempt_errors: list[str] = []
        attempts = 0

        def attempt_once() -> None:
            nonlocal attempts
            attempts += 1
            self.client.attempt(fact)

        def on_attempt_failure(attempt: int, exc: Exception) -> None:
            attempt_errors.append(str(exc))
            logger.warning(
                "attempt %d for fact %s failed: %s",
                attempt,
                fact.value,
                exc,
                extra={"attempt": attempt, "value": fact.value, "error": str(exc)},
            )

        try:
            run_with_retries(
                attempt_once,
                max_attempts=self.max_attempts,
                delay_seconds=self.retry_delay_seconds,
                on_attempt_failure=on_attempt_failure,
                # Anything other than a delivery failure is a bug, not a transient fault.
                should_retry=lambda exc: isinstance(exc, DeliveryError),
            )
        except RetryExhaustedError as exc:
            return Outcome(
                fact=fact,
                status=FAILED,
                attempts=attempts,
                error=str(exc),
                attempt_errors=tuple(attempt_errors),
            )

        return Outcome(fact=fact, status=DELIVERED, attempts=attempts, attempt_errors=tuple(attempt_errors))
