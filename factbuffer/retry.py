import time
from collections.abc import Callable
from typing import TypeVar


T = TypeVar("T")


class RetryExhaustedError(RuntimeError):
    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(f"failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def run_with_retries(
    fn: Callable[[], T],
    *,
    max_attempts: int,
    delay_seconds: float,
    on_attempt_failure: Callable[[int, Exception], None] | None = None,
    should_retry: Callable[[Exception], bool] | None = None,
) -> T:
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last_error: Exception | None = None
    attempt = 0

    while attempt < max_attempts:
        attempt += 1
        try:
            return fn()
        except Exception as exc:
            last_error = exc
            if on_attempt_failure:
                on_attempt_failure(attempt, exc)

            retry_allowed = True if should_retry is None else should_retry(exc)
            if attempt >= max_attempts or not retry_allowed:
                break
            # Constant delay, only between attempts.
            time.sleep(delay_seconds)

    raise RetryExhaustedError(attempt, last_error) from last_error
