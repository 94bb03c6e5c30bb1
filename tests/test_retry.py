import pytest

from factbuffer import retry
from factbuffer.client import ServerRejectedError
from factbuffer.retry import RetryExhaustedError, run_with_retries


@pytest.fixture()
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(retry.time, "sleep", recorded.append)
    return recorded


def test_success_returns_after_one_call(sleeps) -> None:
    calls: list[int] = []

    def fn() -> str:
        calls.append(1)
        return "ok"

    assert run_with_retries(fn, max_attempts=3, delay_seconds=1.0) == "ok"
    assert len(calls) == 1
    assert sleeps == []


def test_persistent_rejection_exhausts_budget(sleeps) -> None:
    calls: list[int] = []
    failures: list[int] = []

    def fn() -> None:
        calls.append(1)
        raise ServerRejectedError(500, "err")

    with pytest.raises(RetryExhaustedError) as excinfo:
        run_with_retries(
            fn,
            max_attempts=3,
            delay_seconds=1.0,
            on_attempt_failure=lambda attempt, exc: failures.append(attempt),
        )

    assert len(calls) == 3
    assert sleeps == [1.0, 1.0]
    assert failures == [1, 2, 3]
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, ServerRejectedError)
    assert excinfo.value.last_error.status_code == 500
    assert excinfo.value.last_error.body == "err"
    assert excinfo.value.__cause__ is excinfo.value.last_error


def test_stops_at_first_success(sleeps) -> None:
    outcomes = [ServerRejectedError(503, "busy"), None, None]

    def fn() -> str:
        error = outcomes.pop(0)
        if error is not None:
            raise error
        return "ok"

    assert run_with_retries(fn, max_attempts=3, delay_seconds=0.5) == "ok"
    assert len(outcomes) == 1
    assert sleeps == [0.5]


def test_non_retryable_error_stops_immediately(sleeps) -> None:
    calls: list[int] = []

    def fn() -> None:
        calls.append(1)
        raise KeyError("boom")

    with pytest.raises(RetryExhaustedError) as excinfo:
        run_with_retries(fn, max_attempts=3, delay_seconds=1.0, should_retry=lambda exc: False)

    assert len(calls) == 1
    assert sleeps == []
    assert excinfo.value.attempts == 1


def test_attempt_budget_must_be_positive() -> None:
    with pytest.raises(ValueError):
        run_with_retries(lambda: None, max_attempts=0, delay_seconds=0)
