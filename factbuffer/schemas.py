from dataclasses import dataclass, field


DELIVERED = "delivered"
FAILED = "failed"


@dataclass(frozen=True)
class Fact:
    period_start: str
    period_end: str
    period_key: str
    indicator_to_mo_id: int
    indicator_to_mo_fact_id: int
    value: int
    fact_time: str
    is_plan: bool
    auth_user_id: int
    comment: str


@dataclass(frozen=True)
class Outcome:
    fact: Fact
    status: str
    attempts: int
    error: str | None = None
    attempt_errors: tuple[str, ...] = field(default=())

    @property
    def delivered(self) -> bool:
        return self.status == DELIVERED


@dataclass(frozen=True)
class BatchResult:
    batch_id: int
    batch_key: str
    trigger_source: str
    status: str
    total_facts: int
    delivered_facts: int
    failed_facts: int
    elapsed_seconds: float
    outcomes: list[Outcome]
