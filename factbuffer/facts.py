import dataclasses
import json
from pathlib import Path

from factbuffer.schemas import Fact


FACT_FIELDS = tuple(field.name for field in dataclasses.fields(Fact))


def sample_facts(count: int = 10) -> list[Fact]:
    return [
        Fact(
            period_start="2024-12-01",
            period_end="2024-12-31",
            period_key="month",
            indicator_to_mo_id=227373,
            indicator_to_mo_fact_id=0,
            value=number,
            fact_time="2024-12-31",
            is_plan=False,
            auth_user_id=40,
            comment=f"buffer Last_name {number}",
        )
        for number in range(1, count + 1)
    ]


def _parse_flag(raw: object) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes")
    return bool(raw)


def parse_fact(record: dict[str, object]) -> Fact:
    missing = [name for name in FACT_FIELDS if name not in record]
    if missing:
        raise ValueError(f"fact is missing fields: {', '.join(missing)}")

    return Fact(
        period_start=str(record["period_start"]),
        period_end=str(record["period_end"]),
        period_key=str(record["period_key"]),
        indicator_to_mo_id=int(record["indicator_to_mo_id"]),
        indicator_to_mo_fact_id=int(record["indicator_to_mo_fact_id"]),
        value=int(record["value"]),
        fact_time=str(record["fact_time"]),
        is_plan=_parse_flag(record["is_plan"]),
        auth_user_id=int(record["auth_user_id"]),
        comment=str(record["comment"]),
    )


def load_facts(input_path: Path) -> list[Fact]:
    if not input_path.exists():
        raise FileNotFoundError(f"input file not found: {input_path}")

    facts: list[Fact] = []
    with input_path.open("r", encoding="utf-8") as infile:
        for line in infile:
            line = line.strip()
            if not line:
                continue
            facts.append(parse_fact(json.loads(line)))
    return facts
