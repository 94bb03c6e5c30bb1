import argparse
from datetime import UTC, datetime
import logging
from pathlib import Path

from factbuffer.config import get_settings
from factbuffer.facts import load_facts, sample_facts
from factbuffer.ledger import build_session_factory
from factbuffer.runner import BatchRunner
from factbuffer.scheduler import start_scheduler


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deliver facts to the facts API")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="deliver one batch of facts")
    run_parser.add_argument("--input", required=False, help="JSONL file of facts; defaults to the sample batch")
    run_parser.add_argument("--count", type=int, default=10, help="size of the sample batch")
    run_parser.add_argument("--batch-key", required=False, help="unique key recorded for this batch")
    run_parser.add_argument(
        "--trigger-source",
        default="manual",
        choices=["manual", "scheduled"],
        help="Metadata label for how this batch was triggered",
    )

    schedule_parser = subparsers.add_parser("schedule", help="start daily delivery scheduler")
    schedule_parser.add_argument("--run-now", action="store_true", help="also send today's facts immediately")

    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    session_factory = build_session_factory(settings.database_url)
    if args.command == "schedule":
        start_scheduler(settings, session_factory, run_now=args.run_now)
        return

    facts = load_facts(Path(args.input)) if args.input else sample_facts(args.count)
    batch_key = args.batch_key or f"manual-{datetime.now(UTC):%Y%m%dT%H%M%S%f}"

    runner = BatchRunner(settings, session_factory)
    result = runner.run(facts, batch_key=batch_key, trigger_source=args.trigger_source)

    print(
        "batch_id={batch_id} batch_key={batch_key} trigger={trigger} status={status} total={total} delivered={delivered} failed={failed} elapsed={elapsed:.3f}s".format(
            batch_id=result.batch_id,
            batch_key=result.batch_key,
            trigger=result.trigger_source,
            status=result.status,
            total=result.total_facts,
            delivered=result.delivered_facts,
            failed=result.failed_facts,
            elapsed=result.elapsed_seconds,
        )
    )


if __name__ == "__main__":
    main()
