from datetime import UTC, datetime
import logging
from pathlib import Path

from apscheduler.schedulers.blocking import BlockingScheduler
from sqlalchemy.orm import Session, sessionmaker

from factbuffer.config import Settings
from factbuffer.facts import load_facts
from factbuffer.runner import BatchRunner


logger = logging.getLogger(__name__)


def _send_daily_facts(settings: Settings, session_factory: sessionmaker[Session]) -> None:
    run_date = datetime.now(UTC).date()
    batch_key = f"scheduled-{run_date.isoformat()}"
    input_path = Path(settings.input_dir) / f"facts-{run_date.isoformat()}.jsonl"

    if not input_path.exists():
        logger.warning("no facts to send today at %s", input_path, extra={"input_path": str(input_path)})
        return

    runner = BatchRunner(settings, session_factory)
    try:
        result = runner.run(load_facts(input_path), batch_key=batch_key, trigger_source="scheduled")
    except ValueError:
        logger.warning("scheduled batch %s skipped", batch_key, extra={"batch_key": batch_key}, exc_info=True)
        return
    logger.info(
        "scheduled batch %s completed: %d delivered, %d failed",
        result.batch_key,
        result.delivered_facts,
        result.failed_facts,
        extra={
            "batch_key": result.batch_key,
            "delivered_facts": result.delivered_facts,
            "failed_facts": result.failed_facts,
        },
    )


def start_scheduler(settings: Settings, session_factory: sessionmaker[Session], *, run_now: bool = False) -> None:
    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        _send_daily_facts,
        "cron",
        args=[settings, session_factory],
        hour=settings.schedule_hour_utc,
        minute=settings.schedule_minute_utc,
        id="daily_facts",
        replace_existing=True,
    )

    logger.info(
        "scheduler started",
        extra={
            "schedule_hour_utc": settings.schedule_hour_utc,
            "schedule_minute_utc": settings.schedule_minute_utc,
        },
    )

    if run_now:
        _send_daily_facts(settings, session_factory)

    scheduler.start()
