"""Dedicated APScheduler worker process for planner housekeeping."""
from __future__ import annotations

import logging
import signal
import threading
from datetime import date, datetime
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler

from kairos.api.schemas.plan import ActiveHours
from kairos.core.config import settings
from kairos.core.logging import configure_logging
from kairos.db import Base
from kairos.db.session import SessionLocal, engine
from kairos.services.job_runner import run_retention_sweep
from kairos.services.kv_store import SqlKeyValueStore
from kairos.services.planner_store import PlannerStore

logger = logging.getLogger(__name__)

RETENTION_JOB_ID = "retention_sweep_job"


def main() -> None:
    configure_logging(log_level=settings.log_level, third_party_log_level=settings.third_party_log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        Base.metadata.create_all(bind=engine)
        register_jobs(scheduler)
        scheduler.start()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        run_retention_job,
        trigger="cron",
        hour=settings.retention_job_hour,
        minute=settings.retention_job_minute,
        id=RETENTION_JOB_ID,
        replace_existing=True,
    )
    logger.info(
        "Registered retention sweep (daily at %02d:%02d %s, keep %s days)",
        settings.retention_job_hour,
        settings.retention_job_minute,
        settings.scheduler_timezone,
        settings.retention_days,
    )


def scheduler_today(timezone: str) -> date:
    """Calendar date in the scheduler zone, which decides what counts as "before the cutoff"."""
    return datetime.now(ZoneInfo(timezone)).date()


def run_retention_job() -> None:
    store = PlannerStore(
        SqlKeyValueStore(SessionLocal),
        default_active_hours=ActiveHours(start=settings.default_active_start, end=settings.default_active_end),
    )
    try:
        today = scheduler_today(settings.scheduler_timezone)
        result = run_retention_sweep(store, today=today, retention_days=settings.retention_days)
        logger.info("Retention job complete: purged=%s, cutoff=%s", result.records_purged, result.cutoff)
    except Exception:  # pragma: no cover - keep the worker alive
        logger.exception("Retention job failed")


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
