from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import text

from tomorrows_winner.config import Settings
from tomorrows_winner.db import SessionLocal, engine
from tomorrows_winner.services.cron import run_and_log

logger = logging.getLogger(__name__)

JOB_ID = "cron_tick"

_scheduler: BackgroundScheduler | None = None
_run_lock = threading.Semaphore(1)


def _can_reach_db() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:  # noqa: BLE001
        return False


def _run_tick(settings: Settings) -> None:
    if not _run_lock.acquire(blocking=False):
        logger.info("Skipping cron tick because another run is in progress")
        return

    try:
        with SessionLocal() as session:
            run_and_log(session, settings, run_type="unified")
    except Exception:  # noqa: BLE001
        logger.exception("Scheduled cron tick failed")
    finally:
        _run_lock.release()


def start_scheduler(settings: Settings) -> bool:
    global _scheduler

    if not settings.enable_scheduler:
        logger.info("Scheduler disabled by ENABLE_SCHEDULER=false")
        return False

    if settings.sched_require_db and (not settings.database_url or not _can_reach_db()):
        logger.warning("Scheduler not started: DB unavailable and SCHED_REQUIRE_DB=true")
        return False

    if _scheduler is not None and _scheduler.running:
        return True

    # Predicates match on the ET minute, so one tick per minute is enough.
    _scheduler = BackgroundScheduler(timezone=timezone.utc)
    _scheduler.add_job(
        _run_tick,
        "cron",
        args=[settings],
        id=JOB_ID,
        second=settings.sched_tick_second,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    _scheduler.start()
    return True


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None


def scheduler_is_running() -> bool:
    return _scheduler is not None and _scheduler.running


def scheduler_next_run_times() -> dict[str, datetime | None]:
    if _scheduler is None:
        return {}
    return {job.id: job.next_run_time for job in _scheduler.get_jobs()}
