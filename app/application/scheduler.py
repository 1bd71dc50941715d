"""
Background scheduler — runs the daily status refresh inside the FastAPI process.

Jobs:
  - status_refresh: пересчёт статусов абонементов (STATUS_REFRESH_HOUR, TIMEZONE)

Одна попытка в сутки: без ретраев и без догоняющих запусков.
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import get_settings

logger = logging.getLogger(__name__)

STATUS_REFRESH_JOB_ID = "status_refresh"

scheduler = BackgroundScheduler(daemon=True)


def run_status_refresh() -> None:
    """One pass of UpdateStatuses with its own session; failures are logged, never raised."""
    from app.infrastructure.db.session import get_session_factory
    from app.infrastructure.cache.provider import get_cache
    from app.infrastructure.storage.person_subs import PersonSubRepository
    from app.application.person_subs import UpdateStatusesUseCase

    Session = get_session_factory()
    db = Session()
    try:
        changed = UpdateStatusesUseCase(PersonSubRepository(db), get_cache()).execute()
        logger.info("Status refresh job: %d subscription(s) updated", changed)
    except Exception:
        logger.exception("Status refresh job failed")
    finally:
        db.close()


def start_scheduler() -> None:
    """Start the background scheduler with the daily status refresh."""
    settings = get_settings()
    scheduler.add_job(
        run_status_refresh,
        CronTrigger(hour=settings.STATUS_REFRESH_HOUR, minute=0, timezone=settings.TIMEZONE),
        id=STATUS_REFRESH_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: %s (%02d:00 %s)",
        STATUS_REFRESH_JOB_ID, settings.STATUS_REFRESH_HOUR, settings.TIMEZONE,
    )


def shutdown_scheduler() -> None:
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
