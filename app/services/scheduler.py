import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.draws import announce_due_slots
from app.services.slots import close_expired_slots

logger = logging.getLogger(__name__)

SLOT_JOB_ID = "slot_lifecycle"

_scheduler: Optional[BackgroundScheduler] = None


def run_slot_lifecycle(session_factory=SessionLocal, auto_announce: Optional[bool] = None) -> dict:
    """One scheduler tick: close expired slots, then auto-announce due ones."""
    if auto_announce is None:
        auto_announce = get_settings().auto_announce_enabled

    db = session_factory()
    try:
        closed = close_expired_slots(db)
        announced = announce_due_slots(db) if auto_announce else []
        return {"closed": len(closed), "announced": len(announced)}
    except Exception as exc:
        db.rollback()
        logger.error("Slot lifecycle job failed: %s", exc, exc_info=True)
        return {"closed": 0, "announced": 0, "error": str(exc)}
    finally:
        db.close()


def start_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    settings = get_settings()
    scheduler = BackgroundScheduler(job_defaults={"coalesce": True, "max_instances": 1})
    scheduler.add_job(
        run_slot_lifecycle,
        trigger=IntervalTrigger(seconds=settings.scheduler_interval_seconds),
        id=SLOT_JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    _scheduler = scheduler
    logger.info(
        "Scheduler started: every %ss, auto_announce=%s",
        settings.scheduler_interval_seconds,
        settings.auto_announce_enabled,
    )
    return scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None
