"""
Hold Purge Scheduler

Deletes expired proposed bookings on a fixed interval. Expired holds are
already ignored at read time; the purge only keeps the table small.

Uses APScheduler, started and stopped from the FastAPI lifespan.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from ..config import settings
from ..database import SessionLocal
from ..exceptions import BookingError
from ..utils.clock import utcnow
from .hold_manager import HoldManager
from .inventory_store import InventoryStore

logger = logging.getLogger(__name__)

JOB_ID = "purge_expired_holds"

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None
_last_run_time: Optional[datetime] = None
_last_purged: Optional[int] = None
_last_error: Optional[str] = None


def purge_expired_holds(session_factory: Callable[[], Session] = SessionLocal) -> int:
    """Run one purge in its own session. Returns the number of deleted holds."""
    global _last_run_time, _last_purged, _last_error

    db = session_factory()
    try:
        count = HoldManager(InventoryStore(db)).purge_expired()
    finally:
        db.close()

    _last_run_time = utcnow()
    _last_purged = count
    _last_error = None
    return count


async def run_hold_purge_job():
    """Scheduler entry point; a failed run is logged and retried next interval."""
    global _last_error

    try:
        purge_expired_holds()
    except BookingError as e:
        _last_error = e.message
        logger.error(f"Scheduled hold purge failed: {e.message}")


def start_hold_scheduler(interval_seconds: Optional[int] = None) -> bool:
    """
    Start the purge job.

    Returns:
        True if the scheduler is running afterwards
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Hold scheduler is already running")
        return True

    interval = interval_seconds or settings.hold_purge_interval_seconds

    _scheduler = AsyncIOScheduler(timezone="UTC")
    _scheduler.add_job(
        run_hold_purge_job,
        IntervalTrigger(seconds=interval),
        id=JOB_ID,
        name=f"Purge expired holds every {interval}s",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()

    logger.info(f"Hold scheduler started (every {interval}s)")
    return True


def stop_hold_scheduler() -> bool:
    global _scheduler

    if _scheduler is None:
        return True

    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("Hold scheduler stopped")
    return True


def get_scheduler_status() -> Dict:
    status = {
        "running": False,
        "next_run": None,
        "last_run": _last_run_time.isoformat() if _last_run_time else None,
        "last_purged": _last_purged,
        "last_error": _last_error,
    }

    if _scheduler is not None and _scheduler.running:
        status["running"] = True
        job = _scheduler.get_job(JOB_ID)
        if job is not None and job.next_run_time:
            status["next_run"] = job.next_run_time.isoformat()

    return status
