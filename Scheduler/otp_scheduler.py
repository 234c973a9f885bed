# Scheduler/otp_scheduler.py
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import OTP_CLEANUP_INTERVAL_MINUTES
from db.connection import SessionLocal
from db.models import OTP

logger = logging.getLogger(__name__)

JOB_ID = "purge_expired_otps"

scheduler = AsyncIOScheduler(timezone=timezone.utc)


def purge_expired_otps() -> int:
    """Delete password-reset codes past their expiry. Returns the number removed."""
    db = SessionLocal()
    try:
        removed = (
            db.query(OTP)
            .filter(OTP.expires_at <= datetime.now(timezone.utc))
            .delete(synchronize_session=False)
        )
        db.commit()
        if removed:
            logger.info(f"Purged {removed} expired OTP(s)")
        return removed
    except Exception:
        db.rollback()
        logger.exception("Failed to purge expired OTPs")
        return 0
    finally:
        db.close()


def start_scheduler():
    """
    Start once per process. Safe to call multiple times.
    """
    if scheduler.running:
        return
    scheduler.add_job(
        purge_expired_otps,
        trigger="interval",
        minutes=OTP_CLEANUP_INTERVAL_MINUTES,
        id=JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.start()
    logger.info(f"OTP cleanup scheduler started (every {OTP_CLEANUP_INTERVAL_MINUTES} min, UTC).")


async def shutdown_scheduler():
    """
    Clean shutdown on app exit.
    """
    try:
        if scheduler.running:
            scheduler.shutdown(wait=False)
            logger.info("OTP cleanup scheduler stopped.")
    except Exception:
        logger.exception("Error while stopping scheduler")


def is_scheduler_running() -> bool:
    return scheduler.running
