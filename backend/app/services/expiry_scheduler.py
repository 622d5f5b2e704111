"""
Expiry Scheduler Service

Marks active certificates whose expiry time has passed as expired.
Uses APScheduler for the periodic sweep.
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.config import settings
from identity_engine import parse_iso_timestamp
from .certificate_store import CertificateStore
from .store_factory import get_certificate_store

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

SWEEP_JOB_ID = "expire_certificates"


async def expire_certificates(
    store: CertificateStore | None = None, now: datetime | None = None
) -> dict:
    """
    Mark active certificates past their expires_at as expired.

    Args:
        store: Store to sweep (defaults to the configured store)
        now: Reference time (defaults to current UTC time)

    Returns:
        dict: Summary of the sweep with counts
    """
    store = store or get_certificate_store()
    now = now or datetime.now(timezone.utc)
    summary = {"records_scanned": 0, "records_expired": 0, "errors": 0}

    for record in await store.list_records(status="active"):
        summary["records_scanned"] += 1
        if not record.expires_at:
            continue

        try:
            if parse_iso_timestamp(record.expires_at) <= now:
                await store.update_record(
                    record.certificate_key,
                    {"status": "expired", "updated_at": now.isoformat().replace("+00:00", "Z")},
                )
                summary["records_expired"] += 1
                logger.info(f"Expired certificate {record.certificate_key[:12]}")
        except (ValueError, KeyError, OSError) as e:
            summary["errors"] += 1
            logger.error(f"Failed to expire certificate {record.certificate_key}: {e}")

    logger.info(
        f"Expiry sweep completed: {summary['records_expired']} expired, "
        f"{summary['errors']} errors"
    )
    return summary


def start_expiry_scheduler():
    """
    Start the expiry scheduler.

    Safe to call multiple times - will not add duplicate jobs.
    """
    if scheduler.running:
        logger.debug("Scheduler already running")
        return

    if not scheduler.get_job(SWEEP_JOB_ID):
        scheduler.add_job(
            expire_certificates,
            "interval",
            hours=settings.EXPIRY_SWEEP_INTERVAL_HOURS,
            id=SWEEP_JOB_ID,
            name="Expire certificates",
            replace_existing=True,
        )
        logger.info(
            f"Scheduled expiry sweep: every {settings.EXPIRY_SWEEP_INTERVAL_HOURS} hour(s)"
        )

    scheduler.start()
    logger.info("Expiry scheduler started")


def stop_expiry_scheduler():
    """Stop the expiry scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Expiry scheduler stopped")


def get_scheduler_status() -> dict:
    """
    Get current scheduler status for health checks.

    Returns:
        dict: Scheduler status including running state and job info
    """
    job = scheduler.get_job(SWEEP_JOB_ID)
    return {
        "running": scheduler.running,
        "job_scheduled": job is not None,
        "next_run": str(job.next_run_time) if job else None,
        "interval_hours": settings.EXPIRY_SWEEP_INTERVAL_HOURS,
        "validity_days": settings.CERTIFICATE_VALIDITY_DAYS,
    }
