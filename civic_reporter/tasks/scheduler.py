"""
Background job scheduler for department housekeeping and external sync.

Uses APScheduler to run periodic jobs:
- Daily reset: Zero departments' daily intake counters at midnight
- Statistics refresh: Recompute department statistics every STATISTICS_REFRESH_MINUTES
- Status sync: Push pending status updates every STATUS_SYNC_INTERVAL_MINUTES
  (only when EXTERNAL_SYNC_URL is configured)
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from civic_reporter.config import settings
from civic_reporter.database import AsyncSessionLocal
from civic_reporter.services import (
    ExternalSyncService,
    get_statistics_service,
    get_sync_client,
)

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def daily_reset_job():
    """Reset every department's current_daily_issues counter."""
    logger.info("Starting daily counter reset")

    async with AsyncSessionLocal() as db:
        try:
            result = await get_statistics_service(db).reset_daily_counters()
            await db.commit()
            logger.info(f"Daily counter reset complete: {result}")
            return result

        except Exception as e:
            await db.rollback()
            logger.error(f"Daily reset job failed: {e}", exc_info=True)
            raise


async def statistics_refresh_job():
    """Recompute statistics for all active departments."""
    logger.info("Starting department statistics refresh")

    async with AsyncSessionLocal() as db:
        try:
            result = await get_statistics_service(db).refresh_all()
            await db.commit()
            logger.info(f"Statistics refresh complete: {result}")
            return result

        except Exception as e:
            await db.rollback()
            logger.error(f"Statistics refresh job failed: {e}", exc_info=True)
            raise


async def status_sync_job():
    """Push pending status updates to the external municipal system."""
    logger.info("Starting external status sync")

    async with AsyncSessionLocal() as db:
        try:
            async with get_sync_client() as client:
                result = await ExternalSyncService(db, client).sync_pending()
            await db.commit()
            logger.info(f"External status sync complete: {result}")
            return result

        except Exception as e:
            await db.rollback()
            logger.error(f"Status sync job failed: {e}", exc_info=True)
            raise


def setup_scheduler():
    """
    Configure and start the background scheduler.

    Jobs configured:
    1. Daily counter reset at midnight
    2. Department statistics refresh on an interval
    3. External status sync on an interval, when an endpoint is configured
    """
    if scheduler.running:
        logger.warning("Scheduler is already running")
        return

    scheduler.add_job(
        daily_reset_job,
        CronTrigger(hour=0, minute=0),
        id="daily_reset",
        name="Daily Capacity Reset",
        replace_existing=True,
        misfire_grace_time=3600,  # 1 hour grace period
        coalesce=True  # Combine missed runs into one
    )

    scheduler.add_job(
        statistics_refresh_job,
        IntervalTrigger(minutes=settings.STATISTICS_REFRESH_MINUTES),
        id="statistics_refresh",
        name="Department Statistics Refresh",
        replace_existing=True,
        misfire_grace_time=600,  # 10 minute grace period
        coalesce=True
    )

    if settings.external_sync_enabled:
        scheduler.add_job(
            status_sync_job,
            IntervalTrigger(minutes=settings.STATUS_SYNC_INTERVAL_MINUTES),
            id="status_sync",
            name="External Status Sync",
            replace_existing=True,
            misfire_grace_time=300,
            coalesce=True
        )
    else:
        logger.info("EXTERNAL_SYNC_URL not set; status sync job not scheduled")

    scheduler.start()
    logger.info("Background scheduler started successfully")


def shutdown_scheduler():
    """
    Gracefully shutdown the scheduler.
    Waits for running jobs to complete before shutting down.
    """
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler stopped")
    else:
        logger.info("Scheduler was not running")


def get_job_status() -> list:
    """
    Get status of all scheduled jobs.

    Returns:
        List of job status dictionaries containing:
        - id: Job identifier
        - name: Human-readable job name
        - next_run: ISO-formatted next run time (or None)
        - trigger: Trigger description (cron/interval)
    """
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger)
        })
    return jobs
