"""
APScheduler Configuration

Manages periodic jobs; currently the sweep that expires stale session requests.
"""
import logging
import time
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from genconnect import config
from genconnect.database import AsyncSessionLocal
from genconnect.services.session_lifecycle import get_lifecycle_manager

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def expire_stale_requests():
    """
    Periodic job marking pending session requests past their expiry as expired.

    Logs how many rows were expired and how long the sweep took.
    """
    logger.info("Starting stale request sweep")
    start = time.time()

    try:
        manager = get_lifecycle_manager()
        async with AsyncSessionLocal() as db:
            expired = await manager.expire_stale_requests(db)

        duration_ms = (time.time() - start) * 1000
        logger.info(f"Stale request sweep: {expired} requests expired in {duration_ms:.2f}ms")

    except Exception as e:
        logger.error(f"Failed to expire stale requests: {e}", exc_info=True)


def configure_scheduler():
    """
    Configure APScheduler with all scheduled jobs.

    Jobs:
        - Stale request sweep: every EXPIRY_SWEEP_MINUTES minutes
    """
    scheduler.add_job(
        expire_stale_requests,
        trigger=IntervalTrigger(minutes=config.EXPIRY_SWEEP_MINUTES),
        id='expire_stale_requests',
        name='Expire Stale Session Requests',
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1  # Only one instance at a time
    )

    logger.info(f"Scheduler configured with request expiry sweep every {config.EXPIRY_SWEEP_MINUTES} min")


def start_scheduler():
    """Start the APScheduler"""
    configure_scheduler()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Stop the APScheduler"""
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
