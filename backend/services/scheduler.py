"""Background scheduler for periodic tasks.

Uses APScheduler to run the metrics sync in-process. Deployments that call
/api/cron/sync-metrics from an external scheduler leave SYNC_INTERVAL_HOURS
at 0 and never start this.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from services.metrics_sync import run_batch_sync

logger = logging.getLogger(__name__)
settings = get_settings()

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def sync_provider_metrics():
    """Background task to sync every connected provider account."""
    logger.info("Starting scheduled metrics sync...")
    try:
        results = await run_batch_sync()
    except Exception as e:
        logger.error(f"Scheduled metrics sync failed: {e}")
        return

    failed = [r for r in results if r.status == "error"]
    for result in failed:
        logger.warning(
            f"Sync failed for startup {result.startup_id} ({result.provider}): {result.error}"
        )


def start_scheduler(interval_hours: int = 0):
    """Start the background scheduler. A zero interval leaves it off."""
    interval_hours = interval_hours or settings.sync_interval_hours
    if interval_hours <= 0:
        logger.info("In-process metrics sync disabled (SYNC_INTERVAL_HOURS=0)")
        return

    if scheduler.running:
        logger.info("Scheduler already running")
        return

    scheduler.add_job(
        sync_provider_metrics,
        trigger=IntervalTrigger(hours=interval_hours),
        id="provider_metrics_sync",
        name="Sync provider metrics",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"Background scheduler started (metrics sync every {interval_hours} hours)")


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped")
