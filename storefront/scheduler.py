"""
APScheduler Background Jobs

Product sync into Meilisearch: once at startup and at the top of every hour.
Jobs run on an AsyncIOScheduler inside the FastAPI event loop.
"""

from typing import Callable, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from storefront.services.monitoring.error_tracking import capture_exception

logger = structlog.get_logger(__name__)

HOURLY_SYNC_JOB_ID = "hourly_product_sync"
INITIAL_SYNC_JOB_ID = "initial_product_sync"


class ProductSyncScheduler:
    """
    Owns the recurring product sync job.

    State is either Stopped (no scheduler) or Running (one scheduler).
    Sync failures are logged and never raised out of a job. Runs that take
    longer than an hour may overlap with the next tick.
    """

    def __init__(
        self,
        sync_service,
        timezone: str = "UTC",
        scheduler_factory: Callable[..., AsyncIOScheduler] = AsyncIOScheduler
    ):
        """
        Args:
            sync_service: Object exposing async sync_once()
            timezone: Scheduler timezone for the cron trigger
            scheduler_factory: Builds the underlying scheduler
        """
        self.sync_service = sync_service
        self.timezone = timezone
        self.scheduler_factory = scheduler_factory
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    async def run_sync(self, trigger: str) -> None:
        """
        Run one sync, logging instead of raising on failure.

        Args:
            trigger: "initial" or "scheduled", for logs
        """
        try:
            documents = await self.sync_service.sync_once()
            logger.info("product_sync_completed", trigger=trigger, documents=documents)
        except Exception as e:
            logger.error("product_sync_failed", trigger=trigger, error=str(e), exc_info=True)
            capture_exception(e, component="product_sync")

    def start(self) -> None:
        """
        Start the scheduler: one immediate sync plus an hourly cron job.

        Must be called from within a running event loop.
        """
        if self._scheduler is not None:
            logger.warning("scheduler_already_running")
            return

        scheduler = self.scheduler_factory(timezone=self.timezone)

        # No trigger: runs once, immediately
        scheduler.add_job(
            self.run_sync,
            kwargs={"trigger": "initial"},
            id=INITIAL_SYNC_JOB_ID,
            name="Initial Product Sync",
            replace_existing=True
        )

        scheduler.add_job(
            self.run_sync,
            trigger=CronTrigger(minute=0, timezone=self.timezone),
            kwargs={"trigger": "scheduled"},
            id=HOURLY_SYNC_JOB_ID,
            name="Hourly Shopify-Meilisearch Product Sync",
            replace_existing=True,
            max_instances=2,
            coalesce=True
        )
        logger.info("job_registered", job="product_sync", schedule="hourly_at_minute_0")

        scheduler.start()
        self._scheduler = scheduler
        logger.info("scheduler_started", jobs=[INITIAL_SYNC_JOB_ID, HOURLY_SYNC_JOB_ID])

    def stop(self) -> None:
        """Stop the scheduler. No-op when not running."""
        if self._scheduler is None:
            return

        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("scheduler_stopped")


__all__ = [
    "ProductSyncScheduler",
    "HOURLY_SYNC_JOB_ID",
    "INITIAL_SYNC_JOB_ID",
]
