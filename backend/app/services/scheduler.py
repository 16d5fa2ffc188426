import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.summary_service import SummaryService

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service for managing scheduled housekeeping tasks"""

    def __init__(self, summary_service: SummaryService, session_factory=SessionLocal):
        self.summary_service = summary_service
        self.SessionLocal = session_factory
        self.scheduler = AsyncIOScheduler(timezone=settings.timezone)
        self._setup_jobs()

    def _setup_jobs(self):
        """Set up all scheduled jobs"""

        # Daily summary history cleanup
        self.scheduler.add_job(
            func=self.cleanup_old_summaries,
            trigger=CronTrigger(
                hour=settings.cleanup_hour,
                minute=settings.cleanup_minute,
                timezone=settings.timezone
            ),
            id="summary_cleanup",
            name="Old Summary Cleanup",
            replace_existing=True
        )

        logger.info("Scheduled jobs configured")

    def start(self):
        """Start the scheduler"""
        try:
            self.scheduler.start()
            logger.info("Scheduler started successfully")
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")

    def shutdown(self):
        """Shutdown the scheduler"""
        if not self.scheduler.running:
            return
        try:
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shut down successfully")
        except Exception as e:
            logger.error(f"Failed to shutdown scheduler: {e}")

    async def cleanup_old_summaries(self):
        """Keep each user's summary history within max_summary_history"""
        logger.info("Starting old summary cleanup")

        db = self.SessionLocal()
        try:
            removed = self.summary_service.cleanup_old_summaries(db)
            logger.info(f"Old summary cleanup complete, removed {removed}")
        except Exception as e:
            db.rollback()
            logger.error(f"Old summary cleanup job failed: {e}")
        finally:
            db.close()
