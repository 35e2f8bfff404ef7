"""
In-process cron scheduler for the prediction market sync jobs.

An alternative to Vercel Cron / system cron for deployments that keep this
service running. Jobs call the orchestrator directly (no HTTP round trip
to the cron endpoint, so no CRON_SECRET is needed) and therefore require
BASE_URL to reach the football sync API.

Jobs:
- fixtures_sync: daily at SCHEDULER_FIXTURES_HOUR:00
- live_sync: every SCHEDULER_LIVE_INTERVAL_MINUTES
- settlement: every SCHEDULER_SETTLE_INTERVAL_MINUTES

Scheduler: APScheduler (lightweight, FastAPI-compatible)
"""
import logging
import uuid
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from predictions_cron.core.config import CronConfig, Settings, settings as app_settings
from predictions_cron.core.exceptions import ConfigurationError
from predictions_cron.core.logging import set_correlation_id, clear_correlation_id
from predictions_cron.schemas.cron import AggregatedReport, CronAction
from predictions_cron.services.cron.orchestrator import CronOrchestrator

logger = logging.getLogger(__name__)


class AutomationScheduler:
    """
    Scheduler for the cron orchestration passes.

    Each job runs exactly one action so that a slow fixtures sync never
    delays live score updates.
    """

    def __init__(
        self,
        orchestrator: Optional[CronOrchestrator] = None,
        settings: Settings = app_settings,
    ):
        self.settings = settings
        self.orchestrator = orchestrator or CronOrchestrator(
            CronConfig.from_settings(settings),
            production=settings.is_production(),
        )
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        if not self.orchestrator.config.base_url:
            raise ConfigurationError("BASE_URL must be set to run the cron scheduler")

        logger.info("Starting cron scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone=self.settings.SCHEDULER_TIMEZONE,
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,  # Never overlap a job with itself
                'misfire_grace_time': 300
            }
        )

        self._schedule_fixtures_sync()
        self._schedule_live_sync()
        self._schedule_settlement()

        self.scheduler.start()
        self.running = True

        logger.info("✅ Scheduler started with %d jobs", len(self.scheduler.get_jobs()))
        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("✅ Scheduler stopped")

    async def run_job(self, action: str) -> Optional[AggregatedReport]:
        """
        Run one orchestration pass for a scheduled job.

        Never raises; a failed pass is logged and returns None.
        """
        token = set_correlation_id(f"cron-{action}-{uuid.uuid4().hex[:12]}")
        try:
            report = await self.orchestrator.run(action)
            failed = report.failed_keys()
            for key, value in report.results.items():
                if key in failed:
                    logger.warning(f"⚠️ {action}: {key} failed: {value['error']}")
                else:
                    logger.info(f"✅ {action}: {key} ok")
            return report
        except Exception as e:
            logger.error(f"❌ Scheduled {action} failed: {e}")
            return None
        finally:
            clear_correlation_id(token)

    def _schedule_fixtures_sync(self):
        """
        Schedule: Sync upcoming fixtures.

        Frequency: Daily at SCHEDULER_FIXTURES_HOUR:00
        """
        self.scheduler.add_job(
            self.run_job,
            trigger=CronTrigger(hour=self.settings.SCHEDULER_FIXTURES_HOUR, minute=0),
            kwargs={"action": CronAction.SYNC_FIXTURES.value},
            id='fixtures_sync',
            name='Sync Fixtures',
            misfire_grace_time=600
        )
        logger.info(f"📅 Scheduled: Fixtures sync (daily {self.settings.SCHEDULER_FIXTURES_HOUR:02d}:00)")

    def _schedule_live_sync(self):
        """
        Schedule: Update live match scores.

        Frequency: Every SCHEDULER_LIVE_INTERVAL_MINUTES
        """
        minutes = self.settings.SCHEDULER_LIVE_INTERVAL_MINUTES
        self.scheduler.add_job(
            self.run_job,
            trigger=IntervalTrigger(minutes=minutes),
            kwargs={"action": CronAction.SYNC_LIVE.value},
            id='live_sync',
            name='Sync Live Scores',
        )
        logger.info(f"⚽ Scheduled: Live score sync (every {minutes} min)")

    def _schedule_settlement(self):
        """
        Schedule: Settle finished matches.

        Frequency: Every SCHEDULER_SETTLE_INTERVAL_MINUTES
        """
        minutes = self.settings.SCHEDULER_SETTLE_INTERVAL_MINUTES
        self.scheduler.add_job(
            self.run_job,
            trigger=IntervalTrigger(minutes=minutes),
            kwargs={"action": CronAction.SETTLE.value},
            id='settlement',
            name='Settle Finished Matches',
        )
        logger.info(f"✅ Scheduled: Settlement (every {minutes} min)")

    def _log_scheduled_jobs(self):
        """Log all scheduled jobs for visibility."""
        for job in self.scheduler.get_jobs():
            next_run = job.next_run_time
            next_run_str = next_run.isoformat() if next_run else 'Pending'
            logger.info(f"  • {job.name} (id={job.id}, next run: {next_run_str})")


# Global scheduler instance
_scheduler: Optional[AutomationScheduler] = None


async def start_scheduler(scheduler: Optional[AutomationScheduler] = None) -> AutomationScheduler:
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = scheduler or AutomationScheduler()
        try:
            await _scheduler.start()
        except Exception:
            _scheduler = None
            raise
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[AutomationScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
