#!/usr/bin/env python3
"""
Standalone runner for the prediction market cron jobs.

Runs the in-process scheduler as a background service (systemd,
supervisor, or directly), or a single orchestration pass from a shell
or an external crontab.

Usage:
    python run_scheduler.py                        # Run the scheduler in the foreground
    python run_scheduler.py --list-jobs            # Show the job table and exit
    python run_scheduler.py --run-once all         # One pass, print the report
    python run_scheduler.py --run-once settle --base-url https://example.com
"""
import asyncio
import argparse
import json
import signal
import sys
import logging
from typing import Optional

from predictions_cron.core.config import CronConfig, settings
from predictions_cron.core.exceptions import CronError
from predictions_cron.core.logging import configure_logging
from predictions_cron.core.scheduler import AutomationScheduler
from predictions_cron.schemas.cron import CronAction
from predictions_cron.services.cron.orchestrator import CronOrchestrator

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = logging.getLogger(__name__)

JOB_TABLE = [
    ("fixtures_sync", f"daily at {settings.SCHEDULER_FIXTURES_HOUR:02d}:00 {settings.SCHEDULER_TIMEZONE}", CronAction.SYNC_FIXTURES.value),
    ("live_sync", f"every {settings.SCHEDULER_LIVE_INTERVAL_MINUTES} min", CronAction.SYNC_LIVE.value),
    ("settlement", f"every {settings.SCHEDULER_SETTLE_INTERVAL_MINUTES} min", CronAction.SETTLE.value),
]


class SchedulerRunner:
    """Runner for the cron scheduler."""

    def __init__(self, scheduler: AutomationScheduler):
        self.scheduler = scheduler
        self.shutdown = asyncio.Event()

    async def start(self):
        """Start the scheduler and run until a shutdown signal arrives."""
        logger.info("🚀 Starting scheduler runner...")
        await self.scheduler.start()
        logger.info("Press Ctrl+C to stop")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        await self.shutdown.wait()

        await self.scheduler.stop()
        logger.info("✅ Scheduler runner stopped")

    def _set_shutdown(self):
        logger.info("⏹️  Shutdown signal received")
        self.shutdown.set()


def build_orchestrator(base_url: Optional[str]) -> CronOrchestrator:
    """Orchestrator from settings, with an optional base URL override."""
    config = CronConfig.from_settings(settings)
    if base_url:
        config = CronConfig(
            cron_secret=config.cron_secret,
            base_url=base_url,
            football_api_path=config.football_api_path,
            request_timeout=config.request_timeout,
            reject_unknown_actions=config.reject_unknown_actions,
        )
    return CronOrchestrator(config, production=settings.is_production())


async def run_once(action: str, base_url: Optional[str]) -> int:
    """Run a single orchestration pass and print the report as JSON."""
    orchestrator = build_orchestrator(base_url)
    report = await orchestrator.run(orchestrator.resolve_action(action))
    print(json.dumps(report.model_dump(), indent=2))
    return 1 if report.failed_keys() else 0


def list_jobs() -> None:
    for job_id, schedule, action in JOB_TABLE:
        print(f"• {job_id}: {schedule} (action={action})")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Run the prediction market cron jobs'
    )
    parser.add_argument(
        '--run-once',
        choices=CronAction.values(),
        metavar='ACTION',
        help=f"Run a single pass ({', '.join(CronAction.values())}) and exit"
    )
    parser.add_argument(
        '--base-url',
        help='Override BASE_URL for this run'
    )
    parser.add_argument(
        '--list-jobs',
        action='store_true',
        help='List the scheduled jobs and exit'
    )
    args = parser.parse_args()

    if args.list_jobs:
        list_jobs()
        return 0

    try:
        if args.run_once:
            return asyncio.run(run_once(args.run_once, args.base_url))

        scheduler = AutomationScheduler(orchestrator=build_orchestrator(args.base_url))
        asyncio.run(SchedulerRunner(scheduler).start())
        return 0
    except CronError as e:
        logger.error(f"❌ {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("🛑 Received interrupt, shutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
