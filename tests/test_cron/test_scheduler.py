"""Tests for the in-process cron scheduler."""
from unittest.mock import AsyncMock, Mock

import pytest

from predictions_cron.core import scheduler as scheduler_module
from predictions_cron.core.config import CronConfig, Settings
from predictions_cron.core.exceptions import ConfigurationError
from predictions_cron.core.scheduler import AutomationScheduler
from predictions_cron.schemas.cron import AggregatedReport, SubActionResult
from predictions_cron.services.cron.orchestrator import CronOrchestrator


@pytest.fixture
def scheduler_settings() -> Settings:
    return Settings(
        _env_file=None,
        BASE_URL="https://predictz.test",
        SCHEDULER_FIXTURES_HOUR=5,
        SCHEDULER_LIVE_INTERVAL_MINUTES=3,
        SCHEDULER_SETTLE_INTERVAL_MINUTES=15,
    )


@pytest.fixture
def orchestrator() -> CronOrchestrator:
    return CronOrchestrator(CronConfig(base_url="https://predictz.test"))


class TestAutomationScheduler:

    @pytest.mark.asyncio
    async def test_start_requires_base_url(self, scheduler_settings):
        scheduler = AutomationScheduler(
            orchestrator=CronOrchestrator(CronConfig()),
            settings=scheduler_settings,
        )

        with pytest.raises(ConfigurationError):
            await scheduler.start()

        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_start_registers_jobs(self, orchestrator, scheduler_settings):
        scheduler = AutomationScheduler(orchestrator=orchestrator, settings=scheduler_settings)

        await scheduler.start()
        try:
            jobs = {job.id: job for job in scheduler.scheduler.get_jobs()}

            assert set(jobs) == {"fixtures_sync", "live_sync", "settlement"}
            assert jobs["fixtures_sync"].kwargs == {"action": "sync-fixtures"}
            assert jobs["live_sync"].kwargs == {"action": "sync-live"}
            assert jobs["settlement"].kwargs == {"action": "settle"}
            assert jobs["live_sync"].trigger.interval.total_seconds() == 180
            assert jobs["settlement"].trigger.interval.total_seconds() == 900
            assert str(jobs["fixtures_sync"].trigger.fields[5]) == "5"  # hour
        finally:
            await scheduler.stop()

        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_start_twice_is_a_no_op(self, orchestrator, scheduler_settings):
        scheduler = AutomationScheduler(orchestrator=orchestrator, settings=scheduler_settings)

        await scheduler.start()
        first = scheduler.scheduler
        await scheduler.start()

        assert scheduler.scheduler is first
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_run_job_returns_report(self, orchestrator, scheduler_settings):
        report = AggregatedReport.from_results("sync-live", [
            SubActionResult.failure("live", "timeout"),
        ])
        orchestrator.run = AsyncMock(return_value=report)
        scheduler = AutomationScheduler(orchestrator=orchestrator, settings=scheduler_settings)

        result = await scheduler.run_job("sync-live")

        assert result is report
        orchestrator.run.assert_awaited_once_with("sync-live")

    @pytest.mark.asyncio
    async def test_run_job_never_raises(self, orchestrator, scheduler_settings):
        orchestrator.run = AsyncMock(side_effect=RuntimeError("football API down"))
        scheduler = AutomationScheduler(orchestrator=orchestrator, settings=scheduler_settings)

        assert await scheduler.run_job("settle") is None


class TestGlobalScheduler:

    @pytest.mark.asyncio
    async def test_start_and_stop_global(self, orchestrator, scheduler_settings):
        scheduler = AutomationScheduler(orchestrator=orchestrator, settings=scheduler_settings)

        started = await scheduler_module.start_scheduler(scheduler)
        try:
            assert started is scheduler
            assert scheduler_module.get_scheduler() is scheduler
        finally:
            await scheduler_module.stop_scheduler()

        assert scheduler_module.get_scheduler() is None

    @pytest.mark.asyncio
    async def test_failed_start_leaves_no_global(self, scheduler_settings):
        scheduler = Mock(spec=AutomationScheduler)
        scheduler.start = AsyncMock(side_effect=ConfigurationError("BASE_URL must be set"))

        with pytest.raises(ConfigurationError):
            await scheduler_module.start_scheduler(scheduler)

        assert scheduler_module.get_scheduler() is None
