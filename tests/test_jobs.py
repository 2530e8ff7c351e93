"""Tests for the job registry, executor, scheduler and momentum job."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import InsufficientCalendarData, JobError
from app.jobs import definitions  # noqa: F401 - registers jobs
from app.jobs import execute_job, get_job, get_job_spec, list_job_names, run_job_now
from app.jobs.quant import momentum_daily_job
from app.jobs.registry import register_job
from app.jobs.scheduler import JobScheduler, default_schedules


class TestRegistry:
    """Tests for the job registry."""

    def test_momentum_job_is_registered(self):
        assert "momentum_daily" in list_job_names()
        assert get_job("momentum_daily") is momentum_daily_job

    def test_every_scheduled_job_is_registered(self):
        assert set(default_schedules()) <= set(list_job_names())

    def test_momentum_job_spec(self):
        spec = get_job_spec("momentum_daily")
        assert spec.cron_setting == "momentum_daily_cron"
        assert default_schedules()["momentum_daily"][1] == spec.description


class TestExecutor:
    """Tests for execute_job."""

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        with pytest.raises(JobError) as exc_info:
            await execute_job("does_not_exist")
        assert exc_info.value.error_code == "UNKNOWN_JOB"

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self):
        @register_job("test_failing_job")
        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(JobError) as exc_info:
            await execute_job("test_failing_job")
        assert exc_info.value.details["job_name"] == "test_failing_job"

    @pytest.mark.asyncio
    async def test_timeout(self):
        @register_job("test_slow_job")
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(JobError) as exc_info:
            await execute_job("test_slow_job", timeout=0.01)
        assert exc_info.value.error_code == "JOB_TIMEOUT"

    @pytest.mark.asyncio
    async def test_run_job_now_without_scheduler(self):
        @register_job("test_ok_job")
        def ok():
            return "done"

        assert await run_job_now("test_ok_job") == "done"


class TestMomentumDailyJob:
    """Tests for the scheduled momentum recompute."""

    @pytest.mark.asyncio
    async def test_runs_controller_over_longest_horizon(self, mocker):
        controller = MagicMock()
        controller.limits.longest_horizon = 6
        controller.run = AsyncMock(
            return_value=MagicMock(records_written=3, candidates=4, skipped=(), defaulted_fundamentals=())
        )
        mocker.patch("app.services.momentum_service.build_controller", return_value=controller)

        message = await momentum_daily_job()

        start, end = controller.run.call_args.args[:2]
        assert 180 <= (end - start).days <= 184
        assert message.startswith("Scored 3 instruments")

    @pytest.mark.asyncio
    async def test_insufficient_calendar_is_skipped(self, mocker):
        controller = MagicMock()
        controller.limits.longest_horizon = 6
        controller.run = AsyncMock(
            side_effect=InsufficientCalendarData(0, 15, MagicMock(), MagicMock())
        )
        mocker.patch("app.services.momentum_service.build_controller", return_value=controller)

        message = await momentum_daily_job()

        assert message.startswith("Skipped")


class TestScheduler:
    """Tests for JobScheduler."""

    @pytest.mark.asyncio
    async def test_disabled_scheduler_does_not_start(self, mocker):
        from app.jobs import scheduler as scheduler_module

        mocker.patch.object(scheduler_module.settings, "scheduler_enabled", False)
        scheduler = JobScheduler()

        await scheduler.start()

        assert scheduler._running is False

    @pytest.mark.asyncio
    async def test_schedules_momentum_job(self, mocker):
        from app.jobs import scheduler as scheduler_module

        mocker.patch.object(scheduler_module.settings, "scheduler_enabled", True)
        scheduler = JobScheduler()

        await scheduler.start()
        try:
            assert scheduler.get_next_run_time("momentum_daily") is not None
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_job_errors_are_logged_not_raised(self):
        @register_job("test_broken_job")
        async def broken():
            raise RuntimeError("boom")

        scheduler = JobScheduler()
        assert await scheduler._execute_job("test_broken_job") is None

    @pytest.mark.asyncio
    async def test_overlapping_run_is_skipped(self):
        scheduler = JobScheduler()
        lock = scheduler._locks.setdefault("momentum_daily", asyncio.Lock())

        async with lock:
            assert await scheduler.run_job_now("momentum_daily") == "Job momentum_daily already running"
