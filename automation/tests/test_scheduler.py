"""Tests for the periodic job scheduler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from automation.scheduler import JOB_CONFIG, JobDefinition, Scheduler


def job(name, run, interval=60):
    return JobDefinition(name=name, run=run, interval_seconds=interval, description=name)


class TestJobConfig:
    def test_intervals(self):
        intervals = {name: job.interval_seconds for name, job in JOB_CONFIG.items()}
        assert intervals == {
            "meetup_reminder": 60,
            "status_transition": 300,
            "review_request": 600,
            "no_show": 3600,
        }


class TestStartStop:
    def test_start_registers_one_trigger_per_job(self):
        with patch("automation.scheduler.AsyncIOScheduler") as scheduler_cls:
            scheduler = Scheduler()
            scheduler.start()

        aps = scheduler_cls.return_value
        aps.start.assert_called_once()
        registered = {
            c.kwargs["id"]: c.kwargs["seconds"] for c in aps.add_job.call_args_list
        }
        assert registered == {
            "meetup_reminder": 60,
            "status_transition": 300,
            "review_request": 600,
            "no_show": 3600,
        }
        for c in aps.add_job.call_args_list:
            assert c.kwargs["trigger"] == "interval"
        assert scheduler.is_running
        assert sorted(scheduler.job_ids) == sorted(JOB_CONFIG)

    def test_start_twice_does_not_duplicate_triggers(self):
        with patch("automation.scheduler.AsyncIOScheduler") as scheduler_cls:
            scheduler = Scheduler()
            scheduler.start()
            scheduler.start()

        assert scheduler_cls.call_count == 1
        assert scheduler_cls.return_value.add_job.call_count == len(JOB_CONFIG)

    def test_stop_removes_triggers_and_clears_state(self):
        with patch("automation.scheduler.AsyncIOScheduler") as scheduler_cls:
            scheduler = Scheduler()
            scheduler.start()
            scheduler.stop()

        aps = scheduler_cls.return_value
        assert aps.remove_job.call_count == len(JOB_CONFIG)
        aps.shutdown.assert_called_once_with(wait=False)
        assert not scheduler.is_running
        assert scheduler.job_ids == []

    def test_stop_is_idempotent(self):
        with patch("automation.scheduler.AsyncIOScheduler") as scheduler_cls:
            scheduler = Scheduler()
            scheduler.start()
            scheduler.stop()
            scheduler.stop()

        scheduler_cls.return_value.shutdown.assert_called_once()

    def test_stop_without_start(self):
        scheduler = Scheduler()
        scheduler.stop()
        assert not scheduler.is_running

    def test_stop_tolerates_already_removed_job(self):
        from apscheduler.jobstores.base import JobLookupError

        with patch("automation.scheduler.AsyncIOScheduler") as scheduler_cls:
            scheduler_cls.return_value.remove_job.side_effect = JobLookupError("x")
            scheduler = Scheduler()
            scheduler.start()
            scheduler.stop()

        assert scheduler.job_ids == []


class TestTick:
    @pytest.mark.asyncio
    async def test_failing_job_is_logged_not_raised(self, caplog):
        failing = AsyncMock(side_effect=RuntimeError("query failed"))
        scheduler = Scheduler(jobs={"broken": job("broken", failing)})

        with patch("automation.scheduler.sentry_sdk.capture_exception") as capture:
            await scheduler._tick(name="broken")
            await scheduler._tick(name="broken")

        assert failing.await_count == 2
        assert capture.call_count == 2
        assert "Job broken failed" in caplog.text

    @pytest.mark.asyncio
    async def test_failure_in_one_job_does_not_affect_another(self):
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock(return_value={"ok": 1})
        scheduler = Scheduler(
            jobs={"broken": job("broken", failing), "healthy": job("healthy", healthy)}
        )

        with patch("automation.scheduler.sentry_sdk.capture_exception"):
            await asyncio.gather(
                scheduler._tick(name="broken"), scheduler._tick(name="healthy")
            )

        healthy.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self, caplog):
        release = asyncio.Event()
        calls = 0

        async def slow():
            nonlocal calls
            calls += 1
            await release.wait()
            return {}

        scheduler = Scheduler(jobs={"slow": job("slow", slow)})

        first = asyncio.create_task(scheduler._tick(name="slow"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await scheduler._tick(name="slow")
        release.set()
        await first

        assert calls == 1
        assert "still running" in caplog.text

    @pytest.mark.asyncio
    async def test_in_flight_run_survives_trigger_cancellation(self):
        release = asyncio.Event()
        finished = asyncio.Event()

        async def slow():
            await release.wait()
            finished.set()
            return {}

        scheduler = Scheduler(jobs={"slow": job("slow", slow)})
        tick = asyncio.create_task(scheduler._tick(name="slow"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        tick.cancel()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        # The trigger returns quietly instead of surfacing the cancellation
        assert tick.done()
        assert not tick.cancelled()
        assert tick.exception() is None

        release.set()
        assert await scheduler.wait_idle(timeout=1)
        assert finished.is_set()


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_returns_job_result(self):
        run = AsyncMock(return_value={"meetups": 2})
        scheduler = Scheduler(jobs={"demo": job("demo", run)})

        assert await scheduler.run_once("demo") == {"meetups": 2}

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        with pytest.raises(KeyError):
            await Scheduler().run_once("nope")

    @pytest.mark.asyncio
    async def test_default_jobs_call_job_modules(self):
        with patch(
            "automation.jobs.status_transition.run",
            AsyncMock(return_value={"in_progress": 0, "ended": 0}),
        ) as run:
            result = await Scheduler().run_once("status_transition")

        run.assert_awaited_once()
        assert result == {"in_progress": 0, "ended": 0}


class TestWaitIdle:
    @pytest.mark.asyncio
    async def test_idle_when_nothing_ran(self):
        assert await Scheduler().wait_idle(timeout=0.1)
