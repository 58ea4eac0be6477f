"""Unit tests for the per-job poll timer registry."""

import asyncio

import pytest

from src.core.batch.scheduler import PollScheduler


class Recorder:
    """Poll callback recording the job ids it was called with."""

    def __init__(self, delay=0.0):
        self.calls = []
        self.delay = delay

    async def __call__(self, job_id):
        self.calls.append(job_id)
        if self.delay:
            await asyncio.sleep(self.delay)


@pytest.mark.asyncio
class TestPollScheduler:
    """Timer arming, cancellation and shutdown."""

    async def test_armed_timer_fires_once(self):
        scheduler = PollScheduler()
        recorder = Recorder()

        scheduler.arm("job-1", 0.01, recorder)
        assert scheduler.is_armed("job-1")

        await asyncio.sleep(0.05)
        assert recorder.calls == ["job-1"]
        assert not scheduler.is_active("job-1")

    async def test_rearming_replaces_pending_timer(self):
        """Only the last armed timer of a job fires."""
        scheduler = PollScheduler()
        recorder = Recorder()

        scheduler.arm("job-1", 0.01, recorder)
        scheduler.arm("job-1", 0.02, recorder)
        assert scheduler.armed_jobs() == ["job-1"]

        await asyncio.sleep(0.08)
        assert recorder.calls == ["job-1"]

    async def test_cancel_twice_is_a_no_op(self):
        scheduler = PollScheduler()
        recorder = Recorder()
        scheduler.arm("job-1", 0.01, recorder)

        assert scheduler.cancel("job-1") is True
        assert scheduler.cancel("job-1") is False

        await asyncio.sleep(0.03)
        assert recorder.calls == []

    async def test_cancel_unknown_job(self):
        assert PollScheduler().cancel("nope") is False

    async def test_running_handler_counts_as_active(self):
        scheduler = PollScheduler()
        recorder = Recorder(delay=0.05)
        scheduler.arm("job-1", 0, recorder)

        await asyncio.sleep(0.01)
        assert not scheduler.is_armed("job-1")
        assert scheduler.is_running("job-1")
        assert scheduler.is_active("job-1")

        await asyncio.sleep(0.08)
        assert not scheduler.is_active("job-1")

    async def test_jobs_have_independent_timers(self):
        scheduler = PollScheduler()
        recorder = Recorder()
        scheduler.arm("job-1", 0.01, recorder)
        scheduler.arm("job-2", 0.01, recorder)
        scheduler.cancel("job-1")

        await asyncio.sleep(0.05)
        assert recorder.calls == ["job-2"]

    async def test_delay_of(self):
        scheduler = PollScheduler()
        scheduler.arm("job-1", 100, Recorder())
        assert 99 < scheduler.delay_of("job-1") <= 100
        assert scheduler.delay_of("job-2") is None
        scheduler.cancel("job-1")

    async def test_failing_handler_is_logged_not_raised(self):
        scheduler = PollScheduler()

        async def boom(job_id):
            raise RuntimeError("backend exploded")

        scheduler.arm("job-1", 0, boom)
        await asyncio.sleep(0.02)
        assert not scheduler.is_active("job-1")

    async def test_shutdown_cancels_timers_and_handlers(self):
        scheduler = PollScheduler()
        slow = Recorder(delay=10)
        scheduler.arm("job-1", 0, slow)
        scheduler.arm("job-2", 100, slow)
        await asyncio.sleep(0.01)

        await scheduler.shutdown()

        assert scheduler.armed_jobs() == []
        assert not scheduler.is_active("job-1")
        assert not scheduler.is_active("job-2")
