"""
Per-job poll timers.

A ``PollScheduler`` belongs to one orchestrator instance. It holds at most
one pending timer per job id, and remembers which jobs have a poll handler
running so a restart scan never starts a second, overlapping poll.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from src.utils.unified_logger import get_logger

PollCallback = Callable[[str], Awaitable[None]]


class PollScheduler:
    """Registry of ``job_id -> TimerHandle`` built on ``loop.call_later``."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._running: Dict[str, asyncio.Task] = {}
        self.logger = get_logger()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def arm(self, job_id: str, delay: float, callback: PollCallback) -> asyncio.TimerHandle:
        """
        Schedule ``callback(job_id)`` after ``delay`` seconds.

        Any timer already pending for the job is cancelled first.
        """
        self.cancel(job_id)
        loop = self._get_loop()
        handle = loop.call_later(max(0.0, delay), self._fire, job_id, callback)
        self._timers[job_id] = handle
        return handle

    def _fire(self, job_id: str, callback: PollCallback):
        self._timers.pop(job_id, None)
        task = self._get_loop().create_task(callback(job_id))
        self._running[job_id] = task
        task.add_done_callback(lambda t: self._on_done(job_id, t))

    def _on_done(self, job_id: str, task: asyncio.Task):
        if self._running.get(job_id) is task:
            del self._running[job_id]
        if not task.cancelled() and task.exception() is not None:
            self.logger.error(f"Poll handler for job {job_id} raised: {task.exception()}")

    def cancel(self, job_id: str) -> bool:
        """
        Cancel the pending timer of a job.

        Returns:
            True if a timer was cancelled, False if there was none
        """
        handle = self._timers.pop(job_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def is_armed(self, job_id: str) -> bool:
        return job_id in self._timers

    def is_running(self, job_id: str) -> bool:
        return job_id in self._running

    def is_active(self, job_id: str) -> bool:
        """True while a timer is pending or a poll handler is running."""
        return self.is_armed(job_id) or self.is_running(job_id)

    def delay_of(self, job_id: str) -> Optional[float]:
        """Seconds until the pending timer of a job fires."""
        handle = self._timers.get(job_id)
        if handle is None:
            return None
        return max(0.0, handle.when() - self._get_loop().time())

    def armed_jobs(self) -> List[str]:
        return list(self._timers)

    async def shutdown(self):
        """Cancel every timer and every running poll handler."""
        for job_id in self.armed_jobs():
            self.cancel(job_id)

        tasks = list(self._running.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._running.clear()
