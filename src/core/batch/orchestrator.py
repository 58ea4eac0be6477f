"""
Batch orchestrator: owns the lifecycle of one backend batch per job.

State machine::

    pending -> batch_submitted -> batch_processing -> reconstructing -> completed
                                         |
                                         +-> failed

Polls run on a fixed interval, one at a time per job: the next poll is only
armed once the current handler has finished. Transient poll errors are
recorded on the job and retried on the next tick, terminal errors fail the
job and stop polling.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional

from src.config import POLL_INTERVAL_SECONDS, BATCH_PROGRESS_START
from src.core.adapters.format_adapter import FormatAdapter, get_format_adapter
from src.core.adapters.translation_unit import TranslatableUnit
from src.core.exceptions import (
    BackendJobFailure, JobNotFoundError, ReconstructionError, SubmissionError, TranslationError,
    user_message
)
from src.core.finalizer import JobFinalizer
from src.persistence.job_store import JobStore
from src.persistence.models import JobStatus, TranslationJob, utcnow
from src.utils.unified_logger import get_logger, LogType
from .client import BatchTranslationClient
from .progress import is_poll_due, next_batch_progress, seconds_until_due
from .scheduler import PollScheduler
from .state import BatchStatus


class BatchOrchestrator:
    """
    Drives batch jobs from submission to a terminal state.

    Args:
        job_store: Job record store
        client: Backend batch client
        finalizer: Shared reconstruct/store/complete tail
        scheduler: Timer registry, one per orchestrator
        poll_interval: Seconds between two polls of the same job
        clock: Returns the current time (timezone-aware)
    """

    def __init__(
        self,
        job_store: JobStore,
        client: BatchTranslationClient,
        finalizer: JobFinalizer,
        scheduler: Optional[PollScheduler] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utcnow
    ):
        self.job_store = job_store
        self.client = client
        self.finalizer = finalizer
        self.scheduler = scheduler or PollScheduler()
        self.poll_interval = poll_interval
        self.clock = clock
        self._adapters: Dict[str, FormatAdapter] = {}
        self.logger = get_logger()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def start_batch(self, job_id: str, units: List[TranslatableUnit],
                          adapter: FormatAdapter) -> TranslationJob:
        """
        Submit the units of a pending job and start polling.

        Raises:
            SubmissionError: if the backend rejected the batch. The job is
                back in ``pending`` with the error recorded, ready for the
                direct fallback.
        """
        self._adapters[job_id] = adapter
        job = self.job_store.update(job_id, status=JobStatus.BATCH_SUBMITTED, total_units=len(units), mode='batch')

        try:
            state = await self.client.submit_batch(
                units, job.source_language, job.target_language, job.style, markup=adapter.markup
            )
        except SubmissionError as e:
            self._adapters.pop(job_id, None)
            self.job_store.update(job_id, status=JobStatus.PENDING, error=user_message(e))
            self.logger.warning(f"Batch submission failed for job {job_id}: {e}")
            raise

        job = self.job_store.update(
            job_id,
            status=JobStatus.BATCH_PROCESSING,
            batch_id=state.batch_id,
            progress=max(job.progress, BATCH_PROGRESS_START),
            last_checked_at=self.clock(),
            error=None
        )
        self.start_polling(job_id)
        return job

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def start_polling(self, job_id: str, delay: Optional[float] = None):
        """Arm the poll timer of a job, replacing any pending one."""
        self.scheduler.arm(job_id, self.poll_interval if delay is None else delay, self.poll_once)

    def stop_polling(self, job_id: str) -> bool:
        """
        Cancel the poll timer of a job. Safe to call when none is pending.

        Returns:
            True if a timer was cancelled
        """
        return self.scheduler.cancel(job_id)

    # ------------------------------------------------------------------
    # Poll handler
    # ------------------------------------------------------------------

    async def poll_once(self, job_id: str):
        """
        Check the backend once and apply the resulting transition.

        Never raises for transient problems: they are recorded on the job and
        the next poll is armed on the usual interval.
        """
        try:
            await self._poll(job_id)
        except Exception as e:
            self._record_transient_error(job_id, e)

    async def _poll(self, job_id: str):
        job = self.job_store.get(job_id)
        if job is None:
            self.logger.warning(f"Poll for unknown job {job_id}, stopping")
            self._release(job_id)
            return
        if job.status != JobStatus.BATCH_PROCESSING:
            self._release(job_id)
            return
        if not job.batch_id:
            self._fail(job_id, BackendJobFailure("Job has no batch id"))
            return

        try:
            state = await self.client.poll_status(job.batch_id)
        except BackendJobFailure as e:
            self._fail(job_id, e)
            return

        now = self.clock()
        if state.batch_status == BatchStatus.FAILED:
            self.client.forget(job.batch_id)
            self._fail(job_id, BackendJobFailure(state.error or "Batch failed"))
        elif state.batch_status == BatchStatus.COMPLETED:
            await self._complete(job, now)
        else:
            elapsed = (now - state.created_at).total_seconds() if state.created_at else None
            progress = next_batch_progress(job.progress, state.progress, elapsed)
            self.job_store.update(job_id, progress=progress, last_checked_at=now, error=None)
            self.logger.info(f"Job {job_id} batch {state.batch_status.value}", LogType.PROGRESS,
                             {'progress': progress, 'status': job.status.value})
            self.start_polling(job_id)

    def _record_transient_error(self, job_id: str, error: BaseException):
        message = user_message(error)
        self.logger.warning(f"Poll failed for job {job_id}, retrying in {self.poll_interval}s: {message}")
        try:
            self.job_store.update(job_id, error=message, last_checked_at=self.clock())
        except Exception as e:
            self.logger.error(f"Could not record poll error for job {job_id}: {e}")
        self.start_polling(job_id)

    async def _complete(self, job: TranslationJob, now: datetime):
        self.stop_polling(job.id)
        self.job_store.update(job.id, last_checked_at=now)
        await self.finish(job.id)

    async def finish(self, job_id: str) -> TranslationJob:
        """
        Hand the results of a completed batch to the finalizer.

        Also used after a restart for jobs that stopped in ``reconstructing``.
        """
        job = self.get_job(job_id)
        try:
            results = self.client.fetch_results(job.batch_id) if job.batch_id else None
        except BackendJobFailure as e:
            self._fail(job_id, e)
            return self.get_job(job_id)
        if job.batch_id:
            self.client.forget(job.batch_id)
        if not results:
            self._fail(job_id, ReconstructionError("Batch returned no translated units"))
            return self.get_job(job_id)
        missing = job.total_units - len(results)
        if missing > 0:
            self.logger.warning(f"Job {job_id}: {missing} units have no translation and stay in the source language")

        adapter = self._adapter_for(job)
        self._adapters.pop(job_id, None)
        return await self.finalizer.finalize(job_id, results, adapter)

    def _fail(self, job_id: str, error: BaseException):
        self._release(job_id)
        self.finalizer.fail(job_id, error)

    def _release(self, job_id: str):
        self.stop_polling(job_id)
        self._adapters.pop(job_id, None)

    def _adapter_for(self, job: TranslationJob) -> FormatAdapter:
        adapter = self._adapters.get(job.id)
        if adapter is None:
            adapter = get_format_adapter(job.file_type)
        return adapter

    # ------------------------------------------------------------------
    # Restart
    # ------------------------------------------------------------------

    def resume_jobs(self) -> List[str]:
        """
        Re-arm polling for every ``batch_processing`` job without a timer.

        Overdue jobs are polled right away, the others when their interval
        runs out. Jobs that already have a timer or a running poll are left
        alone, so calling this repeatedly never duplicates timers.

        Returns:
            Ids of the jobs that were re-armed
        """
        now = self.clock()
        resumed = []
        for job in self.job_store.list_by_status(JobStatus.BATCH_PROCESSING):
            if self.scheduler.is_active(job.id):
                continue
            if job.id not in self._adapters:
                try:
                    self._adapters[job.id] = get_format_adapter(job.file_type)
                except TranslationError as e:
                    self._fail(job.id, e)
                    continue
            if is_poll_due(job.last_checked_at, now, self.poll_interval):
                self.start_polling(job.id, 0)
            else:
                self.start_polling(job.id, seconds_until_due(job.last_checked_at, now, self.poll_interval))
            resumed.append(job.id)
            self.logger.info(f"Resumed polling for job {job.id} (batch {job.batch_id}) "
                             f"in {self.scheduler.delay_of(job.id):.0f}s")
        return resumed

    def get_job(self, job_id: str) -> TranslationJob:
        job = self.job_store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def shutdown(self):
        """Cancel all timers and running polls, then close the backend client."""
        await self.scheduler.shutdown()
        self._adapters.clear()
        await self.client.close()
