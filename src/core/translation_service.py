"""
Translation service: the entry point shared by the CLI and the web API.

Creates jobs, extracts units with the format adapter of the document, and
runs them through the batch orchestrator, falling back to direct
translation when the batch backend rejects the submission.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from src.config import (
    DATABASE_PATH, UPLOAD_DIR, ARTIFACT_DIR, OPENAI_BASE_URL, DOWNLOAD_URL_TTL_SECONDS,
    TranslationConfig
)
from src.core.adapters import get_format_adapter, FormatAdapter, TranslatableUnit
from src.core.batch import BatchOrchestrator, BatchStateStore, BatchTranslationClient
from src.core.batch.progress import estimate_completion
from src.core.direct_translator import DirectTranslator
from src.core.exceptions import (
    ExtractionError, JobNotFoundError, SubmissionError, TranslationError, UnitTranslationError
)
from src.core.finalizer import JobFinalizer
from src.core.llm_providers import create_llm_provider
from src.persistence import CheckpointManager, Database, JobStatus, JobStore, TranslationJob
from src.persistence.models import utcnow
from src.storage import ArtifactStore, LocalArtifactStore, is_valid_owner_id
from src.utils.unified_logger import get_logger, LogType

#: Statuses of jobs whose processing happens inside this process and is lost on restart
_INTERRUPTIBLE = (JobStatus.PENDING, JobStatus.BATCH_SUBMITTED, JobStatus.TRANSLATING)


class TranslationService:
    """
    Wires the stores, the batch orchestrator and the direct translator.

    Jobs currently processed by this instance are tracked so the periodic
    resume scan never starts a second run of the same job.
    """

    def __init__(
        self,
        job_store: JobStore,
        checkpoints: CheckpointManager,
        artifact_store: ArtifactStore,
        orchestrator: BatchOrchestrator,
        finalizer: JobFinalizer,
        direct_translator: Optional[DirectTranslator] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.job_store = job_store
        self.checkpoints = checkpoints
        self.artifact_store = artifact_store
        self.orchestrator = orchestrator
        self.finalizer = finalizer
        self.direct_translator = direct_translator
        self.clock = clock
        self._active: Set[str] = set()
        self._provider = None
        self.logger = get_logger()

    @classmethod
    def create(cls, config: TranslationConfig, database_path: str = DATABASE_PATH,
               upload_dir: str = UPLOAD_DIR, artifact_dir: str = ARTIFACT_DIR) -> 'TranslationService':
        """Build a service with the default sqlite, filesystem and HTTP backends."""
        database = Database(database_path)
        job_store = JobStore(database)
        checkpoints = CheckpointManager(database, upload_dir)
        artifact_store = LocalArtifactStore(artifact_dir)
        finalizer = JobFinalizer(job_store, artifact_store, checkpoints)

        client = BatchTranslationClient(
            api_key=config.openai_api_key,
            base_url=OPENAI_BASE_URL,
            model=config.batch_model,
            state_store=BatchStateStore(database)
        )
        orchestrator = BatchOrchestrator(job_store, client, finalizer, poll_interval=config.poll_interval)

        service = cls(job_store, checkpoints, artifact_store, orchestrator, finalizer)
        try:
            provider = create_llm_provider(
                config.direct_provider,
                api_key=config.gemini_api_key if config.direct_provider == 'gemini' else config.openai_api_key,
                timeout=config.timeout,
                max_attempts=config.max_attempts,
                retry_delay=config.retry_delay
            )
        except ValueError as e:
            service.logger.warning(f"Direct translation unavailable: {e}")
        else:
            service._provider = provider
            service.direct_translator = DirectTranslator(job_store, provider.translate_unit, checkpoints, finalizer)
        return service

    # ------------------------------------------------------------------
    # Job creation and processing
    # ------------------------------------------------------------------

    async def submit(self, data: bytes, file_name: str, config: TranslationConfig,
                     owner_id: str = "anonymous") -> TranslationJob:
        """
        Create a ``pending`` job for a document and preserve its bytes.

        Raises:
            ValueError: if ``owner_id`` cannot be used in an artifact key
            UnsupportedFormatError: if no adapter handles the file
        """
        if not is_valid_owner_id(owner_id):
            raise ValueError("owner_id may only contain letters, digits, '-' and '_' (at most 64)")
        adapter = get_format_adapter(file_name)
        job = self.job_store.create(
            file_name=file_name,
            file_type=adapter.format_name,
            source_language=config.source_language,
            target_language=config.target_language,
            style=config.style,
            owner_id=owner_id,
            mode=config.mode
        )
        source_path = await self.checkpoints.preserve_input(job.id, file_name, data)
        job = self.job_store.update(job.id, source_path=source_path)
        self.logger.info(f"Job {job.id} created for {file_name}", LogType.JOB_START, {
            'file_name': file_name,
            'file_type': job.file_type,
            'source_language': job.source_language,
            'target_language': job.target_language,
            'mode': job.mode,
            'style': job.style,
        })
        return job

    async def process(self, job_id: str) -> TranslationJob:
        """
        Extract the units of a job and start translating them.

        In batch mode this returns once the batch is submitted (polling goes
        on in the background); in direct mode it returns when the job ended.
        """
        return await self._run_exclusive(job_id, self._process(job_id))

    async def _run_exclusive(self, job_id: str, coro) -> TranslationJob:
        if job_id in self._active:
            coro.close()
            raise TranslationError("Job is already being processed", context={'job_id': job_id})
        self._active.add(job_id)
        try:
            return await coro
        finally:
            self._active.discard(job_id)

    async def _process(self, job_id: str) -> TranslationJob:
        job = self.get_job(job_id)
        if job.status.is_terminal:
            return job

        try:
            adapter = get_format_adapter(job.file_type)
            units = await self._extract(job, adapter)
        except ExtractionError as e:
            return self.finalizer.fail(job_id, e)

        if job.mode == 'batch':
            try:
                return await self.orchestrator.start_batch(job_id, units, adapter)
            except SubmissionError as e:
                self.logger.warning(f"Falling back to direct translation for job {job_id}: {e.message}")
        return await self._run_direct(job_id, units, adapter)

    async def _extract(self, job: TranslationJob, adapter: FormatAdapter) -> List[TranslatableUnit]:
        if not job.source_path:
            raise ExtractionError("Original document is not available", context={'job_id': job.id})
        data = await self.checkpoints.load_input(job.source_path)
        return await asyncio.to_thread(adapter.extract, data)

    async def _run_direct(self, job_id: str, units: List[TranslatableUnit], adapter: FormatAdapter) -> TranslationJob:
        if self.direct_translator is None:
            return self.finalizer.fail(job_id, UnitTranslationError("No direct translation provider is configured"))
        return await self.direct_translator.run(job_id, units, adapter)

    async def translate(self, data: bytes, file_name: str, config: TranslationConfig,
                        owner_id: str = "anonymous") -> TranslationJob:
        """Submit a document and process it right away."""
        job = await self.submit(data, file_name, config, owner_id)
        return await self.process(job.id)

    async def wait_for(self, job_id: str, check_interval: float = 5.0) -> TranslationJob:
        """Wait until a job reaches ``completed`` or ``failed``."""
        while True:
            job = self.get_job(job_id)
            if job.status.is_terminal:
                return job
            await asyncio.sleep(check_interval)

    # ------------------------------------------------------------------
    # Restart
    # ------------------------------------------------------------------

    def resume(self) -> Dict[str, List[str]]:
        """
        Pick up every job interrupted by a restart.

        Batch jobs get their poll timer back. Jobs that never reached the
        backend, and direct jobs, are processed again; direct jobs skip the
        units they already checkpointed. Must run on the event loop.

        Returns:
            ``{'polling': [...], 'restarted': [...]}`` job ids
        """
        polling = self.orchestrator.resume_jobs()
        restarted = []
        for status in _INTERRUPTIBLE + (JobStatus.RECONSTRUCTING,):
            for job in self.job_store.list_by_status(status):
                if job.id in self._active or self.orchestrator.scheduler.is_active(job.id):
                    continue
                restarted.append(job.id)
                asyncio.ensure_future(self._resume_job(job))
        if polling or restarted:
            self.logger.info(f"Resumed {len(polling)} polling and {len(restarted)} interrupted jobs")
        return {'polling': polling, 'restarted': restarted}

    async def _resume_job(self, job: TranslationJob):
        try:
            if job.status == JobStatus.RECONSTRUCTING and job.mode == 'batch':
                await self._run_exclusive(job.id, self.orchestrator.finish(job.id))
            else:
                await self.process(job.id)
        except TranslationError as e:
            self.logger.error(f"Could not resume job {job.id}: {e}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_job(self, job_id: str) -> TranslationJob:
        job = self.job_store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self, status: Optional[str] = None, owner_id: Optional[str] = None,
                  limit: int = 50) -> List[TranslationJob]:
        if status:
            return self.job_store.list_by_status(JobStatus(status))[:limit]
        return self.job_store.list_jobs(owner_id=owner_id, limit=limit)

    def status_view(self, job: TranslationJob, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Status of a job as exposed to clients.

        Adds the unit counters, an ETA while the job is running and a signed
        download URL once it completed.
        """
        now = now or self.clock()
        view = {
            'id': job.id,
            'status': job.status.value,
            'progress': job.progress,
            'mode': job.mode,
            'fileName': job.file_name,
            'fileType': job.file_type,
            'sourceLanguage': job.source_language,
            'targetLanguage': job.target_language,
            'style': job.style,
            'batchId': job.batch_id,
            'error': job.error,
            'lastCheckedAt': job.last_checked_at.isoformat() if job.last_checked_at else None,
            'unitCount': job.total_units,
            'translatedCount': job.completed_units,
            'estimatedCompletion': None,
            'createdAt': job.created_at.isoformat() if job.created_at else None,
            'completedAt': job.completed_at.isoformat() if job.completed_at else None,
            'downloadUrl': None,
        }

        state = self.orchestrator.client.get_state(job.batch_id) if job.batch_id else None
        if state is not None:
            view['batchStatus'] = state.batch_status.value
            view['unitCount'] = state.unit_count or job.total_units
            if state.translated_count:
                view['translatedCount'] = state.translated_count
            elif state.completed_requests:
                view['translatedCount'] = state.completed_requests

        if not job.status.is_terminal:
            eta = estimate_completion(job.created_at, now, job.progress)
            view['estimatedCompletion'] = eta.isoformat() if eta else None

        if job.status == JobStatus.COMPLETED and job.artifact_key:
            view['downloadUrl'] = self.artifact_store.get_download_url(
                job.artifact_key, DOWNLOAD_URL_TTL_SECONDS, download_name=f"translated-{job.file_name}"
            )
        return view

    async def unit_view(self, job: TranslationJob) -> List[Dict[str, Any]]:
        """
        Units of a job in reading order, each flagged once translated.

        Batch jobs are answered from the batch state. Other jobs re-extract
        the preserved document and look up the checkpointed units.
        """
        state = self.orchestrator.client.get_state(job.batch_id) if job.batch_id else None
        if state is not None:
            done = {unit.id for unit in state.translated_units}
            return [{'id': unit.id, 'title': unit.title, 'translated': unit.id in done}
                    for unit in state.input_units]

        if not job.source_path:
            return []
        adapter = get_format_adapter(job.file_type)
        units = await self._extract(job, adapter)
        done = self.checkpoints.load_units(job.id)
        finished = job.status == JobStatus.COMPLETED
        return [{'id': unit.id, 'title': unit.title, 'translated': finished or unit.id in done}
                for unit in units]

    async def shutdown(self):
        await self.orchestrator.shutdown()
        if self._provider is not None:
            await self._provider.close()
