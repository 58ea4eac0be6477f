"""
Shared tail of every translation job: reconstruct, store, complete.
"""

import asyncio
from typing import List

from src.config import RECONSTRUCT_PROGRESS
from src.core.adapters.format_adapter import FormatAdapter
from src.core.adapters.translation_unit import TranslatedUnit
from src.core.exceptions import (
    ArtifactStoreError, JobNotFoundError, JobStateError, ReconstructionError, user_message
)
from src.persistence.checkpoint_manager import CheckpointManager
from src.persistence.job_store import JobStore
from src.persistence.models import JobStatus, TranslationJob, utcnow
from src.storage.artifact_store import ArtifactStore
from src.utils.unified_logger import get_logger, LogType


class JobFinalizer:
    """
    Moves a job through ``reconstructing`` to ``completed``, or to ``failed``.

    Used by both the batch orchestrator and the direct translator so the two
    paths end identically.
    """

    def __init__(self, job_store: JobStore, artifact_store: ArtifactStore, checkpoints: CheckpointManager):
        self.job_store = job_store
        self.artifact_store = artifact_store
        self.checkpoints = checkpoints
        self.logger = get_logger()

    async def finalize(self, job_id: str, translated_units: List[TranslatedUnit],
                       adapter: FormatAdapter) -> TranslationJob:
        """
        Rebuild the document from ``translated_units`` and store it.

        Returns:
            The job in its terminal state
        """
        job = self.job_store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        job = self.job_store.update(
            job_id,
            status=JobStatus.RECONSTRUCTING,
            progress=max(job.progress, RECONSTRUCT_PROGRESS)
        )

        try:
            if not job.source_path:
                raise ReconstructionError("Original document is not available", context={'job_id': job_id})
            original = await self.checkpoints.load_input(job.source_path)
            data = await asyncio.to_thread(adapter.reconstruct, original, translated_units)
            artifact_key = await self.artifact_store.put(
                data, job.owner_id, adapter.output_name(job.file_name), adapter.mime_type
            )
        except (ReconstructionError, ArtifactStoreError) as e:
            return self.fail(job_id, e)
        except Exception as e:
            self.logger.error(f"Unexpected reconstruction error for job {job_id}: {e}", LogType.ERROR_DETAIL,
                              {'job_id': job_id, 'details': repr(e)})
            return self.fail(job_id, ReconstructionError(f"Reconstruction failed: {e}"))

        job = self.job_store.update(
            job_id,
            status=JobStatus.COMPLETED,
            progress=100,
            completed_units=job.total_units,
            artifact_key=artifact_key,
            error=None,
            completed_at=utcnow()
        )
        self.logger.info(f"Job {job_id} completed", LogType.JOB_END,
                         {'status': job.status.value, 'artifact_key': artifact_key})
        return job

    def fail(self, job_id: str, error: BaseException) -> TranslationJob:
        """Record a terminal failure. A job that already ended is returned unchanged."""
        message = user_message(error)
        try:
            job = self.job_store.update(job_id, status=JobStatus.FAILED, error=message, completed_at=utcnow())
        except JobStateError:
            return self.job_store.get(job_id)
        self.logger.error(f"Job {job_id} failed: {message}", LogType.JOB_END,
                          {'status': job.status.value, 'error': message})
        return job
