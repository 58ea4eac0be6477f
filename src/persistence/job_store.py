"""
Job record store used by the orchestrator, the direct translator and the API.
"""

import uuid
from typing import Callable, List, Optional

from .database import Database
from .models import JobStatus, TranslationJob, to_column_value, utcnow
from src.core.exceptions import JobNotFoundError, JobStateError
from src.utils.unified_logger import get_logger

IMMUTABLE_FIELDS = frozenset({'id', 'source_language', 'target_language', 'style', 'created_at'})


class JobStore:
    """
    Typed access to ``translation_jobs``.

    ``update`` writes only the fields it is given, in one statement, so a
    poll updating ``last_checked_at`` never clobbers a concurrent progress
    update. Last write wins per field.
    """

    def __init__(self, database: Database):
        self.db = database
        self._listeners: List[Callable[[TranslationJob], None]] = []

    def add_listener(self, listener: Callable[[TranslationJob], None]):
        """Register a callback invoked with the job after every write."""
        self._listeners.append(listener)

    def _notify(self, job: TranslationJob):
        for listener in self._listeners:
            try:
                listener(job)
            except Exception as e:
                get_logger().warning(f"Job listener failed for {job.id}: {e}")

    def create(
        self,
        file_name: str,
        file_type: str,
        source_language: str,
        target_language: str,
        style: str,
        owner_id: str = "anonymous",
        mode: str = "batch",
        source_path: Optional[str] = None,
        job_id: Optional[str] = None
    ) -> TranslationJob:
        """Create a job in ``pending``."""
        now = utcnow()
        job = TranslationJob(
            id=job_id or uuid.uuid4().hex,
            status=JobStatus.PENDING,
            source_language=source_language,
            target_language=target_language,
            style=style,
            file_name=file_name,
            file_type=file_type,
            owner_id=owner_id,
            mode=mode,
            source_path=source_path,
            created_at=now,
            updated_at=now,
        )
        self.db.insert_job(job.to_dict())
        self._notify(job)
        return job

    def get(self, job_id: str) -> Optional[TranslationJob]:
        row = self.db.get_job(job_id)
        return TranslationJob.from_row(row) if row else None

    def update(self, job_id: str, **fields) -> TranslationJob:
        """
        Apply a partial update and return the job as stored afterwards.

        Raises:
            ValueError: for unknown or immutable fields
            JobNotFoundError: if the job does not exist
            JobStateError: if the job is terminal and the update changes its status
        """
        immutable = IMMUTABLE_FIELDS.intersection(fields)
        if immutable:
            raise ValueError(f"Fields cannot change after creation: {', '.join(sorted(immutable))}")

        values = {name: to_column_value(value) for name, value in fields.items()}
        values['updated_at'] = to_column_value(utcnow())

        with self.db.lock:
            if 'status' in values:
                current = self.db.get_job(job_id)
                if current is None:
                    raise JobNotFoundError(job_id)
                if JobStatus(current['status']).is_terminal and values['status'] != current['status']:
                    raise JobStateError(
                        "Job already reached a terminal state",
                        context={'job_id': job_id, 'status': current['status'], 'requested': values['status']}
                    )
            row = self.db.update_job(job_id, values)

        if row is None:
            raise JobNotFoundError(job_id)
        job = TranslationJob.from_row(row)
        self._notify(job)
        return job

    def list_by_status(self, status: JobStatus) -> List[TranslationJob]:
        return [TranslationJob.from_row(row) for row in self.db.list_jobs(statuses=[JobStatus(status).value])]

    def list_jobs(self, owner_id: Optional[str] = None, limit: int = 50) -> List[TranslationJob]:
        return [TranslationJob.from_row(row) for row in self.db.list_jobs(owner_id=owner_id, limit=limit)]
