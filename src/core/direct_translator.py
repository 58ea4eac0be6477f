"""
Direct translation: one LLM request per unit, used when batch submission
is unavailable or when the direct mode is requested explicitly.

Every translated unit is checkpointed before the next one starts, so a
job interrupted half-way resumes from the first missing unit.
"""

from typing import Awaitable, Callable, List

from src.core.adapters.format_adapter import FormatAdapter
from src.core.adapters.translation_unit import TranslatableUnit, TranslatedUnit
from src.core.batch.progress import direct_progress
from src.config import DIRECT_PROGRESS_START
from src.core.exceptions import JobNotFoundError, UnitTranslationError
from src.core.finalizer import JobFinalizer
from src.persistence.checkpoint_manager import CheckpointManager
from src.persistence.job_store import JobStore
from src.persistence.models import JobStatus, TranslationJob
from src.utils.unified_logger import get_logger, LogType

#: (unit, source_language, target_language, style, markup) -> translated content
TranslateUnitFn = Callable[[TranslatableUnit, str, str, str, bool], Awaitable[str]]


class DirectTranslator:
    """
    Translates the units of a job sequentially.

    Args:
        job_store: Job record store
        translate_unit: Single-unit primitive, usually ``LLMProvider.translate_unit``
        checkpoints: Scratch storage for translated units
        finalizer: Shared reconstruct/store/complete tail
    """

    def __init__(self, job_store: JobStore, translate_unit: TranslateUnitFn,
                 checkpoints: CheckpointManager, finalizer: JobFinalizer):
        self.job_store = job_store
        self.translate_unit = translate_unit
        self.checkpoints = checkpoints
        self.finalizer = finalizer
        self.logger = get_logger()

    async def run(self, job_id: str, units: List[TranslatableUnit], adapter: FormatAdapter) -> TranslationJob:
        """
        Translate ``units`` and finalize the job.

        Returns:
            The job in its terminal state
        """
        job = self.job_store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        total = len(units)
        done = self.checkpoints.load_units(job_id)
        completed = sum(1 for unit in units if unit.id in done)
        if completed:
            self.logger.info(f"Resuming job {job_id}: {completed}/{total} units already translated")

        job = self.job_store.update(
            job_id,
            status=JobStatus.TRANSLATING,
            mode='direct',
            total_units=total,
            completed_units=completed,
            progress=max(job.progress, direct_progress(completed, total) if total else DIRECT_PROGRESS_START)
        )

        for index, unit in enumerate(units):
            if unit.id in done:
                continue
            try:
                content = await self.translate_unit(
                    unit, job.source_language, job.target_language, job.style, adapter.markup
                )
            except UnitTranslationError as e:
                e.unit_index = index
                return self.finalizer.fail(job_id, e)
            except Exception as e:
                self.logger.error(f"Unexpected error translating unit {unit.id}: {e}", LogType.ERROR_DETAIL,
                                  {'job_id': job_id, 'details': repr(e)})
                return self.finalizer.fail(
                    job_id, UnitTranslationError(f"Translation failed: {e}", unit_id=unit.id, unit_index=index)
                )

            translated = TranslatedUnit(id=unit.id, translated_content=content, title=unit.title)
            done[unit.id] = translated
            self.checkpoints.save_unit(job_id, index, translated)
            completed += 1

            progress = direct_progress(completed, total)
            job = self.job_store.update(job_id, completed_units=completed, progress=max(job.progress, progress))
            self.logger.info(f"Unit {completed}/{total} translated", LogType.PROGRESS,
                             {'progress': job.progress, 'status': job.status.value})

        job = await self.finalizer.finalize(job_id, [done[unit.id] for unit in units], adapter)
        if job.status == JobStatus.COMPLETED:
            self.checkpoints.clear_units(job_id)
        return job
