"""Unit tests for the direct (per-unit) translation path."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from src.core.adapters import EpubAdapter, TranslatedUnit
from src.core.direct_translator import DirectTranslator
from src.core.exceptions import UnitTranslationError
from src.persistence.models import JobStatus


async def fake_translate(unit, source_language, target_language, style, markup):
    return unit.content.replace("<p>", "<p>[fr] ")


@pytest.fixture
def adapter():
    return EpubAdapter()


@pytest.fixture
def units(adapter, epub_bytes):
    return adapter.extract(epub_bytes)


@pytest_asyncio.fixture
async def job(job_store, checkpoints, epub_bytes):
    job = job_store.create("book.epub", "epub", "English", "French", "literary", mode="direct")
    path = await checkpoints.preserve_input(job.id, "book.epub", epub_bytes)
    return job_store.update(job.id, source_path=path)


@pytest.mark.asyncio
class TestDirectTranslator:
    """Sequential translation, checkpoints and finalization."""

    async def test_progress_after_each_unit(self, job_store, checkpoints, finalizer, job, units, adapter):
        """Progress after unit k of N is floor(30 + k/N * 50)."""
        progress_by_units = {}

        def record(updated):
            if updated.status == JobStatus.TRANSLATING:
                progress_by_units[updated.completed_units] = updated.progress

        job_store.add_listener(record)
        translator = DirectTranslator(job_store, fake_translate, checkpoints, finalizer)

        result = await translator.run(job.id, units, adapter)

        assert progress_by_units == {0: 30, 1: 46, 2: 63, 3: 80}
        assert result.status == JobStatus.COMPLETED
        assert result.progress == 100
        assert result.mode == "direct"
        assert result.completed_units == result.total_units == 3
        assert result.artifact_key is not None

    async def test_units_are_translated_in_order_with_job_settings(self, job_store, checkpoints, finalizer,
                                                                   job, units, adapter):
        translate = AsyncMock(side_effect=fake_translate)
        translator = DirectTranslator(job_store, translate, checkpoints, finalizer)

        await translator.run(job.id, units, adapter)

        called_ids = [call.args[0].id for call in translate.await_args_list]
        assert called_ids == [unit.id for unit in units]
        assert translate.await_args_list[0].args[1:] == ("English", "French", "literary", True)

    async def test_artifact_contains_translations(self, job_store, checkpoints, finalizer, artifact_store,
                                                  job, units, adapter):
        translator = DirectTranslator(job_store, fake_translate, checkpoints, finalizer)

        result = await translator.run(job.id, units, adapter)

        rebuilt = adapter.extract(await artifact_store.read(result.artifact_key))
        assert all("[fr]" in unit.content for unit in rebuilt)

    async def test_unit_failure_fails_job(self, job_store, checkpoints, finalizer, job, units, adapter):
        translate = AsyncMock(side_effect=[
            "<p>ok</p>",
            UnitTranslationError("Gemini request failed after 2 attempts", unit_id=units[1].id),
        ])
        translator = DirectTranslator(job_store, translate, checkpoints, finalizer)

        result = await translator.run(job.id, units, adapter)

        assert result.status == JobStatus.FAILED
        assert result.error == "Gemini request failed after 2 attempts"
        assert result.artifact_key is None
        assert translate.await_count == 2

    async def test_unexpected_exception_fails_job(self, job_store, checkpoints, finalizer, job, units, adapter):
        translator = DirectTranslator(job_store, AsyncMock(side_effect=RuntimeError("socket closed")),
                                      checkpoints, finalizer)

        result = await translator.run(job.id, units, adapter)

        assert result.status == JobStatus.FAILED
        assert "socket closed" in result.error

    async def test_resume_skips_checkpointed_units(self, job_store, checkpoints, finalizer, job, units, adapter):
        """Units translated before an interruption are not requested again."""
        checkpoints.save_unit(job.id, 0, TranslatedUnit(id=units[0].id, translated_content="<p>done</p>",
                                                        title=units[0].title))
        translate = AsyncMock(side_effect=fake_translate)
        translator = DirectTranslator(job_store, translate, checkpoints, finalizer)

        result = await translator.run(job.id, units, adapter)

        assert [call.args[0].id for call in translate.await_args_list] == [units[1].id, units[2].id]
        assert result.status == JobStatus.COMPLETED
        # scratch checkpoints are gone once the job completed
        assert checkpoints.load_units(job.id) == {}

    async def test_checkpoints_kept_after_failure(self, job_store, checkpoints, finalizer, job, units, adapter):
        translate = AsyncMock(side_effect=["<p>one</p>", UnitTranslationError("empty translation")])
        translator = DirectTranslator(job_store, translate, checkpoints, finalizer)

        await translator.run(job.id, units, adapter)

        assert list(checkpoints.load_units(job.id)) == [units[0].id]
