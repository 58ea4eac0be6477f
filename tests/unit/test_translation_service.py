"""
Tests for the translation service: job creation, batch with direct
fallback, status views and restart handling.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from src.config import TranslationConfig
from src.core.adapters import EpubAdapter, TranslatedUnit
from src.core.batch.orchestrator import BatchOrchestrator
from src.core.batch.state import BatchStatus, BatchTranslationState
from src.core.direct_translator import DirectTranslator
from src.core.exceptions import SubmissionError, TranslationError, UnsupportedFormatError
from src.core.translation_service import TranslationService
from src.persistence.models import JobStatus


async def fake_translate(unit, source_language, target_language, style, markup):
    return unit.content.replace("<p>", "<p>[fr] ")


def batch_state(units, status=BatchStatus.IN_PROGRESS, translated=None):
    state = BatchTranslationState(batch_id="batch_1", input_units=units, source_language="English",
                                  target_language="French", style="standard", batch_status=status)
    if translated is not None:
        state.mark_completed(translated)
    return state


@pytest.fixture
def units(epub_bytes):
    return EpubAdapter().extract(epub_bytes)


@pytest.fixture
def client(units):
    client = MagicMock()
    client.submit_batch = AsyncMock(return_value=batch_state(units, BatchStatus.VALIDATING))
    client.poll_status = AsyncMock()
    client.fetch_results = MagicMock(return_value=None)
    client.get_state = MagicMock(return_value=None)
    client.close = AsyncMock()
    return client


@pytest_asyncio.fixture
async def service(job_store, checkpoints, artifact_store, finalizer, client, fixed_now):
    orchestrator = BatchOrchestrator(job_store, client, finalizer, poll_interval=120, clock=lambda: fixed_now)
    direct = DirectTranslator(job_store, fake_translate, checkpoints, finalizer)
    service = TranslationService(job_store, checkpoints, artifact_store, orchestrator, finalizer, direct,
                                 clock=lambda: fixed_now)
    yield service
    await service.shutdown()


@pytest.fixture
def config():
    return TranslationConfig(source_language="English", target_language="French", style="standard")


@pytest.mark.asyncio
class TestSubmit:

    async def test_creates_pending_job_with_preserved_input(self, service, config, epub_bytes, checkpoints):
        job = await service.submit(epub_bytes, "book.epub", config, owner_id="alice")

        assert job.status == JobStatus.PENDING
        assert job.file_type == "epub"
        assert job.owner_id == "alice"
        assert await checkpoints.load_input(job.source_path) == epub_bytes

    async def test_unsupported_format(self, service, config, job_store):
        with pytest.raises(UnsupportedFormatError):
            await service.submit(b"plain text", "notes.txt", config)

        assert job_store.list_jobs() == []

    async def test_owner_unusable_in_a_path_is_rejected(self, service, config, epub_bytes, job_store):
        with pytest.raises(ValueError):
            await service.submit(epub_bytes, "book.epub", config, owner_id="../..")

        assert job_store.list_jobs() == []


@pytest.mark.asyncio
class TestProcess:
    """Batch submission, direct fallback and failures before translation."""

    async def test_batch_submission(self, service, client, config, epub_bytes):
        job = await service.translate(epub_bytes, "book.epub", config)

        assert job.status == JobStatus.BATCH_PROCESSING
        assert job.batch_id == "batch_1"
        assert job.total_units == 3
        assert service.orchestrator.scheduler.is_armed(job.id)
        client.submit_batch.assert_awaited_once()

    async def test_falls_back_to_direct_on_submission_error(self, service, client, config, epub_bytes,
                                                            artifact_store):
        client.submit_batch.side_effect = SubmissionError("Backend rejected the batch (HTTP 400)")

        job = await service.translate(epub_bytes, "book.epub", config)

        assert job.status == JobStatus.COMPLETED
        assert job.mode == "direct"
        assert job.batch_id is None
        rebuilt = EpubAdapter().extract(await artifact_store.read(job.artifact_key))
        assert all("[fr]" in unit.content for unit in rebuilt)

    async def test_submission_error_without_direct_provider(self, service, client, config, epub_bytes):
        client.submit_batch.side_effect = SubmissionError("Backend rejected the batch (HTTP 401)")
        service.direct_translator = None

        job = await service.translate(epub_bytes, "book.epub", config)

        assert job.status == JobStatus.FAILED
        assert job.error == "No direct translation provider is configured"

    async def test_direct_mode_skips_the_batch_backend(self, service, client, epub_bytes):
        config = TranslationConfig(target_language="French", mode="direct")

        job = await service.translate(epub_bytes, "book.epub", config)

        assert job.status == JobStatus.COMPLETED
        client.submit_batch.assert_not_awaited()

    async def test_unreadable_document_fails_job(self, service, client, config):
        job = await service.translate(b"not a zip archive", "book.epub", config)

        assert job.status == JobStatus.FAILED
        assert job.error == "Not a valid EPUB (ZIP) archive"
        client.submit_batch.assert_not_awaited()

    async def test_terminal_job_is_left_alone(self, service, client, config, epub_bytes, job_store):
        job = await service.submit(epub_bytes, "book.epub", config)
        job_store.update(job.id, status=JobStatus.FAILED, error="cancelled")

        result = await service.process(job.id)

        assert result.status == JobStatus.FAILED
        client.submit_batch.assert_not_awaited()

    async def test_job_processed_once_at_a_time(self, service, config, epub_bytes):
        job = await service.submit(epub_bytes, "book.epub", config)
        service._active.add(job.id)

        with pytest.raises(TranslationError, match="already being processed"):
            await service.process(job.id)


@pytest.mark.asyncio
class TestStatusView:

    async def test_running_batch_job(self, service, client, config, epub_bytes, units):
        job = await service.translate(epub_bytes, "book.epub", config)
        client.get_state.return_value = batch_state(units)
        job = service.job_store.update(job.id, progress=45)
        now = job.created_at + timedelta(seconds=450)

        view = service.status_view(job, now)

        assert view['id'] == job.id
        assert view['status'] == "batch_processing"
        assert view['batchId'] == "batch_1"
        assert view['batchStatus'] == "in_progress"
        assert view['unitCount'] == 3
        assert view['translatedCount'] == 0
        assert view['estimatedCompletion'] == (now + timedelta(seconds=550)).isoformat()
        assert view['downloadUrl'] is None
        assert view['lastCheckedAt'] is not None

    async def test_completed_job_has_download_url(self, service, client, config, epub_bytes, units):
        client.submit_batch.side_effect = SubmissionError("rejected")
        job = await service.translate(epub_bytes, "book.epub", config)

        view = service.status_view(job)

        assert view['status'] == "completed"
        assert view['progress'] == 100
        assert view['estimatedCompletion'] is None
        assert view['downloadUrl'].startswith("/api/artifacts/")
        assert view['translatedCount'] == 3
        _, name, _ = service.artifact_store.resolve_token(view['downloadUrl'].rsplit('/', 1)[-1])
        assert name == "translated-book.epub"

    async def test_translated_count_from_completed_batch(self, service, client, config, epub_bytes, units):
        job = await service.translate(epub_bytes, "book.epub", config)
        translated = [TranslatedUnit(id=u.id, translated_content=u.content) for u in units[:2]]
        client.get_state.return_value = batch_state(units, translated=translated)

        view = service.status_view(job)

        assert view['batchStatus'] == "completed"
        assert view['translatedCount'] == 2

    async def test_units_of_completed_direct_job(self, service, epub_bytes):
        config = TranslationConfig(target_language="French", mode="direct")
        job = await service.translate(epub_bytes, "book.epub", config)

        units = await service.unit_view(job)

        assert [unit['id'] for unit in units] == ["ch1", "ch2", "ch3"]
        assert all(unit['translated'] for unit in units)

    async def test_units_of_batch_job_come_from_batch_state(self, service, client, config, epub_bytes, units):
        job = await service.translate(epub_bytes, "book.epub", config)
        client.get_state.return_value = batch_state(units, translated=[TranslatedUnit(id="ch1", translated_content="x")])

        view = await service.unit_view(job)

        assert [(unit['id'], unit['translated']) for unit in view] == [
            ("ch1", True), ("ch2", False), ("ch3", False)
        ]

    async def test_list_jobs_by_status(self, service, config, epub_bytes):
        first = await service.submit(epub_bytes, "a.epub", config)
        await service.submit(epub_bytes, "b.epub", config)

        assert {job.id for job in service.list_jobs(status="pending")} >= {first.id}
        assert len(service.list_jobs(limit=1)) == 1


@pytest.mark.asyncio
class TestResume:
    """Restart handling."""

    async def test_interrupted_direct_job_is_restarted(self, service, job_store, epub_bytes):
        config = TranslationConfig(target_language="French", mode="direct")
        job = await service.submit(epub_bytes, "book.epub", config)
        job_store.update(job.id, status=JobStatus.TRANSLATING, progress=46)

        resumed = service.resume()
        finished = await service.wait_for(job.id, check_interval=0.01)

        assert resumed == {'polling': [], 'restarted': [job.id]}
        assert finished.status == JobStatus.COMPLETED

    async def test_polling_job_gets_its_timer_back(self, service, job_store, fixed_now):
        job = job_store.create("book.epub", "epub", "English", "French", "standard")
        job_store.update(job.id, status=JobStatus.BATCH_PROCESSING, batch_id="batch_1",
                         last_checked_at=fixed_now - timedelta(seconds=30))

        resumed = service.resume()

        assert resumed == {'polling': [job.id], 'restarted': []}
        assert service.orchestrator.scheduler.delay_of(job.id) == pytest.approx(90, abs=1)

    async def test_reconstructing_batch_job_is_finished(self, service, client, config, epub_bytes,
                                                        units, job_store):
        job = await service.translate(epub_bytes, "book.epub", config)
        service.orchestrator.stop_polling(job.id)
        job_store.update(job.id, status=JobStatus.RECONSTRUCTING)
        client.fetch_results.return_value = [
            TranslatedUnit(id=u.id, translated_content=u.content.replace("<p>", "<p>[fr] ")) for u in units
        ]

        resumed = service.resume()
        finished = await service.wait_for(job.id, check_interval=0.01)

        assert resumed['restarted'] == [job.id]
        assert finished.status == JobStatus.COMPLETED
        client.fetch_results.assert_called_once_with("batch_1")

    async def test_active_jobs_are_not_restarted(self, service, config, epub_bytes):
        job = await service.submit(epub_bytes, "book.epub", config)
        service._active.add(job.id)

        assert service.resume() == {'polling': [], 'restarted': []}
