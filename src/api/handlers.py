"""
Job handlers and the background event loop used by the web server.

Flask handlers run in worker threads; every coroutine of the translation
service runs on one dedicated asyncio loop thread, so poll timers and
job processing share a single loop.
"""
import asyncio
import threading
from concurrent.futures import Future
from typing import Coroutine, Optional

from src.config import RESUME_SCAN_INTERVAL_SECONDS
from src.core.translation_service import TranslationService
from src.persistence.models import TranslationJob
from src.utils.unified_logger import get_logger, setup_web_logger
from .websocket import emit_update


class BackgroundLoop:
    """An asyncio event loop running forever in a daemon thread."""

    def __init__(self, name: str = "translation-loop"):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def start(self) -> 'BackgroundLoop':
        if not self._thread.is_alive():
            self._thread.start()
        return self

    def submit(self, coro: Coroutine) -> Future:
        """Schedule a coroutine on the loop from any thread."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def stop(self, timeout: float = 5.0):
        if self.loop.is_running():
            self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout)


def _log_failure(job_id: str):
    def _done(future: Future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            get_logger().error(f"Uncaught error while processing job {job_id}: {error}")
    return _done


def start_translation_job(service: TranslationService, background: BackgroundLoop, job_id: str) -> Future:
    """
    Start processing a job on the background loop.

    Args:
        service: Translation service
        background: Loop the service runs on
        job_id: Id of a ``pending`` job
    """
    future = background.submit(service.process(job_id))
    future.add_done_callback(_log_failure(job_id))
    return future


async def resume_scan(service: TranslationService, interval: float = RESUME_SCAN_INTERVAL_SECONDS):
    """Resume interrupted jobs now, then again every ``interval`` seconds."""
    logger = get_logger()
    while True:
        try:
            service.resume()
        except Exception as e:
            logger.error(f"Resume scan failed: {e}")
        await asyncio.sleep(interval)


def attach_job_updates(service: TranslationService, socketio):
    """Emit a ``job_update`` event each time a job record changes."""
    def _on_change(job: TranslationJob):
        emit_update(socketio, job.id, service.status_view(job))
    service.job_store.add_listener(_on_change)


def start_background_services(service: TranslationService, socketio,
                              background: Optional[BackgroundLoop] = None,
                              scan_interval: float = RESUME_SCAN_INTERVAL_SECONDS) -> BackgroundLoop:
    """Start the loop thread, wire Socket.IO log and job events, start the periodic resume scan."""
    setup_web_logger(lambda log_entry: socketio.emit('log', log_entry, namespace='/'))
    background = (background or BackgroundLoop()).start()
    attach_job_updates(service, socketio)
    background.submit(resume_scan(service, scan_interval))
    return background
