"""
Client for the OpenAI Files + Batches API.

A batch is submitted as a JSONL file with one chat completion request per
unit. The unit id is the request ``custom_id``, which is how results are
matched back to their source unit.
"""

import json
import math
from typing import Any, Dict, List, Optional

import httpx

from prompts.prompts import build_system_prompt, strip_code_fence
from src.config import (
    OPENAI_API_KEY, OPENAI_BASE_URL, BATCH_MODEL, BATCH_ENDPOINT,
    BATCH_COMPLETION_WINDOW
)
from src.core.adapters.translation_unit import TranslatableUnit, TranslatedUnit
from src.core.exceptions import (
    SubmissionError, PollError, ResultParseError, BackendJobFailure,
    BatchStateNotFoundError
)
from src.persistence.models import utcnow
from src.utils.unified_logger import get_logger, LogType
from .state import BatchStatus, BatchTranslationState, BatchStateStore, BACKEND_STATUS_MAP


class BatchTranslationClient:
    """
    Submits units as one backend batch and tracks its state.

    States are cached in memory and, when a ``state_store`` is given,
    persisted after every change so a restarted process can keep polling.
    """

    def __init__(
        self,
        api_key: str = OPENAI_API_KEY,
        base_url: str = OPENAI_BASE_URL,
        model: str = BATCH_MODEL,
        state_store: Optional[BatchStateStore] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.state_store = state_store
        self.timeout = timeout
        self._transport = transport
        self._states: Dict[str, BatchTranslationState] = {}
        self._client: Optional[httpx.AsyncClient] = None
        self.logger = get_logger()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create a persistent HTTP client with connection pooling"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport
            )
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def build_request_lines(
        self,
        units: List[TranslatableUnit],
        source_language: str,
        target_language: str,
        style: str,
        markup: bool = True
    ) -> str:
        """Build the JSONL request file, one line per unit."""
        system_prompt = build_system_prompt(source_language, target_language, style, markup)
        lines = []
        for unit in units:
            lines.append(json.dumps({
                "custom_id": unit.id,
                "method": "POST",
                "url": BATCH_ENDPOINT,
                "body": {
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": unit.content}
                    ]
                }
            }, ensure_ascii=False))
        return "\n".join(lines)

    async def submit_batch(
        self,
        units: List[TranslatableUnit],
        source_language: str,
        target_language: str,
        style: str,
        markup: bool = True
    ) -> BatchTranslationState:
        """
        Upload the units and create a backend batch.

        Returns:
            The new state, in ``validating``

        Raises:
            SubmissionError: if the backend rejects the upload or the batch
        """
        if not units:
            raise SubmissionError("Cannot submit an empty batch")
        ids = [unit.id for unit in units]
        if len(set(ids)) != len(ids):
            raise SubmissionError("Unit ids must be unique within a batch")

        payload = self.build_request_lines(units, source_language, target_language, style, markup)
        client = await self._get_client()

        try:
            upload = await client.post(
                "/files",
                data={"purpose": "batch"},
                files={"file": ("batch.jsonl", payload.encode("utf-8"), "application/jsonl")}
            )
            upload.raise_for_status()
            input_file_id = upload.json().get("id")
            if not input_file_id:
                raise SubmissionError("Batch file upload returned no file id")
            self.logger.debug(f"Batch file uploaded with ID: {input_file_id}")

            created = await client.post("/batches", json={
                "input_file_id": input_file_id,
                "endpoint": BATCH_ENDPOINT,
                "completion_window": BATCH_COMPLETION_WINDOW,
                "metadata": {
                    "source_language": source_language[:64],
                    "target_language": target_language[:64],
                    "style": style[:64],
                }
            })
            created.raise_for_status()
            batch_id = created.json().get("id")
            if not batch_id:
                raise SubmissionError("Batch creation returned no batch id", context={'input_file_id': input_file_id})
        except httpx.HTTPStatusError as e:
            raise SubmissionError(
                f"Backend rejected the batch (HTTP {e.response.status_code})",
                context={'body': e.response.text[:300]}
            )
        except httpx.HTTPError as e:
            raise SubmissionError(f"Could not reach the batch backend: {e}")
        except json.JSONDecodeError as e:
            raise SubmissionError(f"Invalid response from the batch backend: {e}")

        state = BatchTranslationState(
            batch_id=batch_id,
            input_units=list(units),
            source_language=source_language,
            target_language=target_language,
            style=style,
            batch_status=BatchStatus.VALIDATING,
            input_file_id=input_file_id,
            total_requests=len(units),
            last_checked_at=utcnow(),
        )
        self._remember(state)
        self.logger.info(
            f"Batch {batch_id} created for {len(units)} units ({source_language} → {target_language})",
            LogType.BATCH_SUBMITTED,
            {'batch_id': batch_id, 'units': len(units)}
        )
        return state

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def get_state(self, batch_id: str) -> Optional[BatchTranslationState]:
        """
        Cached state, loading it from the state store after a restart.

        Only batches still running are kept in the cache; finished ones are
        read from the store each time.
        """
        state = self._states.get(batch_id)
        if state is None and self.state_store is not None:
            state = self.state_store.load(batch_id)
            if state is not None and state.batch_status not in (BatchStatus.COMPLETED, BatchStatus.FAILED):
                self._states[batch_id] = state
        return state

    def forget(self, batch_id: str) -> None:
        """Drop a batch from the cache once its job no longer needs it."""
        if self.state_store is not None:
            self._states.pop(batch_id, None)

    def _remember(self, state: BatchTranslationState):
        self._states[state.batch_id] = state
        if self.state_store is not None:
            self.state_store.save(state)

    async def poll_status(self, batch_id: str) -> BatchTranslationState:
        """
        Refresh the state of a batch from the backend.

        Results are downloaded and parsed only once the backend reports
        the batch as completed.

        Raises:
            BatchStateNotFoundError: if the batch id is unknown
            BackendJobFailure: if the backend no longer knows the batch
            PollError: for transient transport or response errors
        """
        state = self.get_state(batch_id)
        if state is None:
            raise BatchStateNotFoundError("No batch state recorded", context={'batch_id': batch_id})
        if state.batch_status in (BatchStatus.COMPLETED, BatchStatus.FAILED):
            return state

        batch = await self._get_json(f"/batches/{batch_id}")
        backend_status = batch.get("status", "")
        status = BACKEND_STATUS_MAP.get(backend_status, BatchStatus.IN_PROGRESS)
        self._update_counts(state, batch.get("request_counts") or {})
        state.output_file_id = batch.get("output_file_id") or state.output_file_id
        state.error_file_id = batch.get("error_file_id") or state.error_file_id
        state.last_checked_at = utcnow()

        if status == BatchStatus.COMPLETED and not state.output_file_id:
            # Every request failed: the backend only wrote an error file
            state.mark_failed(await self._describe_failure(batch, "completed without an output file"))
            self.logger.error(f"Batch {batch_id} failed: {state.error}", LogType.BATCH_POLL)
        elif status == BatchStatus.COMPLETED:
            content = await self._get_text(f"/files/{state.output_file_id}/content")
            translated = self.parse_output(content, state)
            state.mark_completed(translated)
            self.logger.info(
                f"Batch {batch_id} completed: {len(translated)}/{state.unit_count} units translated",
                LogType.BATCH_POLL
            )
        elif status == BatchStatus.FAILED:
            state.mark_failed(await self._describe_failure(batch, backend_status))
            self.logger.error(f"Batch {batch_id} failed: {state.error}", LogType.BATCH_POLL)
        else:
            state.batch_status = status
            self.logger.debug(
                f"Batch {batch_id} {backend_status}: {state.completed_requests}/{state.total_requests} "
                f"completed ({state.progress if state.progress is not None else '?'}%), "
                f"{state.failed_requests} failed",
                LogType.BATCH_POLL
            )

        self._remember(state)
        return state

    @staticmethod
    def _update_counts(state: BatchTranslationState, request_counts: Dict[str, Any]):
        total = request_counts.get("total") or 0
        completed = request_counts.get("completed") or 0
        state.failed_requests = request_counts.get("failed") or 0
        if total > 0:
            state.total_requests = total
            state.completed_requests = completed
            state.progress = math.floor(completed / total * 100)

    async def _describe_failure(self, batch: Dict[str, Any], backend_status: str) -> str:
        message = f"Batch processing failed with status: {backend_status}"

        errors = (batch.get("errors") or {}).get("data") or []
        details = [e.get("message") for e in errors if e.get("message")]
        if details:
            message = f"{message} ({'; '.join(details)[:500]})"

        if batch.get("error_file_id"):
            try:
                error_contents = await self._get_text(f"/files/{batch['error_file_id']}/content")
                if error_contents.strip():
                    message = f"Batch processing errors: {error_contents.strip()[:1000]}"
            except PollError as e:
                self.logger.warning(f"Could not retrieve batch error file: {e}")
        return message

    def parse_output(self, content: str, state: BatchTranslationState) -> List[TranslatedUnit]:
        """
        Parse the JSONL output file of a completed batch.

        Bad lines are logged and skipped, results for unknown ids are
        discarded, so one broken unit never invalidates the whole batch.
        """
        units_by_id = {unit.id: unit for unit in state.input_units}
        translated: Dict[str, TranslatedUnit] = {}

        for line_number, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                custom_id, text = self._parse_line(line, line_number)
            except ResultParseError as e:
                self.logger.warning(f"Skipping batch result line {line_number}: {e.message}",
                                    data={'custom_id': e.custom_id})
                continue

            original = units_by_id.get(custom_id)
            if original is None:
                self.logger.warning(f"Discarding batch result for unknown unit id: {custom_id}")
                continue
            translated[custom_id] = TranslatedUnit(id=custom_id, title=original.title, translated_content=text)

        # Keep the document order of the input units
        return [translated[unit.id] for unit in state.input_units if unit.id in translated]

    @staticmethod
    def _parse_line(line: str, line_number: int):
        try:
            result = json.loads(line)
        except json.JSONDecodeError as e:
            raise ResultParseError(f"invalid JSON ({e})", line_number=line_number)

        custom_id = result.get("custom_id") if isinstance(result, dict) else None
        if not custom_id or not isinstance(custom_id, str):
            raise ResultParseError("missing custom_id", line_number=line_number)
        if result.get("error"):
            raise ResultParseError(f"request failed: {result['error']}", line_number, custom_id)

        response = result.get("response") or {}
        if not isinstance(response, dict):
            raise ResultParseError("malformed response", line_number, custom_id)
        if response.get("status_code", 200) != 200:
            raise ResultParseError(f"HTTP {response.get('status_code')}", line_number, custom_id)

        try:
            content = response["body"]["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ResultParseError("no message content", line_number, custom_id)
        if not isinstance(content, str) or not content.strip():
            raise ResultParseError("empty message content", line_number, custom_id)

        return custom_id, strip_code_fence(content)

    def fetch_results(self, batch_id: str) -> Optional[List[TranslatedUnit]]:
        """
        Translated units of a completed batch, None while it is not completed.

        Reads the recorded state only, it never calls the backend.
        """
        state = self.get_state(batch_id)
        if state is None:
            raise BatchStateNotFoundError("No batch state recorded", context={'batch_id': batch_id})
        if state.batch_status != BatchStatus.COMPLETED:
            return None
        return list(state.translated_units)

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _request(self, path: str) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.get(path)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404 and path.startswith("/batches/"):
                raise BackendJobFailure("Batch no longer exists on the backend", context={'path': path})
            raise PollError(f"Backend returned HTTP {e.response.status_code}", context={'path': path})
        except httpx.HTTPError as e:
            raise PollError(f"Could not reach the batch backend: {e}", context={'path': path})

    async def _get_json(self, path: str) -> Dict[str, Any]:
        response = await self._request(path)
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise PollError(f"Invalid JSON from the batch backend: {e}", context={'path': path})

    async def _get_text(self, path: str) -> str:
        response = await self._request(path)
        return response.text
