"""
Base classes and data structures for LLM providers.

This module defines the abstract base class used by the direct translation
path: one request per unit, with a small retry loop around each request.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional
import asyncio
import json
import httpx

from prompts.prompts import build_translation_prompt, strip_code_fence
from src.config import REQUEST_TIMEOUT, MAX_TRANSLATION_ATTEMPTS, RETRY_DELAY_SECONDS
from src.core.adapters.translation_unit import TranslatableUnit
from src.core.exceptions import UnitTranslationError
from src.utils.unified_logger import get_logger


@dataclass
class LLMResponse:
    """Response from LLM with token usage information"""
    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0


class LLMProvider(ABC):
    """Abstract base class for LLM providers"""

    #: Name used in log messages
    name = "LLM"

    def __init__(
        self,
        model: str,
        timeout: int = REQUEST_TIMEOUT,
        max_attempts: int = MAX_TRANSLATION_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS
    ):
        """
        Initialize the LLM provider.

        Args:
            model: Model name/identifier
            timeout: Request timeout in seconds
            max_attempts: Attempts per request before giving up
            retry_delay: Seconds to wait between attempts
        """
        self.model = model
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.logger = get_logger()
        self._client = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create a persistent HTTP client with connection pooling"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                timeout=httpx.Timeout(self.timeout)
            )
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _post_json(self, url: str, payload: Dict[str, Any],
                         headers: Dict[str, str]) -> Optional[Dict[str, Any]]:
        """
        POST a JSON payload, retrying timeouts, HTTP errors and bad JSON.

        Returns:
            The decoded response body, or None once every attempt failed
        """
        client = await self._get_client()
        for attempt in range(self.max_attempts):
            try:
                response = await client.post(url, json=payload, headers=headers, timeout=self.timeout)
                response.raise_for_status()
                return response.json()
            except httpx.TimeoutException as e:
                self.logger.warning(f"{self.name} API Timeout (attempt {attempt + 1}/{self.max_attempts}): {e}")
            except httpx.HTTPStatusError as e:
                error_body = e.response.text[:500] if e.response is not None else ""
                self.logger.warning(
                    f"{self.name} API HTTP Error (attempt {attempt + 1}/{self.max_attempts}): "
                    f"status {e.response.status_code} - {error_body}"
                )
            except httpx.HTTPError as e:
                self.logger.warning(f"{self.name} API Connection Error (attempt {attempt + 1}/{self.max_attempts}): {e}")
            except json.JSONDecodeError as e:
                self.logger.warning(f"{self.name} API JSON Decode Error (attempt {attempt + 1}/{self.max_attempts}): {e}")

            if attempt < self.max_attempts - 1:
                await asyncio.sleep(self.retry_delay)

        return None

    @abstractmethod
    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> Optional[LLMResponse]:
        """
        Generate text from prompt.

        Args:
            prompt: The user prompt (content to process)
            system_prompt: Optional system prompt (role/instructions)

        Returns:
            LLMResponse object with content and token usage info, or None if failed
        """
        pass

    async def translate_unit(
        self,
        unit: TranslatableUnit,
        source_language: str,
        target_language: str,
        style: str,
        markup: bool = True
    ) -> str:
        """
        Translate one unit and return the translated content.

        Raises:
            UnitTranslationError: if the provider gave no usable answer
        """
        prompt = build_translation_prompt(unit.content, source_language, target_language, style, markup)
        response = await self.generate(prompt.user, system_prompt=prompt.system)
        if response is None:
            raise UnitTranslationError(
                f"{self.name} request failed after {self.max_attempts} attempts",
                unit_id=unit.id,
                context={'model': self.model}
            )

        translated = strip_code_fence(response.content)
        if not translated:
            raise UnitTranslationError(
                f"{self.name} returned an empty translation",
                unit_id=unit.id,
                context={'model': self.model}
            )
        return translated
