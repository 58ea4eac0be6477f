"""
OpenAI chat completions provider.

Used by the direct translation path. Works with any endpoint that speaks the
OpenAI chat completions protocol.
"""

from typing import Optional

from ..base import LLMProvider, LLMResponse

from src.config import OPENAI_BASE_URL, DIRECT_MODEL


class OpenAICompatibleProvider(LLMProvider):
    """OpenAI-compatible chat completions provider"""

    name = "OpenAI"

    def __init__(self, api_key: Optional[str] = None, model: str = DIRECT_MODEL,
                 base_url: str = OPENAI_BASE_URL, **kwargs):
        super().__init__(model, **kwargs)
        self.api_key = api_key
        self.api_endpoint = f"{base_url.rstrip('/')}/chat/completions"

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> Optional[LLMResponse]:
        """
        Generate text using an OpenAI compatible API.

        Args:
            prompt: The user prompt (content to translate)
            system_prompt: Optional system prompt (role/instructions)

        Returns:
            LLMResponse with content and token usage info, or None if failed
        """
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response_json = await self._post_json(
            self.api_endpoint,
            {"model": self.model, "messages": messages, "stream": False},
            headers
        )
        if response_json is None:
            return None

        choices = response_json.get("choices") or [{}]
        response_text = (choices[0].get("message") or {}).get("content") or ""
        usage = response_json.get("usage", {})

        return LLMResponse(
            content=response_text,
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0)
        )
