"""
Google Gemini provider implementation.

Default provider of the direct translation path.
"""

from typing import Optional

from src.config import GEMINI_MODEL
from ..base import LLMProvider, LLMResponse


class GeminiProvider(LLMProvider):
    """
    Provider for Google Gemini API.

    Configuration:
        api_key: Google AI API key (required)
        model: Gemini model name

    Example:
        >>> provider = GeminiProvider(api_key="AI...", model="gemini-2.0-flash")
        >>> response = await provider.generate("Translate: Hello")
    """

    name = "Gemini"

    def __init__(self, api_key: str, model: str = GEMINI_MODEL, **kwargs):
        """
        Initialize the Gemini provider.

        Args:
            api_key: Google AI API key
            model: Gemini model name (default: gemini-2.0-flash)
        """
        super().__init__(model, **kwargs)
        self.api_key = api_key
        self.api_endpoint = f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> Optional[LLMResponse]:
        """
        Generate text using Gemini API.

        Args:
            prompt: The user prompt (content to translate)
            system_prompt: Optional system prompt (role/instructions)

        Returns:
            LLMResponse with content and token usage info, or None if failed
        """
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key
        }

        payload = {
            "contents": [{
                "role": "user",
                "parts": [{"text": prompt}]
            }],
            "generationConfig": {
                "temperature": 0.3
            }
        }

        # Gemini takes the system prompt as a separate field
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        response_json = await self._post_json(self.api_endpoint, payload, headers)
        if response_json is None:
            return None

        response_text = ""
        if response_json.get("candidates"):
            parts = response_json["candidates"][0].get("content", {}).get("parts", [])
            response_text = "".join(part.get("text", "") for part in parts)

        usage_metadata = response_json.get("usageMetadata", {})
        return LLMResponse(
            content=response_text,
            prompt_tokens=usage_metadata.get("promptTokenCount", 0),
            completion_tokens=usage_metadata.get("candidatesTokenCount", 0)
        )
