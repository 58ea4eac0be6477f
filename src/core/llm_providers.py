"""
LLM provider factory for the direct translation path.
"""
from src.config import (
    DIRECT_PROVIDER, DIRECT_MODEL, GEMINI_API_KEY, GEMINI_MODEL,
    OPENAI_API_KEY, OPENAI_BASE_URL
)
from src.core.llm.base import LLMProvider, LLMResponse
from src.core.llm.providers.gemini import GeminiProvider
from src.core.llm.providers.openai import OpenAICompatibleProvider

__all__ = ['LLMProvider', 'LLMResponse', 'GeminiProvider', 'OpenAICompatibleProvider', 'create_llm_provider']


def create_llm_provider(provider_type: str = DIRECT_PROVIDER, **kwargs) -> LLMProvider:
    """Factory function to create LLM providers"""
    model = kwargs.pop("model", None)
    api_key = kwargs.pop("api_key", None)

    if provider_type.lower() == "gemini":
        api_key = api_key or GEMINI_API_KEY
        if not api_key:
            raise ValueError("Gemini provider requires an API key. Set GEMINI_API_KEY environment variable or pass api_key parameter.")
        return GeminiProvider(api_key=api_key, model=model or GEMINI_MODEL, **kwargs)
    elif provider_type.lower() == "openai":
        api_key = api_key or OPENAI_API_KEY
        if not api_key:
            raise ValueError("OpenAI provider requires an API key. Set OPENAI_API_KEY environment variable or pass api_key parameter.")
        return OpenAICompatibleProvider(
            api_key=api_key,
            model=model or DIRECT_MODEL,
            base_url=kwargs.pop("base_url", OPENAI_BASE_URL),
            **kwargs
        )
    else:
        raise ValueError(f"Unknown provider type: {provider_type}")
