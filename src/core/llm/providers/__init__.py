"""
LLM Provider Implementations

Providers:
    - gemini: Google Gemini API
    - openai: OpenAI-compatible chat completions APIs
"""

__all__ = []
