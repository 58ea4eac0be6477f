"""
Prompts module
"""
from prompts.prompts import (
    PromptPair,
    STYLE_INSTRUCTIONS,
    build_system_prompt,
    build_translation_prompt,
    strip_code_fence,
)

__all__ = [
    "PromptPair",
    "STYLE_INSTRUCTIONS",
    "build_system_prompt",
    "build_translation_prompt",
    "strip_code_fence",
]
