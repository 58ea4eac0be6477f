from typing import NamedTuple

from src.config import DEFAULT_STYLE


class PromptPair(NamedTuple):
    """A pair of system and user prompts for LLM translation."""
    system: str
    user: str


# ============================================================================
# SHARED PROMPT SECTIONS
# ============================================================================

STYLE_INSTRUCTIONS = {
    'standard': "Translate this text maintaining a neutral, accurate style that preserves "
                "the meaning and tone of the original.",
    'literal': "Translate this text as literally as possible, staying very close to the "
               "original wording while ensuring grammatical correctness.",
    'technical': "Translate this text with precise technical terminology, maintaining all "
                 "specialized terms and concepts.",
    'literary': "Translate this text with literary flair, preserving metaphors, idioms and "
                "stylistic elements while adapting them naturally to the target language.",
    'colloquial': "Translate this text into a casual, conversational style using common "
                  "expressions and everyday language in the target language.",
}

HTML_INSTRUCTIONS = """# INSTRUCTIONS
1. Preserve *all* HTML tags (<p>, <span>, <a>, <img>...), their attributes (class, style, href...) and the overall structure exactly as they appear in the original document.
2. Translate only the text content that is visible to the end user.
3. Do not translate text inside tags or attributes (class names, ids, URLs).
4. Keep HTML entities (&amp;, &lt;, &gt;, &nbsp;, &#8220;...) valid in the output, preserving them where appropriate.
5. Keep the XML declaration, DOCTYPE and <head> section unchanged except for the text of <title>.
6. Return *only* the complete translated document. No explanations, no preamble, no markdown code fences."""

TEXT_INSTRUCTIONS = """# INSTRUCTIONS
1. Translate the whole text, keeping its paragraphs and line breaks.
2. Keep numbers, URLs, e-mail addresses and code unchanged.
3. Return *only* the translated text. No explanations, no preamble, no markdown code fences."""


def get_style_instruction(style: str) -> str:
    """Return the instruction for a style, falling back to the default style."""
    return STYLE_INSTRUCTIONS.get(style) or STYLE_INSTRUCTIONS[DEFAULT_STYLE]


def build_system_prompt(
    source_language: str,
    target_language: str,
    style: str = DEFAULT_STYLE,
    markup: bool = True
) -> str:
    """
    Build the system prompt shared by every unit of a job.

    Args:
        source_language: Source language name (e.g. "English")
        target_language: Target language name (e.g. "French")
        style: One of the keys of STYLE_INSTRUCTIONS
        markup: True when units are (X)HTML documents, False for plain text

    Returns:
        str: The system prompt
    """
    kind = "the following XHTML document" if markup else "the following text"
    instructions = HTML_INSTRUCTIONS if markup else TEXT_INSTRUCTIONS

    return f"""You are a professional {target_language} translator.

# TASK
Translate the user-visible text content of {kind} from {source_language} to {target_language}.

# STYLE
{get_style_instruction(style)}

{instructions}"""


def build_translation_prompt(
    content: str,
    source_language: str,
    target_language: str,
    style: str = DEFAULT_STYLE,
    markup: bool = True
) -> PromptPair:
    """
    Build the prompt pair for one unit. The user prompt is the unit content
    itself so that batch requests and direct requests are identical.
    """
    return PromptPair(
        system=build_system_prompt(source_language, target_language, style, markup),
        user=content
    )


def strip_code_fence(text: str) -> str:
    """Remove a markdown code fence wrapped around a model answer."""
    stripped = text.strip()
    if stripped.startswith("```") and stripped.endswith("```") and len(stripped) >= 6:
        first_newline = stripped.find("\n")
        if first_newline == -1:
            return stripped
        return stripped[first_newline + 1:-3].strip()
    return stripped
