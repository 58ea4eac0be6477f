"""
Tests for translation prompt construction.
"""

import pytest

from prompts import STYLE_INSTRUCTIONS, build_system_prompt, build_translation_prompt, strip_code_fence


class TestBuildPrompts:

    def test_languages_and_style(self):
        prompt = build_system_prompt("English", "French", "literary")

        assert "professional French translator" in prompt
        assert "from English to French" in prompt
        assert STYLE_INSTRUCTIONS['literary'] in prompt

    def test_markup_instructions(self):
        prompt = build_system_prompt("English", "German", markup=True)

        assert "XHTML document" in prompt
        assert "Preserve *all* HTML tags" in prompt

    def test_plain_text_instructions(self):
        prompt = build_system_prompt("English", "German", markup=False)

        assert "XHTML" not in prompt
        assert "paragraphs and line breaks" in prompt

    def test_unknown_style_uses_default(self):
        prompt = build_system_prompt("English", "Spanish", "baroque")

        assert STYLE_INSTRUCTIONS['standard'] in prompt

    def test_user_prompt_is_unit_content(self):
        pair = build_translation_prompt("<p>Hello</p>", "English", "Italian", "standard")

        assert pair.user == "<p>Hello</p>"
        assert pair.system == build_system_prompt("English", "Italian", "standard")


class TestStripCodeFence:

    @pytest.mark.parametrize("answer,expected", [
        ("<p>Bonjour</p>", "<p>Bonjour</p>"),
        ("```html\n<p>Bonjour</p>\n```", "<p>Bonjour</p>"),
        ("```\nBonjour\n```", "Bonjour"),
        ("  \n<p>Bonjour</p>\n  ", "<p>Bonjour</p>"),
        ("```", "```"),
    ])
    def test_strip(self, answer, expected):
        assert strip_code_fence(answer) == expected
