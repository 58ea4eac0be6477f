"""
Tests for the PDF format adapter.
"""

import fitz
import pytest

from src.core.adapters import PdfAdapter, TranslatedUnit
from src.core.exceptions import ExtractionError
from tests.helpers import build_pdf


@pytest.fixture
def adapter():
    return PdfAdapter()


@pytest.fixture
def pdf_bytes():
    return build_pdf(["First page text", "", "Third page text"])


def page_texts(data):
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return [page.get_text("text").strip() for page in doc]
    finally:
        doc.close()


class TestExtract:

    def test_one_unit_per_page_with_text(self, adapter, pdf_bytes):
        """Blank pages produce no unit, ids keep the real page number."""
        units = adapter.extract(pdf_bytes)

        assert [unit.id for unit in units] == ['page-1', 'page-3']
        assert [unit.title for unit in units] == ['Page 1', 'Page 3']
        assert units[0].content == "First page text"

    def test_plain_text_units(self, adapter):
        assert adapter.markup is False

    def test_document_without_text(self, adapter):
        with pytest.raises(ExtractionError):
            adapter.extract(build_pdf(["", ""]))

    def test_not_a_pdf(self, adapter):
        with pytest.raises(ExtractionError):
            adapter.extract(b"%PDF-nope")


class TestReconstruct:

    def test_identity_returns_original_bytes(self, adapter, pdf_bytes):
        units = adapter.extract(pdf_bytes)
        identity = [TranslatedUnit(id=u.id, title=u.title, translated_content=u.content) for u in units]

        assert adapter.reconstruct(pdf_bytes, identity) == pdf_bytes

    def test_translated_page_text_is_replaced(self, adapter, pdf_bytes):
        rebuilt = adapter.reconstruct(pdf_bytes, [
            TranslatedUnit(id='page-1', translated_content="Texte de la premiere page"),
        ])

        texts = page_texts(rebuilt)
        assert len(texts) == 3
        assert "Texte de la premiere page" in texts[0]
        assert "First page text" not in texts[0]
        assert texts[1] == ""
        assert texts[2] == "Third page text"
