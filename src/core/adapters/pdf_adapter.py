"""
PDF format adapter built on PyMuPDF.

One unit per page that carries text. Reconstruction redacts the original
text of translated pages and writes the translation into the page area,
leaving images, vector graphics and untranslated pages untouched.
"""

from typing import List

import fitz  # PyMuPDF

from .format_adapter import FormatAdapter, register_adapter
from .translation_unit import TranslatableUnit, TranslatedUnit
from src.core.exceptions import ExtractionError, ReconstructionError

PAGE_MARGIN = 50
FONT_SIZES = (10, 8, 6)


def page_unit_id(page_number: int) -> str:
    return f"page-{page_number}"


@register_adapter
class PdfAdapter(FormatAdapter):
    """Adapter for PDF files."""

    format_name = "pdf"
    mime_type = "application/pdf"
    markup = False

    def extract(self, document_bytes: bytes) -> List[TranslatableUnit]:
        doc = self._open(document_bytes, ExtractionError)
        try:
            units = []
            for page in doc:
                text = page.get_text("text", flags=fitz.TEXT_PRESERVE_WHITESPACE).strip()
                if not text:
                    continue
                number = page.number + 1
                units.append(TranslatableUnit(id=page_unit_id(number), title=f"Page {number}", content=text))
        finally:
            doc.close()

        if not units:
            raise ExtractionError("PDF has no extractable text (scanned documents are not supported)")
        return units

    def reconstruct(self, original_bytes: bytes, translated_units: List[TranslatedUnit]) -> bytes:
        translations = {unit.id: unit.translated_content for unit in translated_units}
        doc = self._open(original_bytes, ReconstructionError)
        try:
            changed = False
            for page in doc:
                unit_id = page_unit_id(page.number + 1)
                if unit_id not in translations:
                    continue
                original = page.get_text("text", flags=fitz.TEXT_PRESERVE_WHITESPACE).strip()
                if not original or translations[unit_id] == original:
                    continue
                self._replace_page_text(page, translations[unit_id])
                changed = True

            if not changed:
                return original_bytes
            return doc.tobytes(garbage=3, deflate=True)
        except (RuntimeError, ValueError) as e:
            raise ReconstructionError("Failed to rebuild PDF", context={'error': str(e)})
        finally:
            doc.close()

    @staticmethod
    def _open(document_bytes: bytes, error_cls):
        try:
            doc = fitz.open(stream=document_bytes, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise error_cls("Not a readable PDF document", context={'error': str(e)})
        if doc.page_count == 0:
            doc.close()
            raise error_cls("PDF has no pages")
        return doc

    @staticmethod
    def _replace_page_text(page, text: str) -> None:
        for x0, y0, x1, y1, _, _, block_type in page.get_text("blocks"):
            if block_type == 0:
                page.add_redact_annot(fitz.Rect(x0, y0, x1, y1))
        page.apply_redactions(images=fitz.PDF_REDACT_IMAGE_NONE)

        rect = page.rect
        text_rect = fitz.Rect(PAGE_MARGIN, PAGE_MARGIN, rect.width - PAGE_MARGIN, rect.height - PAGE_MARGIN)
        for fontsize in FONT_SIZES:
            # insert_textbox returns a negative value when the text does not fit
            # and writes nothing in that case
            if page.insert_textbox(text_rect, text, fontname="helv", fontsize=fontsize,
                                   align=fitz.TEXT_ALIGN_LEFT) >= 0:
                return
        page.insert_textbox(rect, text, fontname="helv", fontsize=FONT_SIZES[-1], align=fitz.TEXT_ALIGN_LEFT)
