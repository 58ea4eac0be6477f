"""
Tests for the EPUB format adapter.
"""

import io
import zipfile

import pytest

from src.core.adapters import EpubAdapter, TranslatedUnit, get_format_adapter
from src.core.exceptions import ExtractionError, ReconstructionError, UnsupportedFormatError
from tests.helpers import build_epub, chapter_markup


@pytest.fixture
def adapter():
    return EpubAdapter()


def translate(unit, text):
    return TranslatedUnit(id=unit.id, title=unit.title, translated_content=chapter_markup(unit.title, text))


class TestExtract:
    """Splitting an EPUB into spine units."""

    def test_one_unit_per_spine_document(self, adapter, epub_bytes):
        units = adapter.extract(epub_bytes)

        assert [unit.id for unit in units] == ['ch1', 'ch2', 'ch3']
        assert 'It was a bright cold day in April.' in units[0].content
        assert units[0].content.startswith('<?xml')

    def test_titles_from_table_of_contents(self, adapter, epub_bytes):
        """NCX titles are used, fragments are ignored, missing entries get a positional title."""
        units = adapter.extract(epub_bytes)

        assert [unit.title for unit in units] == ['The Beginning', 'The Middle', 'Chapter 3']

    def test_stylesheet_and_ncx_are_not_units(self, adapter, epub_bytes):
        units = adapter.extract(epub_bytes)

        assert all('margin' not in unit.content for unit in units)
        assert len(units) == 3

    def test_spine_entry_without_file_is_skipped(self, adapter):
        chapters = {
            'ch1': ('OEBPS/text/chapter1.xhtml', 'Chapter One', 'First.'),
            'ch3': ('OEBPS/text/chapter3.xhtml', 'Chapter Three', 'Third.'),
        }

        units = adapter.extract(build_epub(chapters))

        assert [unit.id for unit in units] == ['ch1', 'ch3']

    def test_not_a_zip(self, adapter):
        with pytest.raises(ExtractionError) as exc_info:
            adapter.extract(b"this is not an epub")

        assert "ZIP" in exc_info.value.message

    def test_zip_without_package_document(self, adapter):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w') as archive:
            archive.writestr('readme.txt', 'hello')

        with pytest.raises(ExtractionError):
            adapter.extract(buffer.getvalue())


class TestReconstruct:
    """Putting translated units back into the archive."""

    def test_identity_returns_original_bytes(self, adapter, epub_bytes):
        units = adapter.extract(epub_bytes)
        identity = [TranslatedUnit(id=u.id, title=u.title, translated_content=u.content) for u in units]

        assert adapter.reconstruct(epub_bytes, identity) == epub_bytes

    def test_translated_chapters_are_replaced(self, adapter, epub_bytes):
        units = adapter.extract(epub_bytes)
        translated = [translate(unit, f"Traduction {index}") for index, unit in enumerate(units, start=1)]

        rebuilt = adapter.reconstruct(epub_bytes, translated)

        assert [unit.content for unit in adapter.extract(rebuilt)] == [u.translated_content for u in translated]

    def test_archive_layout_is_kept(self, adapter, epub_bytes):
        units = adapter.extract(epub_bytes)

        rebuilt = adapter.reconstruct(epub_bytes, [translate(units[0], "Il faisait beau.")])

        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as original, zipfile.ZipFile(io.BytesIO(rebuilt)) as result:
            assert result.namelist() == original.namelist()
            assert result.namelist()[0] == 'mimetype'
            assert result.getinfo('mimetype').compress_type == zipfile.ZIP_STORED
            assert result.read('OEBPS/style.css') == original.read('OEBPS/style.css')
            assert result.read('OEBPS/toc.ncx') == original.read('OEBPS/toc.ncx')

    def test_missing_units_keep_original_content(self, adapter, epub_bytes):
        units = adapter.extract(epub_bytes)

        rebuilt = adapter.reconstruct(epub_bytes, [translate(units[1], "Les horloges sonnaient.")])
        contents = [unit.content for unit in adapter.extract(rebuilt)]

        assert contents[0] == units[0].content
        assert 'Les horloges sonnaient.' in contents[1]
        assert contents[2] == units[2].content

    def test_unknown_unit_ids_are_ignored(self, adapter, epub_bytes):
        stray = TranslatedUnit(id='not-in-spine', translated_content='<p>lost</p>')

        assert adapter.reconstruct(epub_bytes, [stray]) == epub_bytes

    def test_corrupt_original(self, adapter):
        with pytest.raises(ReconstructionError):
            adapter.reconstruct(b"broken", [])


class TestRegistry:

    @pytest.mark.parametrize("file_type", ["epub", ".epub", "Book.EPUB"])
    def test_lookup_by_type_or_name(self, file_type):
        assert isinstance(get_format_adapter(file_type), EpubAdapter)

    def test_unknown_type(self):
        with pytest.raises(UnsupportedFormatError):
            get_format_adapter("notes.docx")
