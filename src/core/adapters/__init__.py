"""
Format adapters: split documents into translatable units and rebuild them.

Importing this package registers the EPUB and PDF adapters with
``get_format_adapter``.
"""

from .translation_unit import TranslatableUnit, TranslatedUnit
from .format_adapter import FormatAdapter, get_format_adapter, register_adapter, supported_formats
from .epub_adapter import EpubAdapter
from .pdf_adapter import PdfAdapter

__all__ = [
    'TranslatableUnit',
    'TranslatedUnit',
    'FormatAdapter',
    'get_format_adapter',
    'register_adapter',
    'supported_formats',
    'EpubAdapter',
    'PdfAdapter',
]
