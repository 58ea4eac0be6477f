"""
Abstract base class for document format adapters.

Each container format (EPUB, PDF) implements the same two capabilities:
splitting a document into translatable units, and putting translated units
back into a copy of the original document. An adapter is chosen once per job
with ``get_format_adapter`` and passed along explicitly from there.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Type

from .translation_unit import TranslatableUnit, TranslatedUnit
from src.core.exceptions import UnsupportedFormatError


class FormatAdapter(ABC):
    """
    Abstract interface for adapting a container format to the translation pipeline.

    Adapters are stateless: everything they need is in the document bytes,
    so the same instance can serve a job before and after a process restart.
    """

    #: Short format name stored on the job record ("epub", "pdf")
    format_name: str = ""

    #: MIME type used when the reconstructed document is stored
    mime_type: str = "application/octet-stream"

    #: True when unit content is (X)HTML markup, False for plain text
    markup: bool = True

    @abstractmethod
    def extract(self, document_bytes: bytes) -> List[TranslatableUnit]:
        """
        Split a document into translatable units, in reading order.

        Raises:
            ExtractionError: if the container is unreadable or has no units
        """
        pass

    @abstractmethod
    def reconstruct(self, original_bytes: bytes, translated_units: List[TranslatedUnit]) -> bytes:
        """
        Build the translated document.

        Everything outside the translated units is kept as-is. Units missing
        from ``translated_units`` keep their original content. When no unit
        content changes the original bytes are returned unchanged.

        Raises:
            ReconstructionError: if the translated document cannot be built
        """
        pass

    def output_name(self, file_name: str) -> str:
        """Name of the translated artifact for an uploaded file."""
        return f"translated-{file_name}"


_ADAPTERS: Dict[str, Type[FormatAdapter]] = {}


def register_adapter(adapter_cls: Type[FormatAdapter]) -> Type[FormatAdapter]:
    """Class decorator registering an adapter under its ``format_name``."""
    _ADAPTERS[adapter_cls.format_name] = adapter_cls
    return adapter_cls


def get_format_adapter(file_type: str) -> FormatAdapter:
    """
    Return the adapter for a file type ("epub", "pdf", ".epub" or a file name).

    Raises:
        UnsupportedFormatError: if no adapter handles the type
    """
    key = (file_type or "").lower().rsplit('.', 1)[-1]
    adapter_cls = _ADAPTERS.get(key)
    if adapter_cls is None:
        raise UnsupportedFormatError(
            f"Unsupported file type '{file_type}'",
            context={'supported': ', '.join(sorted(_ADAPTERS))}
        )
    return adapter_cls()


def supported_formats() -> List[str]:
    return sorted(_ADAPTERS)
