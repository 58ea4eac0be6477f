"""
Translation unit abstraction.

A unit is the smallest item sent to a translation backend:
- EPUB: the full markup of one spine XHTML document
- PDF: the text of one page

Unit ids are unique within a job and stable across retries, since they are
the correlation keys used to match batch results back to their source.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional


@dataclass
class TranslatableUnit:
    """
    A unit of source content.

    Attributes:
        id: Correlation id, unique within the document
        title: Optional display title (chapter title, "Page 3")
        content: Raw markup or text; must round-trip structurally
    """
    id: str
    content: str
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'title': self.title, 'content': self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TranslatableUnit':
        return cls(id=data['id'], content=data['content'], title=data.get('title'))

    def __repr__(self) -> str:
        content_preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"TranslatableUnit(id={self.id}, content='{content_preview}')"


@dataclass
class TranslatedUnit:
    """
    A unit of translated content, keyed by the id of its source unit.
    """
    id: str
    translated_content: str
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'title': self.title, 'translated_content': self.translated_content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TranslatedUnit':
        return cls(
            id=data['id'],
            translated_content=data['translated_content'],
            title=data.get('title')
        )

    def __repr__(self) -> str:
        preview = self.translated_content[:50] + "..." if len(self.translated_content) > 50 else self.translated_content
        return f"TranslatedUnit(id={self.id}, translated_content='{preview}')"
