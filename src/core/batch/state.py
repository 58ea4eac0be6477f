"""
State of one outstanding backend batch, and its persistence.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from src.core.adapters.translation_unit import TranslatableUnit, TranslatedUnit
from src.persistence.database import Database
from src.persistence.models import utcnow


class BatchStatus(str, Enum):
    PREPARING = "preparing"
    VALIDATING = "validating"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


# Backend-native status -> BatchStatus
BACKEND_STATUS_MAP = {
    'validating': BatchStatus.VALIDATING,
    'in_progress': BatchStatus.IN_PROGRESS,
    'finalizing': BatchStatus.IN_PROGRESS,
    'cancelling': BatchStatus.IN_PROGRESS,
    'completed': BatchStatus.COMPLETED,
    'failed': BatchStatus.FAILED,
    'expired': BatchStatus.FAILED,
    'cancelled': BatchStatus.FAILED,
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class BatchTranslationState:
    """
    One backend batch job.

    ``translated_units`` is only ever non-empty once ``batch_status`` is
    ``completed``.
    """
    batch_id: str
    input_units: List[TranslatableUnit]
    source_language: str = ""
    target_language: str = ""
    style: str = ""
    batch_status: BatchStatus = BatchStatus.PREPARING
    translated_units: List[TranslatedUnit] = field(default_factory=list)
    progress: Optional[int] = None
    input_file_id: Optional[str] = None
    output_file_id: Optional[str] = None
    error_file_id: Optional[str] = None
    completed_requests: int = 0
    failed_requests: int = 0
    total_requests: int = 0
    created_at: datetime = field(default_factory=utcnow)
    last_checked_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def __post_init__(self):
        self.batch_status = BatchStatus(self.batch_status)
        if self.translated_units and self.batch_status != BatchStatus.COMPLETED:
            raise ValueError(f"Batch {self.batch_id} has results but status {self.batch_status.value}")

    @property
    def translated_count(self) -> int:
        return len(self.translated_units)

    @property
    def unit_count(self) -> int:
        return len(self.input_units)

    def mark_completed(self, translated_units: List[TranslatedUnit]):
        self.batch_status = BatchStatus.COMPLETED
        self.translated_units = list(translated_units)
        self.progress = 100
        self.completed_at = utcnow()
        self.error = None

    def mark_failed(self, error: str):
        self.batch_status = BatchStatus.FAILED
        self.translated_units = []
        self.completed_at = utcnow()
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            'batch_id': self.batch_id,
            'input_units': [unit.to_dict() for unit in self.input_units],
            'source_language': self.source_language,
            'target_language': self.target_language,
            'style': self.style,
            'batch_status': self.batch_status.value,
            'translated_units': [unit.to_dict() for unit in self.translated_units],
            'progress': self.progress,
            'input_file_id': self.input_file_id,
            'output_file_id': self.output_file_id,
            'error_file_id': self.error_file_id,
            'completed_requests': self.completed_requests,
            'failed_requests': self.failed_requests,
            'total_requests': self.total_requests,
            'created_at': _iso(self.created_at),
            'last_checked_at': _iso(self.last_checked_at),
            'completed_at': _iso(self.completed_at),
            'error': self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BatchTranslationState':
        return cls(
            batch_id=data['batch_id'],
            input_units=[TranslatableUnit.from_dict(u) for u in data.get('input_units', [])],
            source_language=data.get('source_language', ''),
            target_language=data.get('target_language', ''),
            style=data.get('style', ''),
            batch_status=BatchStatus(data.get('batch_status', BatchStatus.PREPARING.value)),
            translated_units=[TranslatedUnit.from_dict(u) for u in data.get('translated_units', [])],
            progress=data.get('progress'),
            input_file_id=data.get('input_file_id'),
            output_file_id=data.get('output_file_id'),
            error_file_id=data.get('error_file_id'),
            completed_requests=data.get('completed_requests', 0),
            failed_requests=data.get('failed_requests', 0),
            total_requests=data.get('total_requests', 0),
            created_at=_parse(data.get('created_at')) or utcnow(),
            last_checked_at=_parse(data.get('last_checked_at')),
            completed_at=_parse(data.get('completed_at')),
            error=data.get('error'),
        )


class BatchStateStore:
    """Persists batch states so polling can resume after a restart."""

    def __init__(self, database: Database):
        self.db = database

    def save(self, state: BatchTranslationState) -> None:
        self.db.save_batch_state(state.batch_id, state.batch_status.value, state.to_dict())

    def load(self, batch_id: str) -> Optional[BatchTranslationState]:
        data = self.db.get_batch_state(batch_id)
        return BatchTranslationState.from_dict(data) if data else None
