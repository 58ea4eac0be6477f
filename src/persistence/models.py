"""
Job record model shared by the orchestrator, the direct translator and the API.
"""

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class JobStatus(str, Enum):
    PENDING = "pending"
    BATCH_SUBMITTED = "batch_submitted"
    BATCH_PROCESSING = "batch_processing"
    TRANSLATING = "translating"
    RECONSTRUCTING = "reconstructing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


DATETIME_FIELDS = ('last_checked_at', 'created_at', 'updated_at', 'completed_at')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class TranslationJob:
    """
    One document translation request.

    ``source_language``, ``target_language`` and ``style`` are fixed at
    creation. ``batch_id`` and ``last_checked_at`` are the checkpoint used to
    resume polling after a restart.
    """
    id: str
    status: JobStatus
    source_language: str
    target_language: str
    style: str
    file_name: str
    file_type: str
    owner_id: str
    mode: str
    created_at: datetime
    updated_at: datetime
    progress: int = 0
    batch_id: Optional[str] = None
    total_units: int = 0
    completed_units: int = 0
    last_checked_at: Optional[datetime] = None
    error: Optional[str] = None
    source_path: Optional[str] = None
    artifact_key: Optional[str] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'TranslationJob':
        data = dict(row)
        data['status'] = JobStatus(data['status'])
        for name in DATETIME_FIELDS:
            data[name] = _parse_datetime(data.get(name))
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation (enum values, ISO timestamps)."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[f.name] = value
        return data


def to_column_value(value: Any) -> Any:
    """Convert a model value to what the database stores."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value
