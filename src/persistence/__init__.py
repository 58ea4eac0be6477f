"""
Persistence module for translation jobs, batch states and checkpoints.
"""

from .database import Database
from .models import JobStatus, TranslationJob
from .job_store import JobStore
from .checkpoint_manager import CheckpointManager

__all__ = ['Database', 'JobStatus', 'TranslationJob', 'JobStore', 'CheckpointManager']
