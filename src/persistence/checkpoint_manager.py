"""
Checkpoint manager for uploaded documents and direct-mode unit checkpoints.
"""

import shutil
import sqlite3
from pathlib import Path
from typing import Dict, Optional

import aiofiles

from .database import Database
from src.core.adapters.translation_unit import TranslatedUnit
from src.utils.unified_logger import get_logger


class CheckpointManager:
    """
    Keeps what a job needs to survive a restart outside the job record:
    the preserved input document and the units already translated in
    direct mode.
    """

    def __init__(self, database: Database, uploads_dir: str = "data/uploads"):
        """
        Initialize checkpoint manager.

        Args:
            database: Shared database instance
            uploads_dir: Directory where input documents are preserved
        """
        self.db = database
        self.uploads_dir = Path(uploads_dir)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger()

    async def preserve_input(self, job_id: str, file_name: str, data: bytes) -> str:
        """
        Store the uploaded document for reconstruction and resume.

        Returns:
            Path of the preserved file
        """
        job_upload_dir = self.uploads_dir / job_id
        job_upload_dir.mkdir(parents=True, exist_ok=True)
        preserved_path = job_upload_dir / Path(file_name).name

        async with aiofiles.open(preserved_path, 'wb') as f:
            await f.write(data)
        self.logger.debug(f"Input file preserved: {preserved_path}")
        return str(preserved_path)

    async def load_input(self, preserved_path: str) -> bytes:
        async with aiofiles.open(preserved_path, 'rb') as f:
            return await f.read()

    def save_unit(self, job_id: str, unit_index: int, unit: TranslatedUnit) -> bool:
        """
        Save a translated unit to the scratch area.

        Returns:
            True if saved successfully
        """
        try:
            self.db.save_unit(job_id, unit_index, unit.id, unit.translated_content, unit.title)
            return True
        except sqlite3.Error as e:
            self.logger.warning(f"Could not checkpoint unit {unit.id} of job {job_id}: {e}")
            return False

    def load_units(self, job_id: str) -> Dict[str, TranslatedUnit]:
        """Units already translated for a job, keyed by unit id."""
        return {
            row['unit_id']: TranslatedUnit(
                id=row['unit_id'],
                title=row['title'],
                translated_content=row['translated_content']
            )
            for row in self.db.get_units(job_id)
        }

    def clear_units(self, job_id: str) -> int:
        return self.db.delete_units(job_id)

    def get_preserved_input_path(self, job_id: str, file_name: str) -> Optional[str]:
        preserved_path = self.uploads_dir / job_id / Path(file_name).name
        return str(preserved_path) if preserved_path.exists() else None

    def delete_input(self, job_id: str) -> None:
        job_upload_dir = self.uploads_dir / job_id
        if job_upload_dir.exists():
            try:
                shutil.rmtree(job_upload_dir)
            except OSError as e:
                self.logger.warning(f"Could not delete upload directory: {e}")
