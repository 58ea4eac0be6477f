"""
SQLite database manager for translation job persistence.
"""

import sqlite3
import json
import os
from typing import Optional, Dict, List, Any, Iterable
import threading

JOB_COLUMNS = (
    'id', 'status', 'progress', 'batch_id', 'total_units', 'completed_units',
    'last_checked_at', 'error', 'source_language', 'target_language', 'style',
    'file_name', 'file_type', 'owner_id', 'mode', 'source_path', 'artifact_key',
    'created_at', 'updated_at', 'completed_at',
)


class Database:
    """
    Manages the SQLite database holding job records, batch states and
    direct-mode unit checkpoints.
    Thread-safe for concurrent access: writes are serialized by a lock, and
    WAL journaling lets API threads read while the event loop thread writes.
    """

    def __init__(self, db_path: str = "data/jobs.db"):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._local = threading.local()
        self.lock = threading.RLock()

        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self._initialize_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, 'connection') or self._local.connection is None:
            self._local.connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )
            self._local.connection.row_factory = sqlite3.Row
            self._local.connection.execute("PRAGMA journal_mode=WAL")
        return self._local.connection

    def _initialize_schema(self):
        """Create database tables if they don't exist."""
        with self.lock:
            conn = self._get_connection()
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS translation_jobs (
                    id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    progress INTEGER NOT NULL DEFAULT 0,
                    batch_id TEXT,
                    total_units INTEGER NOT NULL DEFAULT 0,
                    completed_units INTEGER NOT NULL DEFAULT 0,
                    last_checked_at TEXT,
                    error TEXT,
                    source_language TEXT NOT NULL,
                    target_language TEXT NOT NULL,
                    style TEXT NOT NULL,
                    file_name TEXT NOT NULL,
                    file_type TEXT NOT NULL,
                    owner_id TEXT NOT NULL,
                    mode TEXT NOT NULL,
                    source_path TEXT,
                    artifact_key TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    completed_at TEXT
                )
            """)

            # One row per backend batch, the state itself is a JSON document
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS batch_states (
                    batch_id TEXT PRIMARY KEY,
                    batch_status TEXT NOT NULL,
                    state JSON NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # Scratch area for units translated in direct mode
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS unit_checkpoints (
                    job_id TEXT NOT NULL,
                    unit_index INTEGER NOT NULL,
                    unit_id TEXT NOT NULL,
                    title TEXT,
                    translated_content TEXT NOT NULL,
                    completed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (job_id, unit_id),
                    FOREIGN KEY (job_id) REFERENCES translation_jobs(id)
                        ON DELETE CASCADE
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_jobs_status
                ON translation_jobs(status)
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_units_job
                ON unit_checkpoints(job_id)
            """)

            conn.commit()

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def insert_job(self, row: Dict[str, Any]) -> None:
        """
        Insert a job row.

        Raises:
            sqlite3.IntegrityError: if a job with the same id exists
        """
        columns = [c for c in JOB_COLUMNS if c in row]
        placeholders = ', '.join('?' for _ in columns)
        with self.lock:
            conn = self._get_connection()
            conn.execute(
                f"INSERT INTO translation_jobs ({', '.join(columns)}) VALUES ({placeholders})",
                [row[c] for c in columns]
            )
            conn.commit()

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        """Return a job row as a dictionary, or None if not found."""
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM translation_jobs WHERE id = ?", (job_id,)).fetchone()
        return dict(row) if row else None

    def update_job(self, job_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update only the given columns of a job in a single statement.

        Args:
            job_id: Job identifier
            fields: Column name to new value

        Returns:
            The job row after the update, or None if the job does not exist
        """
        unknown = set(fields) - set(JOB_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown job columns: {', '.join(sorted(unknown))}")

        with self.lock:
            conn = self._get_connection()
            if fields:
                assignments = ', '.join(f"{column} = ?" for column in fields)
                cursor = conn.execute(
                    f"UPDATE translation_jobs SET {assignments} WHERE id = ?",
                    list(fields.values()) + [job_id]
                )
                conn.commit()
                if cursor.rowcount == 0:
                    return None
            return self.get_job(job_id)

    def list_jobs(
        self,
        statuses: Optional[Iterable[str]] = None,
        owner_id: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """List job rows, newest first."""
        query = "SELECT * FROM translation_jobs"
        clauses, params = [], []
        if statuses is not None:
            statuses = list(statuses)
            clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(statuses)
        if owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(owner_id)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        conn = self._get_connection()
        return [dict(row) for row in conn.execute(query, params).fetchall()]

    # ------------------------------------------------------------------
    # Batch states
    # ------------------------------------------------------------------

    def save_batch_state(self, batch_id: str, batch_status: str, state: Dict[str, Any]) -> None:
        with self.lock:
            conn = self._get_connection()
            conn.execute("""
                INSERT OR REPLACE INTO batch_states (batch_id, batch_status, state, updated_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            """, (batch_id, batch_status, json.dumps(state)))
            conn.commit()

    def get_batch_state(self, batch_id: str) -> Optional[Dict[str, Any]]:
        conn = self._get_connection()
        row = conn.execute("SELECT state FROM batch_states WHERE batch_id = ?", (batch_id,)).fetchone()
        return json.loads(row['state']) if row else None

    # ------------------------------------------------------------------
    # Unit checkpoints
    # ------------------------------------------------------------------

    def save_unit(
        self,
        job_id: str,
        unit_index: int,
        unit_id: str,
        translated_content: str,
        title: Optional[str] = None
    ) -> None:
        with self.lock:
            conn = self._get_connection()
            conn.execute("""
                INSERT OR REPLACE INTO unit_checkpoints
                (job_id, unit_index, unit_id, title, translated_content, completed_at)
                VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            """, (job_id, unit_index, unit_id, title, translated_content))
            conn.commit()

    def get_units(self, job_id: str) -> List[Dict[str, Any]]:
        """Checkpointed units of a job, ordered by unit index."""
        conn = self._get_connection()
        rows = conn.execute("""
            SELECT * FROM unit_checkpoints
            WHERE job_id = ?
            ORDER BY unit_index
        """, (job_id,)).fetchall()
        return [dict(row) for row in rows]

    def delete_units(self, job_id: str) -> int:
        with self.lock:
            conn = self._get_connection()
            cursor = conn.execute("DELETE FROM unit_checkpoints WHERE job_id = ?", (job_id,))
            conn.commit()
            return cursor.rowcount

    def close(self):
        """Close database connection."""
        if hasattr(self._local, 'connection') and self._local.connection:
            self._local.connection.close()
            self._local.connection = None
