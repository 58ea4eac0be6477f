"""
Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and provides common fixtures
and configuration for all test modules.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Import pytest for fixtures
import pytest

from src.core.adapters import TranslatableUnit
from src.core.finalizer import JobFinalizer
from src.persistence import CheckpointManager, Database, JobStore
from src.storage import LocalArtifactStore
from tests.helpers import build_epub


@pytest.fixture
def epub_bytes():
    return build_epub()


@pytest.fixture
def sample_units():
    return [
        TranslatableUnit(id='ch1', title='The Beginning', content='<p>One</p>'),
        TranslatableUnit(id='ch2', title='The Middle', content='<p>Two</p>'),
        TranslatableUnit(id='ch3', title='Chapter 3', content='<p>Three</p>'),
    ]


@pytest.fixture
def database(tmp_path):
    db = Database(str(tmp_path / "jobs.db"))
    yield db
    db.close()


@pytest.fixture
def job_store(database):
    return JobStore(database)


@pytest.fixture
def checkpoints(database, tmp_path):
    return CheckpointManager(database, str(tmp_path / "uploads"))


@pytest.fixture
def artifact_store(tmp_path):
    return LocalArtifactStore(str(tmp_path / "artifacts"), secret_key="test-secret")


@pytest.fixture
def finalizer(job_store, artifact_store, checkpoints):
    return JobFinalizer(job_store, artifact_store, checkpoints)


@pytest.fixture
def fixed_now():
    return datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
