"""
Asynchronous batch translation.

One backend batch per job: the client talks to the provider's Files and
Batches endpoints, the orchestrator drives submission, polling, result
retrieval and hand-off to reconstruction.
"""

from .state import BatchStatus, BatchTranslationState, BatchStateStore
from .client import BatchTranslationClient
from .scheduler import PollScheduler
from .orchestrator import BatchOrchestrator

__all__ = [
    'BatchStatus',
    'BatchTranslationState',
    'BatchStateStore',
    'BatchTranslationClient',
    'PollScheduler',
    'BatchOrchestrator',
]
