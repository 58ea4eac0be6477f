"""
Exception hierarchy for the translation pipeline.

Every error carries a human-readable message, optional context and a
``recoverable`` flag. Recoverable errors are retried by whoever owns the
job (the batch orchestrator keeps polling); non-recoverable ones end the
job in ``failed``.
"""

from typing import Optional, Dict, Any


class TranslationError(Exception):
    """Base exception for all translation-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context about the error
        recoverable: Whether the error can potentially be recovered from
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}: {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base += f" (context: {context_str})"
        return base


# ============================================================================
# Batch backend errors
# ============================================================================

class BatchBackendError(TranslationError):
    """Base exception for errors talking to the batch translation backend."""
    pass


class SubmissionError(BatchBackendError):
    """Raised when the backend rejects a batch upload or creation.

    Fatal to the batch attempt only: the job falls back to direct mode.
    """
    pass


class PollError(BatchBackendError):
    """Raised when a status check fails for a transient reason."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context, recoverable=True)


class ResultParseError(BatchBackendError):
    """Raised for a single malformed or errored line of a batch output file.

    Attributes:
        line_number: 1-based line number in the output file
        custom_id: Correlation id of the line, when it could be read
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        custom_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, context, recoverable=True)
        self.line_number = line_number
        self.custom_id = custom_id


class BackendJobFailure(BatchBackendError):
    """Raised when the backend reports the batch as failed, expired or cancelled."""
    pass


class BatchStateNotFoundError(BackendJobFailure):
    """Raised when no batch state is known for a batch id."""
    pass


# ============================================================================
# Document errors
# ============================================================================

class ExtractionError(TranslationError):
    """Raised when a document cannot be split into translatable units."""
    pass


class ReconstructionError(TranslationError):
    """Raised when translated units cannot be reassembled into a document."""
    pass


class UnsupportedFormatError(ExtractionError):
    """Raised when no format adapter handles the requested file type."""
    pass


# ============================================================================
# Direct translation errors
# ============================================================================

class UnitTranslationError(TranslationError):
    """Raised when translating a specific unit fails.

    Attributes:
        unit_id: Identifier of the failed unit
        unit_index: Index of the failed unit
    """

    def __init__(
        self,
        message: str,
        unit_id: Optional[str] = None,
        unit_index: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message, context, recoverable)
        self.unit_id = unit_id
        self.unit_index = unit_index


# ============================================================================
# Storage errors
# ============================================================================

class ArtifactStoreError(TranslationError):
    """Raised when a translated artifact cannot be written or resolved."""
    pass


class JobNotFoundError(TranslationError):
    """Raised when a job id is unknown to the job store."""

    def __init__(self, job_id: str):
        super().__init__("Translation job not found", context={'job_id': job_id})
        self.job_id = job_id


class JobStateError(TranslationError):
    """Raised when an update would move a job out of a terminal state."""
    pass


def user_message(error: BaseException) -> str:
    """Short message suitable for the job record's ``error`` field."""
    if isinstance(error, TranslationError):
        return error.message
    return str(error) or error.__class__.__name__
