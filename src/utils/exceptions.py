# ========================
# src/utils/exceptions.py
# ========================

"""
Pipeline Exceptions

Error taxonomy for the ETL run. Step-level errors are fatal to the run
(archiving and cleanup excepted); TransformWarning is row-level and never
leaves the normalizer.

Exception Hierarchy:
    PipelineError (base)
    ├── PreflightError
    ├── ExtractionError
    ├── TransformError
    ├── MergeError
    ├── ArchiveError
    ├── ReportError
    ├── CleanupError
    └── UnexpectedError
    TransformWarning (row-level, absorbed)
"""

from datetime import datetime
from typing import Any, Dict, Optional


class PipelineError(Exception):
    """
    Base exception for all pipeline step failures.

    Attributes:
        message: Human-readable error message
        context: Additional context (source, step, paths)
        original_exception: The underlying exception, if any
    """

    def __init__(self,
                 message: str,
                 context: Optional[Dict[str, Any]] = None,
                 original_exception: Optional[BaseException] = None):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        super().__init__(message)
        if original_exception is not None:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        base_msg = self.message
        if self.original_exception is not None:
            base_msg += f" ({type(self.original_exception).__name__}: {self.original_exception})"
        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'timestamp': self.timestamp.isoformat(),
            'original_error': str(self.original_exception) if self.original_exception else None
        }


class PreflightError(PipelineError):
    """Configuration is invalid or the run environment is unusable."""
    pass


class ExtractionError(PipelineError):
    """A source could not be copied or dumped into staging."""

    def __init__(self,
                 source_name: str,
                 message: str,
                 original_exception: Optional[BaseException] = None):
        super().__init__(message, {'source': source_name}, original_exception)
        self.source_name = source_name


class TransformError(PipelineError):
    """A raw artifact is missing or cannot be parsed as a whole."""
    pass


class MergeError(PipelineError):
    """No mergeable data was found."""
    pass


class ArchiveError(PipelineError):
    """Archive could not be written. Downgraded to a warning by the orchestrator."""
    pass


class ReportError(PipelineError):
    """The merged dataset is missing or unreadable."""
    pass


class CleanupError(PipelineError):
    """Staging or log cleanup failed."""
    pass


class UnexpectedError(PipelineError):
    """Any fault not covered by the other step errors."""
    pass


class TransformWarning(Exception):
    """
    A single row failed the validity predicate or could not be parsed.
    Raised and caught inside the normalizer; the row is dropped.
    """

    def __init__(self, reason: str, row: Any = None):
        super().__init__(reason)
        self.reason = reason
        self.row = row
