"""formsubmit: Submission orchestration for interactive forms."""

__version__ = "0.1.0"

from formsubmit.context import SubmissionContext
from formsubmit.errors import (
    AsyncValidationError,
    ClassifiedError,
    ErrorKind,
    SubmissionError,
    SubmissionFailureError,
    classify_error,
)
from formsubmit.merge import merge_errors, normalize_errors
from formsubmit.orchestrator import SubmissionOrchestrator, handle_submit, is_deferred

__all__ = [
    "__version__",
    # Context
    "SubmissionContext",
    # Errors
    "AsyncValidationError",
    "ClassifiedError",
    "ErrorKind",
    "SubmissionError",
    "SubmissionFailureError",
    "classify_error",
    # Merge
    "merge_errors",
    "normalize_errors",
    # Orchestration
    "SubmissionOrchestrator",
    "handle_submit",
    "is_deferred",
]
