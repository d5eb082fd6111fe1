"""Error contracts for form submission.

Submit actions signal failure by raising one of two recognized error
types. Anything else raised from a submit action is unrecognized and is
only handled when the caller supplied an ``on_submit_fail`` callback.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from formsubmit.merge import normalize_errors


class SubmissionError(Exception):
    """Raised by a submit action to report field-addressable errors.

    Attributes:
        errors: Mapping from field name to error detail. Values may be
            nested structures (e.g. errors for a list of sub-forms).
    """

    def __init__(self, errors: Mapping[str, Any] | BaseModel) -> None:
        if not isinstance(errors, (Mapping, BaseModel)):
            raise TypeError(
                f"SubmissionError expects a mapping of field errors, got {type(errors).__name__}"
            )
        self.errors = normalize_errors(errors)
        super().__init__("Submit Validation Failed")


class SubmissionFailureError(Exception):
    """Raised by a submit action to report a form-wide failure message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AsyncValidationError(Exception):
    """Raised from a deferred outcome when async validation reports errors.

    Attributes:
        errors: The validator's payload. Mappings and pydantic models are
            materialized into a plain dict; any other truthy payload (a
            message, a list) is kept unchanged.
    """

    def __init__(self, errors: Any) -> None:
        if isinstance(errors, (Mapping, BaseModel)):
            self.errors = normalize_errors(errors)
            super().__init__(f"Async validation failed for: {', '.join(map(str, self.errors))}")
        else:
            self.errors = errors
            super().__init__(f"Async validation failed: {errors!r}")


class ErrorKind(str, Enum):
    """Classification of an error raised by a submit action."""

    FIELD_ERRORS = "field_errors"
    FAILURE_MESSAGE = "failure_message"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ClassifiedError:
    """A submit error together with its normalized payload.

    Attributes:
        kind: Which error contract the raw value matched.
        error: Field error dict, failure message, or None when unrecognized.
        raw: The value that was raised.
    """

    kind: ErrorKind
    error: dict[str, Any] | str | None
    raw: Any

    @property
    def recognized(self) -> bool:
        return self.kind is not ErrorKind.UNRECOGNIZED


def classify_error(exc: Any) -> ClassifiedError:
    """Classify a raised value by type identity.

    Args:
        exc: The exception (or arbitrary value) raised by a submit action.

    Returns:
        ClassifiedError. Every input classifies as exactly one kind.
    """
    if isinstance(exc, SubmissionError):
        return ClassifiedError(kind=ErrorKind.FIELD_ERRORS, error=exc.errors, raw=exc)
    if isinstance(exc, SubmissionFailureError):
        return ClassifiedError(kind=ErrorKind.FAILURE_MESSAGE, error=exc.message, raw=exc)
    return ClassifiedError(kind=ErrorKind.UNRECOGNIZED, error=None, raw=exc)
