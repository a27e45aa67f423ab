"""Domain error taxonomy.

StorageError wraps any gateway failure, ValidationError blocks a local edit or
advancement, NotFoundError ends a view. The HTTP layer maps each class to a
problem+json status in `formflow.http.problem`.
"""

from __future__ import annotations

from typing import Optional


class FormflowError(Exception):
    """Base class for errors raised by the logic layer."""

    code = "FORMFLOW_ERROR"


class StorageError(FormflowError):
    """A storage gateway call failed; carries the underlying message."""

    code = "STORAGE_FAILURE"


class ValidationError(FormflowError):
    code = "VALIDATION_FAILED"


class AnswerRequiredError(ValidationError):
    """A required question has no answer.

    ``step`` is the index the respondent flow is positioned on after the
    check, i.e. the step of the offending question.
    """

    code = "ANSWER_REQUIRED"

    def __init__(self, question_id: str, step: int, message: Optional[str] = None) -> None:
        super().__init__(message or "This question is required")
        self.question_id = question_id
        self.step = step


class NotFoundError(FormflowError):
    code = "NOT_FOUND"


class FlowStateError(FormflowError):
    """An operation was attempted in a state that does not allow it."""

    code = "FLOW_STATE_CONFLICT"


__all__ = [
    "FormflowError",
    "StorageError",
    "ValidationError",
    "AnswerRequiredError",
    "NotFoundError",
    "FlowStateError",
]
