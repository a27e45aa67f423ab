"""Answer predicates shared by the per-step gate and the full-form gate.

Both gates call ``is_answered`` so the two checks can never disagree about
what counts as an answer.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from formflow.logic.errors import ValidationError
from formflow.models.question import Question
from formflow.models.question_kind import QuestionKind


def normalise_answer(value: Any) -> Optional[str]:
    """Return the stored form of an answer, or None when it is blank."""
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def is_answered(question: Question, answers: Mapping[str, Any]) -> bool:
    return normalise_answer(answers.get(question.id)) is not None


def blocks_advance(question: Question, answers: Mapping[str, Any]) -> bool:
    return question.required and not is_answered(question, answers)


def validate_answer_value(question: Question, value: Optional[str]) -> None:
    """Reject choice answers that are not one of the question's options."""
    if value is None:
        return
    if QuestionKind.is_choice(question.question_type) and value not in (question.options or []):
        raise ValidationError(f"'{value}' is not an option of question {question.id}")


__all__ = ["normalise_answer", "is_answered", "blocks_advance", "validate_answer_value"]
