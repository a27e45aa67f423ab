"""Pydantic models for persisted records and HTTP payloads."""

from formflow.models.form import Form
from formflow.models.question import Question
from formflow.models.question_kind import QuestionKind
from formflow.models.response import Response

__all__ = ["Form", "Question", "QuestionKind", "Response"]
