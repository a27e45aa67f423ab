"""Request bodies accepted by the HTTP routes."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from formflow.models.question import QuestionType


class FormCreate(BaseModel):
    title: str = "Untitled Form"
    description: Optional[str] = ""


class QuestionPayload(BaseModel):
    """One entry of a full-draft PUT; an absent id adds a new question."""

    id: Optional[str] = None
    question_text: str = "New Question"
    question_type: QuestionType
    required: bool = False
    options: Optional[List[str]] = None


class FormUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    # Full ordered question list; None leaves the questions untouched
    questions: Optional[List[QuestionPayload]] = None


class QuestionCreate(BaseModel):
    kind: QuestionType = "short_text"


class QuestionPatch(BaseModel):
    question_text: Optional[str] = None
    question_type: Optional[QuestionType] = None
    required: Optional[bool] = None
    options: Optional[List[str]] = None

    def changes(self) -> Dict[str, object]:
        return self.model_dump(exclude_unset=True)


class QuestionOrder(BaseModel):
    question_ids: List[str] = Field(default_factory=list)


class AnswerPayload(BaseModel):
    value: Optional[str] = None


class SubmissionPayload(BaseModel):
    answers: Dict[str, Optional[str]] = Field(default_factory=dict)


__all__ = [
    "FormCreate",
    "QuestionPayload",
    "FormUpdate",
    "QuestionCreate",
    "QuestionPatch",
    "QuestionOrder",
    "AnswerPayload",
    "SubmissionPayload",
]
