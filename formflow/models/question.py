"""Question record as stored in the `questions` collection."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from formflow.models.question_kind import QuestionKind


QuestionType = Literal["short_text", "multiple_choice", "dropdown"]

# Fields an editor may change through FormDraft.update_question
EDITABLE_FIELDS = frozenset({"question_text", "question_type", "required", "options"})


class Question(BaseModel):
    id: str
    form_id: str
    question_text: str = "New Question"
    question_type: QuestionType
    required: bool = False
    order_number: int = Field(ge=0)
    options: Optional[List[str]] = None
    created_at: str
    updated_at: str

    @field_validator("options")
    @classmethod
    def options_are_strings(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [str(o) for o in v]

    @model_validator(mode="after")
    def options_match_kind(self) -> "Question":
        if QuestionKind.is_choice(self.question_type):
            if not self.options:
                raise ValueError(f"{self.question_type} questions need at least one option")
        elif self.options is not None:
            raise ValueError("short_text questions cannot carry options")
        return self


__all__ = ["Question", "QuestionType", "EDITABLE_FIELDS"]
