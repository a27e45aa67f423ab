"""QuestionKind enumeration for the supported question types.

Provides a simple constants container instead of an Enum so values compare
equal to the raw strings stored in the `questions.question_type` column.
"""

from __future__ import annotations


class QuestionKind:
    SHORT_TEXT = "short_text"
    MULTIPLE_CHOICE = "multiple_choice"
    DROPDOWN = "dropdown"

    ALL = (SHORT_TEXT, MULTIPLE_CHOICE, DROPDOWN)
    CHOICE_KINDS = frozenset({MULTIPLE_CHOICE, DROPDOWN})

    @classmethod
    def is_choice(cls, kind: str) -> bool:
        return kind in cls.CHOICE_KINDS


DEFAULT_OPTIONS: tuple[str, ...] = ("Option 1", "Option 2", "Option 3")


__all__ = ["QuestionKind", "DEFAULT_OPTIONS"]
