"""Tabulation of collected responses against a form's questions.

One row per response (newest first), one column per question in order
position order, plus the submission date. A missing answer renders as an
explicit placeholder so cells never shift. Answers keyed by question ids
that are no longer on the form are kept in storage but not rendered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from formflow.logic.clock import parse_timestamp
from formflow.logic.validation import normalise_answer
from formflow.models.question import Question
from formflow.models.response import Response

DATE_COLUMN = "Date"
DEFAULT_PLACEHOLDER = "-"


@dataclass
class ResponseRow:
    response_id: str
    submitted_at: str
    submitted_display: str
    cells: List[str] = field(default_factory=list)


@dataclass
class ResponseTable:
    columns: List[str]
    question_ids: List[str]
    rows: List[ResponseRow]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": list(self.columns),
            "question_ids": list(self.question_ids),
            "count": len(self.rows),
            "rows": [
                {
                    "response_id": r.response_id,
                    "submitted_at": r.submitted_at,
                    "submitted_display": r.submitted_display,
                    "cells": list(r.cells),
                }
                for r in self.rows
            ],
        }


def order_questions(questions: Sequence[Question]) -> List[Question]:
    return sorted(questions, key=lambda q: (q.order_number, q.id))


def order_responses(responses: Sequence[Response]) -> List[Response]:
    """Newest submission first; ties broken by id for a stable export."""
    by_id = sorted(responses, key=lambda r: r.id)
    return sorted(by_id, key=lambda r: parse_timestamp(r.created_at), reverse=True)


def format_display_date(timestamp: str) -> str:
    """Render like 'Mar 5, 2024 3:07 PM'."""
    dt = parse_timestamp(timestamp)
    hour = dt.hour % 12 or 12
    return f"{dt:%b} {dt.day}, {dt.year} {hour}:{dt:%M} {dt:%p}"


def answer_cells(questions: Sequence[Question], response: Response, placeholder: str) -> List[str]:
    cells: List[str] = []
    for q in questions:
        answer = normalise_answer(response.response_data.get(q.id))
        cells.append(answer if answer is not None else placeholder)
    return cells


def tabulate(
    questions: Sequence[Question],
    responses: Sequence[Response],
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> ResponseTable:
    ordered = order_questions(questions)
    rows = [
        ResponseRow(
            response_id=r.id,
            submitted_at=r.created_at,
            submitted_display=format_display_date(r.created_at),
            cells=answer_cells(ordered, r, placeholder),
        )
        for r in order_responses(responses)
    ]
    return ResponseTable(
        columns=[DATE_COLUMN, *[q.question_text for q in ordered]],
        question_ids=[q.id for q in ordered],
        rows=rows,
    )


__all__ = [
    "DATE_COLUMN",
    "DEFAULT_PLACEHOLDER",
    "ResponseRow",
    "ResponseTable",
    "order_questions",
    "order_responses",
    "format_display_date",
    "answer_cells",
    "tabulate",
]
